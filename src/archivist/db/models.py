"""Domain models for the archive database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class CollectionRecord:
    id: int
    name: str
    embedding_model: str
    dimensions: int
    created_at: str | None = None


@dataclass
class Chunk:
    """An ordered segment of one document's cleaned text (not yet persisted)."""

    document_id: str
    chunk_index: int
    text: str


@dataclass
class Entry:
    """A persisted IndexEntry: chunk id, source text and metadata.

    The embedding lives in the collection's vec table under ``rowid``.
    """

    collection_id: int
    entry_id: str
    text: str
    document: str = ""
    chunk_index: int | None = None
    metadata: str = field(default_factory=lambda: "{}")
    created_at: str | None = None
    rowid: int | None = None  # set after insert; None for unsaved entries

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata)
