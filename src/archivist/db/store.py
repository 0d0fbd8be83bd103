"""Vector store over SQLite + sqlite-vec: named collections of index entries.

A Collection is a named, independently queryable set of (id, embedding,
text, metadata) entries. Each collection has a fixed embedding
dimensionality and its own vec0 table.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import AbstractContextManager
from dataclasses import dataclass, field

from archivist.db.models import CollectionRecord, Entry
from archivist.db.repository import Repository
from archivist.db.vectors import drop_vec_table, ensure_vec_table, vec_table_name
from archivist.errors import CollectionExistsError, InvalidInputError
from archivist.log import get_logger

logger = get_logger(__name__)


@dataclass
class QueryResult:
    """Nearest-neighbour results, one inner list per query embedding.

    Inner lists are aligned and ordered by ascending distance.
    """

    ids: list[list[str]] = field(default_factory=list)
    metadatas: list[list[dict]] = field(default_factory=list)
    distances: list[list[float]] = field(default_factory=list)


class Collection:
    """Handle on one stored collection."""

    def __init__(self, repo: Repository, record: CollectionRecord) -> None:
        self._repo = repo
        self._record = record
        self._vec_table = vec_table_name(record.id)

    def __repr__(self) -> str:
        return f"Collection(name={self.name!r}, dimensions={self.dimensions})"

    @property
    def name(self) -> str:
        return self._record.name

    @property
    def dimensions(self) -> int:
        return self._record.dimensions

    @property
    def embedding_model(self) -> str:
        return self._record.embedding_model

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> None:
        """Upsert a batch of entries. All of them are written or none are.

        An id already present in the collection is overwritten. The entry
        text is taken from ``metadata["text"]``; ``document`` and
        ``chunk_index`` keys, when present, are indexed for removal.

        Raises:
            InvalidInputError: If the three lists differ in length or an
                embedding does not match the collection's dimensions.
        """
        self._check_batch(ids, embeddings, metadatas)
        with self._repo.transaction():
            self._write(ids, embeddings, metadatas)
        logger.debug("Upserted %d entries into '%s'", len(ids), self.name)

    def replace_document(
        self,
        document: str,
        ids: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> int:
        """Atomically drop *document*'s entries and add the new batch.

        Returns the number of entries that were removed.
        """
        self._check_batch(ids, embeddings, metadatas)
        with self._repo.transaction():
            removed = self._repo.delete_entries_by_document(
                self._vec_table, self._record.id, document
            )
            self._write(ids, embeddings, metadatas)
        logger.debug(
            "Replaced document '%s' in '%s' (%d removed, %d added)",
            document, self.name, removed, len(ids),
        )
        return removed

    def delete_document(self, document: str) -> int:
        """Delete every entry that belongs to *document*. Returns the count."""
        with self._repo.transaction():
            return self._repo.delete_entries_by_document(
                self._vec_table, self._record.id, document
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(self, query_embeddings: list[list[float]], n_results: int = 5) -> QueryResult:
        """Return the *n_results* nearest entries for each query embedding."""
        if n_results < 1:
            raise InvalidInputError(f"n_results must be >= 1, got {n_results}")
        for emb in query_embeddings:
            self._check_dimensions(emb)

        result = QueryResult()
        for emb in query_embeddings:
            hits = self._repo.search_vec(self._vec_table, emb, limit=n_results)
            result.ids.append([entry.entry_id for entry, _ in hits])
            result.metadatas.append([_metadata_of(entry) for entry, _ in hits])
            result.distances.append([float(distance) for _, distance in hits])
        return result

    def get(self, entry_id: str) -> Entry | None:
        return self._repo.get_entry(self._record.id, entry_id)

    def count(self) -> int:
        return self._repo.count_entries(self._record.id)

    def documents(self) -> list[tuple[str, int]]:
        """Return [(document, entry_count), ...] for this collection."""
        return self._repo.list_documents(self._record.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_batch(
        self, ids: list[str], embeddings: list[list[float]], metadatas: list[dict]
    ) -> None:
        if not (len(ids) == len(embeddings) == len(metadatas)):
            raise InvalidInputError(
                f"ids, embeddings and metadatas must be the same length "
                f"({len(ids)}, {len(embeddings)}, {len(metadatas)})"
            )
        for emb in embeddings:
            self._check_dimensions(emb)

    def _check_dimensions(self, embedding: list[float]) -> None:
        if len(embedding) != self.dimensions:
            raise InvalidInputError(
                f"Embedding has {len(embedding)} dimensions; collection "
                f"'{self.name}' expects {self.dimensions}."
            )

    def _write(
        self, ids: list[str], embeddings: list[list[float]], metadatas: list[dict]
    ) -> None:
        for entry_id, embedding, metadata in zip(ids, embeddings, metadatas):
            entry = Entry(
                collection_id=self._record.id,
                entry_id=str(entry_id),
                text=str(metadata.get("text", "")),
                document=str(metadata.get("document", "")),
                chunk_index=metadata.get("chunk_index"),
                metadata=json.dumps(metadata),
            )
            self._repo.upsert_entry(self._vec_table, entry, embedding)


class VectorStore:
    """Named collections stored in one sqlite-vec database.

    Args:
        conn: Open connection with sqlite-vec loaded and schema initialised.
        embedding_model: Recorded on collections created through this store.
    """

    def __init__(self, conn: sqlite3.Connection, embedding_model: str) -> None:
        self._repo = Repository(conn)
        self.embedding_model = embedding_model

    def transaction(self) -> AbstractContextManager[None]:
        """Group collection creation and entry writes into one transaction."""
        return self._repo.transaction()

    def list_collections(self) -> list[str]:
        return [c.name for c in self._repo.list_collections()]

    def create_collection(self, name: str, dimensions: int) -> Collection:
        """Create an empty collection: its row and its vec table, atomically.

        Raises:
            CollectionExistsError: If *name* is already taken, including by
                another connection that created it first.
            InvalidInputError: If *name* is empty.
        """
        if not name:
            raise InvalidInputError("Collection name must not be empty.")
        if self._repo.get_collection_by_name(name) is not None:
            raise CollectionExistsError(f"Collection '{name}' already exists.")
        with self._repo.transaction():
            try:
                record = self._repo.add_collection(name, self.embedding_model, dimensions)
            except sqlite3.IntegrityError as exc:
                raise CollectionExistsError(f"Collection '{name}' already exists.") from exc
            ensure_vec_table(self._repo.conn, record.id, dimensions)
        logger.info("Created collection '%s' (%d dimensions)", name, dimensions)
        return Collection(self._repo, record)

    def get_collection(self, name: str) -> Collection:
        """Return the collection called *name*.

        Raises:
            InvalidInputError: If no such collection exists.
        """
        record = self._repo.get_collection_by_name(name)
        if record is None:
            raise InvalidInputError(f"Collection '{name}' does not exist.")
        return Collection(self._repo, record)

    def delete_collection(self, name: str) -> None:
        """Drop a collection, its entries and its vec table."""
        record = self._repo.get_collection_by_name(name)
        if record is None:
            raise InvalidInputError(f"Collection '{name}' does not exist.")
        with self._repo.transaction():
            self._repo.delete_collection(record.id)
            drop_vec_table(self._repo.conn, record.id)
        logger.info("Deleted collection '%s'", name)


def _metadata_of(entry: Entry) -> dict:
    metadata = entry.metadata_dict
    metadata.setdefault("text", entry.text)
    return metadata
