"""Dense retriever + ranker over a single collection.

Query path:
  question → embedding (same model as ingest) → top-K nearest entries
  → RankedResult list ordered by ascending distance (lower = more relevant).

Ranking is a stable sort, so equal distances keep retrieval order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from archivist.log import get_logger

if TYPE_CHECKING:
    from archivist.db.store import Collection, QueryResult
    from archivist.ingest.embedder import Embedder

logger = get_logger(__name__)


@dataclass
class RankedResult:
    """A retrieved chunk with its vector distance.

    Attributes:
        text: Source text of the chunk.
        distance: Distance to the query vector (lower = more relevant).
        entry_id: Identifier of the index entry, when known.
        metadata: Stored metadata of the entry.
    """

    text: str
    distance: float
    entry_id: str | None = None
    metadata: dict = field(default_factory=dict)


def rank(results: list[RankedResult]) -> list[RankedResult]:
    """Return *results* ordered by ascending distance; ties keep input order."""
    return sorted(results, key=lambda r: r.distance)


def results_from_query(query_result: QueryResult | Mapping) -> list[RankedResult]:
    """Flatten the first query's hits into RankedResults (retrieval order).

    Accepts a QueryResult or a plain ``{"ids", "metadatas", "distances"}``
    mapping of per-query lists.
    """
    if isinstance(query_result, Mapping):
        all_ids = query_result.get("ids") or []
        all_metadatas = query_result.get("metadatas") or []
        all_distances = query_result.get("distances") or []
    else:
        all_ids = query_result.ids
        all_metadatas = query_result.metadatas
        all_distances = query_result.distances
    if not all_metadatas or not all_metadatas[0]:
        return []
    metadatas = all_metadatas[0]
    distances = all_distances[0] if all_distances else []
    ids = all_ids[0] if all_ids else []
    results: list[RankedResult] = []
    for i, (metadata, distance) in enumerate(zip(metadatas, distances)):
        metadata = metadata or {}
        results.append(
            RankedResult(
                text=str(metadata.get("text", "")),
                distance=float(distance),
                entry_id=ids[i] if i < len(ids) else None,
                metadata=metadata,
            )
        )
    return results


def retrieve(
    question: str,
    collection: Collection,
    embedder: Embedder,
    top_k: int = 5,
) -> list[RankedResult]:
    """Embed *question*, fetch the *top_k* nearest entries, and rank them.

    Returns an empty list when the collection has no matching entries.
    """
    query_embedding = embedder.embed(question)
    raw = collection.query([query_embedding], n_results=top_k)
    ranked = rank(results_from_query(raw))
    logger.debug(
        "Retrieved %d of top-%d from '%s'", len(ranked), top_k, collection.name
    )
    return ranked
