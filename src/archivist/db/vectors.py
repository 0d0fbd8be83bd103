"""Per-collection sqlite-vec virtual table management."""

from __future__ import annotations

import sqlite3


def vec_table_name(collection_id: int) -> str:
    """Return the vec table name for a collection row id.

    Example:
        3 -> "vec_collection_3"
    """
    if collection_id < 1:
        raise ValueError(f"collection_id must be >= 1, got {collection_id}")
    return f"vec_collection_{int(collection_id)}"


def ensure_vec_table(conn: sqlite3.Connection, collection_id: int, dimensions: int) -> str:
    """Create vec_collection_{collection_id} if it doesn't already exist.

    Does not commit; the caller's transaction owns the table creation.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        collection_id: Row id of the owning collection.
        dimensions: Embedding vector dimensions (e.g. 1536 for text-embedding-3-small).

    Returns:
        The table name.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    table = vec_table_name(collection_id)
    existing = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()

    if existing is None:
        conn.execute(
            f"CREATE VIRTUAL TABLE {table} USING vec0(embedding float[{int(dimensions)}])"
        )

    return table


def drop_vec_table(conn: sqlite3.Connection, collection_id: int) -> None:
    """Drop the vec table of *collection_id* if present. Does not commit."""
    conn.execute(f"DROP TABLE IF EXISTS {vec_table_name(collection_id)}")
