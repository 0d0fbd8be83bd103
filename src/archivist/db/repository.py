"""Repository pattern for all archive database operations.

Single interface for: collections, entries and their vec embeddings.
Vec tables are created per collection (ensure_vec_table); the repository
handles reads and writes. Write methods do not commit; callers group them
with ``transaction()`` so a batch lands entirely or not at all.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from archivist.db.models import CollectionRecord, Entry

_ENTRY_COLUMNS = (
    "id, collection_id, entry_id, document, chunk_index, text, metadata, created_at"
)


class Repository:
    """Data access layer for collections and index entries.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see archivist.db.schema.initialize).
        """
        self._conn = conn
        self._depth = 0

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit everything written inside the block, or roll all of it back.

        Blocks nest: an inner block joins the outermost one, which alone
        commits or rolls back.
        """
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            self._depth = 0
        self._conn.commit()

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def add_collection(self, name: str, embedding_model: str, dimensions: int) -> CollectionRecord:
        """Insert a collection row and return it (with its new id)."""
        cur = self._conn.execute(
            "INSERT INTO collections (name, embedding_model, dimensions) VALUES (?, ?, ?)",
            (name, embedding_model, dimensions),
        )
        record = self.get_collection_by_id(cur.lastrowid)
        assert record is not None
        return record

    def get_collection_by_id(self, collection_id: int) -> CollectionRecord | None:
        row = self._conn.execute(
            "SELECT id, name, embedding_model, dimensions, created_at FROM collections WHERE id = ?",
            (collection_id,),
        ).fetchone()
        return _row_to_collection(row) if row else None

    def get_collection_by_name(self, name: str) -> CollectionRecord | None:
        """Return a collection by name, or None if not found."""
        row = self._conn.execute(
            "SELECT id, name, embedding_model, dimensions, created_at FROM collections WHERE name = ?",
            (name,),
        ).fetchone()
        return _row_to_collection(row) if row else None

    def list_collections(self) -> list[CollectionRecord]:
        """Return all collections ordered by name."""
        rows = self._conn.execute(
            "SELECT id, name, embedding_model, dimensions, created_at FROM collections ORDER BY name"
        ).fetchall()
        return [_row_to_collection(r) for r in rows]

    def delete_collection(self, collection_id: int) -> None:
        """Delete a collection row; its entries cascade."""
        self._conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get_entry(self, collection_id: int, entry_id: str) -> Entry | None:
        """Return an entry by its id within a collection, or None."""
        row = self._conn.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE collection_id = ? AND entry_id = ?",
            (collection_id, entry_id),
        ).fetchone()
        return _row_to_entry(row) if row else None

    def get_entry_by_rowid(self, rowid: int) -> Entry | None:
        """Return an entry by its SQLite rowid (the vec table key), or None."""
        row = self._conn.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE id = ?", (rowid,)
        ).fetchone()
        return _row_to_entry(row) if row else None

    def upsert_entry(self, vec_table: str, entry: Entry, embedding: list[float]) -> int:
        """Insert *entry* and its embedding, replacing an entry with the same id.

        Returns the rowid shared by the entries row and the vec row.
        """
        existing = self.get_entry(entry.collection_id, entry.entry_id)
        if existing is not None:
            rowid = existing.rowid
            self._conn.execute(
                """
                UPDATE entries
                SET document = ?, chunk_index = ?, text = ?, metadata = ?,
                    created_at = datetime('now')
                WHERE id = ?
                """,
                (entry.document, entry.chunk_index, entry.text, entry.metadata, rowid),
            )
            self._conn.execute(f"DELETE FROM {vec_table} WHERE rowid = ?", (rowid,))
        else:
            cur = self._conn.execute(
                """
                INSERT INTO entries (collection_id, entry_id, document, chunk_index, text, metadata)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.collection_id,
                    entry.entry_id,
                    entry.document,
                    entry.chunk_index,
                    entry.text,
                    entry.metadata,
                ),
            )
            rowid = cur.lastrowid
        self._conn.execute(
            f"INSERT INTO {vec_table}(rowid, embedding) VALUES (?, ?)",
            (rowid, json.dumps(embedding)),
        )
        entry.rowid = rowid
        return rowid

    def delete_entries_by_document(self, vec_table: str, collection_id: int, document: str) -> int:
        """Delete a document's entries and vec rows. Returns the number removed."""
        rowids = [
            r[0]
            for r in self._conn.execute(
                "SELECT id FROM entries WHERE collection_id = ? AND document = ?",
                (collection_id, document),
            ).fetchall()
        ]
        if not rowids:
            return 0
        placeholders = ",".join("?" * len(rowids))
        self._conn.execute(
            f"DELETE FROM {vec_table} WHERE rowid IN ({placeholders})", rowids  # noqa: S608
        )
        self._conn.execute(
            f"DELETE FROM entries WHERE id IN ({placeholders})", rowids  # noqa: S608
        )
        return len(rowids)

    def count_entries(self, collection_id: int) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM entries WHERE collection_id = ?", (collection_id,)
        ).fetchone()[0]

    def list_documents(self, collection_id: int) -> list[tuple[str, int]]:
        """Return [(document, entry_count), ...] ordered by document."""
        rows = self._conn.execute(
            """
            SELECT document, COUNT(*) AS n FROM entries
            WHERE collection_id = ? GROUP BY document ORDER BY document
            """,
            (collection_id,),
        ).fetchall()
        return [(r["document"], r["n"]) for r in rows]

    # ------------------------------------------------------------------
    # Vec search
    # ------------------------------------------------------------------

    def search_vec(
        self, vec_table: str, embedding: list[float], limit: int = 5
    ) -> list[tuple[Entry, float]]:
        """Nearest-neighbour search. Returns (entry, distance) sorted by distance."""
        vec_rows = self._conn.execute(
            f"SELECT rowid, distance FROM {vec_table} WHERE embedding MATCH ? AND k = ? ORDER BY distance",
            (json.dumps(embedding), limit),
        ).fetchall()

        results: list[tuple[Entry, float]] = []
        for vec_row in vec_rows:
            entry = self.get_entry_by_rowid(vec_row["rowid"])
            if entry is not None:
                results.append((entry, vec_row["distance"]))
        return results


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_collection(row: sqlite3.Row) -> CollectionRecord:
    return CollectionRecord(
        id=row["id"],
        name=row["name"],
        embedding_model=row["embedding_model"],
        dimensions=row["dimensions"],
        created_at=row["created_at"],
    )


def _row_to_entry(row: sqlite3.Row) -> Entry:
    return Entry(
        rowid=row["id"],
        collection_id=row["collection_id"],
        entry_id=row["entry_id"],
        document=row["document"],
        chunk_index=row["chunk_index"],
        text=row["text"],
        metadata=row["metadata"],
        created_at=row["created_at"],
    )
