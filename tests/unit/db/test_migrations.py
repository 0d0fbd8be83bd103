"""Tests for the forward-only migration runner and schema initialisation."""

from __future__ import annotations

from archivist.db.connection import Database
from archivist.db.migrations import MIGRATIONS, run_migrations
from archivist.db.schema import CURRENT_VERSION, initialize


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    db = Database(tmp_path / "test.db")
    return db.connect()


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
    ).fetchone() is not None


def test_run_migrations_creates_schema_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, "schema_version")
    conn.close()


def test_run_migrations_records_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0] == CURRENT_VERSION
    conn.close()


def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


def test_initialize_creates_collections_and_entries(tmp_path):
    conn = _fresh_conn(tmp_path)
    initialize(conn)
    assert _table_exists(conn, "collections")
    assert _table_exists(conn, "entries")
    conn.close()


def test_entry_ids_unique_per_collection(tmp_path):
    conn = _fresh_conn(tmp_path)
    initialize(conn)
    conn.execute(
        "INSERT INTO collections (id, name, embedding_model, dimensions) VALUES (1, 'a', 'm', 4)"
    )
    conn.execute(
        "INSERT INTO collections (id, name, embedding_model, dimensions) VALUES (2, 'b', 'm', 4)"
    )
    conn.execute("INSERT INTO entries (collection_id, entry_id, text) VALUES (1, 'chunk_0', 'x')")
    # Same id in another collection is fine
    conn.execute("INSERT INTO entries (collection_id, entry_id, text) VALUES (2, 'chunk_0', 'y')")
    try:
        conn.execute(
            "INSERT INTO entries (collection_id, entry_id, text) VALUES (1, 'chunk_0', 'z')"
        )
    except Exception as exc:
        assert "UNIQUE" in str(exc)
    else:
        raise AssertionError("duplicate entry id within a collection was accepted")
    conn.close()
