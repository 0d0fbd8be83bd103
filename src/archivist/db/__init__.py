"""Archive database layer — SQLite + sqlite-vec vector store."""

from archivist.db.connection import Database
from archivist.db.migrations import MIGRATIONS, run_migrations
from archivist.db.schema import initialize
from archivist.db.store import Collection, QueryResult, VectorStore
from archivist.db.vectors import ensure_vec_table, vec_table_name

__all__ = [
    "Collection",
    "Database",
    "MIGRATIONS",
    "QueryResult",
    "VectorStore",
    "ensure_vec_table",
    "initialize",
    "run_migrations",
    "vec_table_name",
]
