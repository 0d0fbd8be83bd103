"""Tests for the Repository data access layer."""

from __future__ import annotations

import json

import pytest

from archivist.db.models import Entry
from archivist.db.repository import Repository
from archivist.db.vectors import ensure_vec_table


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def collection(repo):
    record = repo.add_collection("pdf_data", "openai/text-embedding-3-small", 4)
    table = ensure_vec_table(repo.conn, record.id, 4)
    repo.conn.commit()
    return record, table


def _entry(collection_id, entry_id="doc_0", text="hello", document="doc", index=0):
    return Entry(
        collection_id=collection_id,
        entry_id=entry_id,
        text=text,
        document=document,
        chunk_index=index,
        metadata=json.dumps({"text": text, "document": document, "chunk_index": index}),
    )


# ------------------------------------------------------------------
# Collections
# ------------------------------------------------------------------

def test_add_and_get_collection(repo):
    record = repo.add_collection("laws", "openai/text-embedding-3-small", 1536)
    assert record.id >= 1
    fetched = repo.get_collection_by_name("laws")
    assert fetched is not None
    assert fetched.id == record.id
    assert fetched.dimensions == 1536
    assert fetched.embedding_model == "openai/text-embedding-3-small"


def test_get_collection_not_found(repo):
    assert repo.get_collection_by_name("missing") is None
    assert repo.get_collection_by_id(999) is None


def test_list_collections_ordered_by_name(repo):
    repo.add_collection("zeta", "m", 4)
    repo.add_collection("alpha", "m", 4)
    assert [c.name for c in repo.list_collections()] == ["alpha", "zeta"]


def test_delete_collection_cascades_entries(repo, collection):
    record, table = collection
    repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
    repo.conn.commit()
    repo.delete_collection(record.id)
    repo.conn.commit()
    assert repo.count_entries(record.id) == 0


# ------------------------------------------------------------------
# Entries
# ------------------------------------------------------------------

def test_upsert_entry_inserts(repo, collection):
    record, table = collection
    rowid = repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
    entry = repo.get_entry(record.id, "doc_0")
    assert entry is not None
    assert entry.rowid == rowid
    assert entry.text == "hello"
    assert entry.metadata_dict["document"] == "doc"


def test_upsert_entry_overwrites_same_id(repo, collection):
    record, table = collection
    first = repo.upsert_entry(table, _entry(record.id, text="old"), [1.0, 0.0, 0.0, 0.0])
    second = repo.upsert_entry(table, _entry(record.id, text="new"), [0.0, 1.0, 0.0, 0.0])

    assert first == second
    assert repo.count_entries(record.id) == 1
    assert repo.get_entry(record.id, "doc_0").text == "new"
    vec_rows = repo.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    assert vec_rows == 1


def test_get_entry_by_rowid(repo, collection):
    record, table = collection
    rowid = repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
    assert repo.get_entry_by_rowid(rowid).entry_id == "doc_0"
    assert repo.get_entry_by_rowid(rowid + 100) is None


def test_delete_entries_by_document(repo, collection):
    record, table = collection
    repo.upsert_entry(table, _entry(record.id, "a_0", document="a"), [1.0, 0.0, 0.0, 0.0])
    repo.upsert_entry(table, _entry(record.id, "a_1", document="a", index=1), [0.0, 1.0, 0.0, 0.0])
    repo.upsert_entry(table, _entry(record.id, "b_0", document="b"), [0.0, 0.0, 1.0, 0.0])

    removed = repo.delete_entries_by_document(table, record.id, "a")

    assert removed == 2
    assert repo.count_entries(record.id) == 1
    assert repo.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 1


def test_delete_entries_by_document_unknown(repo, collection):
    record, table = collection
    assert repo.delete_entries_by_document(table, record.id, "nope") == 0


def test_list_documents(repo, collection):
    record, table = collection
    repo.upsert_entry(table, _entry(record.id, "b_0", document="b"), [1.0, 0.0, 0.0, 0.0])
    repo.upsert_entry(table, _entry(record.id, "a_0", document="a"), [0.0, 1.0, 0.0, 0.0])
    repo.upsert_entry(table, _entry(record.id, "a_1", document="a", index=1), [0.0, 0.0, 1.0, 0.0])
    assert repo.list_documents(record.id) == [("a", 2), ("b", 1)]


# ------------------------------------------------------------------
# Transactions
# ------------------------------------------------------------------

def test_transaction_commits(repo, collection):
    record, table = collection
    with repo.transaction():
        repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
    repo.conn.rollback()  # nothing pending; committed data stays
    assert repo.count_entries(record.id) == 1


def test_transaction_rolls_back_on_error(repo, collection):
    record, table = collection
    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
            raise RuntimeError("boom")
    assert repo.count_entries(record.id) == 0
    assert repo.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0


def test_nested_transaction_joins_outer(repo, collection):
    record, table = collection
    with pytest.raises(RuntimeError):
        with repo.transaction():
            with repo.transaction():
                repo.upsert_entry(table, _entry(record.id), [0.1, 0.2, 0.3, 0.4])
            # The inner block did not commit
            assert repo.conn.in_transaction
            raise RuntimeError("boom")
    assert repo.count_entries(record.id) == 0
    assert not repo.conn.in_transaction


def test_nested_transaction_commits_once(repo, collection):
    record, table = collection
    with repo.transaction():
        with repo.transaction():
            repo.upsert_entry(table, _entry(record.id, "a_0"), [0.1, 0.2, 0.3, 0.4])
        repo.upsert_entry(table, _entry(record.id, "a_1"), [0.4, 0.3, 0.2, 0.1])
    assert not repo.conn.in_transaction
    assert repo.count_entries(record.id) == 2


# ------------------------------------------------------------------
# Vec search
# ------------------------------------------------------------------

def test_search_vec_orders_by_distance(repo, collection):
    record, table = collection
    repo.upsert_entry(table, _entry(record.id, "far", text="far"), [0.0, 0.0, 0.0, 1.0])
    repo.upsert_entry(table, _entry(record.id, "near", text="near"), [1.0, 0.0, 0.0, 0.0])
    repo.upsert_entry(table, _entry(record.id, "mid", text="mid"), [0.7, 0.7, 0.0, 0.0])

    hits = repo.search_vec(table, [1.0, 0.0, 0.0, 0.0], limit=3)

    assert [entry.entry_id for entry, _ in hits] == ["near", "mid", "far"]
    distances = [d for _, d in hits]
    assert distances == sorted(distances)


def test_search_vec_respects_limit(repo, collection):
    record, table = collection
    for i in range(4):
        vec = [0.0, 0.0, 0.0, 0.0]
        vec[i] = 1.0
        repo.upsert_entry(table, _entry(record.id, f"doc_{i}", index=i), vec)
    assert len(repo.search_vec(table, [1.0, 0.0, 0.0, 0.0], limit=2)) == 2


def test_search_vec_empty_table(repo, collection):
    _, table = collection
    assert repo.search_vec(table, [1.0, 0.0, 0.0, 0.0]) == []
