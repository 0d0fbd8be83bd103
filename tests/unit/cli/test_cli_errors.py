"""Tests for CLI error messages."""

from __future__ import annotations

from archivist.cli.errors import (
    err_config,
    err_document_not_found,
    err_document_unreadable,
    err_no_api_key,
    err_no_db,
    err_no_source,
    err_unknown_collection,
    err_upstream,
)
from archivist.errors import UpstreamServiceError, UpstreamTimeoutError


def test_err_no_api_key_names_env_var():
    msg = err_no_api_key("openai")
    assert "OPENAI_API_KEY" in msg
    assert "export" in msg


def test_err_no_api_key_unknown_provider():
    assert "GROQ_API_KEY" in err_no_api_key("groq")


def test_err_no_db_suggests_ingest():
    msg = err_no_db("x.db")
    assert "x.db" in msg
    assert "archivist ingest" in msg


def test_err_no_source():
    assert "--source" in err_no_source()


def test_err_unknown_collection_lists_available():
    msg = err_unknown_collection("laws", ["pdf_data", "reports"])
    assert "'laws'" in msg
    assert "pdf_data, reports" in msg


def test_err_unknown_collection_none_available():
    assert "(none)" in err_unknown_collection("laws", [])


def test_err_document_unreadable():
    assert "scan.pdf" in err_document_unreadable("scan.pdf")


def test_err_document_not_found():
    msg = err_document_not_found("doc", "pdf_data")
    assert "'doc'" in msg
    assert "archivist collections" in msg


def test_err_upstream_plain_and_timeout():
    assert "failed" in err_upstream(UpstreamServiceError("embedding", "boom"))
    assert "timed out" in err_upstream(UpstreamTimeoutError("synthesis", "slow"))


def test_err_config_includes_message():
    assert "top_k must be >= 1" in err_config("retrieval.top_k must be >= 1")
