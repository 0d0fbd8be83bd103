"""Tests for the archivist ingest command."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from archivist.cli.main import app
from archivist.db.connection import Database
from archivist.db.store import VectorStore
from archivist.errors import UpstreamServiceError

runner = CliRunner()


def _doc(tmp_path: Path, name: str, text: str) -> str:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def _count(db_path: Path, collection: str = "pdf_data") -> int:
    conn = Database(db_path).connect()
    try:
        return VectorStore(conn, "m").get_collection(collection).count()
    finally:
        conn.close()


def test_ingest_no_source_exits_1(cli_env):
    result = runner.invoke(app, ["ingest"])
    assert result.exit_code == 1
    assert "--source" in result.output


def test_ingest_text_file(cli_env, tmp_path):
    src = _doc(tmp_path, "notes.txt", "one two three four five six seven")
    result = runner.invoke(app, ["ingest", "--source", src])
    assert result.exit_code == 0, result.output
    assert "3 chunks stored in 'pdf_data'" in result.output
    assert _count(cli_env) == 3


def test_ingest_into_named_collection(cli_env, tmp_path):
    src = _doc(tmp_path, "a.txt", "alpha beta")
    result = runner.invoke(app, ["ingest", "-s", src, "--collection", "laws"])
    assert result.exit_code == 0, result.output
    assert _count(cli_env, "laws") == 1


def test_ingest_multiple_sources(cli_env, tmp_path):
    a = _doc(tmp_path, "a.txt", "alpha beta")
    b = _doc(tmp_path, "b.txt", "gamma delta epsilon zeta")
    result = runner.invoke(app, ["ingest", "-s", a, "-s", b])
    assert result.exit_code == 0, result.output
    assert _count(cli_env) == 3


def test_ingest_missing_file_exits_1(cli_env, tmp_path):
    result = runner.invoke(app, ["ingest", "-s", str(tmp_path / "missing.pdf")])
    assert result.exit_code == 1
    assert "No text could be extracted" in result.output


def test_ingest_corrupt_pdf_exits_1(cli_env, tmp_path):
    bad = tmp_path / "corrupt.pdf"
    bad.write_bytes(b"not a pdf")
    result = runner.invoke(app, ["ingest", "-s", str(bad)])
    assert result.exit_code == 1
    assert "No text could be extracted" in result.output


def test_ingest_partial_failure_keeps_good_documents(cli_env, tmp_path):
    good = _doc(tmp_path, "good.txt", "alpha beta")
    result = runner.invoke(app, ["ingest", "-s", good, "-s", str(tmp_path / "nope.pdf")])
    assert result.exit_code == 1
    assert "1 of 2 document(s) failed" in result.output
    assert _count(cli_env) == 1


def test_ingest_embedding_failure_exits_1(cli_env, tmp_path):
    src = _doc(tmp_path, "a.txt", "alpha beta")
    with patch("archivist.pipeline.IngestionPipeline.ingest",
               side_effect=UpstreamServiceError("embedding", "rate limited")):
        result = runner.invoke(app, ["ingest", "-s", src])
    assert result.exit_code == 1
    assert "embedding service failed" in result.output


def test_ingest_missing_api_key_exits_1(cli_env, tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    src = _doc(tmp_path, "a.txt", "alpha beta")
    result = runner.invoke(app, ["ingest", "-s", src])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_ingest_invalid_config_exits_1(cli_env, tmp_path):
    (tmp_path / "archivist.yaml").write_text("retrieval:\n  top_k: 0\n", encoding="utf-8")
    src = _doc(tmp_path, "a.txt", "alpha beta")
    result = runner.invoke(app, ["ingest", "-s", src])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
