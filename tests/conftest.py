"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from archivist.db.connection import Database
from archivist.db.schema import initialize

FAKE_DIMS = 8
_ALPHABET = "abcdefgh"


class FakeEmbedder:
    """Deterministic embedder: letter counts of a-h, one dimension each.

    Texts sharing letters end up close together, which is enough to drive
    nearest-neighbour ordering in tests without any network call.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lower = text.lower()
        return [float(lower.count(ch)) for ch in _ALPHABET]


class FakeSynthesizer:
    """Echo synthesizer: records its inputs, answers with a fixed string."""

    def __init__(self, answer: str = "synthesized answer") -> None:
        self._answer = answer
        self.calls: list[tuple[str, str]] = []

    def answer(self, question: str, context: str):
        from archivist.rag.synthesizer import SynthesizedAnswer

        self.calls.append((question, context))
        return SynthesizedAnswer(answer=self._answer)


class FakeExtractor:
    """Extractor serving canned text per path (None for unknown paths)."""

    def __init__(self, texts: dict[str, str | None] | None = None) -> None:
        self.texts = dict(texts or {})

    def extract_text(self, path) -> str | None:
        return self.texts.get(str(path))


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".archivist.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Run CLI commands in tmp_path with fake embedding and synthesis.

    Yields the database path the commands default to.
    """
    (tmp_path / "archivist.yaml").write_text(
        f"embedding:\n  dimensions: {FAKE_DIMS}\nchunking:\n  chunk_size: 3\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("archivist.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("ARCHIVIST_GENERATION_MODEL", "ARCHIVIST_EMBEDDING_MODEL", "ARCHIVIST_DB"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    monkeypatch.setattr("archivist.pipeline.LiteLLMEmbedder", lambda *a, **kw: FakeEmbedder())
    monkeypatch.setattr("archivist.pipeline.AnswerSynthesizer", lambda *a, **kw: FakeSynthesizer())
    yield tmp_path / ".archivist.db"
