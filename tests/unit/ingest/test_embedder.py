"""Tests for LiteLLMEmbedder."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from archivist.errors import InvalidInputError, UpstreamServiceError
from archivist.ingest.embedder import LiteLLMEmbedder


def test_defaults():
    embedder = LiteLLMEmbedder()
    assert embedder.model == "openai/text-embedding-3-small"
    assert embedder.timeout == 30.0


def test_embed_delegates_to_llm_client():
    embedder = LiteLLMEmbedder(model="openai/text-embedding-3-large", timeout=5.0, num_retries=1)
    with patch("archivist.ingest.embedder.llm_client.embed", return_value=[0.1, 0.2]) as mock_embed:
        vector = embedder.embed("some text")
    assert vector == [0.1, 0.2]
    mock_embed.assert_called_once_with(
        "openai/text-embedding-3-large", "some text", timeout=5.0, num_retries=1
    )


def test_embed_same_text_same_call():
    embedder = LiteLLMEmbedder()
    with patch("archivist.ingest.embedder.llm_client.embed", return_value=[1.0]) as mock_embed:
        assert embedder.embed("x") == embedder.embed("x")
    assert mock_embed.call_count == 2


def test_embed_empty_string_is_allowed():
    embedder = LiteLLMEmbedder()
    with patch("archivist.ingest.embedder.llm_client.embed", return_value=[0.0]) as mock_embed:
        embedder.embed("")
    mock_embed.assert_called_once()


@pytest.mark.parametrize("bad", [None, 42, b"bytes", ["list"]])
def test_embed_non_string_raises(bad):
    embedder = LiteLLMEmbedder()
    with patch("archivist.ingest.embedder.llm_client.embed") as mock_embed:
        with pytest.raises(InvalidInputError):
            embedder.embed(bad)
    mock_embed.assert_not_called()


def test_embed_propagates_upstream_error():
    embedder = LiteLLMEmbedder()
    with patch(
        "archivist.ingest.embedder.llm_client.embed",
        side_effect=UpstreamServiceError("embedding", "down"),
    ):
        with pytest.raises(UpstreamServiceError, match="embedding: down"):
            embedder.embed("text")
