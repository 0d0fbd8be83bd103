"""Embedding generator — maps text to a fixed-length vector via LiteLLM."""

from __future__ import annotations

from typing import Protocol

from archivist.errors import InvalidInputError
from archivist.rag import llm_client


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...


class LiteLLMEmbedder:
    """Embed text with a LiteLLM embedding model.

    Ingestion and queries must share one instance (or one model) so that
    chunk and question vectors live in the same embedding space.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        timeout: Seconds before a single call is abandoned.
        num_retries: Retries on transient provider errors.
    """

    def __init__(
        self,
        model: str = "openai/text-embedding-3-small",
        timeout: float = 30.0,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.num_retries = num_retries

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises:
            InvalidInputError: If *text* is not a string.
            UpstreamServiceError: If the provider call fails.
        """
        if not isinstance(text, str):
            raise InvalidInputError(
                f"Embedding input must be a string, got {type(text).__name__}"
            )
        return llm_client.embed(
            self.model, text, timeout=self.timeout, num_retries=self.num_retries
        )
