"""Word-window chunker.

Splits cleaned text on whitespace and groups consecutive words into windows
of ``chunk_size`` words; the final window may be shorter. Boundaries may
fall mid-sentence. Pure function of its input: same text, same chunks.
"""

from __future__ import annotations

from archivist.db.models import Chunk


class WordChunker:
    """Split text into order-preserving chunks of at most *chunk_size* words."""

    def __init__(self, chunk_size: int = 500) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size

    def split(self, text: str) -> list[str]:
        """Return the chunk strings for *text* (empty text → empty list)."""
        words = text.split()
        return [
            " ".join(words[i : i + self.chunk_size])
            for i in range(0, len(words), self.chunk_size)
        ]

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        """Split *text* into Chunk objects with sequential ``chunk_index``."""
        return [
            Chunk(document_id=document_id, chunk_index=i, text=t)
            for i, t in enumerate(self.split(text))
        ]

    @staticmethod
    def count_words(text: str) -> int:
        return len(text.split())
