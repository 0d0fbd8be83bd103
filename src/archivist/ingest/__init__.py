"""Archivist ingest pipeline — extraction, cleaning, chunking, embedding."""

from archivist.ingest.chunker import WordChunker
from archivist.ingest.cleaner import TextCleaner, clean_text
from archivist.ingest.embedder import LiteLLMEmbedder
from archivist.ingest.extract import (
    AutoExtractor,
    PdfExtractor,
    PlainTextExtractor,
    extractor_for,
)

__all__ = [
    "AutoExtractor",
    "LiteLLMEmbedder",
    "PdfExtractor",
    "PlainTextExtractor",
    "TextCleaner",
    "WordChunker",
    "clean_text",
    "extractor_for",
]
