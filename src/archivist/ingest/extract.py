"""Text extractors: raw text out of a source document.

Contract: ``extract_text(path) -> str | None``. Unreadable, corrupt or
missing input yields None (with a warning logged), never an exception.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import pypdf

from archivist.log import get_logger

logger = get_logger(__name__)

_TEXT_EXTS = {".txt", ".text", ".md", ".markdown", ".rst"}


class Extractor(Protocol):
    def extract_text(self, path: str | Path) -> str | None: ...


class PdfExtractor:
    """Extract the text of a PDF page by page with pypdf.

    Pages that yield no text (scanned images, etc.) are skipped; the rest
    are joined with a blank line.
    """

    def extract_text(self, path: str | Path) -> str | None:
        try:
            reader = pypdf.PdfReader(str(path))
            parts: list[str] = []
            for page in reader.pages:
                page_text = page.extract_text() or ""
                stripped = page_text.strip()
                if stripped:
                    parts.append(stripped)
        except Exception as exc:  # pypdf raises a wide range of errors on corrupt files
            logger.warning("Could not read PDF '%s': %s", path, exc)
            return None
        logger.debug("Extracted %d pages of text from '%s'", len(parts), path)
        return "\n\n".join(parts)


class PlainTextExtractor:
    """Read a UTF-8 text file (undecodable bytes are replaced)."""

    def extract_text(self, path: str | Path) -> str | None:
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Could not read '%s': %s", path, exc)
            return None


def extractor_for(path: str | Path) -> Extractor:
    """Pick an extractor by file extension; PDF is the default."""
    if Path(path).suffix.lower() in _TEXT_EXTS:
        return PlainTextExtractor()
    return PdfExtractor()


class AutoExtractor:
    """Extractor that dispatches every call through extractor_for()."""

    def extract_text(self, path: str | Path) -> str | None:
        return extractor_for(path).extract_text(path)
