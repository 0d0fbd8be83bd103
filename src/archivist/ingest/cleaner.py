"""Text cleaner — strips extraction boilerplate and normalises whitespace.

Transformations, in this fixed order (each a global substitution):
  1. generation-metadata lines  ("PDF generated: ..." through end of line)
  2. source-project domain literals  ("constituteproject.org")
  3. "Page <n>" markers
  4. "Table of contents" through the next number on a line of its own, or end
  5. characters other than word chars, whitespace and . , ! ?
     (runs of one repeated mark are squeezed: "!!" -> "!")
  6. whitespace runs -> single space, then trim
"""

from __future__ import annotations

import re

from archivist.errors import InvalidInputError

_PAGE_RE = re.compile(r"\bPage \d+\b")
_TOC_RE = re.compile(r"Table of contents[\s\S]*?(?:\n\d+\n|$)")
# The same boundary once newlines are collapsed: "\n5\n" has become " 5 ".
_FLAT_TOC_RE = re.compile(r"Table of contents.*?(?: \d+(?: |$)|$)")
_SPECIAL_RE = re.compile(r"[^\w\s.,!?]")
_REPEATED_PUNCT_RE = re.compile(r"([.,!?])\1+")
_WHITESPACE_RE = re.compile(r"\s+")


class TextCleaner:
    """Normalise raw extracted text.

    Args:
        boilerplate_marker: Prefix of the generation-metadata line to drop.
        domains: Literal domain strings to remove.
    """

    def __init__(
        self,
        boilerplate_marker: str = "PDF generated:",
        domains: list[str] | tuple[str, ...] = ("constituteproject.org",),
    ) -> None:
        self._marker_re = (
            re.compile(re.escape(boilerplate_marker) + r".*(?:\n|$)")
            if boilerplate_marker
            else None
        )
        self._flat_marker_re = (
            re.compile(re.escape(boilerplate_marker)) if boilerplate_marker else None
        )
        self._domains = [d for d in domains if d]

    def clean(self, raw_text: str | None) -> str:
        """Return the cleaned form of *raw_text*.

        Raises:
            InvalidInputError: If *raw_text* is None.
        """
        if raw_text is None:
            raise InvalidInputError("Cannot clean text: no text was extracted.")

        # A removal can expose a new match ("Pa#ge 3" -> "Page 3"), so the
        # passes repeat until the text is stable. Later passes see text with
        # its line breaks collapsed and use the single-line patterns.
        text = self._clean_once(raw_text, first=True)
        while True:
            again = self._clean_once(text, first=False)
            if again == text:
                return text
            text = again

    def _clean_once(self, text: str, first: bool) -> str:
        marker_re = self._marker_re if first else self._flat_marker_re
        if marker_re is not None:
            text = marker_re.sub("", text)
        for domain in self._domains:
            text = text.replace(domain, "")
        text = _PAGE_RE.sub("", text)
        text = (_TOC_RE if first else _FLAT_TOC_RE).sub("", text)
        text = _SPECIAL_RE.sub("", text)
        text = _REPEATED_PUNCT_RE.sub(r"\1", text)
        return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(raw_text: str | None) -> str:
    """Clean *raw_text* with the default boilerplate rules."""
    return TextCleaner().clean(raw_text)
