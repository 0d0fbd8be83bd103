"""Archivist error taxonomy.

Raised where detected, handled at the CLI boundary:

  InvalidInputError     — null/missing required input (no extracted text,
                          empty question, wrong embedding dimensionality,
                          unknown collection).
  CollectionExistsError — the collection name is already taken.
  UpstreamServiceError  — extraction, embedding, store or synthesis backend
                          failed; the original exception is chained.
  UpstreamTimeoutError  — an upstream call exceeded its timeout.

An empty query result is not an error; see archivist.pipeline.NotFoundResult.
"""

from __future__ import annotations


class ArchivistError(Exception):
    """Base class for all archivist errors."""


class InvalidInputError(ArchivistError, ValueError):
    """Raised when a required input is missing or malformed."""


class UpstreamServiceError(ArchivistError):
    """Raised when an external collaborator fails.

    Attributes:
        service: Which collaborator failed — 'extractor', 'embedding',
            'store' or 'synthesis'.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class UpstreamTimeoutError(UpstreamServiceError):
    """Raised when an external call does not finish within its timeout."""


class CollectionExistsError(InvalidInputError):
    """Raised when a collection name is already taken."""
