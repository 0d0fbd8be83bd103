"""Archivist — question answering over a document archive."""
