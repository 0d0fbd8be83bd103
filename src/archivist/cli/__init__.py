"""Archivist command-line interface."""
