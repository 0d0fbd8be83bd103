"""Retrieval-augmented answer synthesis."""
