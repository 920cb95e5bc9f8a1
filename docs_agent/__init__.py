"""Docs agent: retrieval-augmented answers over internal documentation."""
