"""Hybrid semantic and lexical code search index."""
