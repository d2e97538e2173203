"""Hybrid passage search engine: chunking, TF-IDF + vector fusion, diverse retrieval."""

__version__ = "0.1.0"
