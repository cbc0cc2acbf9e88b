"""Rebuilds an Elasticsearch fulltext index from a multi-dimensional content graph."""

__version__ = "0.4.0"
