"""Blockchain data indexing: records, PostgreSQL storage, pruning, metrics and migrations."""

__version__ = "5.0.0"