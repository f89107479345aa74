"""Compressed sorted integer sets in a chunked, sliced layout, with indexes, queries and set operations."""

__version__ = "0.1.0"