"""Separate-chaining hash table with doubling growth."""

from .core import ChainedHashTable, TableConfig

__all__ = ["ChainedHashTable", "TableConfig"]
