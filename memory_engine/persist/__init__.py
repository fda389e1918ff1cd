"""
Persistence layer for the memory store.
"""

from .sqlite_store import KVStore

__all__ = ["KVStore"]
