# Structures package for the Casefile Retrieval Engine
"""
Low-level data structures shared by both retrieval paths.

PrefixIndex  — case-insensitive trie with ranked autocomplete
BoundedCache — fixed-capacity LRU cache with hit/miss accounting
"""

from .lru import BoundedCache, CacheStats
from .trie import PrefixIndex

__all__ = ["BoundedCache", "CacheStats", "PrefixIndex"]
