# Knowledge package for the Casefile Retrieval Engine
"""
Per-entity assistant over tools, legacy cases, topics and glossary terms.

Independent of the case pipeline; shares only the trie and cache.
"""

from .facade import QueryFacade
from .models import (
    GlossaryEntry,
    KnowledgeLoadError,
    LegacyCase,
    QueryResult,
    ResultType,
    Tool,
    Topic,
)

__all__ = [
    "GlossaryEntry",
    "KnowledgeLoadError",
    "LegacyCase",
    "QueryFacade",
    "QueryResult",
    "ResultType",
    "Tool",
    "Topic",
]
