# Retrieval package for the Casefile Retrieval Engine
"""
Query-side modules.

Routes a query to an answer mode and ranks cases by weighted keyword
and text evidence.
"""

from .router import RouteDecision, detect_mode, is_forensic_query, route
from .search import RelevanceSearch, SearchResult, TermWeightPolicy, tokenize

__all__ = [
    "RelevanceSearch",
    "RouteDecision",
    "SearchResult",
    "TermWeightPolicy",
    "detect_mode",
    "is_forensic_query",
    "route",
    "tokenize",
]
