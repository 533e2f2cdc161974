# Answering package for the Casefile Retrieval Engine
"""
Answer assembly modules.

Template-fills answers from retrieved records and verifies every inline
citation against the ledger before it is shown.
"""

from .citations import CitationValidator, extract_citations, is_well_formed
from .synthesizer import AnswerSynthesizer
from .templates import build_case_context

__all__ = [
    "AnswerSynthesizer",
    "CitationValidator",
    "build_case_context",
    "extract_citations",
    "is_well_formed",
]
