"""
Mode Router — scope guard and answer-mode classification.

Rule-based, no scoring. Two independent decisions per query:

    1. Scope: is this a forensics question at all? Greetings and help
       requests always pass. Anything else needs a domain term.
    2. Mode (checked in order, first match wins):
         guided_walkthrough — "how do i", "step by step", ...
         teaching           — "explain", "what is", ...
         direct_qa          — fallback
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..domain import AnswerMode


logger = logging.getLogger(__name__)


# =============================================================================
# VOCABULARY
# =============================================================================

# Greeting / help phrases that pass the scope guard unconditionally.
# Matched on word boundaries so "hi" does not fire inside "which".
ALLOWED_GENERAL_PHRASES = ["hello", "hi", "help", "what can you", "who are you"]

# Substring match: "forensic" also covers "forensics"
FORENSIC_VOCABULARY = [
    "forensic", "investigation", "case", "artifact", "evidence",
    "malware", "ransomware", "breach", "incident", "analysis",
    "tool", "autopsy", "volatility", "wireshark", "memory",
    "disk", "registry", "log", "timeline", "hash", "mft",
    "ntfs", "file system", "network", "packet", "pcap",
]

WALKTHROUGH_PHRASES = [
    "how do i", "step by step", "guide me", "walkthrough",
    "investigate", "what steps", "procedure", "process",
]

TEACHING_PHRASES = [
    "explain", "what is", "how does", "teach me",
    "learn about", "understand", "concept", "why",
]

_ALLOWED_GENERAL_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in ALLOWED_GENERAL_PHRASES) + r")\b"
)


# =============================================================================
# DECISIONS
# =============================================================================

@dataclass(frozen=True)
class RouteDecision:
    in_scope: bool
    mode: AnswerMode


def is_forensic_query(query: str) -> bool:
    normalized = query.lower()
    if _ALLOWED_GENERAL_RE.search(normalized):
        return True
    return any(term in normalized for term in FORENSIC_VOCABULARY)


def detect_mode(query: str) -> AnswerMode:
    normalized = query.lower()
    if any(phrase in normalized for phrase in WALKTHROUGH_PHRASES):
        return AnswerMode.GUIDED_WALKTHROUGH
    if any(phrase in normalized for phrase in TEACHING_PHRASES):
        return AnswerMode.TEACHING
    return AnswerMode.DIRECT_QA


def route(query: str) -> RouteDecision:
    """Scope check plus mode; out-of-scope queries report direct_qa."""
    if not is_forensic_query(query):
        logger.debug("Out-of-scope query refused: %r", query)
        return RouteDecision(in_scope=False, mode=AnswerMode.DIRECT_QA)
    return RouteDecision(in_scope=True, mode=detect_mode(query))
