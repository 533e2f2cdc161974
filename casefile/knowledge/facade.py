"""
Query Facade — the per-entity assistant path.

Answers short "what is X" style questions about tools, legacy case
scenarios, learning topics and glossary terms. Shares only PrefixIndex
and BoundedCache with the case pipeline; it never cites.

Intent priority (first match wins):
    tool > case > topic > glossary > greeting > help > general

Results are memoized by normalized query. Every returned result is an
independent copy, so a caller mutating one cannot corrupt the cache.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Iterable, Mapping, Optional, TypeVar, Union

from ..config import EngineConfig
from ..structures import BoundedCache, CacheStats, PrefixIndex
from .models import (
    GlossaryEntry,
    LegacyCase,
    QueryResult,
    ResultType,
    Tool,
    Topic,
    record_data,
)


logger = logging.getLogger(__name__)

R = TypeVar("R")


# =============================================================================
# INTENT VOCABULARY
# =============================================================================

TOOL_KEYWORDS = ["tool", "software", "program", "use", "how to use", "compare"]
CASE_KEYWORDS = ["case study", "case", "example", "investigation", "scenario", "breach"]
TOPIC_KEYWORDS = ["explain", "what is", "how does", "learn", "teach", "understand", "concept"]
GLOSSARY_KEYWORDS = ["define", "definition", "what does", "mean", "term"]
HELP_KEYWORDS = ["help", "assist", "support", "guide", "can you", "how can"]
GREETINGS = ["hello", "hi", "hey", "greetings", "good morning", "good afternoon", "good evening"]

# Word boundaries so "hi" does not fire inside "which"
_GREETING_RE = re.compile(r"\b(?:" + "|".join(re.escape(g) for g in GREETINGS) + r")\b")

COMPARISON_MARKERS = ["compare", "vs", "versus"]

# Leading scenario characters that identify a legacy case in a query
CASE_SCENARIO_PREFIX = 30

SUGGESTION_LIMIT = 3
GENERAL_MATCH_LIMIT = 5

GREETING_MESSAGE = (
    "Hello! I'm your Digital Forensics Assistant. I can help you with:\n"
    "• Forensic tools and software\n"
    "• Investigation case studies\n"
    "• Forensic concepts and techniques\n"
    "• Technical terminology\n\n"
    "What would you like to learn about?"
)

HELP_MESSAGE = (
    "I can assist you with:\n\n"
    "**Tools**: Ask about specific forensic software (Autopsy, Wireshark, Volatility, etc.)\n"
    "**Case Studies**: Learn from real investigation scenarios\n"
    "**Concepts**: Understand forensic techniques and methodologies\n"
    "**Glossary**: Get definitions of technical terms\n\n"
    "Try asking questions like:\n"
    "• 'What is Autopsy?'\n"
    "• 'Show me a ransomware case'\n"
    "• 'Explain memory forensics'\n"
    "• 'Define chain of custody'"
)

FALLBACK_MESSAGE = (
    "I'm still learning! Try asking about:\n"
    "• Specific forensic tools (Autopsy, Wireshark, Volatility)\n"
    "• Investigation case studies\n"
    "• Forensic concepts (memory forensics, file systems)\n"
    "• Technical terms (MFT, hash function, chain of custody)"
)

# (trigger substrings, suggestions), checked in order
CONTEXTUAL_SUGGESTIONS = [
    (("autopsy",), [
        "How do I create a case in Autopsy?",
        "What ingest modules should I use?",
        "Compare Autopsy with FTK Imager",
    ]),
    (("memory", "ram"), [
        "How do I analyze memory dumps?",
        "What is Volatility?",
        "Explain process injection",
    ]),
    (("ntfs", "file system"), [
        "What is the Master File Table?",
        "How to recover deleted files?",
        "Explain NTFS timestamps",
    ]),
    (("malware",), [
        "What is static analysis?",
        "How to detect rootkits?",
        "Explain process injection",
    ]),
]

DEFAULT_CONTEXTUAL_SUGGESTIONS = [
    "Tell me about forensic tools",
    "Explain chain of custody",
    "What is memory forensics?",
    "Show me a case study",
]


def _coerce(items: Iterable[Union[R, Mapping[str, Any]]], kind: type[R]) -> list[R]:
    return [item if isinstance(item, kind) else kind.from_mapping(item) for item in items]


def _mentions(query: str, phrases: Iterable[str]) -> bool:
    return any(phrase in query for phrase in phrases)


# =============================================================================
# FACADE
# =============================================================================

class QueryFacade:
    """Per-entity lookup over tools, legacy cases, topics and glossary."""

    def __init__(
        self,
        tools: Iterable[Union[Tool, Mapping[str, Any]]] = (),
        cases: Iterable[Union[LegacyCase, Mapping[str, Any]]] = (),
        topics: Iterable[Union[Topic, Mapping[str, Any]]] = (),
        glossary: Iterable[Union[GlossaryEntry, Mapping[str, Any]]] = (),
        cache_capacity: int = 100,
    ):
        self.tools = _coerce(tools, Tool)
        self.cases = _coerce(cases, LegacyCase)
        self.topics = _coerce(topics, Topic)
        self.glossary = _coerce(glossary, GlossaryEntry)

        self.tool_index = PrefixIndex([tool.name for tool in self.tools])
        self.glossary_index = PrefixIndex([entry.term for entry in self.glossary])
        self.topic_index = PrefixIndex()
        for topic in self.topics:
            self.topic_index.insert(topic.title)
            for keyword in topic.keywords:
                self.topic_index.insert(keyword)

        self._cache: BoundedCache[str, QueryResult] = BoundedCache(cache_capacity)

        logger.info(
            "Knowledge facade loaded: %d tools, %d cases, %d topics, %d terms",
            len(self.tools), len(self.cases), len(self.topics), len(self.glossary),
        )

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        tools: Iterable[Union[Tool, Mapping[str, Any]]] = (),
        cases: Iterable[Union[LegacyCase, Mapping[str, Any]]] = (),
        topics: Iterable[Union[Topic, Mapping[str, Any]]] = (),
        glossary: Iterable[Union[GlossaryEntry, Mapping[str, Any]]] = (),
    ) -> "QueryFacade":
        return cls(tools, cases, topics, glossary, cache_capacity=config.cache_capacity)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def process_query(self, query: str) -> QueryResult:
        normalized = query.lower().strip()

        cached = self._cache.get(normalized)
        if cached is not None:
            return copy.deepcopy(cached)

        if self._is_tool_query(normalized):
            result = self._handle_tool(normalized)
        elif _mentions(normalized, CASE_KEYWORDS):
            result = self._handle_case(normalized)
        elif self._is_topic_query(normalized):
            result = self._handle_topic(normalized)
        elif self._is_glossary_query(normalized):
            result = self._handle_glossary(normalized)
        elif _GREETING_RE.search(normalized):
            result = QueryResult(
                type=ResultType.GENERAL,
                data={"message": GREETING_MESSAGE},
                confidence=1.0,
                suggestions=[
                    "Tell me about forensic tools",
                    "Show me a case study",
                    "Explain memory forensics",
                    "What is NTFS?",
                ],
            )
        elif _mentions(normalized, HELP_KEYWORDS):
            result = QueryResult(
                type=ResultType.GENERAL,
                data={"message": HELP_MESSAGE},
                confidence=1.0,
                suggestions=[
                    "Tell me about Volatility",
                    "Show me a case study",
                    "What is the MFT?",
                    "Explain file carving",
                ],
            )
        else:
            result = self._handle_general(normalized)

        logger.debug("Facade query %r classified as %s", normalized, result.type.value)
        self._cache.put(normalized, result)
        return copy.deepcopy(result)

    def autocomplete(self, partial: str, limit: int = 5) -> list[str]:
        """Tool names first, then topic words, then glossary terms."""
        suggestions = self.tool_index.autocomplete(partial, limit)
        suggestions += self.topic_index.autocomplete(partial, max(0, limit - len(suggestions)))
        suggestions += self.glossary_index.autocomplete(partial, max(0, limit - len(suggestions)))
        return suggestions[:limit]

    def contextual_suggestions(self, last_query: str) -> list[str]:
        normalized = last_query.lower()
        for triggers, suggestions in CONTEXTUAL_SUGGESTIONS:
            if _mentions(normalized, triggers):
                return list(suggestions)
        return list(DEFAULT_CONTEXTUAL_SUGGESTIONS)

    def get_cache_stats(self) -> CacheStats:
        return self._cache.get_stats()

    # -------------------------------------------------------------------------
    # Intent detection
    # -------------------------------------------------------------------------

    def _find_tool(self, query: str) -> Optional[Tool]:
        return next((t for t in self.tools if t.name.lower() in query), None)

    def _find_topic(self, query: str) -> Optional[Topic]:
        for topic in self.topics:
            if topic.title.lower() in query:
                return topic
            if any(keyword.lower() in query for keyword in topic.keywords):
                return topic
        return None

    def _find_term(self, query: str) -> Optional[GlossaryEntry]:
        return next((e for e in self.glossary if e.term.lower() in query), None)

    def _is_tool_query(self, query: str) -> bool:
        return _mentions(query, TOOL_KEYWORDS) or self._find_tool(query) is not None

    def _is_topic_query(self, query: str) -> bool:
        if _mentions(query, TOPIC_KEYWORDS):
            return True
        return any(topic.title.lower() in query for topic in self.topics)

    def _is_glossary_query(self, query: str) -> bool:
        return _mentions(query, GLOSSARY_KEYWORDS) or self._find_term(query) is not None

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _handle_tool(self, query: str) -> QueryResult:
        tool = self._find_tool(query)
        if tool is not None:
            return QueryResult(
                type=ResultType.TOOL,
                data=record_data(tool),
                confidence=0.9,
                suggestions=[
                    f"Show me an example of {tool.name}",
                    "What are the pros and cons?",
                    "Compare with other tools",
                ],
            )

        if _mentions(query, COMPARISON_MARKERS):
            return QueryResult(
                type=ResultType.TOOL,
                data={
                    "message": "Tool comparison",
                    "tools": [record_data(t) for t in self.tools[:3]],
                },
                confidence=0.7,
                suggestions=["Tell me about Autopsy", "What is FTK Imager?", "Explain Volatility"],
            )

        return QueryResult(
            type=ResultType.TOOL,
            data={
                "message": "Here are some popular forensic tools:",
                "tools": [t.summary() for t in self.tools[:5]],
            },
            confidence=0.6,
            suggestions=["Tell me about Autopsy", "What is Wireshark?", "Show me acquisition tools"],
        )

    def _handle_case(self, query: str) -> QueryResult:
        for case in self.cases:
            if case.id.lower() in query or case.scenario.lower()[:CASE_SCENARIO_PREFIX] in query:
                return QueryResult(
                    type=ResultType.CASE,
                    data=record_data(case),
                    confidence=0.9,
                    suggestions=[
                        "Show me another case study",
                        "What tools were used?",
                        "Explain the investigation workflow",
                    ],
                )

        if "ransomware" in query:
            ransomware = next(
                (c for c in self.cases if "ransomware" in c.scenario.lower()), None
            )
            if ransomware is not None:
                return QueryResult(
                    type=ResultType.CASE,
                    data=record_data(ransomware),
                    confidence=0.8,
                    suggestions=["Show me another case"],
                )

        return QueryResult(
            type=ResultType.CASE,
            data={
                "message": "Here are some forensic case studies:",
                "cases": [case.summary() for case in self.cases],
            },
            confidence=0.7,
            suggestions=["Ransomware investigation", "Insider threat case", "Mobile forensics example"],
        )

    def _handle_topic(self, query: str) -> QueryResult:
        topic = self._find_topic(query)
        if topic is not None:
            return QueryResult(
                type=ResultType.TOPIC,
                data=record_data(topic),
                confidence=0.9,
                suggestions=[
                    "Show me related topics",
                    "Give me an example",
                    "What tools are used for this?",
                ],
            )

        return QueryResult(
            type=ResultType.TOPIC,
            data={
                "message": "Here are some forensic topics you can learn about:",
                "topics": [
                    {"title": t.title, "summary": t.summary, "difficulty": t.difficulty}
                    for t in self.topics[:5]
                ],
            },
            confidence=0.6,
            suggestions=["Explain memory forensics", "What is NTFS?", "Tell me about Windows forensics"],
        )

    def _handle_glossary(self, query: str) -> QueryResult:
        entry = self._find_term(query)
        if entry is not None:
            return QueryResult(
                type=ResultType.GLOSSARY,
                data=record_data(entry),
                confidence=0.95,
                suggestions=[f"What is {term}?" for term in entry.related],
            )

        return QueryResult(
            type=ResultType.GLOSSARY,
            data={
                "message": "Browse forensic terminology:",
                "terms": [{"term": e.term, "category": e.category} for e in self.glossary[:10]],
            },
            confidence=0.5,
            suggestions=["Define chain of custody", "What is a hash function?", "Explain MFT"],
        )

    def _handle_general(self, query: str) -> QueryResult:
        first_word = query.split(" ")[0]
        matches = (
            self.tool_index.autocomplete(first_word, SUGGESTION_LIMIT)
            + self.topic_index.autocomplete(first_word, SUGGESTION_LIMIT)
            + self.glossary_index.autocomplete(first_word, SUGGESTION_LIMIT)
        )

        if matches:
            return QueryResult(
                type=ResultType.SUGGESTIONS,
                data={
                    "message": "I'm not sure I understood that. Did you mean one of these?",
                    "suggestions": matches[:GENERAL_MATCH_LIMIT],
                },
                confidence=0.3,
                suggestions=["Show me all tools", "List case studies", "Browse topics", "Help"],
            )

        return QueryResult(
            type=ResultType.GENERAL,
            data={"message": FALLBACK_MESSAGE},
            confidence=0.2,
            suggestions=["What is Autopsy?", "Show me a case study", "Explain NTFS", "Define rootkit"],
        )
