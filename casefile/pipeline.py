"""
Query Pipeline for the Casefile Retrieval Engine.

Ties the stages together into a single query flow:

    1. Scope guard + mode routing
    2. Relevance search over the CaseLedger
    3. Template answer synthesis from the top case
    4. Citation verification against the ledger

Expected conditions (out-of-scope query, nothing matched) are answers,
not exceptions. The pipeline is deterministic: the same ledger and the
same query always give the same response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from .answering.citations import CitationValidator
from .answering.synthesizer import AnswerSynthesizer
from .answering.templates import (
    REFUSAL_FOLLOW_UPS,
    REFUSAL_NON_FORENSIC,
    build_case_context,
    render_insufficient_context,
)
from .config import EngineConfig
from .domain import AnswerMode, CaseRecord, Citation
from .ingestion.ledger import CaseLedger, IngestionResult, LedgerStats
from .ingestion.migration import migrate_legacy_cases
from .retrieval.router import route
from .retrieval.search import RelevanceSearch, SearchResult, TermWeightPolicy


logger = logging.getLogger(__name__)


# =============================================================================
# RESPONSE
# =============================================================================

@dataclass
class RAGResponse:
    """
    Complete answer to one query.

    confidence is the top case's relevance score (0.0 for refusals and
    insufficient-context answers). Each citation carries its case's
    score relative to the top case.
    """
    query: str
    mode: AnswerMode
    answer: str
    citations: list[Citation] = field(default_factory=list)
    confidence: float = 0.0
    follow_up_suggestions: list[str] = field(default_factory=list)
    related_topics: list[str] = field(default_factory=list)

    # Grounding block the answer was drawn from; empty when nothing matched
    context: str = ""

    @property
    def cited_case_ids(self) -> list[str]:
        return list(dict.fromkeys(c.case_id for c in self.citations))


# =============================================================================
# PIPELINE
# =============================================================================

class CaseStudyPipeline:
    """Routes, retrieves, answers and verifies citations for one ledger."""

    def __init__(self, ledger: Optional[CaseLedger] = None, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.ledger = ledger if ledger is not None else CaseLedger()
        self.search = RelevanceSearch(
            self.ledger,
            TermWeightPolicy(
                rules=self.ledger.rules,
                default_weight=self.config.default_term_weight,
            ),
        )
        self.synthesizer = AnswerSynthesizer()
        self.validator = CitationValidator(self.ledger)

    @classmethod
    def from_legacy(
        cls,
        legacy_cases: Iterable[Mapping[str, Any]],
        config: Optional[EngineConfig] = None,
    ) -> "CaseStudyPipeline":
        """Pipeline over a ledger built from legacy-shaped case records."""
        pipeline = cls(config=config)
        pipeline.ingest(migrate_legacy_cases(legacy_cases))
        return pipeline

    def ingest(self, raws: Iterable[Union[Mapping[str, Any], CaseRecord]]) -> IngestionResult:
        return self.ledger.ingest_many(raws)

    # -------------------------------------------------------------------------
    # Query flow
    # -------------------------------------------------------------------------

    def process_query(self, query: str) -> RAGResponse:
        decision = route(query)
        if not decision.in_scope:
            return RAGResponse(
                query=query,
                mode=decision.mode,
                answer=REFUSAL_NON_FORENSIC,
                follow_up_suggestions=list(REFUSAL_FOLLOW_UPS),
            )

        results = self.search.search(query, self.config.search_limit)
        if not results:
            logger.debug("No cases matched %r", query)
            case_ids = self.ledger.all_case_ids()
            return RAGResponse(
                query=query,
                mode=decision.mode,
                answer=render_insufficient_context(case_ids),
                follow_up_suggestions=self.synthesizer.directory_follow_ups(case_ids),
            )

        cases = [self.ledger.get_case(r.case_id) for r in results]
        answer = self.synthesizer.synthesize(query, decision.mode, cases)

        confidences = _relative_confidences(results)
        citations = self.validator.verify(answer, confidences)
        if not citations:
            citations = _fallback_citations(results, confidences)

        logger.debug(
            "Answered %r in %s mode: %d cases, %d citations",
            query, decision.mode.value, len(cases), len(citations),
        )
        return RAGResponse(
            query=query,
            mode=decision.mode,
            answer=answer,
            citations=citations,
            confidence=results[0].relevance_score,
            follow_up_suggestions=self.synthesizer.follow_ups(decision.mode, cases),
            related_topics=self.synthesizer.related_topics(cases),
            context=build_case_context(cases, self.config.context_max_length),
        )

    def search_cases(self, query: str, limit: Optional[int] = None) -> list[SearchResult]:
        return self.search.search(query, self.config.search_limit if limit is None else limit)

    def autocomplete(self, partial: str, limit: Optional[int] = None) -> list[str]:
        return self.ledger.autocomplete(
            partial, self.config.autocomplete_limit if limit is None else limit
        )

    def get_stats(self) -> LedgerStats:
        return self.ledger.get_stats()


# =============================================================================
# HELPERS
# =============================================================================

def _relative_confidences(results: list[SearchResult]) -> dict[str, float]:
    """case_id -> score / top score, clamped to [0, 1]."""
    top = results[0].relevance_score
    if top <= 0:
        return {r.case_id: 0.0 for r in results}
    return {
        r.case_id: max(0.0, min(1.0, r.relevance_score / top))
        for r in results
    }


def _fallback_citations(results: list[SearchResult], confidences: Mapping[str, float]) -> list[Citation]:
    """One citation per retrieved case, pinned to its first matched artifact or finding."""
    citations = []
    for result in results:
        artifact_id = result.matched_artifacts[0] if result.matched_artifacts else None
        finding_id = None
        if artifact_id is None and result.matched_findings:
            finding_id = result.matched_findings[0]
        citations.append(
            Citation(
                case_id=result.case_id,
                confidence=confidences[result.case_id],
                artifact_id=artifact_id,
                finding_id=finding_id,
            )
        )
    return citations
