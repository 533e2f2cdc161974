"""
Relevance Search for the Casefile Retrieval Engine.

Scores cases against a free-text query. Every point of a case's score
comes from one of two sources:

    1. Posting-list hit   — the token is an indexed keyword of the case;
                            adds the token's rule weight
    2. Text containment   — the token appears inside an artifact or
                            finding text field; adds a fixed bonus per
                            matching artifact / finding

Scores accumulate per case across all tokens. The total is an
unnormalized weighted sum, not a probability.

Ordering: score descending, then case_id ascending.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..ingestion.ledger import INGESTION_RULES, CaseLedger, IngestionRule


logger = logging.getLogger(__name__)


# =============================================================================
# SCORING CONSTANTS
# =============================================================================

# Weight for a posting-list hit when no ingestion rule name contains the term
DEFAULT_TERM_WEIGHT = 0.5

ARTIFACT_MATCH_BONUS = 0.3
FINDING_MATCH_BONUS = 0.25

MIN_TOKEN_LENGTH = 3

_STRIP_RE = re.compile(r"[^\w\s-]")


def tokenize(query: str) -> list[str]:
    """
    Lowercase, drop punctuation except hyphens, split on whitespace.

    Tokens of two characters or fewer are discarded.
    """
    cleaned = _STRIP_RE.sub("", query.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


# =============================================================================
# TERM WEIGHT POLICY
# =============================================================================

@dataclass(frozen=True)
class TermWeightPolicy:
    """
    Maps a query term to its posting-list weight.

    A term takes the weight of the first ingestion rule whose field name
    contains it ("title" -> 0.95, "type" -> 0.75 via artifacts.type).
    Any other term gets default_weight.
    """
    rules: tuple[IngestionRule, ...] = INGESTION_RULES
    default_weight: float = DEFAULT_TERM_WEIGHT

    def weight_for(self, term: str) -> float:
        for rule in self.rules:
            if term in rule.field:
                return rule.weight
        return self.default_weight


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class SearchResult:
    """
    One ranked case with the evidence for its score.

    matched_keywords  — tokens that hit the posting list for this case
    matched_artifacts — artifact ids whose text contained a token
    matched_findings  — finding ids whose text contained a token
    """
    case_id: str
    relevance_score: float = 0.0
    matched_keywords: list[str] = field(default_factory=list)
    matched_artifacts: list[str] = field(default_factory=list)
    matched_findings: list[str] = field(default_factory=list)


# =============================================================================
# SEARCH
# =============================================================================

class RelevanceSearch:
    """Weighted multi-field search over a CaseLedger."""

    def __init__(self, ledger: CaseLedger, policy: Optional[TermWeightPolicy] = None):
        self.ledger = ledger
        self.policy = policy or TermWeightPolicy(rules=ledger.rules)

    def search(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Top `limit` cases for query, best first."""
        if limit <= 0:
            return []

        tokens = tokenize(query)
        if not tokens:
            return []

        results: dict[str, SearchResult] = {}

        def result_for(case_id: str) -> SearchResult:
            if case_id not in results:
                results[case_id] = SearchResult(case_id=case_id)
            return results[case_id]

        for token in tokens:
            self._score_postings(token, result_for)
            self._score_text(token, result_for)

        ranked = sorted(
            results.values(),
            key=lambda r: (-r.relevance_score, r.case_id),
        )
        logger.debug(
            "Search %r: %d tokens, %d candidate cases", query, len(tokens), len(ranked)
        )
        return ranked[:limit]

    def _score_postings(self, token: str, result_for) -> None:
        case_ids = self.ledger.postings.case_ids(token)
        if not case_ids:
            return
        weight = self.policy.weight_for(token)
        for case_id in case_ids:
            result = result_for(case_id)
            result.relevance_score += weight
            _append_unique(result.matched_keywords, token)

    def _score_text(self, token: str, result_for) -> None:
        for record in self.ledger.cases:
            for artifact in record.artifacts:
                if _any_contains(artifact.text_fields(), token):
                    result = result_for(record.case_id)
                    result.relevance_score += ARTIFACT_MATCH_BONUS
                    _append_unique(result.matched_artifacts, artifact.artifact_id)

            for finding in record.findings:
                if _any_contains(finding.text_fields(), token):
                    result = result_for(record.case_id)
                    result.relevance_score += FINDING_MATCH_BONUS
                    _append_unique(result.matched_findings, finding.finding_id)


def _append_unique(bucket: list[str], value: str) -> None:
    if value not in bucket:
        bucket.append(value)


def _any_contains(texts: Iterable[str], token: str) -> bool:
    return any(token in text.lower() for text in texts)
