"""
Citation Validator for the Casefile Retrieval Engine.

SYSTEM INVARIANT:
    A citation reaches the reader only if it resolves against the ledger.

Accepted inline forms:
    [case_id]
    [case_id:item_id]
    [case_id:item_id:sub_id]

item_id must name an artifact or a finding of that case. sub_id is only
shape-checked. Anything else is dropped without raising; an answer with
no valid citations is still a valid answer.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from ..domain import Citation
from ..ingestion.ledger import CaseLedger


logger = logging.getLogger(__name__)


DEFAULT_CITATION_CONFIDENCE = 0.8

_BRACKET_RE = re.compile(r"\[([^\[\]]+)\]")
# Any run of characters other than the delimiters; ids are otherwise free-form
_SEGMENT = r"[^:\[\]]+"
CITATION_SHAPES = (
    re.compile(rf"^{_SEGMENT}$"),
    re.compile(rf"^{_SEGMENT}:{_SEGMENT}$"),
    re.compile(rf"^{_SEGMENT}:{_SEGMENT}:{_SEGMENT}$"),
)


def extract_citations(text: str) -> list[str]:
    """Inner text of every [...] span, in order of appearance."""
    return _BRACKET_RE.findall(text)


def is_well_formed(citation: str) -> bool:
    return any(shape.match(citation) for shape in CITATION_SHAPES)


class CitationValidator:
    """Checks citation tokens against a CaseLedger."""

    def __init__(self, ledger: CaseLedger):
        self.ledger = ledger

    def validate(self, citation: str) -> bool:
        if not is_well_formed(citation):
            return False

        parts = citation.split(":")
        case_id = parts[0]
        if not self.ledger.has_case(case_id):
            return False

        if len(parts) >= 2:
            item_id = parts[1]
            return (
                self.ledger.get_artifact(case_id, item_id) is not None
                or self.ledger.get_finding(case_id, item_id) is not None
            )
        return True

    def parse(
        self,
        citation: str,
        confidence: float = DEFAULT_CITATION_CONFIDENCE,
    ) -> Optional[Citation]:
        """Citation for a valid token, None otherwise."""
        if not self.validate(citation):
            return None

        parts = citation.split(":")
        case_id = parts[0]
        artifact_id = finding_id = sub_id = None
        if len(parts) >= 2:
            if self.ledger.get_artifact(case_id, parts[1]) is not None:
                artifact_id = parts[1]
            else:
                finding_id = parts[1]
        if len(parts) == 3:
            sub_id = parts[2]

        return Citation(
            case_id=case_id,
            confidence=confidence,
            artifact_id=artifact_id,
            finding_id=finding_id,
            sub_id=sub_id,
        )

    def verify(
        self,
        text: str,
        confidences: Optional[Mapping[str, float]] = None,
    ) -> list[Citation]:
        """
        All valid citations in text, first occurrence only.

        confidences maps case_id -> confidence; unknown cases fall back
        to DEFAULT_CITATION_CONFIDENCE.
        """
        confidences = confidences or {}
        verified: list[Citation] = []
        seen: set[str] = set()

        for token in extract_citations(text):
            if token in seen:
                continue
            seen.add(token)

            case_id = token.split(":")[0]
            citation = self.parse(
                token, confidences.get(case_id, DEFAULT_CITATION_CONFIDENCE)
            )
            if citation is None:
                logger.debug("Dropped unverifiable citation [%s]", token)
                continue
            verified.append(citation)

        return verified
