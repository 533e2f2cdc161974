"""
Core Domain Objects for the Casefile Retrieval Engine.

Every record is built once by the CaseLedger and never mutated afterwards.
Artifacts and findings are addressable by id so that answers can cite them.

Domain Objects:
    CaseRecord          — A canonical forensic case study
    Artifact            — A piece of digital evidence collected in a case
    Finding             — A conclusion drawn from one or more artifacts
    TimelineEvent       — One step of the investigation, in order
    ToolUsage           — A tool applied during the investigation
    InvestigationLesson — A lesson recorded after the case closed
    Citation            — A verified reference back into the ledger
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# =============================================================================
# ERRORS
# =============================================================================

class CasefileError(Exception):
    """Base class for all engine errors."""
    pass


class LedgerIntegrityError(CasefileError):
    """
    Raised when raw case input would break a ledger invariant.

    Raised at ingestion time only. Query-time paths never raise it.
    """

    def __init__(self, reason: str, case_id: Optional[str] = None):
        self.reason = reason
        self.case_id = case_id
        prefix = f"[{case_id}] " if case_id else ""
        super().__init__(f"{prefix}{reason}")


# Characters that delimit [case:item:sub] citation tokens
RESERVED_ID_CHARS = ":[]"


def _check_citable(item_id: str, label: str, case_id: str) -> None:
    if any(ch in RESERVED_ID_CHARS for ch in item_id):
        raise LedgerIntegrityError(
            f"{label} '{item_id}' contains a reserved character ({RESERVED_ID_CHARS})",
            case_id,
        )


# =============================================================================
# ENUMS
# =============================================================================

class Severity(Enum):
    """Incident severity, also used for finding impact."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceValue(Enum):
    """How much weight an artifact carries in the investigation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Significance(Enum):
    """Significance of a timeline event."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class FindingCategory(Enum):
    ATTACK_VECTOR = "attack_vector"
    LATERAL_MOVEMENT = "lateral_movement"
    PERSISTENCE = "persistence"
    EXFILTRATION = "exfiltration"
    IMPACT = "impact"
    ATTRIBUTION = "attribution"
    EVIDENCE = "evidence"


class FindingConfidence(Enum):
    CONFIRMED = "confirmed"
    PROBABLE = "probable"
    POSSIBLE = "possible"


class LessonCategory(Enum):
    TECHNICAL = "technical"
    PROCEDURAL = "procedural"
    LEGAL = "legal"
    COMMUNICATION = "communication"


class Difficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class AnswerMode(Enum):
    """
    The three answer styles a query can be routed to.

    DIRECT_QA          — short factual answer with inline citations
    GUIDED_WALKTHROUGH — numbered investigation steps
    TEACHING           — concept explanation illustrated by a case
    """
    DIRECT_QA = "direct_qa"
    GUIDED_WALKTHROUGH = "guided_walkthrough"
    TEACHING = "teaching"


# =============================================================================
# CASE COMPONENTS
# =============================================================================

@dataclass(frozen=True)
class Artifact:
    """
    A piece of evidence collected during an investigation.

    artifact_id is unique within its case and is the citation handle
    used in answers, e.g. [ransomware-investigation:artifact_1].
    """
    artifact_id: str
    type: str
    description: str
    location: str
    evidence_value: EvidenceValue
    tool_used: Optional[str] = None

    def text_fields(self) -> tuple[str, ...]:
        """Fields scanned for substring matches at query time."""
        return (self.type, self.description, self.location)


@dataclass(frozen=True)
class Finding:
    """
    A conclusion drawn during the investigation.

    supporting_artifacts holds artifact ids only. The artifacts are
    owned by the case, not by the finding.
    """
    finding_id: str
    category: FindingCategory
    description: str
    confidence: FindingConfidence
    impact: Severity
    supporting_artifacts: tuple[str, ...] = field(default_factory=tuple)

    def text_fields(self) -> tuple[str, ...]:
        return (self.description, self.category.value)


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: str
    event: str
    significance: Significance
    actor: Optional[str] = None
    artifact_id: Optional[str] = None  # Weak reference into case.artifacts
    tool: Optional[str] = None


@dataclass(frozen=True)
class ToolUsage:
    tool_name: str
    purpose: str
    output_summary: str
    command: Optional[str] = None
    limitations: Optional[str] = None


@dataclass(frozen=True)
class InvestigationLesson:
    lesson_id: str
    category: LessonCategory
    description: str
    best_practice: str
    common_mistake: Optional[str] = None


# =============================================================================
# CASE RECORD
# =============================================================================

@dataclass(frozen=True)
class CaseRecord:
    """
    The canonical case study.

    Invariants enforced at construction:
    1. case_id is non-empty
    2. artifact ids are unique within the case
    3. finding ids are unique within the case
    4. no id contains a character reserved by the inline citation form
    """
    case_id: str
    title: str
    summary: str
    incident_type: str
    severity: Severity
    timeline: tuple[TimelineEvent, ...] = field(default_factory=tuple)
    artifacts: tuple[Artifact, ...] = field(default_factory=tuple)
    findings: tuple[Finding, ...] = field(default_factory=tuple)
    tools_used: tuple[ToolUsage, ...] = field(default_factory=tuple)
    keywords: tuple[str, ...] = field(default_factory=tuple)

    # Narrative and learning outcomes
    scenario: str = ""
    industry: str = ""
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    conclusions: tuple[str, ...] = field(default_factory=tuple)
    root_cause: str = ""
    lessons_learned: tuple[InvestigationLesson, ...] = field(default_factory=tuple)
    recommendations: tuple[str, ...] = field(default_factory=tuple)
    legal_notes: tuple[str, ...] = field(default_factory=tuple)
    related_cases: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.case_id:
            raise LedgerIntegrityError("case_id is required")
        _check_citable(self.case_id, "case_id", self.case_id)
        self._check_unique(
            [a.artifact_id for a in self.artifacts], "artifact_id"
        )
        self._check_unique(
            [f.finding_id for f in self.findings], "finding_id"
        )

    def _check_unique(self, ids: list[str], label: str) -> None:
        seen: set[str] = set()
        for item_id in ids:
            if not item_id:
                raise LedgerIntegrityError(f"{label} is required", self.case_id)
            _check_citable(item_id, label, self.case_id)
            if item_id in seen:
                raise LedgerIntegrityError(
                    f"duplicate {label} '{item_id}'", self.case_id
                )
            seen.add(item_id)

    def artifact(self, artifact_id: str) -> Optional[Artifact]:
        for artifact in self.artifacts:
            if artifact.artifact_id == artifact_id:
                return artifact
        return None

    def finding(self, finding_id: str) -> Optional[Finding]:
        for finding in self.findings:
            if finding.finding_id == finding_id:
                return finding
        return None

    @property
    def tool_names(self) -> list[str]:
        return [tool.tool_name for tool in self.tools_used]


# =============================================================================
# CITATION
# =============================================================================

@dataclass(frozen=True)
class Citation:
    """
    A verified reference from answer text back into the ledger.

    At most one of artifact_id / finding_id is set. sub_id carries the
    optional third segment of a [case:item:sub] token.
    """
    case_id: str
    confidence: float
    artifact_id: Optional[str] = None
    finding_id: Optional[str] = None
    sub_id: Optional[str] = None

    def __post_init__(self):
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(
                f"citation confidence must be in [0.0, 1.0], got {self.confidence}"
            )

    @property
    def token(self) -> str:
        """Render back into the inline [..] form, without brackets."""
        parts = [self.case_id]
        item = self.artifact_id or self.finding_id
        if item:
            parts.append(item)
            if self.sub_id:
                parts.append(self.sub_id)
        return ":".join(parts)
