"""
Case Ledger — canonical case storage and keyword indexing.

The ledger is the only owner of CaseRecords. Everything downstream
(search, citation checks, answer templates) reads from it.

Ingestion steps per case:
    1. Build a CaseRecord from the raw mapping, synthesizing missing
       artifact / finding ids as {case_id}_artifact_{n} / {case_id}_finding_{n}
    2. Reject duplicate case ids (hard failure)
    3. Fold every indexed rule field into the global PostingList
    4. Feed trie-indexed fields into the case / artifact / tool tries

After ingestion the posting list and tries are only read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, TypeVar, Union

from ..domain import (
    Artifact,
    CaseRecord,
    Difficulty,
    EvidenceValue,
    Finding,
    FindingCategory,
    FindingConfidence,
    InvestigationLesson,
    LedgerIntegrityError,
    LessonCategory,
    Severity,
    Significance,
    TimelineEvent,
    ToolUsage,
)
from ..structures.trie import PrefixIndex


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

RawCase = Mapping[str, Any]


# =============================================================================
# INGESTION RULES
# =============================================================================

@dataclass(frozen=True)
class IngestionRule:
    """
    One row of the static ingestion table.

    field        — attribute path on CaseRecord, dotted for list members
    weight       — search relevance weight for terms naming this field
    indexed      — fold values into the global posting list
    trie_indexed — feed values into an autocomplete trie
    """
    field: str
    weight: float
    indexed: bool
    trie_indexed: bool


INGESTION_RULES: tuple[IngestionRule, ...] = (
    IngestionRule("case_id", 1.0, indexed=True, trie_indexed=True),
    IngestionRule("title", 0.95, indexed=True, trie_indexed=True),
    IngestionRule("summary", 0.85, indexed=True, trie_indexed=False),
    IngestionRule("incident_type", 0.9, indexed=True, trie_indexed=True),
    IngestionRule("industry", 0.5, indexed=True, trie_indexed=False),
    IngestionRule("keywords", 0.8, indexed=True, trie_indexed=True),
    IngestionRule("artifacts.type", 0.75, indexed=True, trie_indexed=True),
    IngestionRule("findings.category", 0.7, indexed=True, trie_indexed=False),
    IngestionRule("tools_used.tool_name", 0.65, indexed=True, trie_indexed=True),
    IngestionRule("lessons_learned.category", 0.5, indexed=True, trie_indexed=False),
)

# Which trie receives a trie-indexed field
CASE_TRIE = "case"
ARTIFACT_TRIE = "artifact"
TOOL_TRIE = "tool"

FIELD_TRIES = {
    "case_id": CASE_TRIE,
    "title": CASE_TRIE,
    "incident_type": CASE_TRIE,
    "keywords": CASE_TRIE,
    "artifacts.type": ARTIFACT_TRIE,
    "tools_used.tool_name": TOOL_TRIE,
}


# =============================================================================
# POSTING LIST
# =============================================================================

class PostingList:
    """
    Lowercase keyword -> case ids, each posting tagged with its source fields.

    A keyword may reach the same case through several fields (a tool name
    that is also listed as a keyword); the case id is stored once.
    """

    def __init__(self):
        self._postings: dict[str, dict[str, set[str]]] = {}

    def add(self, keyword: str, case_id: str, field_name: str) -> None:
        normalized = keyword.strip().lower()
        if not normalized:
            return
        by_case = self._postings.setdefault(normalized, {})
        by_case.setdefault(case_id, set()).add(field_name)

    def case_ids(self, keyword: str) -> list[str]:
        """Case ids holding keyword, in ingestion order."""
        return list(self._postings.get(keyword.lower(), {}))

    def fields(self, keyword: str, case_id: str) -> set[str]:
        return set(self._postings.get(keyword.lower(), {}).get(case_id, set()))

    def keywords(self) -> list[str]:
        return list(self._postings)

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and keyword.lower() in self._postings

    def __len__(self) -> int:
        return len(self._postings)


# =============================================================================
# RAW INPUT -> CASE RECORD
# =============================================================================

def _require(raw: RawCase, key: str, case_id: Optional[str]) -> Any:
    value = raw.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise LedgerIntegrityError(f"missing required field '{key}'", case_id)
    return value


def _parse_enum(enum_cls: type[E], value: Any, label: str, case_id: str, default: E) -> E:
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise LedgerIntegrityError(
            f"invalid {label} '{value}' (allowed: {allowed})", case_id
        )


def _strings(values: Optional[Iterable[Any]]) -> tuple[str, ...]:
    return tuple(str(v) for v in values or () if v is not None and str(v) != "")


def _build_artifact(raw: RawCase, case_id: str, position: int) -> Artifact:
    return Artifact(
        artifact_id=raw.get("artifact_id") or f"{case_id}_artifact_{position}",
        type=str(_require(raw, "type", case_id)),
        description=str(raw.get("description", "")),
        location=str(raw.get("location", "")),
        evidence_value=_parse_enum(
            EvidenceValue, raw.get("evidence_value"), "evidence_value", case_id, EvidenceValue.MEDIUM
        ),
        tool_used=raw.get("tool_used"),
    )


def _build_finding(raw: RawCase, case_id: str, position: int) -> Finding:
    return Finding(
        finding_id=raw.get("finding_id") or f"{case_id}_finding_{position}",
        category=_parse_enum(
            FindingCategory, raw.get("category"), "finding category", case_id, FindingCategory.EVIDENCE
        ),
        description=str(_require(raw, "description", case_id)),
        confidence=_parse_enum(
            FindingConfidence, raw.get("confidence"), "finding confidence", case_id, FindingConfidence.POSSIBLE
        ),
        impact=_parse_enum(Severity, raw.get("impact"), "finding impact", case_id, Severity.MEDIUM),
        supporting_artifacts=_strings(raw.get("supporting_artifacts")),
    )


def _build_event(raw: RawCase, case_id: str) -> TimelineEvent:
    return TimelineEvent(
        timestamp=str(raw.get("timestamp", "")),
        event=str(_require(raw, "event", case_id)),
        significance=_parse_enum(
            Significance, raw.get("significance"), "event significance", case_id, Significance.MINOR
        ),
        actor=raw.get("actor"),
        artifact_id=raw.get("artifact_id"),
        tool=raw.get("tool"),
    )


def _build_tool(raw: RawCase, case_id: str) -> ToolUsage:
    return ToolUsage(
        tool_name=str(_require(raw, "tool_name", case_id)),
        purpose=str(raw.get("purpose", "")),
        output_summary=str(raw.get("output_summary", "")),
        command=raw.get("command"),
        limitations=raw.get("limitations"),
    )


def _build_lesson(raw: RawCase, case_id: str, position: int) -> InvestigationLesson:
    return InvestigationLesson(
        lesson_id=raw.get("lesson_id") or f"{case_id}_lesson_{position}",
        category=_parse_enum(
            LessonCategory, raw.get("category"), "lesson category", case_id, LessonCategory.TECHNICAL
        ),
        description=str(_require(raw, "description", case_id)),
        best_practice=str(raw.get("best_practice", "")),
        common_mistake=raw.get("common_mistake"),
    )


def build_case_record(raw: RawCase) -> CaseRecord:
    """
    Convert a raw case mapping into a canonical CaseRecord.

    Raises:
        LedgerIntegrityError: missing case_id / title, bad enum value,
            or duplicate artifact / finding ids
    """
    case_id = str(_require(raw, "case_id", None))
    title = str(_require(raw, "title", case_id))
    scenario = str(raw.get("scenario", ""))

    return CaseRecord(
        case_id=case_id,
        title=title,
        summary=str(raw.get("summary") or scenario[:200]),
        incident_type=str(raw.get("incident_type") or "Incident"),
        severity=_parse_enum(Severity, raw.get("severity"), "severity", case_id, Severity.MEDIUM),
        timeline=tuple(_build_event(e, case_id) for e in raw.get("timeline") or ()),
        artifacts=tuple(
            _build_artifact(a, case_id, n) for n, a in enumerate(raw.get("artifacts") or (), start=1)
        ),
        findings=tuple(
            _build_finding(f, case_id, n) for n, f in enumerate(raw.get("findings") or (), start=1)
        ),
        tools_used=tuple(_build_tool(t, case_id) for t in raw.get("tools_used") or ()),
        keywords=_strings(raw.get("keywords")),
        scenario=scenario,
        industry=str(raw.get("industry", "")),
        difficulty=_parse_enum(
            Difficulty, raw.get("difficulty"), "difficulty", case_id, Difficulty.INTERMEDIATE
        ),
        conclusions=_strings(raw.get("conclusions")),
        root_cause=str(raw.get("root_cause", "")),
        lessons_learned=tuple(
            _build_lesson(l, case_id, n) for n, l in enumerate(raw.get("lessons_learned") or (), start=1)
        ),
        recommendations=_strings(raw.get("recommendations")),
        legal_notes=_strings(raw.get("legal_notes")),
        related_cases=_strings(raw.get("related_cases")),
    )


def field_values(record: CaseRecord, path: str) -> list[str]:
    """
    Resolve a dotted rule path ("artifacts.type") to its string values.

    Enum members resolve to their value; empty values are skipped.
    """
    current: list[Any] = [record]
    for part in path.split("."):
        resolved: list[Any] = []
        for item in current:
            value = getattr(item, part, None)
            if isinstance(value, (list, tuple)):
                resolved.extend(value)
            elif value is not None:
                resolved.append(value)
        current = resolved

    values = []
    for value in current:
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, str) and value:
            values.append(value)
    return values


# =============================================================================
# LEDGER
# =============================================================================

@dataclass(frozen=True)
class LedgerStats:
    total_cases: int
    total_keywords: int
    total_artifacts: int
    total_findings: int
    unique_tools: int


@dataclass
class IngestionResult:
    """Outcome of a batch ingest, in source order."""
    ingested: list[CaseRecord] = field(default_factory=list)

    @property
    def case_ids(self) -> list[str]:
        return [record.case_id for record in self.ingested]


class CaseLedger:
    """Owns every CaseRecord plus the posting list and autocomplete tries."""

    def __init__(self, rules: Iterable[IngestionRule] = INGESTION_RULES):
        self.rules: tuple[IngestionRule, ...] = tuple(rules)
        self._cases: dict[str, CaseRecord] = {}
        self._postings = PostingList()
        self._tries: dict[str, PrefixIndex] = {
            CASE_TRIE: PrefixIndex(),
            ARTIFACT_TRIE: PrefixIndex(),
            TOOL_TRIE: PrefixIndex(),
        }

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def ingest(self, raw: Union[RawCase, CaseRecord]) -> CaseRecord:
        """
        Add one case to the ledger.

        Raises:
            LedgerIntegrityError: duplicate case_id or malformed input
        """
        record = raw if isinstance(raw, CaseRecord) else build_case_record(raw)

        if record.case_id in self._cases:
            raise LedgerIntegrityError("duplicate case_id", record.case_id)

        self._cases[record.case_id] = record
        self._index(record)

        logger.debug(
            "Ingested case %s: %d artifacts, %d findings, %d tools",
            record.case_id,
            len(record.artifacts),
            len(record.findings),
            len(record.tools_used),
        )
        return record

    def ingest_many(self, raws: Iterable[Union[RawCase, CaseRecord]]) -> IngestionResult:
        result = IngestionResult()
        for raw in raws:
            result.ingested.append(self.ingest(raw))
        logger.info(
            "Ingested %d cases (%d keywords indexed)",
            len(result.ingested),
            len(self._postings),
        )
        return result

    def _index(self, record: CaseRecord) -> None:
        for rule in self.rules:
            if not (rule.indexed or rule.trie_indexed):
                continue
            values = field_values(record, rule.field)
            for value in values:
                if rule.indexed:
                    self._postings.add(value, record.case_id, rule.field)
                if rule.trie_indexed and rule.field in FIELD_TRIES:
                    self._tries[FIELD_TRIES[rule.field]].insert(value)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_case(self, case_id: str) -> Optional[CaseRecord]:
        return self._cases.get(case_id)

    def has_case(self, case_id: str) -> bool:
        return case_id in self._cases

    def get_artifact(self, case_id: str, artifact_id: str) -> Optional[Artifact]:
        record = self._cases.get(case_id)
        return record.artifact(artifact_id) if record else None

    def get_finding(self, case_id: str, finding_id: str) -> Optional[Finding]:
        record = self._cases.get(case_id)
        return record.finding(finding_id) if record else None

    def all_case_ids(self) -> list[str]:
        return list(self._cases)

    @property
    def cases(self) -> list[CaseRecord]:
        return list(self._cases.values())

    @property
    def postings(self) -> PostingList:
        return self._postings

    def trie(self, name: str) -> PrefixIndex:
        return self._tries[name]

    def cases_by_artifact_type(self, artifact_type: str) -> list[CaseRecord]:
        normalized = artifact_type.lower()
        return [
            record for record in self._cases.values()
            if any(a.type.lower() == normalized for a in record.artifacts)
        ]

    def cases_by_tool(self, tool_name: str) -> list[CaseRecord]:
        normalized = tool_name.lower()
        return [
            record for record in self._cases.values()
            if any(name.lower() == normalized for name in record.tool_names)
        ]

    def autocomplete(self, partial: str, limit: int = 8, per_trie: int = 3) -> list[str]:
        """Merge suggestions from the case, artifact and tool tries."""
        merged: list[str] = []
        seen: set[str] = set()
        for name in (CASE_TRIE, ARTIFACT_TRIE, TOOL_TRIE):
            for word in self._tries[name].autocomplete(partial, per_trie):
                if word.lower() not in seen:
                    seen.add(word.lower())
                    merged.append(word)
        return merged[:limit]

    def get_stats(self) -> LedgerStats:
        records = self._cases.values()
        return LedgerStats(
            total_cases=len(self._cases),
            total_keywords=len(self._postings),
            total_artifacts=sum(len(r.artifacts) for r in records),
            total_findings=sum(len(r.findings) for r in records),
            unique_tools=len({name for r in records for name in r.tool_names}),
        )

    def __len__(self) -> int:
        return len(self._cases)

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._cases
