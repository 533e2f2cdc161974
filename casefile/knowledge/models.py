"""
Knowledge Base Records for the per-entity assistant.

Plain reference material (tools, legacy case scenarios, learning topics,
glossary terms) supplied pre-parsed by the host. These records are not
citable; answers over them come back as QueryResult values.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class KnowledgeLoadError(ValueError):
    """Raised when a knowledge record is missing a required field."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} record missing required field '{key}'")


def _required(raw: Mapping[str, Any], kind: str, key: str) -> Any:
    value = raw.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise KnowledgeLoadError(kind, key)
    return value


def _texts(values: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in (values or ()))


# =============================================================================
# REFERENCE RECORDS
# =============================================================================

@dataclass(frozen=True)
class ToolExample:
    scenario: str
    command: str
    output: str
    interpretation: str


@dataclass(frozen=True)
class Tool:
    """A forensic tool with its typical use and trade-offs."""
    name: str
    category: str
    use_case: str
    steps: tuple[str, ...] = ()
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    example: Optional[ToolExample] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Tool:
        pros_cons = raw.get("prosCons") or {}
        example = raw.get("example")
        return cls(
            name=_required(raw, "tool", "name"),
            category=raw.get("category", ""),
            use_case=raw.get("useCase", ""),
            steps=_texts(raw.get("steps")),
            pros=_texts(pros_cons.get("pros")),
            cons=_texts(pros_cons.get("cons")),
            example=ToolExample(
                scenario=example.get("scenario", ""),
                command=example.get("command", ""),
                output=example.get("output", ""),
                interpretation=example.get("interpretation", ""),
            ) if example else None,
        )

    def summary(self) -> dict[str, str]:
        return {"name": self.name, "category": self.category, "use_case": self.use_case}


@dataclass(frozen=True)
class LegacyArtifact:
    type: str
    description: str
    location: str


@dataclass(frozen=True)
class WorkflowStep:
    step: int
    action: str
    tool: str
    expected_result: str


@dataclass(frozen=True)
class LegacyCase:
    """
    A scenario-style case study, as authored before canonical CaseRecords.

    CaseStudyPipeline.from_legacy migrates the same shape into the ledger.
    """
    id: str
    scenario: str
    artifacts: tuple[LegacyArtifact, ...] = ()
    workflow: tuple[WorkflowStep, ...] = ()
    outcomes: tuple[str, ...] = ()
    legal_notes: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LegacyCase:
        return cls(
            id=_required(raw, "case", "id"),
            scenario=_required(raw, "case", "scenario"),
            artifacts=tuple(
                LegacyArtifact(
                    type=a.get("type", ""),
                    description=a.get("description", ""),
                    location=a.get("location", ""),
                )
                for a in raw.get("artifacts") or ()
            ),
            workflow=tuple(
                WorkflowStep(
                    step=int(w.get("step", position)),
                    action=w.get("action", ""),
                    tool=w.get("tool", ""),
                    expected_result=w.get("expectedResult", ""),
                )
                for position, w in enumerate(raw.get("workflow") or (), start=1)
            ),
            outcomes=_texts(raw.get("outcomes")),
            legal_notes=_texts(raw.get("legalNotes")),
        )

    def summary(self, length: int = 100) -> dict[str, str]:
        scenario = self.scenario
        if len(scenario) > length:
            scenario = scenario[:length] + "..."
        return {"id": self.id, "scenario": scenario}


@dataclass(frozen=True)
class TopicSection:
    heading: str
    content: str


@dataclass(frozen=True)
class Topic:
    """A learning topic, indexed by title and keywords."""
    id: str
    title: str
    summary: str
    difficulty: str = ""
    prerequisites: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    sections: tuple[TopicSection, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Topic:
        return cls(
            id=_required(raw, "topic", "id"),
            title=_required(raw, "topic", "title"),
            summary=raw.get("summary", ""),
            difficulty=raw.get("difficulty", ""),
            prerequisites=_texts(raw.get("prerequisites")),
            keywords=_texts(raw.get("keywords")),
            sections=tuple(
                TopicSection(heading=s.get("heading", ""), content=s.get("content", ""))
                for s in raw.get("sections") or ()
            ),
        )


@dataclass(frozen=True)
class GlossaryEntry:
    term: str
    definition: str
    related: tuple[str, ...] = ()
    category: str = ""

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> GlossaryEntry:
        return cls(
            term=_required(raw, "glossary", "term"),
            definition=raw.get("definition", ""),
            related=_texts(raw.get("related")),
            category=raw.get("category", ""),
        )


# =============================================================================
# QUERY RESULT
# =============================================================================

class ResultType(Enum):
    TOOL = "tool"
    CASE = "case"
    TOPIC = "topic"
    GLOSSARY = "glossary"
    GENERAL = "general"
    SUGGESTIONS = "suggestions"


@dataclass
class QueryResult:
    """
    Answer from the per-entity assistant.

    data is a plain dict (a record's fields, or a message plus listing).
    Mutable so that callers may annotate it; the facade hands out copies.
    """
    type: ResultType
    data: dict[str, Any]
    confidence: float
    suggestions: list[str] = field(default_factory=list)


def record_data(record: Any) -> dict[str, Any]:
    """Record fields as a plain dict, nested records included."""
    return asdict(record)
