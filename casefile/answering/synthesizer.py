"""
Answer Synthesizer for the Casefile Retrieval Engine.

Fills a fixed text template per answer mode from the top-ranked case.
No text is generated by a model; every sentence is built from record
fields and every citation names a record that exists in that case.

Modes:
    direct_qa          — 2-4 sentences; sub-intent picks tools, artifacts,
                         timeline or a case summary
    teaching           — concept definition, concrete case example,
                         key learnings
    guided_walkthrough — numbered steps, each naming a tool, an artifact
                         and a citation
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..domain import AnswerMode, Artifact, CaseRecord, EvidenceValue, TimelineEvent
from .templates import GENERIC_FOLLOW_UPS


FOLLOW_UP_COUNT = 3
MAX_STEPS = 3
MAX_RELATED_TOPICS = 5

CONCEPT_DEFINITIONS = {
    "artifact": (
        "Artifacts are digital traces left behind by system and user activity: "
        "files, log entries, registry keys, memory structures and network captures. "
        "Investigators collect them to reconstruct what happened and prove it."
    ),
    "timeline": (
        "Timeline reconstruction orders events from many artifacts into one sequence, "
        "so investigators can see how an incident started, spread and was contained."
    ),
    "case": (
        "A forensic case study documents how an incident was investigated: the evidence "
        "collected, the tools applied and the conclusions the evidence supports."
    ),
}


def _cite(case_id: str, item_id: Optional[str] = None) -> str:
    return f"[{case_id}:{item_id}]" if item_id else f"[{case_id}]"


def _sentence(text: str) -> str:
    """Trim trailing punctuation so templates control the full stop."""
    return text.strip().rstrip(".!?;:")


def _lower_first(text: str) -> str:
    """Lowercase the opening letter unless it starts an acronym (NTFS, RAM)."""
    if len(text) > 1 and not text[1].islower():
        return text
    return text[:1].lower() + text[1:]


class AnswerSynthesizer:
    """Deterministic per-mode template filling."""

    def synthesize(self, query: str, mode: AnswerMode, cases: Sequence[CaseRecord]) -> str:
        """Answer text built from cases[0]; cases must be non-empty."""
        if not cases:
            raise ValueError("synthesize requires at least one case")

        record = cases[0]
        normalized = query.lower()
        if mode is AnswerMode.GUIDED_WALKTHROUGH:
            return self.walkthrough(record)
        if mode is AnswerMode.TEACHING:
            return self.teaching(normalized, record)
        return self.direct_answer(normalized, record)

    # =========================================================================
    # DIRECT QA
    # =========================================================================

    def direct_answer(self, normalized_query: str, record: CaseRecord) -> str:
        if "tool" in normalized_query and record.tools_used:
            return self._direct_tools(record)
        if "artifact" in normalized_query and record.artifacts:
            return self._direct_artifacts(record)
        if ("timeline" in normalized_query or "when" in normalized_query) and record.timeline:
            return self._direct_timeline(record)
        return self._direct_summary(record)

    def _direct_tools(self, record: CaseRecord) -> str:
        tools = record.tools_used[:3]
        first = tools[0]
        first_artifact = record.artifacts[0].artifact_id if record.artifacts else None

        purpose = _sentence(first.purpose) or "support the analysis"
        text = (
            f"The investigation used: {', '.join(t.tool_name for t in tools)} {_cite(record.case_id)}.\n\n"
            f"For example, {first.tool_name} was used to {_lower_first(purpose)} "
            f"{_cite(record.case_id, first_artifact)}."
        )
        if first.output_summary and first.output_summary != "N/A":
            text += f" Expected output: {_sentence(first.output_summary)}."
        return text

    def _direct_artifacts(self, record: CaseRecord) -> str:
        artifacts = record.artifacts[:3]
        lines = [
            f"• **{a.type}** {_cite(record.case_id, a.artifact_id)}: {a.description}"
            for a in artifacts
        ]
        return (
            "Key artifacts analyzed:\n"
            + "\n".join(lines)
            + f"\n\nThese artifacts provided {artifacts[0].evidence_value.value} "
            f"evidence value for the investigation."
        )

    def _direct_timeline(self, record: CaseRecord) -> str:
        lines = [
            f"• {event.timestamp}: {event.event} (Tool: {event.tool or 'N/A'})"
            for event in record.timeline[:3]
        ]
        return f"**Timeline of Events** {_cite(record.case_id)}:\n" + "\n".join(lines)

    def _direct_summary(self, record: CaseRecord) -> str:
        text = (
            f"**{record.title}** {_cite(record.case_id)}\n\n"
            f"{record.summary}\n\n"
            f"**Incident Type**: {record.incident_type} ({record.severity.value} severity)\n"
        )
        if record.findings:
            finding = record.findings[0]
            text += f"**Key Finding**: {finding.description} {_cite(record.case_id, finding.finding_id)}"
        elif record.conclusions or record.root_cause:
            conclusion = record.conclusions[0] if record.conclusions else record.root_cause
            text += f"**Key Finding**: {conclusion} {_cite(record.case_id)}"
        return text.rstrip()

    # =========================================================================
    # TEACHING
    # =========================================================================

    def teaching(self, normalized_query: str, record: CaseRecord) -> str:
        text = f"**Forensic Concept: Illustrated by {record.title}**\n\n"

        if ("artifact" in normalized_query or "evidence" in normalized_query) and record.artifacts:
            text += self._teach_artifacts(record)
        elif ("timeline" in normalized_query or "sequence" in normalized_query) and record.timeline:
            text += self._teach_timeline(record)
        else:
            text += self._teach_case(record)

        text += "\n\n" + self._key_learnings(record)
        return text

    def _teach_artifacts(self, record: CaseRecord) -> str:
        artifact = record.artifacts[0]
        role = "critical" if artifact.evidence_value is EvidenceValue.HIGH else "important"
        return (
            "**Understanding Forensic Artifacts**\n\n"
            f"{CONCEPT_DEFINITIONS['artifact']}\n\n"
            f"**Case Example**: **{artifact.type}** {_cite(record.case_id, artifact.artifact_id)}\n"
            f"- **What it is**: {artifact.description}\n"
            f"- **Where found**: {artifact.location}\n"
            f"- **Evidence value**: {artifact.evidence_value.value}\n\n"
            f"In this case, this artifact was {role} for establishing the investigation timeline."
        )

    def _teach_timeline(self, record: CaseRecord) -> str:
        events = "\n".join(f"• {e.timestamp}: {e.event}" for e in record.timeline[:3])
        return (
            "**Timeline Analysis in Forensics**\n\n"
            f"{CONCEPT_DEFINITIONS['timeline']}\n\n"
            f"**Case Example**: In {_cite(record.case_id)}, the timeline revealed:\n\n"
            f"{events}\n\n"
            "This sequential analysis identified the attack progression."
        )

    def _teach_case(self, record: CaseRecord) -> str:
        text = (
            f"**{record.incident_type} Investigation**\n\n"
            f"{CONCEPT_DEFINITIONS['case']}\n\n"
            f"**Case Example**: {record.summary} {_cite(record.case_id)}"
        )
        if record.findings:
            finding = record.findings[0]
            text += (
                f"\n- **Finding**: {finding.description} "
                f"{_cite(record.case_id, finding.finding_id)} ({finding.confidence.value})"
            )
        if record.artifacts:
            artifact = record.artifacts[0]
            text += (
                f"\n- **Evidence**: {artifact.type} "
                f"{_cite(record.case_id, artifact.artifact_id)}"
            )
        return text

    def _key_learnings(self, record: CaseRecord) -> str:
        text = "**Key Learning Points**:\n"
        if record.lessons_learned:
            for lesson in record.lessons_learned[:3]:
                text += f"\n**{lesson.category.value.upper()}**: {lesson.description}\n"
                if lesson.best_practice:
                    text += f"*Best Practice*: {lesson.best_practice}\n"
            return text.rstrip()

        learnings = list(record.conclusions[:3]) or list(record.recommendations[:3])
        if not learnings:
            learnings = [f"Review how the {record.incident_type.lower()} evidence was preserved and analyzed"]
        return text + "\n".join(f"• {item}" for item in learnings)

    # =========================================================================
    # GUIDED WALKTHROUGH
    # =========================================================================

    def walkthrough(self, record: CaseRecord) -> str:
        text = f"**Investigation Walkthrough: {record.title}**\n\n"

        steps = self._walkthrough_steps(record)
        for number, (action, tool, artifact, significance) in enumerate(steps, start=1):
            text += f"**Step {number}: {action}**\n"
            text += f"- **Tool**: {tool}\n"
            if artifact is not None:
                text += f"- **Artifact**: {artifact.type} {_cite(record.case_id, artifact.artifact_id)}\n"
                if artifact.location:
                    text += f"- **Location**: {artifact.location}\n"
            else:
                text += f"- **Artifact**: case record {_cite(record.case_id)}\n"
            if significance:
                text += f"- **Significance**: {significance}\n"
            text += "\n"

        text += "**Next Steps**: Continue analyzing remaining artifacts or ask about specific tools used."
        return text

    def _walkthrough_steps(
        self, record: CaseRecord
    ) -> list[tuple[str, str, Optional[Artifact], Optional[str]]]:
        default_tool = record.tools_used[0].tool_name if record.tools_used else "Manual analysis"

        if record.timeline:
            return [
                (
                    event.event,
                    event.tool or default_tool,
                    self._artifact_for_event(record, event, idx),
                    event.significance.value,
                )
                for idx, event in enumerate(record.timeline[:MAX_STEPS])
            ]

        if record.tools_used:
            return [
                (
                    _sentence(tool.purpose) or f"Run {tool.tool_name}",
                    tool.tool_name,
                    self._artifact_at(record, idx),
                    None,
                )
                for idx, tool in enumerate(record.tools_used[:MAX_STEPS])
            ]

        return [("Review the case evidence", default_tool, self._artifact_at(record, 0), None)]

    def _artifact_for_event(self, record: CaseRecord, event: TimelineEvent, idx: int) -> Optional[Artifact]:
        if event.artifact_id:
            artifact = record.artifact(event.artifact_id)
            if artifact is not None:
                return artifact
        return self._artifact_at(record, idx)

    @staticmethod
    def _artifact_at(record: CaseRecord, idx: int) -> Optional[Artifact]:
        if not record.artifacts:
            return None
        if idx < len(record.artifacts):
            return record.artifacts[idx]
        return record.artifacts[0]

    # =========================================================================
    # FOLLOW-UPS AND TOPICS
    # =========================================================================

    def follow_ups(self, mode: AnswerMode, cases: Sequence[CaseRecord]) -> list[str]:
        """Exactly three suggestions for the mode."""
        if not cases:
            return list(GENERIC_FOLLOW_UPS[:FOLLOW_UP_COUNT])

        case_id = cases[0].case_id
        if mode is AnswerMode.GUIDED_WALKTHROUGH:
            return [
                "Show me the next investigation steps",
                "How do I analyze similar artifacts?",
                "What tools should I use?",
            ]
        if mode is AnswerMode.TEACHING:
            return [
                "Explain another forensic concept",
                "Show me a practical example",
                "What are the best practices?",
            ]
        return [
            f"What tools were used in {case_id}?",
            f"Show me the timeline for {case_id}",
            "What were the key findings?",
        ]

    def directory_follow_ups(self, case_ids: Iterable[str]) -> list[str]:
        """Three suggestions naming known cases, padded with generic ones."""
        suggestions = [f"Tell me about {case_id}" for case_id in case_ids][:FOLLOW_UP_COUNT]
        for generic in GENERIC_FOLLOW_UPS:
            if len(suggestions) >= FOLLOW_UP_COUNT:
                break
            suggestions.append(generic)
        return suggestions

    def related_topics(self, cases: Iterable[CaseRecord]) -> list[str]:
        topics: dict[str, None] = {}
        for record in cases:
            topics[record.incident_type] = None
            for keyword in record.keywords[:3]:
                topics[keyword] = None
        return list(topics)[:MAX_RELATED_TOPICS]
