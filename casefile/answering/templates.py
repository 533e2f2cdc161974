"""
Fixed answer texts and the grounding-context builder.

Refusal and insufficient-context answers carry no citations. The context
block lists exactly the records an answer may cite, in the inline
citation format.
"""

from __future__ import annotations

from typing import Iterable

from ..domain import CaseRecord


REFUSAL_NON_FORENSIC = """I apologize, but I specialize exclusively in digital forensics case study analysis and investigation techniques. I can only assist with:

• Forensic case study questions
• Investigation methodologies
• Evidence analysis techniques
• Tool usage in forensic contexts
• Forensic concepts and terminology

Please ask a question related to digital forensics case studies or investigation procedures."""

INSUFFICIENT_CONTEXT = """I don't have enough information in the current case study knowledge base to answer that question accurately.

The available case studies cover:
{available_cases}

Would you like to:
• Rephrase your question to match available cases?
• Ask about general forensic methodology?
• Explore a related topic from the case studies?"""

REFUSAL_FOLLOW_UPS = [
    "Show me a case study",
    "Explain memory forensics",
    "How to investigate ransomware?",
]

GENERIC_FOLLOW_UPS = [
    "List all case studies",
    "Explain memory forensics",
    "What tools are used in forensic investigations?",
]


def render_insufficient_context(case_ids: Iterable[str]) -> str:
    listing = "\n".join(f"• {case_id}" for case_id in case_ids) or "• (no cases loaded)"
    return INSUFFICIENT_CONTEXT.format(available_cases=listing)


def _case_block(record: CaseRecord) -> str:
    artifacts = "\n".join(
        f"[{record.case_id}:{a.artifact_id}] {a.type}: {a.description} ({a.location})"
        for a in record.artifacts
    ) or "N/A"
    workflow = "\n".join(
        f"{event.timestamp}: {event.event} [Tool: {event.tool or 'N/A'}]"
        for event in record.timeline
    ) or "N/A"
    findings = "\n".join(
        f"[{record.case_id}:{f.finding_id}] {f.description}"
        for f in record.findings
    ) or "N/A"

    return (
        f"\n=== CASE STUDY: {record.case_id} ===\n"
        f"Title: {record.title}\n"
        f"Summary: {record.summary}\n\n"
        f"ARTIFACTS:\n{artifacts}\n\n"
        f"WORKFLOW:\n{workflow}\n\n"
        f"FINDINGS:\n{findings}\n\n"
        f"---\n"
    )


def build_case_context(cases: Iterable[CaseRecord], max_length: int = 6000) -> str:
    """
    Concatenate case blocks until the next one would exceed max_length.

    Whole blocks only; a case is never cut in half.
    """
    context = ""
    for record in cases:
        block = _case_block(record)
        if len(context) + len(block) > max_length:
            break
        context += block
    return context
