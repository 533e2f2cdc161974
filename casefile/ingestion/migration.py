"""
Legacy Case Migration for the Casefile Retrieval Engine.

Older case collections use a flat shape:

    {id, scenario, artifacts[{type, description, location}],
     workflow[{step, action, tool, expectedResult}], outcomes, legalNotes}

This module converts that shape into the raw case mapping accepted by
CaseLedger.ingest. Every derived field comes from a keyword rule listed
below. Nothing is guessed beyond these rules.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional, Sequence


LegacyMapping = Mapping[str, Any]


# =============================================================================
# CLASSIFICATION RULES
# =============================================================================

HIGH_VALUE_ARTIFACTS = ["memory dump", "pcap", "disk image", "registry hive", "edr alerts"]
MEDIUM_VALUE_ARTIFACTS = ["logs", "email", "browser history", "usb history"]

CRITICAL_ACTIONS = ["isolate", "preserve", "image", "memory dump", "initial compromise"]
MAJOR_ACTIONS = ["analyze", "identify", "reconstruct", "lateral movement"]

# Checked in order; first match wins
FINDING_CATEGORY_RULES: list[tuple[str, list[str]]] = [
    ("attack_vector", ["vector", "entry", "phishing"]),
    ("lateral_movement", ["lateral", "movement", "propagat"]),
    ("persistence", ["persistence", "scheduled", "startup"]),
    ("exfiltration", ["exfiltrat", "steal", "transfer"]),
    ("impact", ["encrypt", "ransom", "damage"]),
    ("attribution", ["apt", "actor", "group"]),
]

CONFIRMED_MARKERS = ["confirmed", "identified", "proved", "established"]
PROBABLE_MARKERS = ["likely", "probable", "appears", "indicates"]

CRITICAL_IMPACT_MARKERS = ["encrypt", "breach", "exfiltrat", "compromise"]
HIGH_IMPACT_MARKERS = ["access", "credential", "malware"]
MEDIUM_IMPACT_MARKERS = ["attempt", "suspicious"]

INCIDENT_TYPE_RULES: list[tuple[str, list[str]]] = [
    ("Ransomware", ["ransom"]),
    ("Insider Threat", ["insider"]),
    ("APT", ["apt", "advanced"]),
    ("Data Breach", ["breach", "exfiltrat"]),
    ("Malware", ["malware"]),
    ("DDoS", ["ddos"]),
    ("Mobile", ["mobile"]),
]

INDUSTRY_RULES: list[tuple[str, list[str]]] = [
    ("Healthcare", ["healthcare", "hospital", "patient"]),
    ("Finance", ["financial", "bank"]),
    ("Retail", ["retail", "customer"]),
    ("Government", ["government"]),
]

ROOT_CAUSE_MARKERS = ["vector", "entry", "initial", "phishing", "vulnerability"]

MAX_KEYWORDS = 20


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _contains_any(text: str, markers: Sequence[str]) -> bool:
    return any(marker in text for marker in markers)


def _first_rule(text: str, rules: list[tuple[str, list[str]]], default: str) -> str:
    for label, markers in rules:
        if _contains_any(text, markers):
            return label
    return default


# =============================================================================
# FIELD HEURISTICS
# =============================================================================

def infer_evidence_value(artifact_type: str) -> str:
    normalized = artifact_type.lower()
    if _contains_any(normalized, HIGH_VALUE_ARTIFACTS):
        return "high"
    if _contains_any(normalized, MEDIUM_VALUE_ARTIFACTS):
        return "medium"
    return "low"


def infer_significance(action: str) -> str:
    normalized = action.lower()
    if _contains_any(normalized, CRITICAL_ACTIONS):
        return "critical"
    if _contains_any(normalized, MAJOR_ACTIONS):
        return "major"
    return "minor"


def classify_finding(outcome: str) -> str:
    return _first_rule(outcome.lower(), FINDING_CATEGORY_RULES, "evidence")


def infer_confidence(outcome: str) -> str:
    normalized = outcome.lower()
    if _contains_any(normalized, CONFIRMED_MARKERS):
        return "confirmed"
    if _contains_any(normalized, PROBABLE_MARKERS):
        return "probable"
    return "possible"


def infer_impact(outcome: str) -> str:
    normalized = outcome.lower()
    if _contains_any(normalized, CRITICAL_IMPACT_MARKERS):
        return "critical"
    if _contains_any(normalized, HIGH_IMPACT_MARKERS):
        return "high"
    if _contains_any(normalized, MEDIUM_IMPACT_MARKERS):
        return "medium"
    return "low"


def classify_incident_type(case_id: str, scenario: str) -> str:
    return _first_rule(f"{case_id} {scenario}".lower(), INCIDENT_TYPE_RULES, "Incident")


def infer_industry(scenario: str) -> str:
    return _first_rule(scenario.lower(), INDUSTRY_RULES, "Technology")


def infer_severity(scenario: str, outcomes: Sequence[str]) -> str:
    text = " ".join([scenario, *outcomes]).lower()
    if _contains_any(text, ["encrypt", "breach", "exfiltrat"]):
        return "critical"
    if _contains_any(text, ["compromise", "access"]):
        return "high"
    return "medium"


def infer_difficulty(workflow_steps: int, artifact_count: int) -> str:
    complexity = workflow_steps + artifact_count
    if complexity <= 8:
        return "beginner"
    if complexity <= 15:
        return "intermediate"
    if complexity <= 20:
        return "advanced"
    return "expert"


def generate_title(case_id: str) -> str:
    """'ransomware-investigation' -> 'Ransomware Investigation'"""
    return " ".join(word[:1].upper() + word[1:] for word in case_id.split("-"))


def extract_root_cause(outcomes: Sequence[str]) -> str:
    for outcome in outcomes:
        if _contains_any(outcome.lower(), ROOT_CAUSE_MARKERS):
            return outcome
    return outcomes[0] if outcomes else "Under investigation"


def extract_keywords(legacy: LegacyMapping) -> list[str]:
    """Ordered, de-duplicated keywords capped at MAX_KEYWORDS."""
    keywords: dict[str, None] = {}

    for part in legacy["id"].split("-"):
        if part:
            keywords[part] = None

    for artifact in legacy.get("artifacts", []):
        for word in (artifact.get("type") or "").split(" "):
            if len(word) > 3:
                keywords[word.lower()] = None

    for step in legacy.get("workflow", []):
        if step.get("tool"):
            keywords[step["tool"].lower()] = None

    scenario_words = re.findall(r"\b\w{4,}\b", legacy.get("scenario", "").lower())
    for word in scenario_words[:10]:
        keywords[word] = None

    return list(keywords)[:MAX_KEYWORDS]


def _supporting_artifacts(outcome: str, artifacts: Sequence[Mapping[str, Any]]) -> list[str]:
    lowered = outcome.lower()
    return [
        artifact["artifact_id"]
        for artifact in artifacts
        if artifact["type"].lower() in lowered
    ][:3]


def generate_lessons(legacy: LegacyMapping) -> list[dict[str, Any]]:
    case_id = legacy["id"]
    workflow = legacy.get("workflow", [])
    tools = [step.get("tool") or "" for step in workflow]
    lessons = []

    if any("FTK" in tool or "Volatility" in tool for tool in tools):
        lessons.append({
            "lesson_id": f"{case_id}_lesson_1",
            "category": "technical",
            "description": "Memory and disk forensics critical for attack reconstruction",
            "best_practice": "Always preserve volatile memory before shutdown",
        })

    if any(
        "hash" in (step.get("action") or "").lower() or "chain" in (step.get("action") or "").lower()
        for step in workflow
    ):
        lessons.append({
            "lesson_id": f"{case_id}_lesson_2",
            "category": "procedural",
            "description": "Evidence integrity maintained through proper chain of custody",
            "best_practice": "Document hash values and maintain detailed custody logs",
        })

    if legacy.get("legalNotes"):
        lessons.append({
            "lesson_id": f"{case_id}_lesson_3",
            "category": "legal",
            "description": "Compliance requirements impact investigation scope",
            "best_practice": "Coordinate with legal team before evidence collection",
        })

    return lessons


def generate_recommendations(legacy: LegacyMapping) -> list[str]:
    outcomes = [str(o).lower() for o in legacy.get("outcomes", []) if o]
    recommendations = []

    if "phishing" in legacy.get("scenario", "").lower():
        recommendations.append("Implement email security training and phishing simulations")
        recommendations.append("Deploy email gateway with attachment sandboxing")

    if any("lateral" in o for o in outcomes):
        recommendations.append("Implement network segmentation and zero trust architecture")
        recommendations.append("Enable MFA for all privileged accounts")

    if any("encrypt" in o for o in outcomes):
        recommendations.append("Maintain offline backups with regular restore testing")
        recommendations.append("Deploy EDR with ransomware detection capabilities")

    return recommendations or ["Conduct post-incident review", "Update incident response playbook"]


def _first_step_for(tool: str, workflow: Sequence[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    for step in workflow:
        if step.get("tool") == tool:
            return step
    return None


# =============================================================================
# MIGRATION
# =============================================================================

def migrate_legacy_case(legacy: LegacyMapping) -> dict[str, Any]:
    """
    Convert one legacy case into a raw case mapping for CaseLedger.

    Artifact and finding ids are synthesized in source order as
    {id}_artifact_{n} and {id}_finding_{n}. Workflow step n is paired
    with artifact n when one exists.

    Blank outcomes, workflow steps without an action and artifacts without
    a type are skipped before numbering.
    """
    case_id = legacy["id"]
    scenario = legacy.get("scenario", "")
    workflow = [step for step in legacy.get("workflow", []) if _present(step.get("action"))]
    outcomes = [outcome for outcome in legacy.get("outcomes", []) if _present(outcome)]
    legacy_artifacts = [art for art in legacy.get("artifacts", []) if _present(art.get("type"))]
    legal_notes = list(legacy.get("legalNotes", []))

    artifacts = [
        {
            "artifact_id": f"{case_id}_artifact_{n}",
            "type": art["type"],
            "description": art.get("description", ""),
            "location": art.get("location", ""),
            "evidence_value": infer_evidence_value(art["type"]),
        }
        for n, art in enumerate(legacy_artifacts, start=1)
    ]

    timeline = [
        {
            "timestamp": f"Step {step.get('step', idx + 1)}",
            "event": step["action"],
            "tool": step.get("tool"),
            "artifact_id": artifacts[idx]["artifact_id"] if idx < len(artifacts) else None,
            "significance": infer_significance(step["action"]),
        }
        for idx, step in enumerate(workflow)
    ]

    tools_used = []
    for tool in dict.fromkeys(step["tool"] for step in workflow if step.get("tool")):
        step = _first_step_for(tool, workflow)
        tools_used.append({
            "tool_name": tool,
            "purpose": step["action"][:100] if step else "Analysis",
            "output_summary": step.get("expectedResult", "N/A")[:150] if step else "N/A",
        })

    findings = [
        {
            "finding_id": f"{case_id}_finding_{n}",
            "category": classify_finding(outcome),
            "description": outcome,
            "supporting_artifacts": _supporting_artifacts(outcome, artifacts),
            "confidence": infer_confidence(outcome),
            "impact": infer_impact(outcome),
        }
        for n, outcome in enumerate(outcomes, start=1)
    ]

    return {
        "case_id": case_id,
        "title": generate_title(case_id),
        "summary": scenario[:200],
        "scenario": scenario,
        "industry": infer_industry(scenario),
        "incident_type": classify_incident_type(case_id, scenario),
        "severity": infer_severity(scenario, outcomes),
        "timeline": timeline,
        "artifacts": artifacts,
        "tools_used": tools_used,
        "findings": findings,
        "conclusions": outcomes[:3],
        "root_cause": extract_root_cause(outcomes),
        "lessons_learned": generate_lessons(legacy),
        "recommendations": generate_recommendations(legacy),
        "legal_notes": legal_notes,
        "keywords": extract_keywords(legacy),
        "difficulty": infer_difficulty(len(workflow), len(artifacts)),
    }


def migrate_legacy_cases(legacy_cases: Iterable[LegacyMapping]) -> list[dict[str, Any]]:
    return [migrate_legacy_case(legacy) for legacy in legacy_cases]
