"""
Tests for the CaseLedger.

These tests verify:
1. Raw mappings become canonical CaseRecords
2. Missing artifact / finding ids are synthesized in source order
3. Integrity violations fail at ingestion time
4. Indexed fields land in the posting list and the right tries
"""

import pytest

from casefile.domain import (
    CaseRecord,
    EvidenceValue,
    FindingCategory,
    LedgerIntegrityError,
    Severity,
)
from casefile.ingestion.ledger import (
    ARTIFACT_TRIE,
    CASE_TRIE,
    TOOL_TRIE,
    CaseLedger,
    PostingList,
    build_case_record,
    field_values,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

def make_raw_case(case_id: str = "ransomware-investigation", **overrides) -> dict:
    """Helper to create a raw case mapping."""
    raw = {
        "case_id": case_id,
        "title": "Ransomware Investigation",
        "summary": "Encrypted file server traced to a phishing email.",
        "incident_type": "Ransomware",
        "severity": "critical",
        "industry": "Healthcare",
        "keywords": ["ransomware", "encryption", "phishing"],
        "artifacts": [
            {
                "type": "Memory Dump",
                "description": "RAM capture of the infected host",
                "location": "C:\\evidence\\mem.raw",
                "evidence_value": "high",
            },
            {
                "type": "Event Logs",
                "description": "Security event log export",
                "location": "C:\\Windows\\System32\\winevt",
            },
        ],
        "findings": [
            {
                "category": "attack_vector",
                "description": "Initial access through a malicious attachment",
                "confidence": "confirmed",
                "impact": "critical",
            },
        ],
        "tools_used": [
            {"tool_name": "Volatility", "purpose": "Analyze memory", "output_summary": "Process list"},
        ],
    }
    raw.update(overrides)
    return raw


def make_ledger(*raws: dict) -> CaseLedger:
    ledger = CaseLedger()
    ledger.ingest_many(raws or [make_raw_case()])
    return ledger


# =============================================================================
# RECORD BUILDING TESTS
# =============================================================================

class TestBuildCaseRecord:
    """Test raw mapping -> CaseRecord conversion."""

    def test_builds_record(self):
        record = build_case_record(make_raw_case())

        assert isinstance(record, CaseRecord)
        assert record.severity is Severity.CRITICAL
        assert record.artifacts[0].evidence_value is EvidenceValue.HIGH
        assert record.findings[0].category is FindingCategory.ATTACK_VECTOR

    def test_synthesizes_ids_in_source_order(self):
        record = build_case_record(make_raw_case("c1"))

        assert [a.artifact_id for a in record.artifacts] == ["c1_artifact_1", "c1_artifact_2"]
        assert [f.finding_id for f in record.findings] == ["c1_finding_1"]

    def test_explicit_ids_are_kept(self):
        raw = make_raw_case(artifacts=[{"artifact_id": "artifact_1", "type": "MFT"}])
        record = build_case_record(raw)

        assert record.artifacts[0].artifact_id == "artifact_1"

    def test_defaults_for_optional_fields(self):
        record = build_case_record({
            "case_id": "bare",
            "title": "Bare Case",
            "scenario": "x" * 300,
        })

        assert record.summary == "x" * 200
        assert record.incident_type == "Incident"
        assert record.severity is Severity.MEDIUM
        assert record.artifacts == ()

    @pytest.mark.parametrize("missing", ["case_id", "title"])
    def test_missing_required_field(self, missing):
        raw = make_raw_case()
        del raw[missing]

        with pytest.raises(LedgerIntegrityError, match=missing):
            build_case_record(raw)

    def test_invalid_enum_value_lists_allowed(self):
        raw = make_raw_case(severity="apocalyptic")

        with pytest.raises(LedgerIntegrityError) as exc:
            build_case_record(raw)

        assert "apocalyptic" in str(exc.value)
        assert "critical" in str(exc.value)
        assert exc.value.case_id == "ransomware-investigation"

    def test_duplicate_artifact_ids_rejected(self):
        raw = make_raw_case(artifacts=[
            {"artifact_id": "a1", "type": "MFT"},
            {"artifact_id": "a1", "type": "Registry"},
        ])

        with pytest.raises(LedgerIntegrityError, match="duplicate artifact_id"):
            build_case_record(raw)

    def test_duplicate_finding_ids_rejected(self):
        raw = make_raw_case(findings=[
            {"finding_id": "f1", "description": "one"},
            {"finding_id": "f1", "description": "two"},
        ])

        with pytest.raises(LedgerIntegrityError, match="duplicate finding_id"):
            build_case_record(raw)

    def test_artifact_without_type_rejected(self):
        raw = make_raw_case(artifacts=[{"description": "no type"}])

        with pytest.raises(LedgerIntegrityError, match="type"):
            build_case_record(raw)

    @pytest.mark.parametrize("overrides", [
        {"case_id": "case:2024"},
        {"artifacts": [{"artifact_id": "mem[1]", "type": "Memory Dump"}]},
        {"findings": [{"finding_id": "f:1", "description": "Beaconing"}]},
    ])
    def test_ids_with_citation_delimiters_rejected(self, overrides):
        raw = make_raw_case(**overrides)

        with pytest.raises(LedgerIntegrityError, match="reserved character"):
            build_case_record(raw)

    def test_dotted_and_spaced_ids_accepted(self):
        raw = make_raw_case(
            case_id="apt29.2024",
            artifacts=[{"artifact_id": "mem.1", "type": "Memory Dump"}],
            findings=[{"finding_id": "lateral movement", "description": "PsExec to DC"}],
        )

        record = build_case_record(raw)

        assert record.artifact("mem.1") is not None
        assert record.finding("lateral movement") is not None


class TestFieldValues:

    def test_scalar_field(self):
        record = build_case_record(make_raw_case())

        assert field_values(record, "title") == ["Ransomware Investigation"]

    def test_dotted_list_field(self):
        record = build_case_record(make_raw_case())

        assert field_values(record, "artifacts.type") == ["Memory Dump", "Event Logs"]

    def test_enum_field_resolves_to_value(self):
        record = build_case_record(make_raw_case())

        assert field_values(record, "findings.category") == ["attack_vector"]

    def test_empty_values_skipped(self):
        record = build_case_record(make_raw_case(industry=""))

        assert field_values(record, "industry") == []


# =============================================================================
# INGESTION TESTS
# =============================================================================

class TestIngestion:
    """Test ledger ownership and integrity."""

    def test_ingest_stores_case(self):
        ledger = make_ledger()

        assert "ransomware-investigation" in ledger
        assert ledger.has_case("ransomware-investigation")
        assert len(ledger) == 1

    def test_duplicate_case_id_rejected(self):
        ledger = make_ledger()

        with pytest.raises(LedgerIntegrityError, match="duplicate case_id"):
            ledger.ingest(make_raw_case())

    def test_failed_ingest_leaves_ledger_unchanged(self):
        ledger = make_ledger()
        before = ledger.get_stats()

        with pytest.raises(LedgerIntegrityError):
            ledger.ingest(make_raw_case("other", severity="nope"))

        assert ledger.get_stats() == before

    def test_ingest_accepts_built_record(self):
        ledger = CaseLedger()
        record = build_case_record(make_raw_case("prebuilt"))

        assert ledger.ingest(record) is record
        assert ledger.get_case("prebuilt") is record

    def test_ingest_many_preserves_order(self):
        ledger = CaseLedger()
        result = ledger.ingest_many([make_raw_case("b"), make_raw_case("a")])

        assert result.case_ids == ["b", "a"]
        assert ledger.all_case_ids() == ["b", "a"]

    def test_artifact_and_finding_lookup(self):
        ledger = make_ledger(make_raw_case("c1"))

        assert ledger.get_artifact("c1", "c1_artifact_1").type == "Memory Dump"
        assert ledger.get_finding("c1", "c1_finding_1") is not None
        assert ledger.get_artifact("c1", "c1_finding_1") is None
        assert ledger.get_artifact("missing", "c1_artifact_1") is None


# =============================================================================
# INDEX TESTS
# =============================================================================

class TestIndexing:
    """Test posting list and trie population."""

    def test_posting_list_is_lowercase(self):
        ledger = make_ledger()

        assert ledger.postings.case_ids("volatility") == ["ransomware-investigation"]
        assert ledger.postings.case_ids("VOLATILITY") == ["ransomware-investigation"]
        assert "memory dump" in ledger.postings

    def test_posting_tracks_source_fields(self):
        ledger = make_ledger(make_raw_case(keywords=["Volatility"]))

        fields = ledger.postings.fields("volatility", "ransomware-investigation")
        assert fields == {"keywords", "tools_used.tool_name"}

    def test_case_stored_once_per_keyword(self):
        ledger = make_ledger(make_raw_case(keywords=["Ransomware", "ransomware"]))

        assert ledger.postings.case_ids("ransomware") == ["ransomware-investigation"]

    def test_tries_are_routed_by_field(self):
        ledger = make_ledger()

        assert ledger.trie(CASE_TRIE).exists("ransomware-investigation")
        assert ledger.trie(CASE_TRIE).exists("Ransomware Investigation")
        assert ledger.trie(ARTIFACT_TRIE).exists("Memory Dump")
        assert ledger.trie(TOOL_TRIE).exists("Volatility")
        assert not ledger.trie(TOOL_TRIE).exists("Memory Dump")

    def test_summary_not_trie_indexed(self):
        ledger = make_ledger()

        assert not ledger.trie(CASE_TRIE).has_prefix("encrypted")

    def test_autocomplete_merges_tries(self):
        ledger = make_ledger()

        assert ledger.autocomplete("vol") == ["Volatility"]
        assert ledger.autocomplete("mem") == ["Memory Dump"]

    def test_autocomplete_dedupes_case_insensitively(self):
        ledger = make_ledger(make_raw_case(keywords=["volatility"]))

        assert ledger.autocomplete("vol") == ["volatility"]

    def test_autocomplete_limit(self):
        ledger = make_ledger()

        assert len(ledger.autocomplete("r", limit=1)) == 1

    def test_lookup_by_artifact_type_and_tool(self):
        ledger = make_ledger(make_raw_case("a"), make_raw_case("b", tools_used=[]))

        assert [r.case_id for r in ledger.cases_by_artifact_type("memory dump")] == ["a", "b"]
        assert [r.case_id for r in ledger.cases_by_tool("VOLATILITY")] == ["a"]


class TestPostingList:

    def test_blank_keyword_ignored(self):
        postings = PostingList()
        postings.add("   ", "c1", "keywords")

        assert len(postings) == 0

    def test_keywords_in_first_seen_order(self):
        postings = PostingList()
        postings.add("Volatility", "c1", "tools_used.tool_name")
        postings.add("MFT", "c2", "artifacts.type")
        postings.add("volatility", "c2", "keywords")

        assert postings.keywords() == ["volatility", "mft"]
        assert postings.case_ids("volatility") == ["c1", "c2"]

    def test_unknown_keyword(self):
        assert PostingList().case_ids("nothing") == []


class TestLedgerStats:

    def test_counts(self):
        ledger = make_ledger(make_raw_case("a"), make_raw_case("b"))
        stats = ledger.get_stats()

        assert stats.total_cases == 2
        assert stats.total_artifacts == 4
        assert stats.total_findings == 2
        assert stats.unique_tools == 1
        assert stats.total_keywords == len(ledger.postings)
