# Ingestion package for the Casefile Retrieval Engine
"""
Case ingestion modules.

Builds canonical CaseRecords, synthesizes citation ids, and indexes
keywords into the posting list and autocomplete tries.
"""

from .ledger import (
    INGESTION_RULES,
    CaseLedger,
    IngestionRule,
    LedgerStats,
    PostingList,
    build_case_record,
)
from .migration import migrate_legacy_case, migrate_legacy_cases

__all__ = [
    "INGESTION_RULES",
    "CaseLedger",
    "IngestionRule",
    "LedgerStats",
    "PostingList",
    "build_case_record",
    "migrate_legacy_case",
    "migrate_legacy_cases",
]
