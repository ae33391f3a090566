"""
Data Models Package

This package contains all Pydantic models used in TabunganKu.
All data flowing through the ledger must conform to these schemas.
"""

from tabunganku.models.ledger import (
    DEFAULT_CLASS_NAME,
    LedgerSnapshot,
    Student,
    StudentCandidate,
    Transaction,
    TransactionType,
    utc_now,
)
from tabunganku.models.summary import (
    MAX_RECENT_TRANSACTIONS,
    MAX_TOP_SAVERS,
    LedgerSummary,
    TopSaver,
    TransactionCounts,
)
from tabunganku.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CLASS_NAME",
    "LedgerSnapshot",
    "Student",
    "StudentCandidate",
    "Transaction",
    "TransactionType",
    "utc_now",
    # Summary models
    "MAX_RECENT_TRANSACTIONS",
    "MAX_TOP_SAVERS",
    "LedgerSummary",
    "TopSaver",
    "TransactionCounts",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
