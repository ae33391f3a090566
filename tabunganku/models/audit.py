"""
Audit Models for TabunganKu

Every change to the ledger, and every refusal to change it, is logged
as an audit event. This provides:
1. Traceability of who saved or withdrew what, and when
2. Debugging information when persistence or the advisor fails
3. A way to reconstruct what happened in a session

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Roster
    STUDENT_ADDED = "student_added"
    STUDENTS_IMPORTED = "students_imported"
    STUDENT_DELETED = "student_deleted"
    IMPORT_REJECTED = "import_rejected"

    # Transactions
    TRANSACTION_APPLIED = "transaction_applied"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    SAVE_FAILED = "save_failed"

    # Advisory
    ADVISORY_ANSWERED = "advisory_answered"
    ADVISORY_FAILED = "advisory_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'student', 'transaction', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Flatten to a list of strings, e.g. for a spreadsheet or CSV export.

        Columns:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.student_added(student_id, name, class_name)
        event = AuditEventBuilder.transaction_rejected(student_id, "WITHDRAWAL", 600000, reason)
    """

    @staticmethod
    def student_added(
        student_id: str,
        name: str,
        class_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STUDENT_ADDED,
            entity_type="student",
            entity_id=student_id,
            correlation_id=correlation_id,
            description=f"Student added: {name} ({class_name})",
            details={
                "name": name,
                "class_name": class_name,
            },
            is_user_action=True,
        )

    @staticmethod
    def students_imported(
        count: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STUDENTS_IMPORTED,
            entity_type="roster",
            correlation_id=correlation_id,
            description=f"Imported {count} students ({skipped} rows skipped)",
            details={
                "imported": count,
                "skipped": skipped,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        reason: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="roster",
            correlation_id=correlation_id,
            description="Student import rejected",
            error_code=error_code,
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def student_deleted(
        student_id: str,
        name: str,
        orphaned_transactions: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STUDENT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="student",
            entity_id=student_id,
            description=f"Student deleted: {name}",
            details={
                "name": name,
                "orphaned_transactions": orphaned_transactions,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_applied(
        transaction_id: str,
        student_id: str,
        transaction_type: str,
        amount: int,
        new_balance: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPLIED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{transaction_type} of {amount} applied",
            details={
                "student_id": student_id,
                "type": transaction_type,
                "amount": amount,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        student_id: str,
        transaction_type: str,
        amount: Any,
        error_code: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="student",
            entity_id=student_id,
            description=f"{transaction_type} rejected",
            details={
                "type": transaction_type,
                "amount": str(amount),
            },
            error_code=error_code,
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        students: int,
        transactions: int,
        source: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description=f"Ledger loaded from {source}",
            details={
                "students": students,
                "transactions": transactions,
                "source": source,
            },
        )

    @staticmethod
    def ledger_load_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Persisted ledger unreadable, starting from defaults",
            error_message=error_message,
        )

    @staticmethod
    def save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            entity_id=key,
            description=f"Failed to persist '{key}'",
            error_message=error_message,
        )

    @staticmethod
    def advisory_answered(
        query_length: int,
        attempts: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISORY_ANSWERED,
            entity_type="advisory",
            correlation_id=correlation_id,
            description="Advisory question answered",
            details={
                "query_length": query_length,
                "attempts": attempts,
            },
            is_user_action=True,
        )

    @staticmethod
    def advisory_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISORY_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advisory",
            correlation_id=correlation_id,
            description="External service error: advisory model",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
