"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of deposits, withdrawals and roster changes
2. Debugging capability when persistence or the advisor fails
3. A record of rejected operations (e.g. insufficient funds)

The audit logger:
- Is synchronous, like the ledger mutations it records
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from tabunganku.models.audit import AuditEvent, AuditEventBuilder
from tabunganku.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("tabunganku.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_student_added(self, student_id: str, name: str, class_name: str) -> None:
        self.log(AuditEventBuilder.student_added(student_id, name, class_name))

    def log_students_imported(
        self,
        count: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.students_imported(count, skipped, correlation_id))

    def log_import_rejected(
        self,
        reason: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_rejected(reason, error_code, correlation_id))

    def log_student_deleted(
        self,
        student_id: str,
        name: str,
        orphaned_transactions: int,
    ) -> None:
        self.log(AuditEventBuilder.student_deleted(student_id, name, orphaned_transactions))

    def log_transaction_applied(
        self,
        transaction_id: str,
        student_id: str,
        transaction_type: str,
        amount: int,
        new_balance: int,
    ) -> None:
        self.log(AuditEventBuilder.transaction_applied(
            transaction_id=transaction_id,
            student_id=student_id,
            transaction_type=transaction_type,
            amount=amount,
            new_balance=new_balance,
        ))

    def log_transaction_rejected(
        self,
        student_id: str,
        transaction_type: str,
        amount,
        error_code: str,
        reason: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_rejected(
            student_id=student_id,
            transaction_type=transaction_type,
            amount=amount,
            error_code=error_code,
            reason=reason,
        ))

    def log_ledger_loaded(self, students: int, transactions: int, source: str) -> None:
        self.log(AuditEventBuilder.ledger_loaded(students, transactions, source))

    def log_ledger_load_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.ledger_load_failed(error_message))

    def log_save_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(key, error_message))

    def log_advisory_answered(
        self,
        query_length: int,
        attempts: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.advisory_answered(query_length, attempts, correlation_id))

    def log_advisory_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.advisory_failed(error_message, correlation_id))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g. a roster import).
    Pass it through all subsequent operations.
    """
    return uuid4()
