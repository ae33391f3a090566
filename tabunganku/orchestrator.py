"""
Main Orchestrator for TabunganKu

This module ties the components together and owns the session lifecycle:
1. Build the storage backend chosen in settings
2. Hydrate the ledger store from it (or from demo data)
3. Wire the import reconciler and the advisory flow
4. Save everything once more when the session ends

DESIGN DECISION: There is no global ledger state. One LedgerStore is
created per session and handed to whoever needs it; the presentation
layer only ever talks to the objects returned from here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog

from tabunganku.agents import FALLBACK_ERROR, AdvisoryResponse, SavingsAdvisorAgent
from tabunganku.audit import AuditLogger, create_correlation_id
from tabunganku.config import Settings, get_settings
from tabunganku.exceptions import ValidationError
from tabunganku.ledger import ImportReconciler, LedgerStore, demo_snapshot
from tabunganku.models.summary import LedgerSummary
from tabunganku.queries import build_summary
from tabunganku.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStorage,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageInterface,
)


logger = structlog.get_logger(__name__)


class AdvisoryFlow:
    """
    Orchestrates one advisory question.

    FLOW:
    1. Take the store's current snapshot (no lock held afterwards)
    2. Build the bounded summary
    3. Ask the advisor (may await; timeout and one retry inside)
    4. Audit the outcome

    The answer is always displayable text. A missing or failing
    advisor yields the apology fallback, never an exception.
    """

    def __init__(
        self,
        store: LedgerStore,
        advisor: Optional[SavingsAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        top_savers: Optional[int] = None,
        recent_transactions: Optional[int] = None,
    ):
        self._store = store
        self._advisor = advisor
        self._audit_logger = audit_logger
        self._top_savers = top_savers
        self._recent_transactions = recent_transactions

    @property
    def advisor_available(self) -> bool:
        return self._advisor is not None

    def summary(self) -> LedgerSummary:
        return build_summary(
            self._store.snapshot,
            top_savers=self._top_savers,
            recent_transactions=self._recent_transactions,
        )

    async def answer_question(
        self,
        question: str,
        correlation_id: Optional[UUID] = None,
    ) -> AdvisoryResponse:
        """
        Answer a user's question about the school's savings.

        Raises:
            ValidationError: If the question is blank
        """
        if not (question or "").strip():
            raise ValidationError("Pertanyaan tidak boleh kosong.")

        correlation_id = correlation_id or create_correlation_id()
        summary = self.summary()

        if self._advisor is None:
            response = AdvisoryResponse(
                text=FALLBACK_ERROR,
                degraded=True,
                error="Advisor is not configured",
            )
        else:
            response = await self._advisor.ask(question, summary)

        if response.error:
            logger.warning("advisory_degraded", error=response.error)
            if self._audit_logger:
                self._audit_logger.log_advisory_failed(response.error, correlation_id)
        elif self._audit_logger:
            self._audit_logger.log_advisory_answered(
                query_length=len(question),
                attempts=response.attempts,
                correlation_id=correlation_id,
            )

        return response


@dataclass
class AppComponents:
    """Everything a session needs, created once by create_app_components()."""

    store: LedgerStore
    reconciler: ImportReconciler
    advisory_flow: AdvisoryFlow
    audit_logger: AuditLogger
    storage: StorageInterface

    def close(self) -> bool:
        """End the session: final save of the ledger."""
        return self.store.close()


def create_storage(
    settings: Optional[Settings] = None,
) -> tuple[StorageInterface, Optional[AuditStorageInterface]]:
    """
    Build the ledger storage (and matching audit storage) from settings.

    Returns:
        (ledger_storage, audit_storage)
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsStorage(client), GoogleSheetsAuditStorage(client)
    if backend == "memory":
        return InMemoryStorage(), InMemoryAuditStorage()
    return JsonFileStorage(Path(settings.storage.data_dir)), InMemoryAuditStorage()


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[StorageInterface] = None,
    advisor: Optional[SavingsAdvisorAgent] = None,
    use_advisor: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings()).
        storage: Ledger storage override, e.g. InMemoryStorage in tests.
        advisor: Advisor override, e.g. with a fake model in tests.
        use_advisor: Set to False to run without Gemini.

    Returns:
        AppComponents with a hydrated store.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    audit_storage = None
    storage_error = None
    if storage is None:
        try:
            storage, audit_storage = create_storage(settings)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            storage_error = e
            storage, audit_storage = InMemoryStorage(), InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())
    if storage_error is not None:
        audit_logger.log_error(
            error_type="storage_not_configured",
            error_message=str(storage_error),
            details={"backend": storage_settings.backend, "fallback": "memory"},
        )

    store = LedgerStore.open(
        storage,
        seed=demo_snapshot() if app_settings.seed_demo_data else None,
        audit_logger=audit_logger,
        students_key=storage_settings.students_key,
        transactions_key=storage_settings.transactions_key,
    )

    discrepancies = store.balance_discrepancies()
    if discrepancies:
        logger.warning("ledger_balance_discrepancies", students=sorted(discrepancies))

    if advisor is None and use_advisor:
        try:
            advisor = SavingsAdvisorAgent(settings=settings.gemini)
        except Exception as e:
            # Advisor not configured - answers fall back to the apology text
            logger.warning("advisor_not_configured", error=str(e))
            audit_logger.log_error(
                error_type="advisor_not_configured",
                error_message=str(e),
            )
            advisor = None

    return AppComponents(
        store=store,
        reconciler=ImportReconciler.from_settings(app_settings, audit_logger=audit_logger),
        advisory_flow=AdvisoryFlow(
            store,
            advisor=advisor,
            audit_logger=audit_logger,
            top_savers=app_settings.summary_top_savers,
            recent_transactions=app_settings.summary_recent_transactions,
        ),
        audit_logger=audit_logger,
        storage=storage,
    )
