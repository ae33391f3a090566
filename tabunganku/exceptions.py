"""
Ledger Error Taxonomy

Every failure the ledger core can report has its own exception type,
so the presentation layer always has something explicit to display.

- Store and import errors are raised synchronously and leave state untouched.
- Persistence and advisory errors are non-fatal: the caller degrades to
  defaults or to fallback text.
"""

from typing import Optional


class LedgerError(Exception):
    """
    Base exception for all ledger-level errors.

    Carries a human-readable message and a stable machine code.
    """

    code = "LEDGER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(LedgerError):
    """Malformed input to a mutation. Rejected before any state change."""

    code = "VALIDATION_ERROR"


class NotFoundError(LedgerError):
    """Reference to a student (or transaction) that does not exist."""

    code = "NOT_FOUND"


class InsufficientFundsError(LedgerError):
    """
    Withdrawal exceeds the student's balance.

    The current balance is kept so the UI can show it to the user.
    """

    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance: int, requested: int):
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Saldo tidak mencukupi. Saldo saat ini: {balance}, "
            f"jumlah penarikan: {requested}"
        )


class ReconciliationError(LedgerError):
    """Base class for bulk import failures."""

    code = "IMPORT_ERROR"


class EmptyImportError(ReconciliationError):
    """The import source parsed fine but produced no usable rows."""

    code = "EMPTY_IMPORT"


class ImportFormatError(ReconciliationError):
    """The import source could not be parsed at all."""

    code = "IMPORT_FORMAT"


class PersistenceError(LedgerError):
    """Loading or saving ledger state failed. Never fatal."""

    code = "PERSISTENCE_ERROR"


class AdvisoryUnavailableError(LedgerError):
    """The external advisory model failed or timed out."""

    code = "ADVISORY_UNAVAILABLE"
