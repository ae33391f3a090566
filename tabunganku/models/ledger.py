"""
Core Ledger Models for TabunganKu

These models define the shapes of everything the ledger stores:
students, their savings transactions, and the snapshot that binds
the two into one consistency domain.

DESIGN DECISION: Entities are frozen Pydantic models.
The only way to change a balance is for the ledger store to build a
new Student via model_copy(); nothing else can assign to it.

Field names are snake_case in Python and camelCase on disk, matching
the JSON shape the savings app has always persisted.
"""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
)
from pydantic.alias_generators import to_camel


DEFAULT_CLASS_NAME = "Umum"
MAX_NAME_LENGTH = 200
MAX_CLASS_NAME_LENGTH = 100


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _coerce_timestamp(value):
    # Seed data from older versions stored plain dates ("2023-01-15")
    if isinstance(value, str) and len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)
    return value


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcTimestamp = Annotated[
    datetime,
    BeforeValidator(_coerce_timestamp),
    AfterValidator(_ensure_utc),
]


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Kinds of savings transaction.

    Closed set: the ledger only knows money coming in and money going out.
    """
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

    @property
    def default_note(self) -> str:
        """Note used when the teller leaves the note field blank."""
        if self is TransactionType.DEPOSIT:
            return "Setoran tunai"
        return "Penarikan tunai"

    def signed(self, amount: int) -> int:
        """Effect of `amount` on a balance."""
        return amount if self is TransactionType.DEPOSIT else -amount


# =============================================================================
# ENTITIES
# =============================================================================

class Student(BaseModel):
    """
    A student with a savings account.

    `balance` is derived state: it must always equal the net of the
    student's deposits and withdrawals in the transaction history.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique student identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        description="Student's full name"
    )
    class_name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CLASS_NAME_LENGTH,
        description="Class label, e.g. '10 IPA 1'"
    )
    balance: int = Field(
        default=0,
        description="Current savings balance in whole currency units"
    )
    join_date: UtcTimestamp = Field(
        default_factory=utc_now,
        description="When the student was added (UTC)"
    )


class Transaction(BaseModel):
    """
    A single deposit or withdrawal.

    CRITICAL: `student_name` is a snapshot of the name at the time of the
    transaction. It is never refreshed, so history shows who the money
    belonged to back then, even after a rename or deletion.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique transaction identifier"
    )
    student_id: str = Field(
        ...,
        min_length=1,
        description="Student this transaction belongs to"
    )
    student_name: str = Field(
        ...,
        description="Student name at the time of the transaction"
    )
    type: TransactionType
    amount: int = Field(
        ...,
        gt=0,
        description="Amount in whole currency units, always positive"
    )
    date: UtcTimestamp = Field(
        default_factory=utc_now,
        description="When the transaction happened (UTC)"
    )
    note: str = Field(
        default="",
        max_length=500,
    )

    @property
    def signed_amount(self) -> int:
        return self.type.signed(self.amount)


class StudentCandidate(BaseModel):
    """
    A student that does not exist yet.

    Produced by the add-student form or by the import reconciler.
    The ledger store validates it and assigns id, balance and join date.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    name: str = ""
    class_name: str = ""


class LedgerSnapshot(BaseModel):
    """
    The whole ledger at one instant.

    The store swaps snapshots with a single assignment, so a reader
    holding one always sees transactions and balances that agree.
    Transactions are kept most-recent-first.
    """
    model_config = ConfigDict(frozen=True)

    students: tuple[Student, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def find_student(self, student_id: str) -> Optional[Student]:
        for student in self.students:
            if student.id == student_id:
                return student
        return None
