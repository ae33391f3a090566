"""
Ledger Store

The one owner of the student roster and the transaction history.

GUARANTEES:
1. A student's balance always equals deposits minus withdrawals in
   their history, after every single mutation
2. A withdrawal never drives a balance below zero
3. Student ids and transaction ids are unique
4. Deleting a student never touches their past transactions

HOW:
- State lives in one immutable LedgerSnapshot. A mutation builds the
  next snapshot completely, then swaps it in with a single assignment.
  Readers grab the current snapshot once, so they can never see a new
  transaction without its balance update (or the reverse).
- Mutations are serialized by a lock and are synchronous.
- Any check that fails raises before the swap, so a failed operation
  leaves the ledger exactly as it was.
- After every successful mutation both collections are saved.
  Save failures are logged and remembered, never raised: the in-memory
  ledger stays authoritative for the session.
"""

import threading
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from tabunganku.audit import AuditLogger
from tabunganku.exceptions import (
    InsufficientFundsError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tabunganku.ledger.ids import IdGenerator, default_id_generator
from tabunganku.models.ledger import (
    LedgerSnapshot,
    Student,
    StudentCandidate,
    Transaction,
    TransactionType,
    utc_now,
)
from tabunganku.services.storage import (
    StorageError,
    StorageInterface,
    decode_students,
    decode_transactions,
    encode_collection,
)


logger = structlog.get_logger(__name__)

StudentPredicate = Callable[[Student], bool]
TransactionPredicate = Callable[[Transaction], bool]


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    # sorted() is stable, so equal timestamps keep their canonical order
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def _ensure_unique(items, kind: str) -> None:
    seen = set()
    for item in items:
        if item.id in seen:
            raise PersistenceError(f"Duplicate {kind} id in saved ledger: {item.id}")
        seen.add(item.id)


def load_snapshot(
    storage: StorageInterface,
    students_key: str = "students",
    transactions_key: str = "transactions",
) -> Optional[LedgerSnapshot]:
    """
    Read a ledger from storage.

    Returns None when nothing was ever saved. A missing collection next
    to a present one is read as empty.

    Raises:
        PersistenceError: If the backend fails or the data is unreadable
    """
    try:
        students_blob = storage.load(students_key)
        transactions_blob = storage.load(transactions_key)
    except StorageError as e:
        raise PersistenceError(f"Failed to read ledger from {storage.name}: {e}")

    if students_blob is None and transactions_blob is None:
        return None

    students = decode_students(students_blob, students_key) or []
    transactions = decode_transactions(transactions_blob, transactions_key) or []
    _ensure_unique(students, "student")
    _ensure_unique(transactions, "transaction")

    return LedgerSnapshot(students=tuple(students), transactions=tuple(transactions))


class LedgerStore:
    """
    Owns the ledger and enforces its invariants.

    Construct one per session, usually via LedgerStore.open().
    The presentation layer reads through the query methods and changes
    state only through add_student(s), delete_student and
    apply_transaction.
    """

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        snapshot: Optional[LedgerSnapshot] = None,
        audit_logger: Optional[AuditLogger] = None,
        students_key: str = "students",
        transactions_key: str = "transactions",
        id_generator: Optional[IdGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._snapshot = snapshot or LedgerSnapshot()
        self._audit_logger = audit_logger
        self._students_key = students_key
        self._transactions_key = transactions_key
        self._ids = id_generator or default_id_generator
        self._clock = clock
        self._lock = threading.RLock()

        # Diagnostics for the caller; never raised
        self.load_error: Optional[PersistenceError] = None
        self.last_persistence_error: Optional[PersistenceError] = None

    @classmethod
    def open(
        cls,
        storage: StorageInterface,
        seed: Optional[LedgerSnapshot] = None,
        audit_logger: Optional[AuditLogger] = None,
        students_key: str = "students",
        transactions_key: str = "transactions",
        **kwargs,
    ) -> "LedgerStore":
        """
        Hydrate a store from storage.

        - Saved ledger found: use it.
        - Nothing saved yet: start from `seed` (or empty) and save it.
        - Saved ledger unreadable: start from `seed` (or empty), keep the
          failure in `store.load_error`, and do not overwrite the saved
          data until the first real mutation.
        """
        load_error = None
        try:
            snapshot = load_snapshot(storage, students_key, transactions_key)
        except PersistenceError as e:
            snapshot = None
            load_error = e

        source = storage.name
        if snapshot is None:
            snapshot = seed or LedgerSnapshot()
            source = "defaults"

        store = cls(
            storage=storage,
            snapshot=snapshot,
            audit_logger=audit_logger,
            students_key=students_key,
            transactions_key=transactions_key,
            **kwargs,
        )
        store.load_error = load_error

        if load_error is not None:
            logger.error("ledger_load_failed", error=str(load_error))
            if audit_logger:
                audit_logger.log_ledger_load_failed(str(load_error))
        elif source == "defaults":
            store._persist(snapshot)

        if audit_logger:
            audit_logger.log_ledger_loaded(
                students=len(snapshot.students),
                transactions=len(snapshot.transactions),
                source=source,
            )
        return store

    # =========================================================================
    # SNAPSHOT AND PERSISTENCE
    # =========================================================================

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The current ledger. Immutable; safe to hold on to."""
        return self._snapshot

    def _persist(self, snapshot: LedgerSnapshot) -> bool:
        if self._storage is None:
            return True

        pending = (
            (self._students_key, snapshot.students),
            (self._transactions_key, snapshot.transactions),
        )

        ok = True
        for key, items in pending:
            try:
                if not self._storage.save(key, encode_collection(items)):
                    raise StorageError("backend reported an unsuccessful save")
            except Exception as e:
                ok = False
                error = PersistenceError(f"Failed to save '{key}': {e}")
                self.last_persistence_error = error
                logger.error("ledger_save_failed", key=key, error=str(e))
                if self._audit_logger:
                    self._audit_logger.log_save_failed(key, str(e))

        if ok:
            self.last_persistence_error = None
        return ok

    def _commit(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot
        self._persist(snapshot)

    def close(self) -> bool:
        """Final save at the end of a session. Returns True on success."""
        with self._lock:
            return self._persist(self._snapshot)

    def __enter__(self) -> "LedgerStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _unique_id(self, taken: set[str]) -> str:
        new_id = self._ids.next_id()
        while new_id in taken:
            new_id = self._ids.next_id()
        return new_id

    # =========================================================================
    # ROSTER MUTATIONS
    # =========================================================================

    @staticmethod
    def _validate_candidate(candidate: StudentCandidate) -> None:
        if not candidate.name:
            raise ValidationError("Nama siswa wajib diisi.")
        if not candidate.class_name:
            raise ValidationError("Kelas wajib diisi.")

    def _build_students(
        self,
        candidates: list[StudentCandidate],
        taken: set[str],
    ) -> list[Student]:
        joined = self._clock()
        created = []
        for candidate in candidates:
            self._validate_candidate(candidate)
            student_id = self._unique_id(taken)
            taken.add(student_id)
            try:
                created.append(Student(
                    id=student_id,
                    name=candidate.name,
                    class_name=candidate.class_name,
                    balance=0,
                    join_date=joined,
                ))
            except PydanticValidationError as e:
                raise ValidationError(f"Data siswa tidak valid: {e.errors()[0]['msg']}")
        return created

    def add_student(self, candidate: StudentCandidate) -> Student:
        """
        Add one student with a zero balance.

        Raises:
            ValidationError: If name or class label is empty
        """
        return self.add_students([candidate])[0]

    def add_students(self, candidates: Iterable[StudentCandidate]) -> list[Student]:
        """
        Add several students in one append, preserving their order.

        Every candidate is validated first; if any is invalid nothing is
        added.

        Raises:
            ValidationError: If any candidate has an empty name or class
        """
        candidates = list(candidates)
        with self._lock:
            snapshot = self._snapshot
            taken = {s.id for s in snapshot.students}
            created = self._build_students(candidates, taken)
            if not created:
                return []
            self._commit(
                LedgerSnapshot(
                    students=snapshot.students + tuple(created),
                    transactions=snapshot.transactions,
                )
            )

        if self._audit_logger:
            for student in created:
                self._audit_logger.log_student_added(
                    student.id, student.name, student.class_name
                )
        return created

    def delete_student(self, student_id: str) -> Student:
        """
        Remove a student from the roster. Unconditional and irreversible.

        Their transactions stay in the history untouched, still carrying
        the name they were recorded with.

        Raises:
            NotFoundError: If no student has this id
        """
        with self._lock:
            snapshot = self._snapshot
            student = snapshot.find_student(student_id)
            if student is None:
                raise NotFoundError(f"Siswa tidak ditemukan: {student_id}")
            self._commit(
                LedgerSnapshot(
                    students=tuple(s for s in snapshot.students if s.id != student_id),
                    transactions=snapshot.transactions,
                )
            )

        if self._audit_logger:
            orphaned = sum(1 for t in snapshot.transactions if t.student_id == student_id)
            self._audit_logger.log_student_deleted(student.id, student.name, orphaned)
        return student

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def apply_transaction(
        self,
        student_id: str,
        type: Union[TransactionType, str],
        amount: int,
        note: Optional[str] = None,
    ) -> Transaction:
        """
        Record a deposit or withdrawal and update the balance with it.

        Steps:
        1. Resolve the student
        2. Validate type and amount (whole units, greater than zero)
        3. Refuse withdrawals larger than the current balance
        4. Prepend the transaction, with the student's current name
        5. Apply the signed amount to the balance
        Steps 4 and 5 become visible together.

        Raises:
            NotFoundError: Unknown student
            ValidationError: Bad type, amount or note
            InsufficientFundsError: Withdrawal exceeds balance
        """
        try:
            with self._lock:
                transaction, new_balance = self._apply(student_id, type, amount, note)
        except LedgerError as e:
            if self._audit_logger:
                self._audit_logger.log_transaction_rejected(
                    student_id=str(student_id),
                    transaction_type=str(getattr(type, "value", type)),
                    amount=amount,
                    error_code=e.code,
                    reason=e.message,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_transaction_applied(
                transaction_id=transaction.id,
                student_id=transaction.student_id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                new_balance=new_balance,
            )
        return transaction

    def _apply(self, student_id, type, amount, note) -> tuple[Transaction, int]:
        snapshot = self._snapshot

        student = snapshot.find_student(student_id)
        if student is None:
            raise NotFoundError(f"Siswa tidak ditemukan: {student_id}")

        try:
            transaction_type = TransactionType(type)
        except ValueError:
            raise ValidationError(f"Jenis transaksi tidak dikenal: {type!r}")

        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Jumlah uang harus lebih dari 0.")

        if transaction_type is TransactionType.WITHDRAWAL and amount > student.balance:
            raise InsufficientFundsError(balance=student.balance, requested=amount)

        try:
            transaction = Transaction(
                id=self._unique_id({t.id for t in snapshot.transactions}),
                student_id=student.id,
                student_name=student.name,
                type=transaction_type,
                amount=amount,
                date=self._clock(),
                note=(note or "").strip() or transaction_type.default_note,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Data transaksi tidak valid: {e.errors()[0]['msg']}")

        new_balance = student.balance + transaction.signed_amount
        updated = student.model_copy(update={"balance": new_balance})

        self._commit(
            LedgerSnapshot(
                students=tuple(
                    updated if s.id == student.id else s for s in snapshot.students
                ),
                transactions=(transaction,) + snapshot.transactions,
            )
        )
        return transaction, new_balance

    # =========================================================================
    # QUERIES (read one snapshot, no side effects)
    # =========================================================================

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._snapshot.find_student(student_id)

    def total_balance(self) -> int:
        return sum(s.balance for s in self._snapshot.students)

    def total_students(self) -> int:
        return len(self._snapshot.students)

    def total_deposits(self) -> int:
        """Sum of all deposit amounts ever recorded."""
        return sum(
            t.amount for t in self._snapshot.transactions
            if t.type is TransactionType.DEPOSIT
        )

    def total_withdrawals(self) -> int:
        """Sum of all withdrawal amounts ever recorded."""
        return sum(
            t.amount for t in self._snapshot.transactions
            if t.type is TransactionType.WITHDRAWAL
        )

    def transactions_on_date(self, day: date) -> list[Transaction]:
        """Transactions on a UTC calendar day, newest first."""
        if isinstance(day, datetime):
            day = day.astimezone(timezone.utc).date() if day.tzinfo else day.date()
        return _newest_first(
            t for t in self._snapshot.transactions if t.date.date() == day
        )

    def recent_transactions(self, n: int) -> list[Transaction]:
        """The `n` latest transactions by date, newest first."""
        if n <= 0:
            return []
        return _newest_first(self._snapshot.transactions)[:n]

    def transactions_matching(self, predicate: TransactionPredicate) -> list[Transaction]:
        return [t for t in self._snapshot.transactions if predicate(t)]

    def students_matching(self, predicate: StudentPredicate) -> list[Student]:
        return [s for s in self._snapshot.students if predicate(s)]

    def search_students(self, term: str) -> list[Student]:
        """Case-insensitive match on name or class label."""
        needle = (term or "").strip().lower()
        return self.students_matching(
            lambda s: needle in s.name.lower() or needle in s.class_name.lower()
        )

    def search_transactions(self, term: str) -> list[Transaction]:
        """Case-insensitive match on student name or note, newest first."""
        needle = (term or "").strip().lower()
        return _newest_first(self.transactions_matching(
            lambda t: needle in t.student_name.lower() or needle in t.note.lower()
        ))

    def balance_discrepancies(self) -> dict[str, tuple[int, int]]:
        """
        Students whose balance disagrees with their history.

        Returns {student_id: (balance, expected_balance)}. Only data loaded
        from outside (e.g. hand-edited files) can produce entries; nothing
        is repaired automatically.
        """
        snapshot = self._snapshot
        expected: dict[str, int] = {}
        for t in snapshot.transactions:
            expected[t.student_id] = expected.get(t.student_id, 0) + t.signed_amount

        return {
            s.id: (s.balance, expected.get(s.id, 0))
            for s in snapshot.students
            if s.balance != expected.get(s.id, 0)
        }
