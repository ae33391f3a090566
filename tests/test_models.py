"""
Tests for TabunganKu models

Test strategy:
1. Unit tests for individual components (models, store, reconciler)
2. Flow tests with in-memory storage and fake advisor models
3. No real API calls in tests
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from tabunganku.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    LedgerSnapshot,
    LedgerSummary,
    Student,
    StudentCandidate,
    TopSaver,
    Transaction,
    TransactionCounts,
    TransactionType,
)


class TestStudentModel:
    """Tests for the Student model."""

    def test_student_creation(self):
        """Test Student model creation with snake_case names."""
        student = Student(id="1", name="Ahmad Rizky", class_name="10 IPA 1")
        assert student.name == "Ahmad Rizky"
        assert student.balance == 0
        assert student.join_date.tzinfo is not None

    def test_student_accepts_camel_case(self):
        """Test that persisted camelCase keys are accepted."""
        student = Student.model_validate({
            "id": "2",
            "name": "Siti Aminah",
            "className": "11 IPS 2",
            "balance": 1250000,
            "joinDate": "2023-02-20",
        })
        assert student.class_name == "11 IPS 2"
        assert student.join_date == datetime(2023, 2, 20, tzinfo=timezone.utc)

    def test_student_dumps_camel_case(self):
        """Test serialization uses the on-disk field names."""
        student = Student(id="1", name="Ahmad", class_name="10A")
        data = student.model_dump(mode="json", by_alias=True)
        assert set(data) == {"id", "name", "className", "balance", "joinDate"}

    def test_student_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        student = Student(id="1", name="  Budi  ", class_name=" 12 IPA 3 ")
        assert student.name == "Budi"
        assert student.class_name == "12 IPA 3"

    def test_student_rejects_empty_name(self):
        """Test that an empty name is rejected."""
        with pytest.raises(ValueError):
            Student(id="1", name="   ", class_name="10A")

    def test_student_is_frozen(self):
        """Test that balance cannot be assigned directly."""
        student = Student(id="1", name="Ahmad", class_name="10A")
        with pytest.raises(ValueError):
            student.balance = 1000

    def test_naive_join_date_becomes_utc(self):
        """Test naive timestamps are read as UTC."""
        student = Student(id="1", name="Ahmad", class_name="10A",
                          join_date=datetime(2024, 1, 1, 7, 30))
        assert student.join_date.tzinfo == timezone.utc
        assert student.join_date.hour == 7


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_creation(self):
        """Test Transaction model creation from persisted data."""
        txn = Transaction.model_validate({
            "id": "101",
            "studentId": "1",
            "studentName": "Ahmad Rizky",
            "type": "DEPOSIT",
            "amount": 500000,
            "date": "2023-10-01T08:00:00.000Z",
            "note": "Setoran Awal",
        })
        assert txn.type is TransactionType.DEPOSIT
        assert txn.student_name == "Ahmad Rizky"
        assert txn.date.tzinfo is not None

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (0, -500):
            with pytest.raises(ValueError):
                Transaction(id="1", student_id="1", student_name="A",
                            type=TransactionType.DEPOSIT, amount=amount)

    def test_transaction_rejects_unknown_type(self):
        """Test the transaction type is a closed set."""
        with pytest.raises(ValueError):
            Transaction(id="1", student_id="1", student_name="A",
                        type="TRANSFER", amount=100)

    def test_signed_amount(self):
        """Test deposits add and withdrawals subtract."""
        deposit = Transaction(id="1", student_id="1", student_name="A",
                              type=TransactionType.DEPOSIT, amount=300)
        withdrawal = Transaction(id="2", student_id="1", student_name="A",
                                 type=TransactionType.WITHDRAWAL, amount=100)
        assert deposit.signed_amount == 300
        assert withdrawal.signed_amount == -100

    def test_default_notes(self):
        """Test the default notes per type."""
        assert TransactionType.DEPOSIT.default_note == "Setoran tunai"
        assert TransactionType.WITHDRAWAL.default_note == "Penarikan tunai"


class TestCandidateAndSnapshot:
    """Tests for StudentCandidate and LedgerSnapshot."""

    def test_candidate_allows_empty_fields(self):
        """Test candidates are validated by the store, not the model."""
        candidate = StudentCandidate(name="  ", class_name="")
        assert candidate.name == ""
        assert candidate.class_name == ""

    def test_snapshot_find_student(self):
        """Test snapshot lookup by id."""
        snapshot = LedgerSnapshot(students=(
            Student(id="1", name="Ahmad", class_name="10A"),
            Student(id="2", name="Budi", class_name="10C"),
        ))
        assert snapshot.find_student("2").name == "Budi"
        assert snapshot.find_student("9") is None


class TestSummaryModels:
    """Tests for summary models."""

    def test_to_context_uses_camel_case(self):
        """Test the advisor context keys."""
        summary = LedgerSummary(
            total_students=1,
            total_balance=500,
            top_savers=[TopSaver(name="Ahmad", balance=500)],
            transaction_summary=TransactionCounts(total_deposits=1, total_withdrawals=0),
        )
        context = summary.to_context()
        assert context["totalStudents"] == 1
        assert context["topSavers"] == [{"name": "Ahmad", "balance": 500}]
        assert context["transactionSummary"] == {"totalDeposits": 1, "totalWithdrawals": 0}
        assert context["recentTransactions"] == []

    def test_top_savers_bounded(self):
        """Test that more than 5 top savers is refused."""
        with pytest.raises(ValueError):
            LedgerSummary(
                total_students=6,
                total_balance=0,
                top_savers=[TopSaver(name=str(i), balance=0) for i in range(6)],
                transaction_summary=TransactionCounts(total_deposits=0, total_withdrawals=0),
            )


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.STUDENT_ADDED,
            description="Student added",
        )
        assert event.event_type == AuditEventType.STUDENT_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.transaction_applied(
            transaction_id="200",
            student_id="1",
            transaction_type="DEPOSIT",
            amount=500000,
            new_balance=500000,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_applied"
        assert log_dict["entity_id"] == "200"
        assert log_dict["details"]["new_balance"] == 500000

    def test_audit_event_to_row(self):
        """Test conversion to a flat row."""
        event = AuditEventBuilder.student_deleted("1", "Ahmad", orphaned_transactions=2)
        row = event.to_row()
        assert len(row) == 11
        assert row[2] == "student_deleted"
        assert row[5] == "1"
        assert row[10] == "True"

    def test_transaction_rejected_is_warning(self):
        """Test rejected transactions are warnings with an error code."""
        event = AuditEventBuilder.transaction_rejected(
            student_id="1",
            transaction_type="WITHDRAWAL",
            amount=600000,
            error_code="INSUFFICIENT_FUNDS",
            reason="Saldo tidak mencukupi",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "INSUFFICIENT_FUNDS"

    def test_advisory_failed_keeps_correlation(self):
        """Test correlation ids are carried."""
        correlation_id = uuid4()
        event = AuditEventBuilder.advisory_failed("timeout", correlation_id)
        assert event.correlation_id == correlation_id
        assert event.severity == AuditSeverity.ERROR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
