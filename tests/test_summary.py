"""
Tests for the ledger summary builder.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tabunganku.ledger import demo_snapshot
from tabunganku.models import LedgerSnapshot, Student, Transaction, TransactionType
from tabunganku.queries import build_summary


BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def large_snapshot(size: int = 1000) -> LedgerSnapshot:
    students = tuple(
        Student(id=str(i), name=f"Siswa {i}", class_name="9C", balance=(i * 37) % 1000)
        for i in range(size)
    )
    transactions = tuple(
        Transaction(
            id=f"t{i}",
            student_id=str(i % size),
            student_name=f"Siswa {i % size}",
            type=TransactionType.DEPOSIT if i % 3 else TransactionType.WITHDRAWAL,
            amount=100 + i,
            date=BASE + timedelta(minutes=(i * 7) % size),
        )
        for i in range(size)
    )
    return LedgerSnapshot(students=students, transactions=transactions)


class TestBuildSummary:
    """Tests for build_summary()."""

    def test_demo_ledger(self):
        """Test the summary of the demo data."""
        summary = build_summary(demo_snapshot())

        assert summary.total_students == 3
        assert summary.total_balance == 2500000
        assert [s.name for s in summary.top_savers] == [
            "Siti Aminah", "Budi Darmawan", "Ahmad Rizky",
        ]
        assert [t.id for t in summary.recent_transactions] == [
            "105", "104", "103", "102", "101",
        ]
        assert summary.transaction_summary.total_deposits == 4
        assert summary.transaction_summary.total_withdrawals == 1

    def test_empty_ledger(self):
        """Test an empty ledger summarizes to zeros."""
        summary = build_summary(LedgerSnapshot())
        assert summary.total_students == 0
        assert summary.total_balance == 0
        assert summary.top_savers == []
        assert summary.recent_transactions == []

    def test_bounded_for_large_ledgers(self):
        """Test at most 5 savers and 10 transactions leave the ledger."""
        snapshot = large_snapshot()
        summary = build_summary(snapshot)

        assert len(summary.top_savers) == 5
        assert len(summary.recent_transactions) == 10
        assert summary.total_students == 1000
        counts = summary.transaction_summary
        assert counts.total_deposits + counts.total_withdrawals == 1000
        assert counts.total_withdrawals == 334

    def test_top_savers_are_richest(self):
        """Test savers are ordered by balance, highest first."""
        snapshot = large_snapshot()
        summary = build_summary(snapshot)
        balances = [s.balance for s in summary.top_savers]
        assert balances == sorted(balances, reverse=True)
        assert balances[0] == max(s.balance for s in snapshot.students)

    def test_recent_transactions_newest_first(self):
        """Test recent transactions are ordered by date."""
        summary = build_summary(large_snapshot())
        dates = [t.date for t in summary.recent_transactions]
        assert dates == sorted(dates, reverse=True)

    def test_ties_keep_roster_order(self):
        """Test equal balances keep the roster order."""
        snapshot = LedgerSnapshot(students=tuple(
            Student(id=str(i), name=name, class_name="7A", balance=100)
            for i, name in enumerate(["Andi", "Budi", "Citra"])
        ))
        summary = build_summary(snapshot)
        assert [s.name for s in summary.top_savers] == ["Andi", "Budi", "Citra"]

    def test_deterministic(self):
        """Test the same snapshot always gives the same summary."""
        snapshot = large_snapshot(200)
        assert build_summary(snapshot) == build_summary(snapshot)
        assert build_summary(snapshot).to_context() == build_summary(snapshot).to_context()

    def test_snapshot_not_modified(self):
        """Test the builder does not touch its input."""
        snapshot = demo_snapshot()
        copy = snapshot.model_copy(deep=True)
        build_summary(snapshot)
        assert snapshot == copy

    @pytest.mark.parametrize("requested,expected", [(2, 2), (0, 0), (50, 5), (-1, 0)])
    def test_top_saver_limit_is_clamped(self, requested, expected):
        """Test smaller limits are honoured and larger ones capped."""
        summary = build_summary(large_snapshot(20), top_savers=requested)
        assert len(summary.top_savers) == expected

    def test_recent_limit_is_clamped(self):
        """Test the transaction limit cannot exceed 10."""
        summary = build_summary(large_snapshot(50), recent_transactions=100)
        assert len(summary.recent_transactions) == 10

    def test_context_hides_ids_of_savers(self):
        """Test top savers expose only name and balance."""
        context = build_summary(demo_snapshot()).to_context()
        assert set(context["topSavers"][0]) == {"name", "balance"}
        assert context["recentTransactions"][0]["studentName"] == "Budi Darmawan"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
