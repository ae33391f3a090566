"""
Ledger Summary Builder

DESIGN DECISION: The advisory model never sees the ledger itself.
It sees a small, deterministic summary built here:

- total students and total balance
- the top savers (at most 5, name and balance only)
- the latest transactions (at most 10)
- how many deposits and withdrawals exist

This keeps the prompt small and keeps most of the roster private.
The builder is a pure function of a snapshot: same snapshot in,
same summary out, nothing modified.
"""

from typing import Optional

from tabunganku.models.ledger import LedgerSnapshot, TransactionType
from tabunganku.models.summary import (
    MAX_RECENT_TRANSACTIONS,
    MAX_TOP_SAVERS,
    LedgerSummary,
    TopSaver,
    TransactionCounts,
)


def _clamp(value: Optional[int], ceiling: int) -> int:
    if value is None:
        return ceiling
    return max(0, min(value, ceiling))


def build_summary(
    snapshot: LedgerSnapshot,
    top_savers: Optional[int] = None,
    recent_transactions: Optional[int] = None,
) -> LedgerSummary:
    """
    Summarize a ledger snapshot for the advisor.

    Args:
        snapshot: The ledger to summarize
        top_savers: How many savers to include (capped at 5)
        recent_transactions: How many transactions to include (capped at 10)
    """
    top_n = _clamp(top_savers, MAX_TOP_SAVERS)
    recent_n = _clamp(recent_transactions, MAX_RECENT_TRANSACTIONS)

    # Stable sorts: ties keep roster order / canonical history order
    savers = sorted(snapshot.students, key=lambda s: s.balance, reverse=True)
    latest = sorted(snapshot.transactions, key=lambda t: t.date, reverse=True)

    deposits = sum(1 for t in snapshot.transactions if t.type is TransactionType.DEPOSIT)

    return LedgerSummary(
        total_students=len(snapshot.students),
        total_balance=sum(s.balance for s in snapshot.students),
        top_savers=[TopSaver(name=s.name, balance=s.balance) for s in savers[:top_n]],
        recent_transactions=latest[:recent_n],
        transaction_summary=TransactionCounts(
            total_deposits=deposits,
            total_withdrawals=len(snapshot.transactions) - deposits,
        ),
    )
