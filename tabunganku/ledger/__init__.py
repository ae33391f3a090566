"""Ledger package: the store, roster import and id generation."""

from tabunganku.ledger.ids import IdGenerator, default_id_generator
from tabunganku.ledger.seed import demo_snapshot
from tabunganku.ledger.store import LedgerStore, load_snapshot
from tabunganku.ledger.reconciler import (
    Cell,
    EmptyCell,
    ImportReconciler,
    ImportReport,
    NumberCell,
    ReconciliationResult,
    TextCell,
    grid_from_csv,
    parse_grid,
    to_cell,
)

__all__ = [
    "IdGenerator",
    "default_id_generator",
    "demo_snapshot",
    "LedgerStore",
    "load_snapshot",
    "Cell",
    "EmptyCell",
    "ImportReconciler",
    "ImportReport",
    "NumberCell",
    "ReconciliationResult",
    "TextCell",
    "grid_from_csv",
    "parse_grid",
    "to_cell",
]
