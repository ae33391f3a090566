"""Read-only views over the ledger."""

from tabunganku.queries.summary import build_summary

__all__ = ["build_summary"]
