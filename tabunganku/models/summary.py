"""
Summary Models

The bounded, read-only view of the ledger that is handed to the
advisory model. It is deliberately small: a handful of totals, the top
savers and the latest transactions, never the full history.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tabunganku.models.ledger import Transaction


MAX_TOP_SAVERS = 5
MAX_RECENT_TRANSACTIONS = 10


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TopSaver(_CamelModel):
    """Name and balance only. No ids or class labels leave the ledger."""

    name: str
    balance: int


class TransactionCounts(_CamelModel):
    total_deposits: int = Field(ge=0, description="Number of deposit transactions")
    total_withdrawals: int = Field(ge=0, description="Number of withdrawal transactions")


class LedgerSummary(_CamelModel):
    """
    Context object consumed by the advisory collaborator.

    Built by tabunganku.queries.summary.build_summary().
    """

    total_students: int = Field(ge=0)
    total_balance: int
    top_savers: list[TopSaver] = Field(
        default_factory=list,
        max_length=MAX_TOP_SAVERS,
    )
    recent_transactions: list[Transaction] = Field(
        default_factory=list,
        max_length=MAX_RECENT_TRANSACTIONS,
    )
    transaction_summary: TransactionCounts

    def to_context(self) -> dict:
        """
        JSON-ready dict with camelCase keys.

        This is exactly what gets embedded in the advisory prompt.
        """
        return self.model_dump(mode="json", by_alias=True)
