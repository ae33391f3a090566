"""AI Agents package."""

from tabunganku.agents.advisor import (
    FALLBACK_ERROR,
    FALLBACK_NO_ANSWER,
    AdvisoryResponse,
    SavingsAdvisorAgent,
)

__all__ = [
    "FALLBACK_ERROR",
    "FALLBACK_NO_ANSWER",
    "AdvisoryResponse",
    "SavingsAdvisorAgent",
]
