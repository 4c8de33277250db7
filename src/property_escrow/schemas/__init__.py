"""Pydantic view schemas."""

from property_escrow.schemas.escrow import (
    ConditionProgress,
    EscrowDetails,
    EscrowSnapshot,
)
from property_escrow.schemas.monetary import AmountValidation, FeeEstimate

__all__ = [
    "AmountValidation",
    "ConditionProgress",
    "EscrowDetails",
    "EscrowSnapshot",
    "FeeEstimate",
]
