"""Pydantic schemas for escrow views.

These are the shapes handed to callers. They are separate from the mutable
EscrowTransaction so nothing outside the lifecycle can change financial state
by editing a returned object.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from property_escrow.domain.enums import CurrencySymbol, EscrowState


class EscrowSnapshot(BaseModel):
    """Immutable point-in-time copy of an escrow transaction."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    property_id: str
    currency: CurrencySymbol
    purchase_price: int
    earnest_money: int
    funds_deposited: int
    buyer: str
    seller: str | None
    buyer_signature: bool
    seller_signature: bool
    conditions: tuple[str, ...]
    conditions_met: tuple[bool, ...]
    state: EscrowState
    expiry_height: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal


class ConditionProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    description: str
    met: bool


class EscrowDetails(BaseModel):
    """Display-ready rendering of an escrow (amounts formatted with symbol)."""

    model_config = ConfigDict(frozen=True)

    transaction_id: uuid.UUID
    property_id: str
    purchase_price: str
    earnest_money: str
    funds_deposited: str
    currency: str
    currency_name: str
    is_native: bool
    state: EscrowState
    buyer: str
    seller: str | None
    expiry_height: int
    buyer_signature: bool
    seller_signature: bool
    conditions: list[ConditionProgress] = Field(default_factory=list)
    conditions_met_count: int = 0
