"""Mutable escrow entity and the append-only audit event.

EscrowTransaction is owned by the EscrowLifecycle; callers only ever see the
immutable EscrowSnapshot built from it (schemas/escrow.py).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from property_escrow.domain.enums import CurrencySymbol, EscrowState, EventType, PartyRole


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class EscrowTransaction:
    """A real-estate purchase held in escrow.

    Amounts are integer base units of ``currency``.
    """

    property_id: str
    currency: CurrencySymbol
    purchase_price: int
    earnest_money: int
    buyer: str
    expiry_height: int
    conditions: tuple[str, ...] = ()
    conditions_met: list[bool] = field(default_factory=list)
    seller: str | None = None
    funds_deposited: int = 0
    buyer_signature: bool = False
    seller_signature: bool = False
    state: EscrowState = EscrowState.PENDING
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.conditions_met:
            self.conditions_met = [False] * len(self.conditions)
        if len(self.conditions_met) != len(self.conditions):
            raise ValueError("conditions_met must parallel conditions")

    def role_of(self, party: str | None) -> PartyRole | None:
        """Return the party's role in this escrow, or None for outsiders."""
        if not party:
            return None
        if party == self.buyer:
            return PartyRole.BUYER
        if self.seller is not None and party == self.seller:
            return PartyRole.SELLER
        return None

    def has_signed(self, role: PartyRole) -> bool:
        if role is PartyRole.BUYER:
            return self.buyer_signature
        return self.seller_signature

    @property
    def fully_signed(self) -> bool:
        return self.buyer_signature and self.seller_signature

    @property
    def all_conditions_met(self) -> bool:
        return all(self.conditions_met)

    @property
    def outstanding_earnest_money(self) -> int:
        return max(self.earnest_money - self.funds_deposited, 0)

    def touch(self) -> None:
        self.updated_at = _utcnow()


@dataclass(frozen=True)
class EscrowEvent:
    """One entry in the append-only audit trail.

    Attributes:
        transaction_id: The escrow the event belongs to.
        event_type: What happened.
        old_state: State before the mutation (None on creation).
        new_state: State after the mutation.
        actor: Party address, or "SYSTEM" for scheduler-driven changes.
        metadata: Event-specific details (amounts, indexes, roles).
    """

    transaction_id: uuid.UUID
    event_type: EventType
    old_state: EscrowState | None
    new_state: EscrowState
    actor: str = "SYSTEM"
    metadata: dict = field(default_factory=dict)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
