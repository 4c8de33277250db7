"""Domain enumerations for property escrow.

These enums define the canonical states, currencies and error kinds used
throughout the system. They are framework-agnostic (no pydantic imports).
"""

import enum


class EscrowState(enum.StrEnum):
    """Lifecycle states of an escrow transaction.

    State transitions are enforced by the EscrowStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    PENDING = "pending"
    FUNDED = "funded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {EscrowState.COMPLETED, EscrowState.CANCELLED, EscrowState.EXPIRED}
)


class CurrencySymbol(enum.StrEnum):
    """Currencies an escrow can be denominated in."""

    STX = "STX"
    SBTC = "sBTC"
    USDH = "USDh"


class PartyRole(enum.StrEnum):
    BUYER = "buyer"
    SELLER = "seller"


class Action(enum.StrEnum):
    """Party-driven actions a presentation layer may offer."""

    ASSIGN_SELLER = "assign_seller"
    FUND = "fund"
    SIGN = "sign"
    MARK_CONDITION = "mark_condition"
    COMPLETE = "complete"
    REFUND = "refund"


class EventType(enum.StrEnum):
    """Types of audit events recorded by the lifecycle.

    Every lifecycle mutation MUST produce exactly one event.
    """

    # Lifecycle events
    ESCROW_CREATED = "ESCROW_CREATED"
    SELLER_ASSIGNED = "SELLER_ASSIGNED"

    # Funding events
    FUNDS_DEPOSITED = "FUNDS_DEPOSITED"
    ESCROW_FUNDED = "ESCROW_FUNDED"

    # Closing events
    CONDITION_MET = "CONDITION_MET"
    SIGNATURE_RECORDED = "SIGNATURE_RECORDED"
    ESCROW_COMPLETED = "ESCROW_COMPLETED"

    # Exit events
    ESCROW_REFUNDED = "ESCROW_REFUNDED"
    ESCROW_EXPIRED = "ESCROW_EXPIRED"


class ErrorKind(enum.StrEnum):
    """Tagged failure reasons surfaced to callers."""

    # Monetary
    UNKNOWN_CURRENCY = "UNKNOWN_CURRENCY"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    NO_EXCHANGE_RATE = "NO_EXCHANGE_RATE"

    # Lifecycle
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NO_PROPERTY_OR_BUYER = "NO_PROPERTY_OR_BUYER"
    WRONG_STATE = "WRONG_STATE"
    UNAUTHORIZED = "UNAUTHORIZED"
    ALREADY_SIGNED = "ALREADY_SIGNED"
    IRREVERSIBLE_CONDITION = "IRREVERSIBLE_CONDITION"
    INVALID_CONDITION = "INVALID_CONDITION"
    PRECONDITIONS_NOT_MET = "PRECONDITIONS_NOT_MET"
    EXPIRED = "EXPIRED"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    INVALID_PARTY = "INVALID_PARTY"
    SELLER_ALREADY_ASSIGNED = "SELLER_ALREADY_ASSIGNED"
