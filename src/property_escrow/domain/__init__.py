"""Domain layer — pure business rules for currencies and escrow lifecycle."""

from property_escrow.domain.collaborators import ExchangeRate, OrderingSource, PriceFeed
from property_escrow.domain.currency import (
    CurrencyDescriptor,
    CurrencyRegistry,
    default_registry,
)
from property_escrow.domain.enums import (
    Action,
    CurrencySymbol,
    ErrorKind,
    EscrowState,
    EventType,
    PartyRole,
)
from property_escrow.domain.exceptions import (
    EscrowError,
    MonetaryError,
    TransactionNotFoundError,
    WrongStateError,
)
from property_escrow.domain.models import EscrowEvent, EscrowTransaction
from property_escrow.domain.results import OperationResult
from property_escrow.domain.state_machine import (
    EscrowStateMachine,
    validate_transition,
)

__all__ = [
    "Action",
    "CurrencyDescriptor",
    "CurrencyRegistry",
    "CurrencySymbol",
    "ErrorKind",
    "EscrowError",
    "EscrowEvent",
    "EscrowState",
    "EscrowStateMachine",
    "EscrowTransaction",
    "EventType",
    "ExchangeRate",
    "MonetaryError",
    "OperationResult",
    "OrderingSource",
    "PartyRole",
    "PriceFeed",
    "TransactionNotFoundError",
    "WrongStateError",
    "default_registry",
    "validate_transition",
]
