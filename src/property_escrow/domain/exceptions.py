"""Domain exceptions for property escrow.

These exceptions are framework-agnostic and represent business rule violations.
The lifecycle catches them at its public boundary and turns them into tagged
failures; monetary conversions let them propagate to the caller.
"""

from __future__ import annotations

from property_escrow.domain.enums import ErrorKind


class EscrowError(Exception):
    """Base exception for all domain errors."""

    kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.kind.value


# --- Monetary Errors ---


class MonetaryError(EscrowError):
    """Base exception for currency arithmetic and validation failures."""


class UnknownCurrencyError(MonetaryError):
    """Raised when a currency symbol is not in the registry."""

    kind = ErrorKind.UNKNOWN_CURRENCY

    def __init__(self, symbol: object) -> None:
        super().__init__(message=f"Unknown currency: {symbol}")
        self.symbol = symbol


class InvalidAmountError(MonetaryError):
    """Raised for non-numeric, non-finite, zero or negative amounts."""

    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, amount: object, reason: str = "must be a positive number") -> None:
        super().__init__(message=f"Invalid amount {amount!r}: {reason}")
        self.amount = amount


class BelowMinimumError(MonetaryError):
    """Raised when an amount is strictly below the currency minimum."""

    kind = ErrorKind.BELOW_MINIMUM

    def __init__(self, minimum: str, symbol: str) -> None:
        super().__init__(message=f"Minimum amount is {minimum} {symbol}")
        self.minimum = minimum
        self.symbol = symbol


class NoExchangeRateError(MonetaryError):
    """Raised when the price feed has no rate for a currency pair."""

    kind = ErrorKind.NO_EXCHANGE_RATE

    def __init__(self, from_symbol: str, to_symbol: str) -> None:
        super().__init__(message=f"No exchange rate for {from_symbol} -> {to_symbol}")
        self.from_symbol = from_symbol
        self.to_symbol = to_symbol


# --- Lifecycle Errors ---


class ValidationFailedError(EscrowError):
    """Raised when the purchase price fails monetary validation at creation.

    Example: 50 STX when the STX minimum is 100.
    """

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, cause: MonetaryError) -> None:
        super().__init__(message=f"Escrow amount rejected: {cause.message}")
        self.cause_kind = cause.kind


class NoPropertyOrBuyerError(EscrowError):
    kind = ErrorKind.NO_PROPERTY_OR_BUYER

    def __init__(self) -> None:
        super().__init__(message="An escrow needs both a property and a buyer")


class WrongStateError(EscrowError):
    """Raised when an action is not allowed from the current state.

    Example: fund on a completed escrow.
    """

    kind = ErrorKind.WRONG_STATE

    def __init__(self, current_state: str, attempted: str) -> None:
        super().__init__(message=f"Cannot {attempted} while escrow is {current_state}")
        self.current_state = current_state
        self.attempted = attempted


class UnauthorizedError(EscrowError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, party: str, attempted: str) -> None:
        super().__init__(message=f"{party} is not permitted to {attempted} this escrow")
        self.party = party
        self.attempted = attempted


class AlreadySignedError(EscrowError):
    kind = ErrorKind.ALREADY_SIGNED

    def __init__(self, role: str) -> None:
        super().__init__(message=f"The {role} has already signed")
        self.role = role


class IrreversibleConditionError(EscrowError):
    """Raised when a satisfied condition would be flipped back to unmet."""

    kind = ErrorKind.IRREVERSIBLE_CONDITION

    def __init__(self, index: int) -> None:
        super().__init__(message=f"Condition {index} is already met and cannot be reverted")
        self.index = index


class InvalidConditionError(EscrowError):
    kind = ErrorKind.INVALID_CONDITION

    def __init__(self, index: object, count: int, reason: str | None = None) -> None:
        super().__init__(
            message=reason or f"Condition index {index!r} out of range (escrow has {count})"
        )
        self.index = index


class PreconditionsNotMetError(EscrowError):
    """Raised when completion is attempted without signatures or conditions."""

    kind = ErrorKind.PRECONDITIONS_NOT_MET

    def __init__(self, missing: list[str]) -> None:
        super().__init__(message=f"Cannot complete escrow, missing: {', '.join(missing)}")
        self.missing = missing


class ExpiredError(EscrowError):
    kind = ErrorKind.EXPIRED

    def __init__(self, expiry_height: int, current: int) -> None:
        super().__init__(
            message=f"Escrow expired at height {expiry_height} (current {current})"
        )
        self.expiry_height = expiry_height
        self.current = current


class TransactionNotFoundError(EscrowError):
    """Raised when a transaction ID does not exist."""

    kind = ErrorKind.TRANSACTION_NOT_FOUND

    def __init__(self, transaction_id: str) -> None:
        super().__init__(message=f"Escrow transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class InvalidPartyError(EscrowError):
    kind = ErrorKind.INVALID_PARTY

    def __init__(self, message: str) -> None:
        super().__init__(message=message)


class SellerAlreadyAssignedError(EscrowError):
    kind = ErrorKind.SELLER_ALREADY_ASSIGNED

    def __init__(self, transaction_id: str) -> None:
        super().__init__(message=f"Seller already assigned to escrow: {transaction_id}")
