"""Tagged success-or-failure results returned by the lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from property_escrow.domain.enums import ErrorKind
from property_escrow.domain.exceptions import EscrowError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a lifecycle operation.

    Exactly one of ``value`` and ``error`` is set.

    Usage:
        result = lifecycle.fund(tx_id, buyer, 5_000_000)
        if not result.ok:
            print(result.error_kind, result.message)
        snapshot = result.unwrap()   # re-raises the EscrowError on failure
    """

    value: T | None = None
    error: EscrowError | None = None

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: EscrowError) -> OperationResult[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error is not None else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "error": self.error_kind.value if self.error_kind else None,
            "message": self.message,
        }
