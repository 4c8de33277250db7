"""Collaborator Protocols.

Defines the interfaces the core consumes from the outside world: a price feed
for currency conversion and an ordering-value source (block height) for
expiry. These are Protocols (structural subtyping) so concrete providers don't
need to inherit from a base class; they only need to match the shape.

The domain layer has ZERO imports from any chain client or price API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ExchangeRate:
    """A quoted exchange rate.

    Attributes:
        from_symbol: Currency being converted from.
        to_symbol: Currency being converted to (may be a fiat quote like USD).
        rate: Units of ``to_symbol`` per one unit of ``from_symbol``.
        source: Human-readable provenance of the quote.
        timestamp: When the quote was produced.
    """

    from_symbol: str
    to_symbol: str
    rate: Decimal
    source: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        return {
            "from": self.from_symbol,
            "to": self.to_symbol,
            "rate": str(self.rate),
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }


@runtime_checkable
class PriceFeed(Protocol):
    """Protocol that all exchange-rate providers must satisfy.

    Concrete implementations:
        - services/price_feed.py  (StaticPriceFeed, policy rate table)
    """

    def get_rate(self, from_symbol: str, to_symbol: str) -> ExchangeRate | None:
        """Return the rate for the pair, or None if the pair is not quoted."""
        ...


@runtime_checkable
class OrderingSource(Protocol):
    """Protocol for the monotonic ordering value used for expiry.

    Concrete implementations:
        - infrastructure/block_height.py  (BlockHeightCounter)
    """

    def current(self) -> int:
        """Return the current ordering value (e.g. chain block height)."""
        ...
