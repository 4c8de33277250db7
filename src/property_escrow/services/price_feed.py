"""StaticPriceFeed — exchange rates from a fixed policy table.

Use case: offline operation, tests and the simulation script. A live feed
(oracle or market API) plugs in through the same PriceFeed protocol.

Unquoted pairs return None; the MonetaryEngine turns that into
NoExchangeRateError rather than assuming a rate of 1.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType

from property_escrow.domain.collaborators import ExchangeRate
from property_escrow.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_RATES: Mapping[tuple[str, str], Decimal] = MappingProxyType(
    {
        ("STX", "USD"): Decimal("0.50"),
        ("sBTC", "USD"): Decimal("45000"),
        ("USDh", "USD"): Decimal("1.00"),
        ("STX", "sBTC"): Decimal("0.000011"),
        ("sBTC", "STX"): Decimal("90000"),
        ("USDh", "STX"): Decimal("2.00"),
        ("STX", "USDh"): Decimal("0.50"),
    }
)


class StaticPriceFeed:
    """Price feed backed by an in-memory rate table."""

    def __init__(
        self,
        rates: Mapping[tuple[str, str], Decimal | str] | None = None,
        source: str = "static policy table",
    ) -> None:
        table = DEFAULT_RATES if rates is None else rates
        self._rates = MappingProxyType(
            {pair: Decimal(str(rate)) for pair, rate in table.items()}
        )
        self._source = source

    def get_rate(self, from_symbol: str, to_symbol: str) -> ExchangeRate | None:
        rate = self._rates.get((str(from_symbol), str(to_symbol)))
        if rate is None:
            logger.debug("price_feed.pair_not_quoted", pair=f"{from_symbol}-{to_symbol}")
            return None
        return ExchangeRate(
            from_symbol=str(from_symbol),
            to_symbol=str(to_symbol),
            rate=rate,
            source=self._source,
        )

    def pairs(self) -> list[tuple[str, str]]:
        """Return every quoted (from, to) pair."""
        return list(self._rates)
