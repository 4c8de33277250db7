"""Currency descriptors and the immutable currency registry.

The registry is an explicitly constructed configuration object. It is passed
to the MonetaryEngine at construction, so tests can build registries with
different minimums side by side.

Usage:
    registry = default_registry()
    registry.require("sBTC").decimals      # 8
    registry.native().symbol           # CurrencySymbol.STX
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, model_validator

from property_escrow.domain.enums import CurrencySymbol
from property_escrow.domain.exceptions import UnknownCurrencyError


class CurrencyDescriptor(BaseModel):
    """Static description of one supported currency."""

    model_config = ConfigDict(frozen=True)

    symbol: CurrencySymbol
    name: str
    decimals: int = Field(ge=0, le=18)
    is_native: bool
    contract_ref: str | None = None
    minimum_transactable: Decimal = Field(ge=0)
    description: str = ""

    @model_validator(mode="after")
    def _contract_iff_token(self) -> CurrencyDescriptor:
        if self.is_native and self.contract_ref is not None:
            raise ValueError(f"Native currency {self.symbol} cannot carry a contract")
        if not self.is_native and not self.contract_ref:
            raise ValueError(f"Token {self.symbol} requires a contract reference")
        return self

    @property
    def base_unit(self) -> Decimal:
        """Value of one base unit, e.g. Decimal('0.000001') for STX."""
        return Decimal(1).scaleb(-self.decimals)


class CurrencyRegistry(Mapping[CurrencySymbol, CurrencyDescriptor]):
    """Read-only mapping of CurrencySymbol -> CurrencyDescriptor."""

    def __init__(self, descriptors: list[CurrencyDescriptor]) -> None:
        entries: dict[CurrencySymbol, CurrencyDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.symbol in entries:
                raise ValueError(f"Duplicate currency in registry: {descriptor.symbol}")
            entries[descriptor.symbol] = descriptor

        natives = [d for d in entries.values() if d.is_native]
        if len(natives) != 1:
            raise ValueError(
                f"Registry must hold exactly one native currency, got {len(natives)}"
            )
        self._entries = MappingProxyType(entries)
        self._native = natives[0]

    def __getitem__(self, key: CurrencySymbol) -> CurrencyDescriptor:
        return self._entries[key]

    def __iter__(self) -> Iterator[CurrencySymbol]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.find(key) is not None

    def find(self, symbol: object) -> CurrencyDescriptor | None:
        """Return the descriptor for ``symbol`` or None when unregistered."""
        try:
            key = CurrencySymbol(symbol)
        except (ValueError, TypeError):
            return None
        return self._entries.get(key)

    def require(self, symbol: object) -> CurrencyDescriptor:
        """Return the descriptor for ``symbol``.

        Raises:
            UnknownCurrencyError: If the symbol is not registered.
        """
        descriptor = self.find(symbol)
        if descriptor is None:
            raise UnknownCurrencyError(symbol)
        return descriptor

    def native(self) -> CurrencyDescriptor:
        """The chain's base asset; transaction fees are paid in it."""
        return self._native

    def descriptors(self) -> list[CurrencyDescriptor]:
        return list(self._entries.values())


STX = CurrencyDescriptor(
    symbol=CurrencySymbol.STX,
    name="Stacks",
    decimals=6,
    is_native=True,
    minimum_transactable=Decimal("100"),
    description="Native Stacks token",
)

SBTC = CurrencyDescriptor(
    symbol=CurrencySymbol.SBTC,
    name="Stacks Bitcoin",
    decimals=8,
    is_native=False,
    contract_ref="SP3DX3H4FEYZJZ586MFBS25ZW3HZDMEW92260R2PR.Wrapped-Bitcoin",
    minimum_transactable=Decimal("0.001"),
    description="Bitcoin on Stacks",
)

USDH = CurrencyDescriptor(
    symbol=CurrencySymbol.USDH,
    name="Hermetica USD",
    decimals=8,
    is_native=False,
    contract_ref="SP2XD7417HGPRTREMKF748VNEQPDRR0RMANB7X1NK.token-usdh",
    minimum_transactable=Decimal("1000"),
    description="BTC-backed stablecoin by Hermetica",
)


def default_registry(
    minimum_overrides: Mapping[str, Decimal] | None = None,
) -> CurrencyRegistry:
    """Build the STX / sBTC / USDh registry.

    Args:
        minimum_overrides: Optional symbol -> minimum amount replacements,
            typically from Settings.currency_minimums.

    Raises:
        UnknownCurrencyError: If an override names an unsupported currency.
    """
    descriptors = {d.symbol: d for d in (STX, SBTC, USDH)}
    for symbol, minimum in (minimum_overrides or {}).items():
        try:
            key = CurrencySymbol(symbol)
        except ValueError as err:
            raise UnknownCurrencyError(symbol) from err
        descriptors[key] = descriptors[key].model_copy(
            update={"minimum_transactable": Decimal(str(minimum))}
        )
    return CurrencyRegistry(list(descriptors.values()))
