"""Monetary Engine — currency-aware arithmetic and validation.

Pure functions over an immutable CurrencyRegistry, a static fee policy and an
injected PriceFeed. Nothing here stores state or performs I/O, so the
lifecycle can call it while holding a transaction lock.

All arithmetic is done in Decimal with a wide working precision; floats are
read through their shortest repr so 99.999999 means 99.999999, not the binary
approximation.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import TYPE_CHECKING

from property_escrow.domain.collaborators import ExchangeRate
from property_escrow.domain.exceptions import (
    BelowMinimumError,
    EscrowError,
    InvalidAmountError,
    NoExchangeRateError,
    UnknownCurrencyError,
)
from property_escrow.logging_config import get_logger
from property_escrow.schemas.escrow import ConditionProgress, EscrowDetails
from property_escrow.schemas.monetary import AmountValidation, FeeEstimate

if TYPE_CHECKING:
    from property_escrow.domain.collaborators import PriceFeed
    from property_escrow.domain.currency import CurrencyDescriptor, CurrencyRegistry
    from property_escrow.schemas.escrow import EscrowSnapshot

logger = get_logger(__name__)

DEFAULT_EARNEST_MONEY_PERCENTAGE = Decimal("10")
_WORKING_PRECISION = 80


def parse_amount(amount: object) -> Decimal:
    """Read a human-entered amount as a finite Decimal.

    Raises:
        InvalidAmountError: For booleans, None, unparsable or non-finite input.
    """
    if isinstance(amount, bool) or amount is None:
        raise InvalidAmountError(amount, "not a number")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, int):
        value = Decimal(amount)
    elif isinstance(amount, float):
        value = Decimal(repr(amount))
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip())
        except InvalidOperation as err:
            raise InvalidAmountError(amount, "not a number") from err
    else:
        raise InvalidAmountError(amount, "not a number")

    if not value.is_finite():
        raise InvalidAmountError(amount, "must be finite")
    return value


def parse_base_units(amount: object) -> int:
    if isinstance(amount, bool):
        raise InvalidAmountError(amount, "base units must be an integer")
    if isinstance(amount, int):
        units = amount
    else:
        value = parse_amount(amount)
        if value != value.to_integral_value():
            raise InvalidAmountError(amount, "base units must be an integer")
        units = int(value)
    if units < 0:
        raise InvalidAmountError(amount, "must not be negative")
    return units


def _digits(value: Decimal) -> int:
    return len(value.as_tuple().digits)


def _precision_for(value: Decimal, decimals: int = 0) -> int:
    """Enough digits to hold ``value`` exactly once scaled to ``decimals`` places."""
    return max(_WORKING_PRECISION, _digits(value), value.adjusted() + decimals + 2)


def _quantize(value: Decimal, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _precision_for(value, decimals)
        try:
            return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
        except InvalidOperation as err:
            raise InvalidAmountError(value, "too large to represent") from err


def _render(value: Decimal, decimals: int) -> str:
    return f"{_quantize(value, decimals):.{decimals}f}"


class MonetaryEngine:
    """Converts, formats and validates amounts for every registered currency."""

    def __init__(
        self,
        registry: CurrencyRegistry,
        price_feed: PriceFeed | None = None,
        *,
        fee_native: Decimal = Decimal("0.001"),
        fee_token: Decimal = Decimal("0.002"),
        fallback_quote_decimals: int = 8,
    ) -> None:
        self._registry = registry
        self._price_feed = price_feed
        self._fee_native = Decimal(str(fee_native))
        self._fee_token = Decimal(str(fee_token))
        self._fallback_quote_decimals = fallback_quote_decimals

    @property
    def registry(self) -> CurrencyRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def to_base_units(self, amount: object, currency: object) -> int:
        """Convert a display amount to integer base units (round half-up).

        Raises:
            UnknownCurrencyError: If the currency is not registered.
            InvalidAmountError: If the amount is negative, non-finite or not a number.
        """
        descriptor = self._registry.require(currency)
        value = parse_amount(amount)
        if value < 0:
            raise InvalidAmountError(amount, "must not be negative")
        with localcontext() as ctx:
            ctx.prec = _precision_for(value)
            scaled = value.scaleb(descriptor.decimals)
        return int(_quantize(scaled, 0))

    def from_base_units(self, amount: object, currency: object) -> str:
        """Convert integer base units to a decimal string.

        The result always carries exactly ``decimals`` fractional digits.
        """
        descriptor = self._registry.require(currency)
        units = parse_base_units(amount)
        exact = Decimal(units)
        with localcontext() as ctx:
            ctx.prec = _precision_for(exact)
            value = exact.scaleb(-descriptor.decimals)
        return f"{value:.{descriptor.decimals}f}"

    def format_currency(
        self,
        amount: object,
        currency: object,
        amount_is_base_units: bool = False,
    ) -> str:
        """Render ``"<amount> <symbol>"`` for display. Never raises."""
        try:
            descriptor = self._registry.require(currency)
            if amount_is_base_units:
                display = self.from_base_units(amount, descriptor.symbol)
            else:
                display = _render(parse_amount(amount), descriptor.decimals)
            return f"{display} {descriptor.symbol.value}"
        except (EscrowError, ArithmeticError, ValueError, TypeError) as exc:
            logger.debug(
                "monetary.format_degraded",
                amount=repr(amount),
                currency=str(currency),
                reason=str(exc),
            )
            return f"{amount} {currency}"

    # ------------------------------------------------------------------
    # Escrow math
    # ------------------------------------------------------------------

    def calculate_earnest_money(
        self,
        purchase_price: int,
        percentage: Decimal | int | str = DEFAULT_EARNEST_MONEY_PERCENTAGE,
    ) -> int:
        """Return ``purchase_price * percentage / 100`` rounded half-up.

        Args:
            purchase_price: Price in base units.
            percentage: Share of the price, in (0, 100].
        """
        price = parse_base_units(purchase_price)
        pct = parse_amount(percentage)
        if pct <= 0 or pct > 100:
            raise InvalidAmountError(percentage, "percentage must be in (0, 100]")
        with localcontext() as ctx:
            ctx.prec = _WORKING_PRECISION + _digits(Decimal(price)) + _digits(pct)
            earnest = Decimal(price) * pct / Decimal(100)
        return int(_quantize(earnest, 0))

    def estimate_transaction_fee(self, currency: object) -> FeeEstimate:
        """Static fee hint, always denominated in the native currency.

        Token transfers need an extra approval step, so they are quoted higher.
        Treat the result as an upper bound, not a guarantee.
        """
        descriptor = self._registry.require(currency)
        native = self._registry.native()
        if descriptor.is_native:
            fee, description = self._fee_native, "Standard transaction fee"
        else:
            fee, description = self._fee_token, "Includes token transfer approval"
        return FeeEstimate(
            fee_currency=native.symbol,
            fee_amount=fee,
            fee_base_units=self.to_base_units(fee, native.symbol),
            description=description,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def ensure_escrow_amount(self, amount: object, currency: object) -> Decimal:
        """Return the parsed amount or raise the matching MonetaryError."""
        descriptor = self._registry.require(currency)
        value = parse_amount(amount)
        if value <= 0:
            raise InvalidAmountError(amount, "Please enter a valid positive amount")
        if value < descriptor.minimum_transactable:
            raise BelowMinimumError(
                minimum=str(descriptor.minimum_transactable),
                symbol=descriptor.symbol.value,
            )
        return value

    def validate_escrow_amount(self, amount: object, currency: object) -> AmountValidation:
        """Check an amount against positivity and the currency minimum."""
        try:
            self.ensure_escrow_amount(amount, currency)
        except (UnknownCurrencyError, InvalidAmountError, BelowMinimumError) as exc:
            return AmountValidation.rejected(exc.kind, exc.message)
        return AmountValidation.accepted()

    # ------------------------------------------------------------------
    # Conversion between currencies
    # ------------------------------------------------------------------

    def get_exchange_rate(self, from_currency: object, to_currency: object) -> ExchangeRate:
        """Quote ``to_currency`` per one ``from_currency``.

        Raises:
            UnknownCurrencyError: If ``from_currency`` is not registered.
            NoExchangeRateError: If the price feed does not quote the pair.
        """
        source = self._registry.require(from_currency)
        target = self._quote_symbol(to_currency)
        if source.symbol.value == target:
            return ExchangeRate(source.symbol.value, target, Decimal(1), source="identity")

        quote = None
        if self._price_feed is not None:
            quote = self._price_feed.get_rate(source.symbol.value, target)
        if quote is None:
            logger.warning("monetary.no_exchange_rate", pair=f"{source.symbol.value}-{target}")
            raise NoExchangeRateError(source.symbol.value, target)
        return quote

    def convert_currency(
        self, amount: object, from_currency: object, to_currency: object
    ) -> str:
        """Convert ``amount`` and format it to the target's precision.

        Quote currencies outside the registry (e.g. USD) are formatted with
        the configured fallback precision.
        """
        value = parse_amount(amount)
        if value < 0:
            raise InvalidAmountError(amount, "must not be negative")
        rate = self.get_exchange_rate(from_currency, to_currency)
        with localcontext() as ctx:
            ctx.prec = _WORKING_PRECISION + _digits(value) + _digits(rate.rate)
            converted = value * rate.rate
        return _render(converted, self._target_decimals(to_currency))

    # ------------------------------------------------------------------
    # Registry lookups
    # ------------------------------------------------------------------

    def supported_currencies(self) -> list[CurrencyDescriptor]:
        return self._registry.descriptors()

    def is_valid_currency(self, currency: object) -> bool:
        return currency in self._registry

    def get_currency_info(self, currency: object) -> CurrencyDescriptor | None:
        return self._registry.find(currency)

    def get_currency_contract(self, currency: object) -> str | None:
        descriptor = self._registry.find(currency)
        return descriptor.contract_ref if descriptor else None

    def is_native_currency(self, currency: object) -> bool:
        descriptor = self._registry.find(currency)
        return bool(descriptor and descriptor.is_native)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def describe_escrow(self, snapshot: EscrowSnapshot) -> EscrowDetails:
        """Format an escrow snapshot for display. Never raises on amounts."""
        descriptor = self._registry.find(snapshot.currency)
        currency = snapshot.currency.value

        def fmt(units: int) -> str:
            return self.format_currency(units, currency, amount_is_base_units=True)

        conditions = [
            ConditionProgress(index=i, description=text, met=met)
            for i, (text, met) in enumerate(
                zip(snapshot.conditions, snapshot.conditions_met, strict=True)
            )
        ]
        return EscrowDetails(
            transaction_id=snapshot.id,
            property_id=snapshot.property_id,
            purchase_price=fmt(snapshot.purchase_price),
            earnest_money=fmt(snapshot.earnest_money),
            funds_deposited=fmt(snapshot.funds_deposited),
            currency=currency,
            currency_name=descriptor.name if descriptor else currency,
            is_native=bool(descriptor and descriptor.is_native),
            state=snapshot.state,
            buyer=snapshot.buyer,
            seller=snapshot.seller,
            expiry_height=snapshot.expiry_height,
            buyer_signature=snapshot.buyer_signature,
            seller_signature=snapshot.seller_signature,
            conditions=conditions,
            conditions_met_count=sum(snapshot.conditions_met),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _quote_symbol(self, currency: object) -> str:
        descriptor = self._registry.find(currency)
        return descriptor.symbol.value if descriptor else str(currency)

    def _target_decimals(self, currency: object) -> int:
        descriptor = self._registry.find(currency)
        return descriptor.decimals if descriptor else self._fallback_quote_decimals
