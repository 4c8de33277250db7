"""Tests for the MonetaryEngine.

Covers:
    - Base-unit conversion in both directions (including rounding)
    - Display formatting that never raises
    - Earnest-money math
    - Escrow amount validation against currency minimums
    - Fee hints and cross-currency conversion
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from property_escrow.domain.currency import CurrencyRegistry
from property_escrow.domain.enums import CurrencySymbol, ErrorKind
from property_escrow.domain.exceptions import (
    InvalidAmountError,
    NoExchangeRateError,
    UnknownCurrencyError,
)
from property_escrow.services.monetary_engine import MonetaryEngine, parse_amount


class TestParseAmount:
    def test_float_is_read_through_repr(self) -> None:
        assert parse_amount(99.999999) == Decimal("99.999999")

    @pytest.mark.parametrize("bad", [None, True, "abc", "", "NaN", "Infinity", [1]])
    def test_rejects_non_numbers(self, bad: object) -> None:
        with pytest.raises(InvalidAmountError):
            parse_amount(bad)


class TestToBaseUnits:
    def test_whole_amounts(self, engine: MonetaryEngine) -> None:
        assert engine.to_base_units("1000", "STX") == 1_000_000_000
        assert engine.to_base_units(1, "sBTC") == 100_000_000
        assert engine.to_base_units(Decimal("350000"), "USDh") == 35_000_000_000_000

    def test_float_input(self, engine: MonetaryEngine) -> None:
        assert engine.to_base_units(0.1, "sBTC") == 10_000_000
        assert engine.to_base_units(99.999999, "STX") == 99_999_999

    def test_rounds_half_up(self, engine: MonetaryEngine) -> None:
        assert engine.to_base_units("0.0000005", "STX") == 1
        assert engine.to_base_units("0.0000004", "STX") == 0
        assert engine.to_base_units("1.0000015", "STX") == 1_000_002

    def test_zero(self, engine: MonetaryEngine) -> None:
        assert engine.to_base_units(0, "STX") == 0

    def test_negative_rejected(self, engine: MonetaryEngine) -> None:
        with pytest.raises(InvalidAmountError):
            engine.to_base_units("-1", "STX")

    def test_unknown_currency(self, engine: MonetaryEngine) -> None:
        with pytest.raises(UnknownCurrencyError):
            engine.to_base_units("1", "DOGE")

    def test_unknown_currency_checked_before_amount(self, engine: MonetaryEngine) -> None:
        with pytest.raises(UnknownCurrencyError):
            engine.to_base_units("abc", "DOGE")


class TestFromBaseUnits:
    def test_exact_decimals(self, engine: MonetaryEngine) -> None:
        assert engine.from_base_units(1_000_000_000, "STX") == "1000.000000"
        assert engine.from_base_units(1, "sBTC") == "0.00000001"
        assert engine.from_base_units(0, "USDh") == "0.00000000"

    def test_round_trip(self, engine: MonetaryEngine) -> None:
        for units in (0, 1, 99_999_999, 123_456_789_012, 10**85 + 1, 10**200 - 1):
            for symbol in CurrencySymbol:
                display = engine.from_base_units(units, symbol)
                assert engine.to_base_units(display, symbol) == units

    def test_many_digits_stay_exact(self, engine: MonetaryEngine) -> None:
        assert engine.from_base_units(10**85 + 1, "STX") == "1" + "0" * 79 + ".000001"
        assert engine.to_base_units("1" + "0" * 79 + ".0000015", "STX") == 10**85 + 2
        assert engine.calculate_earnest_money(10**90 + 5) == 10**89 + 1

    @pytest.mark.parametrize("bad", [-1, "1.5", True])
    def test_rejects_non_integer_units(self, engine: MonetaryEngine, bad: object) -> None:
        with pytest.raises(InvalidAmountError):
            engine.from_base_units(bad, "STX")


class TestFormatCurrency:
    def test_display_amount(self, engine: MonetaryEngine) -> None:
        assert engine.format_currency(1.5, "STX") == "1.500000 STX"
        assert engine.format_currency("0.1", "sBTC") == "0.10000000 sBTC"

    def test_base_unit_amount(self, engine: MonetaryEngine) -> None:
        assert (
            engine.format_currency(150_000_000, "STX", amount_is_base_units=True)
            == "150.000000 STX"
        )

    def test_degrades_instead_of_raising(self, engine: MonetaryEngine) -> None:
        assert engine.format_currency("abc", "STX") == "abc STX"
        assert engine.format_currency(5, "DOGE") == "5 DOGE"
        assert engine.format_currency("1.5", "STX", amount_is_base_units=True) == "1.5 STX"


class TestEarnestMoney:
    def test_ten_percent_default(self, engine: MonetaryEngine) -> None:
        assert engine.calculate_earnest_money(1_000_000_000) == 100_000_000

    def test_rounds_half_up(self, engine: MonetaryEngine) -> None:
        assert engine.calculate_earnest_money(15) == 2
        assert engine.calculate_earnest_money(14) == 1

    def test_custom_percentage(self, engine: MonetaryEngine) -> None:
        assert engine.calculate_earnest_money(1_000, "2.5") == 25
        assert engine.calculate_earnest_money(1_000, 100) == 1_000

    @pytest.mark.parametrize("pct", [0, -5, 101])
    def test_percentage_out_of_range(self, engine: MonetaryEngine, pct: int) -> None:
        with pytest.raises(InvalidAmountError):
            engine.calculate_earnest_money(1_000, pct)


class TestValidateEscrowAmount:
    def test_just_below_minimum(self, engine: MonetaryEngine) -> None:
        result = engine.validate_escrow_amount(99.999999, "STX")
        assert not result.valid
        assert result.error_kind is ErrorKind.BELOW_MINIMUM
        assert result.message == "Minimum amount is 100 STX"

    def test_at_minimum(self, engine: MonetaryEngine) -> None:
        result = engine.validate_escrow_amount(100, "STX")
        assert result.valid
        assert result.error_kind is None

    def test_token_minimums(self, engine: MonetaryEngine) -> None:
        assert engine.validate_escrow_amount("0.001", "sBTC").valid
        assert not engine.validate_escrow_amount("0.0009", "sBTC").valid
        assert not engine.validate_escrow_amount("999.99", "USDh").valid

    @pytest.mark.parametrize("amount", [0, -5, "abc", None])
    def test_invalid_amounts(self, engine: MonetaryEngine, amount: object) -> None:
        result = engine.validate_escrow_amount(amount, "STX")
        assert not result.valid
        assert result.error_kind is ErrorKind.INVALID_AMOUNT

    def test_unknown_currency(self, engine: MonetaryEngine) -> None:
        result = engine.validate_escrow_amount(500, "DOGE")
        assert result.error_kind is ErrorKind.UNKNOWN_CURRENCY

    def test_registry_minimum_override(self, tiny_registry: CurrencyRegistry) -> None:
        engine = MonetaryEngine(tiny_registry)
        assert engine.validate_escrow_amount("0.000001", "STX").valid


class TestTransactionFee:
    def test_native_fee(self, engine: MonetaryEngine) -> None:
        fee = engine.estimate_transaction_fee("STX")
        assert fee.fee_currency is CurrencySymbol.STX
        assert fee.fee_amount == Decimal("0.001")
        assert fee.fee_base_units == 1_000
        assert fee.description == "Standard transaction fee"

    def test_token_fee_is_paid_in_native_currency(self, engine: MonetaryEngine) -> None:
        fee = engine.estimate_transaction_fee("sBTC")
        assert fee.fee_currency is CurrencySymbol.STX
        assert fee.fee_amount == Decimal("0.002")
        assert fee.fee_base_units == 2_000
        assert fee.description == "Includes token transfer approval"

    def test_configured_fees(self, registry: CurrencyRegistry) -> None:
        engine = MonetaryEngine(registry, fee_native=Decimal("0.01"), fee_token=Decimal("0.05"))
        assert engine.estimate_transaction_fee("USDh").fee_base_units == 50_000

    def test_unknown_currency(self, engine: MonetaryEngine) -> None:
        with pytest.raises(UnknownCurrencyError):
            engine.estimate_transaction_fee("DOGE")


class TestExchange:
    def test_rate_lookup(self, engine: MonetaryEngine) -> None:
        rate = engine.get_exchange_rate("STX", "USD")
        assert rate.rate == Decimal("0.50")
        assert rate.from_symbol == "STX"
        assert rate.to_symbol == "USD"

    def test_identity_rate(self, engine: MonetaryEngine) -> None:
        rate = engine.get_exchange_rate("sBTC", "sBTC")
        assert rate.rate == Decimal(1)
        assert rate.source == "identity"

    def test_unquoted_pair_fails_closed(self, engine: MonetaryEngine) -> None:
        with pytest.raises(NoExchangeRateError) as exc_info:
            engine.get_exchange_rate("sBTC", "USDh")
        assert exc_info.value.code == "NO_EXCHANGE_RATE"

    def test_source_must_be_registered(self, engine: MonetaryEngine) -> None:
        with pytest.raises(UnknownCurrencyError):
            engine.get_exchange_rate("USD", "STX")

    def test_convert_to_fiat_quote(self, engine: MonetaryEngine) -> None:
        assert engine.convert_currency(100, "STX", "USD") == "50.00000000"
        assert engine.convert_currency("5.25", "sBTC", "USD") == "236250.00000000"

    def test_convert_uses_target_precision(self, engine: MonetaryEngine) -> None:
        assert engine.convert_currency("1", "sBTC", "STX") == "90000.000000"
        assert engine.convert_currency("1000", "STX", "sBTC") == "0.01100000"

    def test_convert_same_currency(self, registry: CurrencyRegistry) -> None:
        assert MonetaryEngine(registry).convert_currency("1.5", "STX", "STX") == "1.500000"

    def test_convert_without_price_feed(self, registry: CurrencyRegistry) -> None:
        with pytest.raises(NoExchangeRateError):
            MonetaryEngine(registry).convert_currency(1, "STX", "USD")

    def test_convert_negative(self, engine: MonetaryEngine) -> None:
        with pytest.raises(InvalidAmountError):
            engine.convert_currency(-1, "STX", "USD")


class TestRegistryLookups:
    def test_supported_currencies(self, engine: MonetaryEngine) -> None:
        symbols = [d.symbol for d in engine.supported_currencies()]
        assert symbols == [CurrencySymbol.STX, CurrencySymbol.SBTC, CurrencySymbol.USDH]

    def test_is_valid_currency(self, engine: MonetaryEngine) -> None:
        assert engine.is_valid_currency("sBTC")
        assert not engine.is_valid_currency("SBTC")

    def test_currency_info(self, engine: MonetaryEngine) -> None:
        assert engine.get_currency_info("USDh").name == "Hermetica USD"
        assert engine.get_currency_info("DOGE") is None

    def test_contracts(self, engine: MonetaryEngine) -> None:
        assert engine.get_currency_contract("STX") is None
        assert engine.get_currency_contract("DOGE") is None
        assert engine.get_currency_contract("sBTC") == (
            "SP3DX3H4FEYZJZ586MFBS25ZW3HZDMEW92260R2PR.Wrapped-Bitcoin"
        )

    def test_is_native(self, engine: MonetaryEngine) -> None:
        assert engine.is_native_currency("STX")
        assert not engine.is_native_currency("USDh")
        assert not engine.is_native_currency("DOGE")
