"""Tests for settings and the bootstrap wiring in main.py."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from property_escrow.config import Settings, get_settings
from property_escrow.infrastructure.block_height import BlockHeightCounter
from property_escrow.main import build_engine, build_lifecycle
from property_escrow.services.price_feed import StaticPriceFeed


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.escrow_earnest_money_percentage == Decimal("10")
        assert settings.escrow_default_expiry_blocks == 4320
        assert settings.fee_native == Decimal("0.001")
        assert settings.fee_token == Decimal("0.002")
        assert settings.currency_minimums == {}
        assert settings.is_development

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ESCROW_EARNEST_MONEY_PERCENTAGE", "5")
        monkeypatch.setenv("CURRENCY_MINIMUMS", '{"STX": "50"}')
        monkeypatch.setenv("APP_ENV", "production")

        settings = Settings(_env_file=None)
        assert settings.escrow_earnest_money_percentage == Decimal("5")
        assert settings.currency_minimums == {"STX": Decimal("50")}
        assert not settings.is_development

    @pytest.mark.parametrize("pct", ["0", "-1", "100.5"])
    def test_percentage_bounds(self, pct: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, escrow_earnest_money_percentage=pct)

    def test_expiry_window_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, escrow_default_expiry_blocks=0)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestBootstrap:
    def test_engine_uses_configured_minimums_and_fees(self) -> None:
        settings = Settings(
            _env_file=None,
            currency_minimums={"STX": "50"},
            fee_token="0.005",
        )
        engine = build_engine(settings)
        assert engine.validate_escrow_amount(50, "STX").valid
        assert engine.estimate_transaction_fee("USDh").fee_base_units == 5_000

    def test_engine_accepts_price_feed(self) -> None:
        feed = StaticPriceFeed({("STX", "USD"): "2"})
        engine = build_engine(Settings(_env_file=None), price_feed=feed)
        assert engine.convert_currency(10, "STX", "USD") == "20.00000000"

    def test_lifecycle_uses_escrow_policy(self) -> None:
        settings = Settings(
            _env_file=None,
            escrow_earnest_money_percentage="20",
            escrow_default_expiry_blocks=144,
        )
        chain = BlockHeightCounter(start=500)
        lifecycle = build_lifecycle(settings, ordering=chain)

        snap = lifecycle.create("prop-001", "STX", 1_000_000_000, "buyer").unwrap()
        assert snap.earnest_money == 200_000_000
        assert snap.expiry_height == 644
