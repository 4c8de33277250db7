"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup, so a malformed percentage or minimum fails fast with a clear error.

Escrow policy (earnest-money percentage, expiry window, fee table, per-currency
minimums) lives here so it can be tuned without code changes.

Usage:
    from property_escrow.config import get_settings
    settings = get_settings()
    print(settings.escrow_earnest_money_percentage)
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for property escrow."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_log_level: str = "INFO"

    # --- Escrow Policy ---
    escrow_earnest_money_percentage: Decimal = Field(default=Decimal("10"), gt=0, le=100)
    escrow_default_expiry_blocks: int = Field(default=4320, gt=0)  # ~30 days of blocks

    # --- Fees (denominated in the native currency) ---
    fee_native: Decimal = Field(default=Decimal("0.001"), ge=0)
    fee_token: Decimal = Field(default=Decimal("0.002"), ge=0)

    # --- Currencies ---
    # JSON object in the environment, e.g. CURRENCY_MINIMUMS='{"STX": "50"}'
    currency_minimums: dict[str, Decimal] = Field(default_factory=dict)
    # Precision for quote currencies outside the registry (e.g. USD)
    fallback_quote_decimals: int = Field(default=8, ge=0, le=18)

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
