"""Bootstrap for property escrow.

Wires the pieces together from Settings:
    1. Logging (console in development, JSON elsewhere).
    2. Currency registry with any configured minimum overrides.
    3. Monetary engine with the fee policy and a price feed.
    4. Escrow lifecycle with the earnest-money percentage and expiry window.

The registry is built here and handed down explicitly; nothing reads it from
module state.

Usage:
    from property_escrow.main import build_lifecycle
    lifecycle = build_lifecycle(ordering=BlockHeightCounter(start=150_000))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from property_escrow.config import Settings, get_settings
from property_escrow.domain.currency import default_registry
from property_escrow.infrastructure.block_height import BlockHeightCounter
from property_escrow.logging_config import get_logger, setup_logging
from property_escrow.services.escrow_lifecycle import EscrowLifecycle
from property_escrow.services.monetary_engine import MonetaryEngine
from property_escrow.services.price_feed import StaticPriceFeed

if TYPE_CHECKING:
    from property_escrow.domain.collaborators import OrderingSource, PriceFeed


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )


def build_engine(
    settings: Settings | None = None,
    price_feed: PriceFeed | None = None,
) -> MonetaryEngine:
    """Create a MonetaryEngine from settings.

    Args:
        settings: Defaults to the cached application settings.
        price_feed: Defaults to the static policy rate table.
    """
    settings = settings or get_settings()
    registry = default_registry(settings.currency_minimums)
    return MonetaryEngine(
        registry,
        price_feed if price_feed is not None else StaticPriceFeed(),
        fee_native=settings.fee_native,
        fee_token=settings.fee_token,
        fallback_quote_decimals=settings.fallback_quote_decimals,
    )


def build_lifecycle(
    settings: Settings | None = None,
    ordering: OrderingSource | None = None,
    price_feed: PriceFeed | None = None,
) -> EscrowLifecycle:
    """Create a fully wired EscrowLifecycle.

    Args:
        settings: Defaults to the cached application settings.
        ordering: Block-height source; defaults to a counter starting at 0.
        price_feed: Defaults to the static policy rate table.
    """
    settings = settings or get_settings()
    lifecycle = EscrowLifecycle(
        build_engine(settings, price_feed),
        ordering if ordering is not None else BlockHeightCounter(),
        earnest_money_percentage=settings.escrow_earnest_money_percentage,
        default_expiry_blocks=settings.escrow_default_expiry_blocks,
    )
    get_logger(__name__).info(
        "lifecycle.ready",
        env=settings.app_env,
        earnest_money_percentage=str(settings.escrow_earnest_money_percentage),
        expiry_blocks=settings.escrow_default_expiry_blocks,
    )
    return lifecycle
