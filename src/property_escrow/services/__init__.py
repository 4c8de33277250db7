"""Application services — monetary engine and escrow lifecycle."""

from property_escrow.services.escrow_lifecycle import EscrowLifecycle
from property_escrow.services.monetary_engine import MonetaryEngine
from property_escrow.services.price_feed import StaticPriceFeed

__all__ = ["EscrowLifecycle", "MonetaryEngine", "StaticPriceFeed"]
