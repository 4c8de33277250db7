"""Infrastructure — in-process storage and ordering sources."""

from property_escrow.infrastructure.block_height import BlockHeightCounter
from property_escrow.infrastructure.repositories import EscrowRepository, EventRepository

__all__ = ["BlockHeightCounter", "EscrowRepository", "EventRepository"]
