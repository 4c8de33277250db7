"""Shared test fixtures for the property escrow test suite.

Provides:
    - The default currency registry and a low-minimum registry
    - A MonetaryEngine backed by the static rate table
    - A manually advanced block height and a lifecycle wired to it
    - Escrows already opened / funded for lifecycle tests
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from property_escrow.domain.currency import CurrencyRegistry, default_registry
from property_escrow.infrastructure.block_height import BlockHeightCounter
from property_escrow.schemas.escrow import EscrowSnapshot
from property_escrow.services.escrow_lifecycle import EscrowLifecycle
from property_escrow.services.monetary_engine import MonetaryEngine
from property_escrow.services.price_feed import StaticPriceFeed

BUYER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
SELLER = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
OUTSIDER = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"

START_HEIGHT = 1_000
EXPIRY_WINDOW = 100

# 1000 STX -> earnest money 100 STX
PRICE_STX = 1_000_000_000
EARNEST_STX = 100_000_000

CONDITIONS = ("Home inspection", "Mortgage financing approved")


# ---------------------------------------------------------------------------
# Monetary Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> CurrencyRegistry:
    return default_registry()


@pytest.fixture
def tiny_registry() -> CurrencyRegistry:
    """Registry whose STX minimum is a single base unit."""
    return default_registry({"STX": Decimal("0.000001")})


@pytest.fixture
def engine(registry: CurrencyRegistry) -> MonetaryEngine:
    return MonetaryEngine(registry, StaticPriceFeed())


# ---------------------------------------------------------------------------
# Lifecycle Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def chain() -> BlockHeightCounter:
    return BlockHeightCounter(start=START_HEIGHT)


@pytest.fixture
def lifecycle(engine: MonetaryEngine, chain: BlockHeightCounter) -> EscrowLifecycle:
    return EscrowLifecycle(engine, chain, default_expiry_blocks=EXPIRY_WINDOW)


@pytest.fixture
def pending_escrow(lifecycle: EscrowLifecycle) -> EscrowSnapshot:
    """A pending STX escrow with a seller and two open conditions."""
    snap = lifecycle.create(
        property_id="prop-001",
        currency="STX",
        purchase_price=PRICE_STX,
        buyer=BUYER,
        conditions=CONDITIONS,
    ).unwrap()
    return lifecycle.assign_seller(snap.id, BUYER, SELLER).unwrap()


@pytest.fixture
def funded_escrow(lifecycle: EscrowLifecycle, pending_escrow: EscrowSnapshot) -> EscrowSnapshot:
    return lifecycle.fund(pending_escrow.id, BUYER, EARNEST_STX).unwrap()


@pytest.fixture
def closable_escrow(lifecycle: EscrowLifecycle, funded_escrow: EscrowSnapshot) -> EscrowSnapshot:
    """Funded escrow with every condition met and both signatures."""
    tx_id = funded_escrow.id
    for index in range(len(CONDITIONS)):
        lifecycle.mark_condition(tx_id, index, True).unwrap()
    lifecycle.sign(tx_id, BUYER).unwrap()
    return lifecycle.sign(tx_id, SELLER).unwrap()
