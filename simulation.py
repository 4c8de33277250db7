#!/usr/bin/env python3
"""Property Escrow — End-to-End Simulation.

Simulates three scenarios with a buyer and a seller:

    Scenario 1: Happy Path
        - Buyer opens an STX escrow on a property with two contingencies
        - Buyer funds the earnest money in two deposits
        - Inspection and financing are cleared, both parties sign -> completed

    Scenario 2: Refund
        - Buyer opens an sBTC escrow and funds it
        - Inspection fails, seller agrees to release -> cancelled

    Scenario 3: Expiry
        - Buyer opens a USDh escrow and deposits only part of the earnest money
        - The chain passes the expiry height, the sweep runs twice -> expired once

Usage:
    python simulation.py
    python simulation.py --scenario 2
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass

from property_escrow.config import Settings
from property_escrow.infrastructure.block_height import BlockHeightCounter
from property_escrow.logging_config import get_logger, setup_logging
from property_escrow.main import build_lifecycle
from property_escrow.schemas.escrow import EscrowSnapshot
from property_escrow.services.escrow_lifecycle import EscrowLifecycle

logger = get_logger("simulation")

BUYER_ADDRESS = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
SELLER_ADDRESS = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
START_HEIGHT = 150_000


@dataclass
class Party:
    """A wallet address acting on escrows through the lifecycle."""

    name: str
    address: str
    lifecycle: EscrowLifecycle

    def act(self, label: str, result) -> EscrowSnapshot | None:
        if result.ok:
            snap = result.value
            print(f"  ✅ {self.name} {label}: state={snap.state.value}")
            return snap
        print(f"  ❌ {self.name} {label}: {result.error_kind.value} ({result.message})")
        return None


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_details(lifecycle: EscrowLifecycle, transaction_id) -> None:
    """Pretty-print an escrow the way the dashboard shows it."""
    details = lifecycle.describe(transaction_id).unwrap()
    print(f"  Property:        {details.property_id}")
    print(f"  Purchase price:  {details.purchase_price}")
    print(f"  Earnest money:   {details.earnest_money}")
    print(f"  Deposited:       {details.funds_deposited}")
    print(f"  State:           {details.state.value.upper()}")
    print(
        f"  Conditions:      {details.conditions_met_count}/{len(details.conditions)} met"
    )


def print_audit_trail(lifecycle: EscrowLifecycle, transaction_id) -> None:
    """Print the full audit trail for an escrow."""
    print("\n  📜 Audit Trail:")
    for i, evt in enumerate(lifecycle.get_events(transaction_id), 1):
        old = evt.old_state.value if evt.old_state else "—"
        print(f"    {i}. [{evt.event_type.value}] {old} → {evt.new_state.value} (by {evt.actor})")
    print()


def _setup() -> tuple[EscrowLifecycle, BlockHeightCounter, Party, Party]:
    chain = BlockHeightCounter(start=START_HEIGHT)
    lifecycle = build_lifecycle(Settings(), ordering=chain)
    buyer = Party("Buyer", BUYER_ADDRESS, lifecycle)
    seller = Party("Seller", SELLER_ADDRESS, lifecycle)
    return lifecycle, chain, buyer, seller


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
def scenario_1_happy_path() -> EscrowSnapshot:
    banner("SCENARIO 1: Happy Path (STX)")
    lifecycle, chain, buyer, seller = _setup()
    engine = lifecycle.engine

    section("Offer accepted, escrow opened")
    price = engine.to_base_units("2500", "STX")
    snap = buyer.act(
        "opens escrow",
        lifecycle.create(
            property_id="prop-742-evergreen",
            currency="STX",
            purchase_price=price,
            buyer=buyer.address,
            conditions=["Home inspection", "Mortgage financing approved"],
        ),
    )
    tx_id = snap.id
    buyer.act("names seller", lifecycle.assign_seller(tx_id, buyer.address, seller.address))
    fee = engine.estimate_transaction_fee("STX")
    print(f"  Estimated fee per transaction: {fee.fee_amount} {fee.fee_currency.value}")

    section("Funding earnest money in two deposits")
    half = snap.earnest_money // 2
    buyer.act("deposits half", lifecycle.fund(tx_id, buyer.address, half))
    chain.advance(12)
    buyer.act("deposits rest", lifecycle.fund(tx_id, buyer.address, snap.earnest_money - half))

    section("Contingencies and signatures")
    lifecycle.mark_condition(tx_id, 0, True, requester=buyer.address)
    lifecycle.mark_condition(tx_id, 1, True, requester=buyer.address)
    seller.act("tries to close early", lifecycle.complete(tx_id, seller.address))
    buyer.act("signs", lifecycle.sign(tx_id, buyer.address))
    seller.act("signs", lifecycle.sign(tx_id, seller.address))
    final = seller.act("closes", lifecycle.complete(tx_id, seller.address))

    print_details(lifecycle, tx_id)
    print_audit_trail(lifecycle, tx_id)
    return final


# ===========================================================================
# Scenario 2: Refund
# ===========================================================================
def scenario_2_refund() -> EscrowSnapshot:
    banner("SCENARIO 2: Failed Inspection -> Refund (sBTC)")
    lifecycle, _chain, buyer, seller = _setup()
    engine = lifecycle.engine

    snap = buyer.act(
        "opens escrow",
        lifecycle.create(
            property_id="prop-1600-penn",
            currency="sBTC",
            purchase_price=engine.to_base_units("5.25", "sBTC"),
            buyer=buyer.address,
            conditions=["Home inspection"],
        ),
    )
    tx_id = snap.id
    print(f"  Worth today: {engine.convert_currency('5.25', 'sBTC', 'USD')} USD")
    buyer.act("names seller", lifecycle.assign_seller(tx_id, buyer.address, seller.address))
    buyer.act("funds", lifecycle.fund(tx_id, buyer.address, snap.earnest_money))

    section("Inspection fails")
    final = seller.act("releases buyer", lifecycle.refund(tx_id, seller.address))
    buyer.act("tries to sign anyway", lifecycle.sign(tx_id, buyer.address))

    print_details(lifecycle, tx_id)
    print_audit_trail(lifecycle, tx_id)
    return final


# ===========================================================================
# Scenario 3: Expiry
# ===========================================================================
def scenario_3_expiry() -> EscrowSnapshot:
    banner("SCENARIO 3: Buyer Goes Quiet -> Expiry (USDh)")
    lifecycle, chain, buyer, _seller = _setup()
    engine = lifecycle.engine

    snap = buyer.act(
        "opens escrow",
        lifecycle.create(
            property_id="prop-221b-baker",
            currency="USDh",
            purchase_price=engine.to_base_units("350000", "USDh"),
            buyer=buyer.address,
            expiry_height=START_HEIGHT + 144,
        ),
    )
    tx_id = snap.id
    buyer.act("deposits a tenth", lifecycle.fund(tx_id, buyer.address, snap.earnest_money // 10))

    section("144 blocks later")
    chain.advance(144)
    buyer.act("deposits late", lifecycle.fund(tx_id, buyer.address, snap.earnest_money))
    first = lifecycle.expire()
    second = lifecycle.expire()
    print(f"  Sweep #1 expired {len(first)}, sweep #2 expired {len(second)}")

    print_details(lifecycle, tx_id)
    print_audit_trail(lifecycle, tx_id)
    return lifecycle.get(tx_id).unwrap()


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_refund,
    3: scenario_3_expiry,
}


def run_all() -> None:
    """Run all scenarios sequentially."""
    print("\n" + "🏠" * 35)
    print("  PROPERTY ESCROW — SIMULATION")
    print("🏠" * 35 + "\n")

    for scenario in SCENARIOS.values():
        scenario()

    print("\n" + "=" * 70)
    print("  ✅ ALL SCENARIOS COMPLETED")
    print("=" * 70 + "\n")


def run_scenario(num: int) -> None:
    """Run a specific scenario."""
    if num not in SCENARIOS:
        print(f"Unknown scenario {num}. Available: {', '.join(map(str, SCENARIOS))}")
        return
    SCENARIOS[num]()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Property Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for library output (default: WARNING).",
    )
    args = parser.parse_args()

    setup_logging(log_level=args.log_level, json_logs=False)
    if args.scenario == 0:
        run_all()
    else:
        run_scenario(args.scenario)
