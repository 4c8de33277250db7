"""Permitted-action derivation.

Presentation layers ask these questions instead of re-implementing the rules:

    can fund      state == pending and requester is the buyer
    can sign      state == funded and requester is a party who has not signed
    can complete  state == funded, both signatures, all conditions met
    can refund    state in {pending, funded} and requester is a party
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from property_escrow.domain.enums import Action, EscrowState, PartyRole
from property_escrow.domain.state_machine import is_action_allowed

if TYPE_CHECKING:
    from property_escrow.domain.models import EscrowTransaction


def can_fund(tx: EscrowTransaction, requester: str | None) -> bool:
    return tx.state is EscrowState.PENDING and tx.role_of(requester) is PartyRole.BUYER


def can_sign(tx: EscrowTransaction, requester: str | None) -> bool:
    role = tx.role_of(requester)
    return (
        is_action_allowed(tx.state, Action.SIGN)
        and role is not None
        and not tx.has_signed(role)
    )


def can_complete(tx: EscrowTransaction, requester: str | None = None) -> bool:
    """Completion gate; when ``requester`` is given it must also be a party."""
    if requester is not None and tx.role_of(requester) is None:
        return False
    return (
        is_action_allowed(tx.state, Action.COMPLETE)
        and tx.fully_signed
        and tx.all_conditions_met
    )


def can_refund(tx: EscrowTransaction, requester: str | None) -> bool:
    return is_action_allowed(tx.state, Action.REFUND) and tx.role_of(requester) is not None


def can_assign_seller(tx: EscrowTransaction, requester: str | None) -> bool:
    return (
        is_action_allowed(tx.state, Action.ASSIGN_SELLER)
        and tx.seller is None
        and tx.role_of(requester) is PartyRole.BUYER
    )


def can_mark_condition(tx: EscrowTransaction, requester: str | None = None) -> bool:
    """Open conditions remain; a named requester must also be a party."""
    if requester is not None and tx.role_of(requester) is None:
        return False
    return is_action_allowed(tx.state, Action.MARK_CONDITION) and not tx.all_conditions_met


def permitted_actions(tx: EscrowTransaction, requester: str | None) -> frozenset[Action]:
    """Every action ``requester`` could successfully take right now.

    Expiry is not considered here; the lifecycle checks it against the
    ordering source.
    """
    checks = {
        Action.ASSIGN_SELLER: can_assign_seller(tx, requester),
        Action.FUND: can_fund(tx, requester),
        Action.SIGN: can_sign(tx, requester),
        Action.MARK_CONDITION: can_mark_condition(tx, requester),
        Action.COMPLETE: can_complete(tx, requester) if requester else False,
        Action.REFUND: can_refund(tx, requester),
    }
    return frozenset(action for action, allowed in checks.items() if allowed)
