"""Escrow Lifecycle — the authority over every escrow transaction.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Monetary engine (all amount math and validation)
    - Repositories (in-process storage)
    - Event log (audit trail)

Every public operation returns an OperationResult; domain exceptions raised
while checking a request are caught here and turned into tagged failures.

Operations on one transaction are serialized by a per-transaction lock, which
the expiry sweep takes as well. Operations on different transactions run
independently. Nothing inside a critical section performs I/O.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import TYPE_CHECKING, TypeVar

from statemachine.exceptions import TransitionNotAllowed

from property_escrow.domain import permissions
from property_escrow.domain.enums import Action, EscrowState, EventType, PartyRole
from property_escrow.domain.exceptions import (
    AlreadySignedError,
    EscrowError,
    ExpiredError,
    InvalidAmountError,
    InvalidConditionError,
    InvalidPartyError,
    IrreversibleConditionError,
    MonetaryError,
    NoPropertyOrBuyerError,
    PreconditionsNotMetError,
    SellerAlreadyAssignedError,
    TransactionNotFoundError,
    UnauthorizedError,
    ValidationFailedError,
    WrongStateError,
)
from property_escrow.domain.models import EscrowTransaction
from property_escrow.domain.results import OperationResult
from property_escrow.domain.state_machine import EscrowStateMachine, is_action_allowed
from property_escrow.infrastructure.repositories import EscrowRepository, EventRepository
from property_escrow.logging_config import bind_transaction_context, get_logger
from property_escrow.schemas.escrow import EscrowDetails, EscrowSnapshot
from property_escrow.services.monetary_engine import (
    DEFAULT_EARNEST_MONEY_PERCENTAGE,
    parse_base_units,
)

if TYPE_CHECKING:
    from property_escrow.domain.collaborators import OrderingSource
    from property_escrow.domain.models import EscrowEvent
    from property_escrow.services.monetary_engine import MonetaryEngine

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_EXPIRY_BLOCKS = 4320
_EXPIRY_GATED = frozenset({Action.FUND, Action.SIGN, Action.COMPLETE})


def _present(value: object) -> bool:
    return value is not None and str(value).strip() != ""


class EscrowLifecycle:
    """Manages the escrow transaction lifecycle."""

    def __init__(
        self,
        engine: MonetaryEngine,
        ordering: OrderingSource,
        *,
        earnest_money_percentage: Decimal | int | str = DEFAULT_EARNEST_MONEY_PERCENTAGE,
        default_expiry_blocks: int = DEFAULT_EXPIRY_BLOCKS,
        repository: EscrowRepository | None = None,
        event_repository: EventRepository | None = None,
    ) -> None:
        if default_expiry_blocks <= 0:
            raise ValueError("default_expiry_blocks must be positive")
        self._engine = engine
        self._ordering = ordering
        self._earnest_pct = Decimal(str(earnest_money_percentage))
        self._default_expiry_blocks = default_expiry_blocks
        self._escrow_repo = repository or EscrowRepository()
        self._event_repo = event_repository or EventRepository()
        self._locks: dict[uuid.UUID, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def engine(self) -> MonetaryEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        property_id: str,
        currency: object,
        purchase_price: int,
        buyer: str,
        conditions: Iterable[str] = (),
        expiry_height: int | None = None,
    ) -> OperationResult[EscrowSnapshot]:
        """Open a new escrow in ``pending`` for a property the buyer made an offer on."""

        def operation() -> EscrowSnapshot:
            if not _present(property_id) or not _present(buyer):
                raise NoPropertyOrBuyerError()

            try:
                descriptor = self._engine.registry.require(currency)
                price = parse_base_units(purchase_price)
                display_price = self._engine.from_base_units(price, descriptor.symbol)
                self._engine.ensure_escrow_amount(display_price, descriptor.symbol)
                earnest = self._engine.calculate_earnest_money(price, self._earnest_pct)
                if earnest <= 0:
                    raise InvalidAmountError(purchase_price, "earnest money rounds to zero")
            except MonetaryError as exc:
                raise ValidationFailedError(exc) from exc

            current = self._ordering.current()
            if expiry_height is None:
                expiry = current + self._default_expiry_blocks
            else:
                expiry = int(expiry_height)
                if expiry <= current:
                    raise ExpiredError(expiry, current)

            items = (conditions,) if isinstance(conditions, str) else tuple(conditions)
            tx = EscrowTransaction(
                property_id=str(property_id),
                currency=descriptor.symbol,
                purchase_price=price,
                earnest_money=earnest,
                buyer=str(buyer),
                expiry_height=expiry,
                conditions=tuple(str(c) for c in items),
            )
            self._escrow_repo.add(tx)

            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.ESCROW_CREATED,
                old_state=None,
                new_state=tx.state,
                actor=tx.buyer,
                metadata={
                    "property_id": tx.property_id,
                    "purchase_price": tx.purchase_price,
                    "earnest_money": tx.earnest_money,
                    "currency": tx.currency.value,
                },
            )
            logger.info(
                "escrow.created",
                transaction_id=str(tx.id),
                property_id=tx.property_id,
                currency=tx.currency.value,
                purchase_price=self._engine.format_currency(
                    tx.purchase_price, tx.currency, amount_is_base_units=True
                ),
            )
            return self._snapshot(tx)

        return self._run("create", None, operation)

    # ------------------------------------------------------------------
    # Seller Assignment
    # ------------------------------------------------------------------

    def assign_seller(
        self,
        transaction_id: uuid.UUID | str,
        requester: str,
        seller: str,
    ) -> OperationResult[EscrowSnapshot]:
        """Buyer names the seller who will countersign. Allowed once."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.ASSIGN_SELLER)
            if tx.role_of(requester) is not PartyRole.BUYER:
                raise UnauthorizedError(str(requester), "assign a seller to")
            if tx.seller is not None:
                raise SellerAlreadyAssignedError(str(tx.id))
            if not _present(seller):
                raise InvalidPartyError("Seller address is required")
            if str(seller) == tx.buyer:
                raise InvalidPartyError("Buyer and seller must be different parties")

            tx.seller = str(seller)
            tx.touch()
            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.SELLER_ASSIGNED,
                old_state=tx.state,
                new_state=tx.state,
                actor=tx.buyer,
                metadata={"seller": tx.seller},
            )
            logger.info("escrow.seller_assigned", seller=tx.seller)

        return self._mutate(transaction_id, Action.ASSIGN_SELLER, operation)

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    def fund(
        self,
        transaction_id: uuid.UUID | str,
        payer: str,
        amount: int,
    ) -> OperationResult[EscrowSnapshot]:
        """Record a buyer deposit; reaching the earnest money moves to ``funded``."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.FUND)
            if tx.role_of(payer) is not PartyRole.BUYER:
                raise UnauthorizedError(str(payer), "fund")
            self._require_not_expired(tx)
            units = parse_base_units(amount)
            if units <= 0:
                raise InvalidAmountError(amount, "deposit must be positive")

            old_state = tx.state
            tx.funds_deposited += units
            tx.touch()
            metadata = {"amount": units, "funds_deposited": tx.funds_deposited}

            if tx.funds_deposited >= tx.earnest_money:
                self._fire_transition(tx, "earnest_money_received")
                self._event_repo.record(
                    transaction_id=tx.id,
                    event_type=EventType.ESCROW_FUNDED,
                    old_state=old_state,
                    new_state=tx.state,
                    actor=tx.buyer,
                    metadata=metadata,
                )
                logger.info("escrow.funded", funds_deposited=tx.funds_deposited)
            else:
                self._event_repo.record(
                    transaction_id=tx.id,
                    event_type=EventType.FUNDS_DEPOSITED,
                    old_state=old_state,
                    new_state=tx.state,
                    actor=tx.buyer,
                    metadata=metadata,
                )
                logger.info(
                    "escrow.partially_funded",
                    funds_deposited=tx.funds_deposited,
                    outstanding=tx.outstanding_earnest_money,
                )

        return self._mutate(transaction_id, Action.FUND, operation)

    # ------------------------------------------------------------------
    # Closing
    # ------------------------------------------------------------------

    def sign(
        self,
        transaction_id: uuid.UUID | str,
        signer: str,
    ) -> OperationResult[EscrowSnapshot]:
        """Record the buyer's or seller's signature on a funded escrow."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.SIGN)
            role = tx.role_of(signer)
            if role is None:
                raise UnauthorizedError(str(signer), "sign")
            if tx.has_signed(role):
                raise AlreadySignedError(role.value)
            self._require_not_expired(tx)

            if role is PartyRole.BUYER:
                tx.buyer_signature = True
            else:
                tx.seller_signature = True
            tx.touch()
            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.SIGNATURE_RECORDED,
                old_state=tx.state,
                new_state=tx.state,
                actor=str(signer),
                metadata={"role": role.value},
            )
            logger.info("escrow.signed", role=role.value, fully_signed=tx.fully_signed)

        return self._mutate(transaction_id, Action.SIGN, operation)

    def mark_condition(
        self,
        transaction_id: uuid.UUID | str,
        index: int,
        met: bool,
        requester: str | None = None,
    ) -> OperationResult[EscrowSnapshot]:
        """Mark contingency ``index`` as satisfied. Satisfied conditions stay satisfied."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.MARK_CONDITION)
            count = len(tx.conditions)
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < count:
                raise InvalidConditionError(index, count)
            if not isinstance(met, bool):
                raise InvalidConditionError(
                    index, count, f"Condition flag must be a bool, got {met!r}"
                )
            if requester is not None and tx.role_of(requester) is None:
                raise UnauthorizedError(str(requester), "update conditions on")

            current = tx.conditions_met[index]
            if current and not met:
                raise IrreversibleConditionError(index)
            if current == met:
                return

            tx.conditions_met[index] = True
            tx.touch()
            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.CONDITION_MET,
                old_state=tx.state,
                new_state=tx.state,
                actor=str(requester) if requester else "SYSTEM",
                metadata={"index": index, "condition": tx.conditions[index]},
            )
            logger.info("escrow.condition_met", index=index, all_met=tx.all_conditions_met)

        return self._mutate(transaction_id, Action.MARK_CONDITION, operation)

    def complete(
        self,
        transaction_id: uuid.UUID | str,
        requester: str,
    ) -> OperationResult[EscrowSnapshot]:
        """Close the escrow once both parties signed and every condition is met."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.COMPLETE)
            if tx.role_of(requester) is None:
                raise UnauthorizedError(str(requester), "complete")
            self._require_not_expired(tx)

            missing = []
            if not tx.buyer_signature:
                missing.append("buyer signature")
            if not tx.seller_signature:
                missing.append("seller signature")
            missing.extend(
                f"condition {i} ({text})"
                for i, (text, met) in enumerate(zip(tx.conditions, tx.conditions_met, strict=True))
                if not met
            )
            if missing:
                raise PreconditionsNotMetError(missing)

            old_state = tx.state
            self._fire_transition(tx, "settle")
            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.ESCROW_COMPLETED,
                old_state=old_state,
                new_state=tx.state,
                actor=str(requester),
                metadata={"funds_released": tx.funds_deposited},
            )
            logger.info("escrow.completed", funds_released=tx.funds_deposited)

        return self._mutate(transaction_id, Action.COMPLETE, operation)

    # ------------------------------------------------------------------
    # Exits
    # ------------------------------------------------------------------

    def refund(
        self,
        transaction_id: uuid.UUID | str,
        requester: str,
    ) -> OperationResult[EscrowSnapshot]:
        """Cancel the escrow and return deposits to the buyer."""

        def operation(tx: EscrowTransaction) -> None:
            self._require_state(tx, Action.REFUND)
            if tx.role_of(requester) is None:
                raise UnauthorizedError(str(requester), "refund")

            old_state = tx.state
            self._fire_transition(tx, "refund")
            self._event_repo.record(
                transaction_id=tx.id,
                event_type=EventType.ESCROW_REFUNDED,
                old_state=old_state,
                new_state=tx.state,
                actor=str(requester),
                metadata={"funds_returned": tx.funds_deposited},
            )
            logger.info("escrow.refunded", funds_returned=tx.funds_deposited)

        return self._mutate(transaction_id, Action.REFUND, operation)

    def expire(self, current_ordering_value: int | None = None) -> list[EscrowSnapshot]:
        """Sweep open escrows whose expiry height has been reached.

        Invoked by a scheduler, not by parties. Running it twice at the same
        ordering value changes nothing the second time.

        Args:
            current_ordering_value: Height to compare against. Defaults to the
                ordering source's current value.

        Returns:
            Snapshots of the transactions moved to ``expired`` by this call.
        """
        current = (
            self._ordering.current()
            if current_ordering_value is None
            else int(current_ordering_value)
        )
        expired: list[EscrowSnapshot] = []

        for tx_id in self._escrow_repo.ids():
            with self._lock_for(tx_id):
                tx = self._escrow_repo.get_by_id(tx_id)
                if tx is None or tx.state.is_terminal or tx.expiry_height > current:
                    continue
                with bind_transaction_context(tx_id, "expire"):
                    old_state = tx.state
                    self._fire_transition(tx, "expire")
                    self._event_repo.record(
                        transaction_id=tx.id,
                        event_type=EventType.ESCROW_EXPIRED,
                        old_state=old_state,
                        new_state=tx.state,
                        actor="SYSTEM",
                        metadata={
                            "ordering_value": current,
                            "funds_returned": tx.funds_deposited,
                        },
                    )
                    logger.info("escrow.expired", expiry_height=tx.expiry_height)
                expired.append(self._snapshot(tx))

        logger.info("escrow.expiry_sweep", ordering_value=current, expired=len(expired))
        return expired

    # ------------------------------------------------------------------
    # Permitted-action queries
    # ------------------------------------------------------------------

    def can_fund(self, transaction_id: uuid.UUID | str, requester: str) -> bool:
        return Action.FUND in self.permitted_actions(transaction_id, requester)

    def can_sign(self, transaction_id: uuid.UUID | str, requester: str) -> bool:
        return Action.SIGN in self.permitted_actions(transaction_id, requester)

    def can_complete(
        self, transaction_id: uuid.UUID | str, requester: str | None = None
    ) -> bool:
        """Completion gate; with a requester, also checks they are a party."""
        return self._query(
            transaction_id,
            lambda tx: permissions.can_complete(tx, requester) and not self._past_expiry(tx),
            default=False,
        )

    def can_refund(self, transaction_id: uuid.UUID | str, requester: str) -> bool:
        return Action.REFUND in self.permitted_actions(transaction_id, requester)

    def permitted_actions(
        self, transaction_id: uuid.UUID | str, requester: str | None
    ) -> frozenset[Action]:
        """Every action ``requester`` could successfully take right now."""

        def derive(tx: EscrowTransaction) -> frozenset[Action]:
            actions = permissions.permitted_actions(tx, requester)
            if self._past_expiry(tx):
                actions = actions - _EXPIRY_GATED
            return actions

        return self._query(transaction_id, derive, default=frozenset())

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get(self, transaction_id: uuid.UUID | str) -> OperationResult[EscrowSnapshot]:
        """Get a snapshot or a TRANSACTION_NOT_FOUND failure."""

        def operation() -> EscrowSnapshot:
            tx_id = self._coerce_id(transaction_id)
            with self._lock_for(tx_id):
                return self._snapshot(self._get_or_raise(tx_id))

        return self._run("get", transaction_id, operation)

    def describe(self, transaction_id: uuid.UUID | str) -> OperationResult[EscrowDetails]:
        """Display-ready view of an escrow, amounts formatted with their currency."""

        def operation() -> EscrowDetails:
            return self._engine.describe_escrow(self.get(transaction_id).unwrap())

        return self._run("describe", transaction_id, operation)

    def list_transactions(
        self,
        state: EscrowState | None = None,
        party: str | None = None,
    ) -> list[EscrowSnapshot]:
        """Snapshots filtered by state and/or party, newest first."""
        if party is not None:
            items = self._escrow_repo.get_by_party(party)
        elif state is not None:
            items = self._escrow_repo.get_by_state(EscrowState(state))
        else:
            items = self._escrow_repo.all()
        snapshots = []
        for tx in items:
            with self._lock_for(tx.id):
                snapshots.append(self._snapshot(tx))
        if state is not None:
            snapshots = [s for s in snapshots if s.state is EscrowState(state)]
        return snapshots

    def get_events(self, transaction_id: uuid.UUID | str) -> list[EscrowEvent]:
        """Audit trail for one escrow, oldest first. Empty for unknown ids."""
        try:
            tx_id = self._coerce_id(transaction_id)
        except TransactionNotFoundError:
            return []
        return self._event_repo.get_by_transaction(tx_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        transaction_id: object,
        operation: Callable[[], T],
    ) -> OperationResult[T]:
        with bind_transaction_context(transaction_id or "-", action):
            try:
                return OperationResult.success(operation())
            except EscrowError as exc:
                logger.warning(
                    "escrow.operation_rejected",
                    error=exc.code,
                    reason=exc.message,
                )
                return OperationResult.failure(exc)

    def _mutate(
        self,
        transaction_id: uuid.UUID | str,
        action: Action,
        operation: Callable[[EscrowTransaction], None],
    ) -> OperationResult[EscrowSnapshot]:
        def locked() -> EscrowSnapshot:
            tx_id = self._coerce_id(transaction_id)
            with self._lock_for(tx_id):
                tx = self._get_or_raise(tx_id)
                operation(tx)
                return self._snapshot(tx)

        return self._run(action.value, transaction_id, locked)

    def _query(
        self,
        transaction_id: uuid.UUID | str,
        derive: Callable[[EscrowTransaction], T],
        default: T,
    ) -> T:
        try:
            tx_id = self._coerce_id(transaction_id)
            with self._lock_for(tx_id):
                return derive(self._get_or_raise(tx_id))
        except TransactionNotFoundError:
            return default

    def _lock_for(self, transaction_id: uuid.UUID) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(transaction_id)
            if lock is None:
                if self._escrow_repo.get_by_id(transaction_id) is None:
                    raise TransactionNotFoundError(str(transaction_id))
                lock = self._locks[transaction_id] = threading.RLock()
        return lock

    def _get_or_raise(self, transaction_id: uuid.UUID) -> EscrowTransaction:
        tx = self._escrow_repo.get_by_id(transaction_id)
        if tx is None:
            raise TransactionNotFoundError(str(transaction_id))
        return tx

    @staticmethod
    def _coerce_id(transaction_id: object) -> uuid.UUID:
        if isinstance(transaction_id, uuid.UUID):
            return transaction_id
        try:
            return uuid.UUID(str(transaction_id))
        except ValueError as err:
            raise TransactionNotFoundError(str(transaction_id)) from err

    @staticmethod
    def _snapshot(tx: EscrowTransaction) -> EscrowSnapshot:
        return EscrowSnapshot.model_validate(tx)

    @staticmethod
    def _require_state(tx: EscrowTransaction, action: Action) -> None:
        if not is_action_allowed(tx.state, action):
            raise WrongStateError(tx.state.value, action.value)

    def _past_expiry(self, tx: EscrowTransaction) -> bool:
        return self._ordering.current() >= tx.expiry_height

    def _require_not_expired(self, tx: EscrowTransaction) -> None:
        current = self._ordering.current()
        if current >= tx.expiry_height:
            raise ExpiredError(tx.expiry_height, current)

    def _fire_transition(self, tx: EscrowTransaction, event_name: str) -> None:
        """Validate and fire a state machine transition, then apply it to ``tx``.

        Raises WrongStateError if the transition is illegal.
        """
        sm = EscrowStateMachine(current_status=tx.state.value)
        event_method = getattr(sm, event_name, None)
        if event_method is None:
            raise WrongStateError(tx.state.value, event_name)
        try:
            event_method()
        except TransitionNotAllowed as err:
            raise WrongStateError(tx.state.value, event_name) from err
        tx.state = EscrowState(sm.status)
        tx.touch()
