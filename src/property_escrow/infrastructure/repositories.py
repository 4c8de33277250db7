"""In-process repositories for escrow transactions and audit events.

Repositories encapsulate storage and provide a clean interface to the
lifecycle. They never enforce business rules and never serialize per-escrow
operations (that's the lifecycle's responsibility); they only guard their own
indexes. Durable storage is out of scope; a database-backed repository would
expose the same methods.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import TYPE_CHECKING

from property_escrow.domain.models import EscrowEvent

if TYPE_CHECKING:
    import uuid

    from property_escrow.domain.enums import EscrowState, EventType
    from property_escrow.domain.models import EscrowTransaction


class EscrowRepository:
    """Storage for escrow transactions."""

    def __init__(self) -> None:
        self._items: dict[uuid.UUID, EscrowTransaction] = {}
        self._guard = threading.Lock()

    def add(self, tx: EscrowTransaction) -> EscrowTransaction:
        """Insert a new escrow transaction."""
        with self._guard:
            if tx.id in self._items:
                raise ValueError(f"Escrow transaction already stored: {tx.id}")
            self._items[tx.id] = tx
        return tx

    def get_by_id(self, transaction_id: uuid.UUID) -> EscrowTransaction | None:
        with self._guard:
            return self._items.get(transaction_id)

    def ids(self) -> list[uuid.UUID]:
        """Every stored id, oldest first."""
        with self._guard:
            return list(self._items)

    def get_by_state(self, state: EscrowState) -> list[EscrowTransaction]:
        """Fetch all transactions in a given state, newest first."""
        with self._guard:
            items = [tx for tx in self._items.values() if tx.state is state]
        return sorted(items, key=lambda tx: tx.created_at, reverse=True)

    def get_by_party(self, party: str) -> list[EscrowTransaction]:
        """Fetch all transactions where ``party`` is buyer or seller, newest first."""
        with self._guard:
            items = [
                tx for tx in self._items.values() if party in (tx.buyer, tx.seller)
            ]
        return sorted(items, key=lambda tx: tx.created_at, reverse=True)

    def all(self) -> list[EscrowTransaction]:
        with self._guard:
            items = list(self._items.values())
        return sorted(items, key=lambda tx: tx.created_at, reverse=True)

    def __len__(self) -> int:
        with self._guard:
            return len(self._items)


class EventRepository:
    """Storage for the append-only audit event log."""

    def __init__(self) -> None:
        self._events: defaultdict[uuid.UUID, list[EscrowEvent]] = defaultdict(list)
        self._guard = threading.Lock()

    def record(
        self,
        transaction_id: uuid.UUID,
        event_type: EventType,
        old_state: EscrowState | None,
        new_state: EscrowState,
        actor: str = "SYSTEM",
        metadata: dict | None = None,
    ) -> EscrowEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = EscrowEvent(
            transaction_id=transaction_id,
            event_type=event_type,
            old_state=old_state,
            new_state=new_state,
            actor=actor,
            metadata=dict(metadata or {}),
        )
        with self._guard:
            self._events[transaction_id].append(evt)
        return evt

    def get_by_transaction(self, transaction_id: uuid.UUID) -> list[EscrowEvent]:
        """Fetch all events for a transaction in chronological order."""
        with self._guard:
            return list(self._events.get(transaction_id, ()))
