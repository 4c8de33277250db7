"""Escrow Transaction State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what a client submits, an illegal transition (e.g. completed ->
cancelled) raises TransitionNotAllowed before the transaction is touched.

The state machine is instantiated per operation from the stored state and
validates the transition before the entity's state field is updated.

Transition table:
    pending   -> funded      (earnest_money_received)
    funded    -> completed   (settle)
    pending   -> cancelled   (refund)
    funded    -> cancelled   (refund)
    pending   -> expired     (expire)
    funded    -> expired     (expire)
"""

from __future__ import annotations

from statemachine import State, StateMachine

from property_escrow.domain.enums import Action, EscrowState

# States in which an action may be attempted at all. Actions that do not move
# the machine (partial funding, signing, conditions) are gated here.
ACTION_STATES: dict[Action, frozenset[EscrowState]] = {
    Action.ASSIGN_SELLER: frozenset({EscrowState.PENDING, EscrowState.FUNDED}),
    Action.FUND: frozenset({EscrowState.PENDING}),
    Action.SIGN: frozenset({EscrowState.FUNDED}),
    Action.MARK_CONDITION: frozenset({EscrowState.PENDING, EscrowState.FUNDED}),
    Action.COMPLETE: frozenset({EscrowState.FUNDED}),
    Action.REFUND: frozenset({EscrowState.PENDING, EscrowState.FUNDED}),
}


class EscrowStateMachine(StateMachine):
    """State machine that guards escrow transaction lifecycle transitions.

    Usage:
        sm = EscrowStateMachine(current_status="funded")
        sm.settle()        # transitions to completed
        sm.status          # "completed"
    """

    # --- States ---
    PENDING = State("Pending", value=EscrowState.PENDING.value, initial=True)
    FUNDED = State("Funded", value=EscrowState.FUNDED.value)
    COMPLETED = State("Completed", value=EscrowState.COMPLETED.value, final=True)
    CANCELLED = State("Cancelled", value=EscrowState.CANCELLED.value, final=True)
    EXPIRED = State("Expired", value=EscrowState.EXPIRED.value, final=True)

    # --- Events / Transitions ---

    # Funding
    earnest_money_received = PENDING.to(FUNDED)

    # Closing
    settle = FUNDED.to(COMPLETED)

    # Exits
    refund = PENDING.to(CANCELLED) | FUNDED.to(CANCELLED)
    expire = PENDING.to(EXPIRED) | FUNDED.to(EXPIRED)

    def __init__(self, current_status: str = EscrowState.PENDING.value) -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current EscrowState value (e.g., "funded").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=str(current_status))

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches EscrowState)."""
        return str(self.current_state_value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [_event_id(event) for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns the
    resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = EscrowStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_name not in {_event_id(e) for e in sm.events} or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status


def _event_id(event: object) -> str:
    # python-statemachine >= 2.3 keeps the attribute name in `id` and a
    # humanized label in `name`
    return str(getattr(event, "id", None) or getattr(event, "name"))


def is_action_allowed(state: EscrowState, action: Action) -> bool:
    """Whether ``action`` may be attempted while an escrow is in ``state``."""
    return state in ACTION_STATES[action]
