"""Deal State Machine Guard.

Uses python-statemachine to enforce legal deal transitions at the domain
level. Whatever the API or a service does, an illegal transition (e.g.
waiting_for_funding -> released) raises TransitionNotAllowed.

The state machine is instantiated per deal and validates a transition before
the ORM model's status field is updated.

Transition table:
    waiting_for_other_party         -> waiting_for_funding              (counterparty_joins)
    waiting_for_other_party         -> cancelled                        (party_cancels)
    waiting_for_funding             -> work_in_progress                 (payer_funds)
    waiting_for_funding             -> cancelled                        (party_cancels)
    work_in_progress                -> completed_awaiting_confirmation  (provider_completes)
    completed_awaiting_confirmation -> released                         (payer_releases)
    completed_awaiting_confirmation -> disputed                         (party_disputes)
    disputed                        -> released                         (dispute_resolved)
"""

from __future__ import annotations

from statemachine import State, StateMachine

from escrow_platform.domain.enums import DealStatus


class DealStateMachine(StateMachine):
    """State machine that guards the deal lifecycle.

    Usage:
        sm = DealStateMachine(current_status="waiting_for_funding")
        sm.payer_funds()   # transitions to work_in_progress
        sm.status          # "work_in_progress"
    """

    # --- States ---
    WAITING_FOR_OTHER_PARTY = State(
        "Waiting for other party",
        value=DealStatus.WAITING_FOR_OTHER_PARTY.value,
        initial=True,
    )
    WAITING_FOR_FUNDING = State(
        "Waiting for funding", value=DealStatus.WAITING_FOR_FUNDING.value
    )
    WORK_IN_PROGRESS = State("Work in progress", value=DealStatus.WORK_IN_PROGRESS.value)
    COMPLETED_AWAITING_CONFIRMATION = State(
        "Awaiting confirmation", value=DealStatus.COMPLETED_AWAITING_CONFIRMATION.value
    )
    DISPUTED = State("Disputed", value=DealStatus.DISPUTED.value)
    RELEASED = State("Released", value=DealStatus.RELEASED.value, final=True)
    CANCELLED = State("Cancelled", value=DealStatus.CANCELLED.value, final=True)

    # --- Events / Transitions ---

    # Pairing
    counterparty_joins = WAITING_FOR_OTHER_PARTY.to(WAITING_FOR_FUNDING)

    # Escrow
    payer_funds = WAITING_FOR_FUNDING.to(WORK_IN_PROGRESS)

    # Delivery
    provider_completes = WORK_IN_PROGRESS.to(COMPLETED_AWAITING_CONFIRMATION)
    payer_releases = COMPLETED_AWAITING_CONFIRMATION.to(RELEASED)

    # Cancellation, only before funds are escrowed
    party_cancels = WAITING_FOR_OTHER_PARTY.to(CANCELLED) | WAITING_FOR_FUNDING.to(CANCELLED)

    # Disputes
    party_disputes = COMPLETED_AWAITING_CONFIRMATION.to(DISPUTED)
    dispute_resolved = DISPUTED.to(RELEASED)

    def __init__(self, current_status: str = DealStatus.WAITING_FOR_OTHER_PARTY.value) -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current DealStatus value (e.g. "work_in_progress").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown status '{current_status}'. Valid states: {valid}")
        super().__init__(start_value=str(current_status))

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches DealStatus)."""
        return str(self.current_state.value)

    @property
    def is_terminal(self) -> bool:
        return bool(self.current_state.final)

    def get_allowed_events(self) -> list[str]:
        """Return the ids of the events that can fire from the current state."""
        return [event.id for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns the
    resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is unknown.
    """
    sm = DealStateMachine(current_status=current_status)

    if event_name not in {event.id for event in sm.events}:
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    getattr(sm, event_name)()
    return sm.status
