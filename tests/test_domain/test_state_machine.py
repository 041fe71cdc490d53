"""Tests for the DealStateMachine domain guard.

These tests verify that:
    1. All valid transitions are allowed.
    2. All invalid transitions are blocked.
    3. The convenience function validate_transition works.
    4. Edge cases (disputes, cancellation, terminal states) behave correctly.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from escrow_platform.domain.enums import DealStatus
from escrow_platform.domain.state_machine import (
    DealStateMachine,
    validate_transition,
)


class TestHappyPath:
    """Test the full happy-path lifecycle: waiting_for_other_party -> released."""

    def test_full_lifecycle(self) -> None:
        sm = DealStateMachine()
        assert sm.status == "waiting_for_other_party"

        sm.counterparty_joins()
        assert sm.status == "waiting_for_funding"

        sm.payer_funds()
        assert sm.status == "work_in_progress"

        sm.provider_completes()
        assert sm.status == "completed_awaiting_confirmation"

        sm.payer_releases()
        assert sm.status == "released"
        assert sm.is_terminal


class TestCancellationPath:
    def test_cancel_before_join(self) -> None:
        sm = DealStateMachine("waiting_for_other_party")
        sm.party_cancels()
        assert sm.status == "cancelled"
        assert sm.is_terminal

    def test_cancel_before_funding(self) -> None:
        sm = DealStateMachine("waiting_for_funding")
        sm.party_cancels()
        assert sm.status == "cancelled"

    @pytest.mark.parametrize(
        "status",
        ["work_in_progress", "completed_awaiting_confirmation", "disputed", "released"],
    )
    def test_cannot_cancel_after_funding(self, status: str) -> None:
        sm = DealStateMachine(status)
        with pytest.raises(TransitionNotAllowed):
            sm.party_cancels()


class TestDisputePath:
    """Test dispute transitions."""

    def test_dispute_from_awaiting_confirmation(self) -> None:
        sm = DealStateMachine("completed_awaiting_confirmation")
        sm.party_disputes()
        assert sm.status == "disputed"
        assert not sm.is_terminal

    def test_dispute_resolved_releases(self) -> None:
        sm = DealStateMachine("disputed")
        sm.dispute_resolved()
        assert sm.status == "released"

    @pytest.mark.parametrize(
        "status",
        [
            "waiting_for_other_party",
            "waiting_for_funding",
            "work_in_progress",
            "released",
            "cancelled",
        ],
    )
    def test_cannot_dispute_outside_confirmation(self, status: str) -> None:
        sm = DealStateMachine(status)
        with pytest.raises(TransitionNotAllowed):
            sm.party_disputes()

    def test_disputed_never_returns_to_work(self) -> None:
        sm = DealStateMachine("disputed")
        assert sm.get_allowed_events() == ["dispute_resolved"]


class TestInvalidTransitions:
    """Verify that illegal transitions are blocked."""

    def test_cannot_skip_funding(self) -> None:
        sm = DealStateMachine("waiting_for_funding")
        with pytest.raises(TransitionNotAllowed):
            sm.provider_completes()

    def test_cannot_release_before_completion(self) -> None:
        sm = DealStateMachine("work_in_progress")
        with pytest.raises(TransitionNotAllowed):
            sm.payer_releases()

    def test_cannot_join_twice(self) -> None:
        sm = DealStateMachine("waiting_for_funding")
        with pytest.raises(TransitionNotAllowed):
            sm.counterparty_joins()

    def test_released_is_terminal(self) -> None:
        sm = DealStateMachine("released")
        assert sm.get_allowed_events() == []

    def test_cancelled_is_terminal(self) -> None:
        sm = DealStateMachine("cancelled")
        assert sm.get_allowed_events() == []


class TestAllowedEvents:
    def test_open_deal_can_be_joined_or_cancelled(self) -> None:
        sm = DealStateMachine("waiting_for_other_party")
        assert set(sm.get_allowed_events()) == {"counterparty_joins", "party_cancels"}

    def test_awaiting_confirmation_can_be_released_or_disputed(self) -> None:
        sm = DealStateMachine("completed_awaiting_confirmation")
        assert set(sm.get_allowed_events()) == {"payer_releases", "party_disputes"}


class TestValidateTransition:
    """Test the convenience validate_transition function."""

    def test_valid_transition(self) -> None:
        result = validate_transition("waiting_for_funding", "payer_funds")
        assert result == DealStatus.WORK_IN_PROGRESS

    def test_invalid_transition_raises(self) -> None:
        with pytest.raises(TransitionNotAllowed):
            validate_transition("waiting_for_other_party", "payer_releases")

    def test_unknown_event_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("waiting_for_funding", "nonexistent_event")

    def test_unknown_status_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            DealStateMachine("archived")
