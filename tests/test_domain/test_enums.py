"""Tests for domain enumerations."""

from __future__ import annotations

from escrow_platform.domain.enums import (
    DealStatus,
    NotificationType,
    PartyRole,
    TransactionType,
)


class TestDealStatus:
    def test_all_statuses_exist(self) -> None:
        expected = {
            "waiting_for_other_party", "waiting_for_funding", "work_in_progress",
            "completed_awaiting_confirmation", "released", "disputed", "cancelled",
        }
        actual = {s.value for s in DealStatus}
        assert actual == expected

    def test_status_is_str_enum(self) -> None:
        assert isinstance(DealStatus.RELEASED, str)
        assert DealStatus.RELEASED == "released"


class TestPartyRole:
    def test_counterpart(self) -> None:
        assert PartyRole.PAYER.counterpart is PartyRole.PROVIDER
        assert PartyRole.PROVIDER.counterpart is PartyRole.PAYER


class TestTransactionType:
    def test_payout_types(self) -> None:
        assert not TransactionType.ESCROW_DEPOSIT.is_payout
        assert TransactionType.PAYOUT.is_payout
        assert TransactionType.DISPUTE_RESOLUTION.is_payout


class TestNotificationType:
    def test_all_notification_types_exist(self) -> None:
        # 2 pairing + 3 lifecycle + 1 cancellation + 2 dispute
        assert len(NotificationType) == 8
