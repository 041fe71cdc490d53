"""Tests for DisputeService: raising, discussing and settling disputes."""

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from escrow_platform.config import Settings
from escrow_platform.domain.enums import (
    DealStatus,
    DisputeStatus,
    NotificationType,
    PartyRole,
    TransactionType,
)
from escrow_platform.domain.exceptions import (
    AdminRequiredError,
    DisputeClosedError,
    InvalidStateTransitionError,
    NoDisputeForDealError,
    NotParticipantError,
)
from escrow_platform.infrastructure.database.orm_models import Deal, User
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.dispute_service import DisputeService
from escrow_platform.services.ledger_service import LedgerService
from escrow_platform.services.notification_service import NotificationService

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def disputes(session: AsyncSession, settings: Settings) -> DisputeService:
    return DisputeService(session, settings)


@pytest_asyncio.fixture
async def disputed_deal(disputes: DisputeService, completed_deal: Deal, alice: User) -> Deal:
    return await disputes.raise_dispute(alice.id, completed_deal.id, "Logo is the wrong colour")


class TestRaiseDispute:
    @pytest.mark.asyncio
    async def test_payer_raises(
        self,
        session: AsyncSession,
        disputes: DisputeService,
        completed_deal: Deal,
        alice: User,
        bob: User,
    ) -> None:
        deal = await disputes.raise_dispute(alice.id, completed_deal.id, "Not as described")
        assert deal.status == DealStatus.DISPUTED

        dispute = await disputes.get_dispute(alice.id, deal.id)
        assert dispute.status == DisputeStatus.OPEN
        assert dispute.raised_by == alice.id
        assert dispute.reason == "Not as described"
        assert dispute.messages == []

        notifications = await NotificationService(session).list_for_user(bob.id)
        assert notifications[-1].type == NotificationType.DISPUTE_RAISED

    @pytest.mark.asyncio
    async def test_provider_can_raise(
        self, disputes: DisputeService, completed_deal: Deal, bob: User
    ) -> None:
        deal = await disputes.raise_dispute(bob.id, completed_deal.id, "Payer is unresponsive")
        assert deal.status == DealStatus.DISPUTED

    @pytest.mark.asyncio
    async def test_outsider_cannot_raise(
        self, disputes: DisputeService, completed_deal: Deal, carol: User
    ) -> None:
        with pytest.raises(NotParticipantError):
            await disputes.raise_dispute(carol.id, completed_deal.id, "I just don't like it")
        assert completed_deal.status == DealStatus.COMPLETED_AWAITING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_cannot_dispute_before_delivery(
        self, disputes: DisputeService, funded_deal: Deal, alice: User
    ) -> None:
        with pytest.raises(InvalidStateTransitionError):
            await disputes.raise_dispute(alice.id, funded_deal.id, "Too slow")

    @pytest.mark.asyncio
    async def test_cannot_dispute_released_deal(
        self,
        disputes: DisputeService,
        deal_service: DealService,
        completed_deal: Deal,
        alice: User,
    ) -> None:
        await deal_service.confirm_and_release(alice.id, completed_deal.id)
        with pytest.raises(InvalidStateTransitionError):
            await disputes.raise_dispute(alice.id, completed_deal.id, "Changed my mind")

    @pytest.mark.asyncio
    async def test_cannot_dispute_twice(
        self, disputes: DisputeService, disputed_deal: Deal, bob: User
    ) -> None:
        with pytest.raises(InvalidStateTransitionError):
            await disputes.raise_dispute(bob.id, disputed_deal.id, "Me too")


class TestDisputeMessages:
    @pytest.mark.asyncio
    async def test_parties_exchange_messages(
        self, disputes: DisputeService, disputed_deal: Deal, alice: User, bob: User
    ) -> None:
        await disputes.add_message(alice.id, disputed_deal.id, "I asked for blue.")
        dispute = await disputes.add_message(bob.id, disputed_deal.id, "The brief said teal.")
        assert [(m.user_id, m.message) for m in dispute.messages] == [
            (alice.id, "I asked for blue."),
            (bob.id, "The brief said teal."),
        ]

    @pytest.mark.asyncio
    async def test_outsider_cannot_post(
        self, disputes: DisputeService, disputed_deal: Deal, carol: User
    ) -> None:
        with pytest.raises(NotParticipantError):
            await disputes.add_message(carol.id, disputed_deal.id, "Hello?")

    @pytest.mark.asyncio
    async def test_no_dispute(
        self, disputes: DisputeService, completed_deal: Deal, alice: User
    ) -> None:
        with pytest.raises(NoDisputeForDealError):
            await disputes.add_message(alice.id, completed_deal.id, "Anyone?")

    @pytest.mark.asyncio
    async def test_only_parties_can_read_dispute(
        self, disputes: DisputeService, disputed_deal: Deal, bob: User, carol: User
    ) -> None:
        assert (await disputes.get_dispute(bob.id, disputed_deal.id)).deal_id == disputed_deal.id
        with pytest.raises(NotParticipantError):
            await disputes.get_dispute(carol.id, disputed_deal.id)

    @pytest.mark.asyncio
    async def test_closed_dispute_rejects_messages(
        self, disputes: DisputeService, disputed_deal: Deal, alice: User
    ) -> None:
        await disputes.resolve_dispute(disputed_deal.id, PartyRole.PAYER, ADMIN_TOKEN)
        with pytest.raises(DisputeClosedError):
            await disputes.add_message(alice.id, disputed_deal.id, "One more thing")


class TestResolveDispute:
    @pytest.mark.asyncio
    async def test_release_to_provider(
        self,
        session: AsyncSession,
        disputes: DisputeService,
        disputed_deal: Deal,
        alice: User,
        bob: User,
    ) -> None:
        deal = await disputes.resolve_dispute(
            disputed_deal.id, PartyRole.PROVIDER, ADMIN_TOKEN
        )
        assert deal.status == DealStatus.RELEASED
        assert deal.released_at is not None

        dispute = await disputes.get_dispute(alice.id, deal.id)
        assert dispute.status == DisputeStatus.RESOLVED
        assert dispute.released_to == PartyRole.PROVIDER
        assert dispute.resolution == "Funds released to provider"
        assert dispute.resolved_at is not None

        transactions = await LedgerService(session).list_transactions(deal.id)
        payouts = [t for t in transactions if t.type == TransactionType.DISPUTE_RESOLUTION]
        assert len(payouts) == 1
        assert payouts[0].released_to == PartyRole.PROVIDER
        assert payouts[0].amount == Decimal("100")

        for user in (alice, bob):
            notifications = await NotificationService(session).list_for_user(user.id)
            assert notifications[-1].type == NotificationType.DISPUTE_RESOLVED

    @pytest.mark.asyncio
    async def test_release_to_payer_refunds(
        self, session: AsyncSession, disputes: DisputeService, disputed_deal: Deal
    ) -> None:
        await disputes.resolve_dispute(disputed_deal.id, PartyRole.PAYER, ADMIN_TOKEN)
        transactions = await LedgerService(session).list_transactions(disputed_deal.id)
        assert transactions[-1].released_to == PartyRole.PAYER
        assert await LedgerService(session).escrow_balance(disputed_deal.id) == Decimal("0")

    @pytest.mark.parametrize("token", [None, "", "wrong-token"])
    @pytest.mark.asyncio
    async def test_requires_admin_token(
        self, disputes: DisputeService, disputed_deal: Deal, token: str | None
    ) -> None:
        with pytest.raises(AdminRequiredError):
            await disputes.resolve_dispute(disputed_deal.id, PartyRole.PROVIDER, token)
        assert disputed_deal.status == DealStatus.DISPUTED

    @pytest.mark.asyncio
    async def test_unconfigured_token_disables_resolution(
        self, session: AsyncSession, settings: Settings, disputed_deal: Deal
    ) -> None:
        svc = DisputeService(session, settings.model_copy(update={"admin_api_token": ""}))
        with pytest.raises(AdminRequiredError):
            await svc.resolve_dispute(disputed_deal.id, PartyRole.PROVIDER, "")

    @pytest.mark.asyncio
    async def test_cannot_resolve_twice(
        self, disputes: DisputeService, disputed_deal: Deal
    ) -> None:
        await disputes.resolve_dispute(disputed_deal.id, PartyRole.PROVIDER, ADMIN_TOKEN)
        with pytest.raises(DisputeClosedError):
            await disputes.resolve_dispute(disputed_deal.id, PartyRole.PAYER, ADMIN_TOKEN)

    @pytest.mark.asyncio
    async def test_no_dispute_to_resolve(
        self, disputes: DisputeService, completed_deal: Deal
    ) -> None:
        with pytest.raises(NoDisputeForDealError):
            await disputes.resolve_dispute(completed_deal.id, PartyRole.PAYER, ADMIN_TOKEN)


class TestListOpenDisputes:
    @pytest.mark.asyncio
    async def test_lists_only_open(
        self, disputes: DisputeService, disputed_deal: Deal
    ) -> None:
        open_disputes = await disputes.list_open_disputes(ADMIN_TOKEN)
        assert [d.deal_id for d in open_disputes] == [disputed_deal.id]

        await disputes.resolve_dispute(disputed_deal.id, PartyRole.PROVIDER, ADMIN_TOKEN)
        assert await disputes.list_open_disputes(ADMIN_TOKEN) == []

    @pytest.mark.asyncio
    async def test_requires_admin_token(self, disputes: DisputeService) -> None:
        with pytest.raises(AdminRequiredError):
            await disputes.list_open_disputes(None)
