"""Dispute Service — dispute lifecycle layered on top of a deal.

A party may dispute a deal once the provider has marked the work complete
and before the payer releases. An administrator then settles the dispute by
releasing the escrow to one party. Resolution needs an admin capability
token; there is no way to settle a dispute without one.
"""

from __future__ import annotations

import hmac
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from escrow_platform.config import Settings, get_settings
from escrow_platform.domain.enums import (
    DisputeStatus,
    NotificationType,
    PartyRole,
    TransactionType,
)
from escrow_platform.domain.exceptions import (
    AdminRequiredError,
    DisputeClosedError,
    NoDisputeForDealError,
    NotParticipantError,
)
from escrow_platform.infrastructure.database.orm_models import Dispute, DisputeMessage
from escrow_platform.infrastructure.database.repositories import DealRepository, DisputeRepository
from escrow_platform.logging_config import get_logger
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.ledger_service import LedgerService
from escrow_platform.services.notification_service import NotificationService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_platform.infrastructure.database.orm_models import Deal

logger = get_logger(__name__)


class DisputeService:
    """Raises, discusses and settles disputes."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._deals = DealService(session, self._settings)
        self._deal_repo = DealRepository(session)
        self._dispute_repo = DisputeRepository(session)
        self._ledger = LedgerService(session)
        self._notifications = NotificationService(session)

    # ------------------------------------------------------------------
    # Raising
    # ------------------------------------------------------------------

    async def raise_dispute(self, user_id: int, deal_id: int, reason: str) -> Deal:
        """Escalate a completed deal. completed_awaiting_confirmation -> disputed."""
        deal = await self._deals.load_for_update(deal_id)
        if user_id not in deal.party_ids():
            raise NotParticipantError(deal.id)
        new_status = self._deals.next_status(deal, "party_disputes")

        deal.status = new_status.value
        await self._deal_repo.save(deal)
        dispute = Dispute(
            deal_id=deal.id,
            raised_by=user_id,
            reason=reason,
            status=DisputeStatus.OPEN.value,
            messages=[],
        )
        await self._dispute_repo.create(dispute)

        for other_id in deal.party_ids() - {user_id}:
            await self._notifications.notify(
                user_id=other_id,
                deal_id=deal.id,
                notification_type=NotificationType.DISPUTE_RAISED,
                message="A dispute was raised on your deal",
            )
        logger.info("dispute.raised", deal_id=deal.id, by=user_id)
        return deal

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def add_message(self, user_id: int, deal_id: int, text: str) -> Dispute:
        """Append a message from one of the deal's parties to an open dispute."""
        deal = await self._deals.get_deal(deal_id)
        dispute = await self._get_dispute_or_raise(deal_id)
        if user_id not in deal.party_ids():
            raise NotParticipantError(deal.id)
        if dispute.status != DisputeStatus.OPEN:
            raise DisputeClosedError(deal.id)

        dispute.messages.append(DisputeMessage(user_id=user_id, message=text))
        await self._dispute_repo.save(dispute)
        logger.info(
            "dispute.message_added",
            deal_id=deal_id,
            user_id=user_id,
            count=len(dispute.messages),
        )
        return dispute

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def resolve_dispute(
        self,
        deal_id: int,
        release_to: PartyRole,
        admin_token: str | None,
    ) -> Deal:
        """Settle an open dispute by releasing the escrow to one party."""
        self._require_admin(admin_token)
        deal = await self._deals.load_for_update(deal_id)
        dispute = await self._get_dispute_or_raise(deal_id)
        if dispute.status != DisputeStatus.OPEN:
            raise DisputeClosedError(deal.id)
        new_status = self._deals.next_status(deal, "dispute_resolved")

        await self._ledger.record_payout(deal, TransactionType.DISPUTE_RESOLUTION, release_to)
        now = datetime.now(UTC)
        deal.released_at = now
        deal.status = new_status.value
        await self._deal_repo.save(deal)

        dispute.status = DisputeStatus.RESOLVED.value
        dispute.released_to = release_to.value
        dispute.resolution = f"Funds released to {release_to.value}"
        dispute.resolved_at = now
        await self._dispute_repo.save(dispute)

        for party_id in sorted(deal.party_ids()):
            await self._notifications.notify(
                user_id=party_id,
                deal_id=deal.id,
                notification_type=NotificationType.DISPUTE_RESOLVED,
                message=dispute.resolution,
            )
        logger.info("dispute.resolved", deal_id=deal.id, released_to=release_to.value)
        return deal

    async def list_open_disputes(self, admin_token: str | None) -> list[Dispute]:
        """Open disputes for the administrative view, oldest first."""
        self._require_admin(admin_token)
        return await self._dispute_repo.list_open()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_dispute(self, user_id: int, deal_id: int) -> Dispute:
        """The dispute with its messages, readable by the deal's parties only."""
        deal = await self._deals.get_deal(deal_id)
        if user_id not in deal.party_ids():
            raise NotParticipantError(deal.id)
        return await self._get_dispute_or_raise(deal_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_dispute_or_raise(self, deal_id: int) -> Dispute:
        dispute = await self._dispute_repo.get_by_deal(deal_id)
        if dispute is None:
            raise NoDisputeForDealError(deal_id)
        return dispute

    def _require_admin(self, admin_token: str | None) -> None:
        expected = self._settings.admin_api_token
        if not expected or not admin_token:
            raise AdminRequiredError()
        if not hmac.compare_digest(admin_token.encode("utf-8"), expected.encode("utf-8")):
            raise AdminRequiredError()
