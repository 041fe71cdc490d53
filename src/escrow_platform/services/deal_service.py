"""Deal Service — core business logic for the deal lifecycle.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Repositories (data access)
    - Ledger (escrow deposits and payouts)
    - Notifications (notices to the counterparty)

Every operation loads the deal under a row lock, validates the actor and the
transition, and only then mutates. Any error propagates to the caller, whose
session rolls back, so a failed call is never partially applied.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from escrow_platform.config import Settings, get_settings
from escrow_platform.domain.enums import (
    DealBucket,
    DealStatus,
    InviteType,
    NotificationType,
    PartyRole,
    PaymentStatus,
    TransactionType,
)
from escrow_platform.domain.exceptions import (
    AlreadyPairedError,
    CannotCancelFundedDealError,
    DealNotFoundError,
    InvalidInviteCodeError,
    InvalidStateTransitionError,
    InviteCodeExhaustedError,
    NotInviteeError,
    NotParticipantError,
    NotPayerError,
    NotProviderError,
    SelfJoinError,
)
from escrow_platform.domain.invite_codes import generate_invite_code, normalize_invite_code
from escrow_platform.domain.state_machine import DealStateMachine, validate_transition
from escrow_platform.infrastructure.database.orm_models import Deal
from escrow_platform.infrastructure.database.repositories import (
    DealRepository,
    InviteCodeRepository,
)
from escrow_platform.logging_config import get_logger
from escrow_platform.services.identity_service import IdentityService
from escrow_platform.services.ledger_service import LedgerService
from escrow_platform.services.notification_service import NotificationService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_platform.domain.deal_terms import DealTerms

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DealService:
    """Manages the deal lifecycle from creation to release or cancellation."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._deal_repo = DealRepository(session)
        self._invite_repo = InviteCodeRepository(session)
        self._identity = IdentityService(session, self._settings)
        self._ledger = LedgerService(session)
        self._notifications = NotificationService(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_deal(self, creator_id: int, terms: DealTerms) -> Deal:
        """Open a deal in waiting_for_other_party and issue its invitation."""
        creator = await self._identity.get_user(creator_id)
        terms.validate(creator.username)

        invite_code: str | None = None
        invitee = None
        if terms.invite_type is InviteType.CODE:
            invite_code = await self._allocate_invite_code()
        else:
            invitee = await self._identity.find_by_username(terms.invited_username)

        deal = Deal(
            service_description=terms.service_description.strip(),
            amount=terms.amount,
            deadline=terms.deadline,
            creator_id=creator.id,
            creator_role=terms.creator_role.value,
            invite_type=terms.invite_type.value,
            invite_code=invite_code,
            invited_username=terms.invited_username
            if terms.invite_type is InviteType.USERNAME
            else None,
            invited_user_id=invitee.id if invitee else None,
            status=DealStatus.WAITING_FOR_OTHER_PARTY.value,
            payment_status=PaymentStatus.UNPAID.value,
        )
        deal = await self._deal_repo.create(deal)

        if invite_code is not None:
            await self._invite_repo.register(invite_code, deal.id)
        elif invitee is not None:
            await self._notifications.notify(
                user_id=invitee.id,
                deal_id=deal.id,
                notification_type=NotificationType.DEAL_INVITATION,
                message=f"{creator.username} invited you to a deal",
            )
        else:
            logger.info(
                "deal.invitee_unresolved",
                deal_id=deal.id,
                invited_username=terms.invited_username,
            )

        logger.info(
            "deal.created",
            deal_id=deal.id,
            creator_id=creator.id,
            role=terms.creator_role.value,
            invite_type=terms.invite_type.value,
            amount=str(terms.amount),
        )
        return deal

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    async def join_by_code(self, user_id: int, code: str) -> Deal:
        """Bind the caller to the deal behind an invite code and consume it."""
        normalized = normalize_invite_code(code)
        entry = await self._invite_repo.lookup(normalized)
        if entry is None:
            raise InvalidInviteCodeError(normalized)

        await self._identity.get_user(user_id)
        deal = await self.load_for_update(entry.deal_id)
        if deal.creator_id == user_id:
            raise SelfJoinError(deal.id)
        if deal.status != DealStatus.WAITING_FOR_OTHER_PARTY:
            raise AlreadyPairedError(deal.id)
        new_status = self.next_status(deal, "counterparty_joins")

        if not await self._invite_repo.consume(normalized):
            raise InvalidInviteCodeError(normalized)
        self._assign_counterparty(deal, user_id)
        deal.status = new_status.value
        await self._deal_repo.save(deal)

        await self._notify_joined(deal, user_id)
        logger.info("deal.joined", deal_id=deal.id, user_id=user_id, via="code")
        return deal

    async def accept_invitation(self, user_id: int, deal_id: int) -> Deal:
        """Accept a username invitation addressed to the caller.

        The invitee is matched by username at this point, so a user who
        signed up after the deal was created can still accept.
        """
        user = await self._identity.get_user(user_id)
        deal = await self.load_for_update(deal_id)
        if deal.invite_type != InviteType.USERNAME:
            raise NotInviteeError(deal.id)
        if deal.creator_id == user_id:
            raise SelfJoinError(deal.id)
        if deal.status != DealStatus.WAITING_FOR_OTHER_PARTY:
            raise AlreadyPairedError(deal.id)
        if user.username != deal.invited_username:
            raise NotInviteeError(deal.id)
        new_status = self.next_status(deal, "counterparty_joins")

        self._assign_counterparty(deal, user_id)
        deal.invited_user_id = user_id
        deal.status = new_status.value
        await self._deal_repo.save(deal)

        await self._notify_joined(deal, user_id)
        logger.info("deal.joined", deal_id=deal.id, user_id=user_id, via="invitation")
        return deal

    # ------------------------------------------------------------------
    # Funding / Delivery / Release
    # ------------------------------------------------------------------

    async def fund_deal(self, user_id: int, deal_id: int) -> Deal:
        """Payer deposits the amount into escrow. waiting_for_funding -> work_in_progress."""
        deal = await self.load_for_update(deal_id)
        new_status = self.next_status(deal, "payer_funds")
        if deal.payer_id != user_id:
            raise NotPayerError(deal.id, "fund")

        deal.payment_status = PaymentStatus.FUNDED.value
        deal.funded_at = _utcnow()
        deal.status = new_status.value
        await self._deal_repo.save(deal)
        await self._ledger.record_deposit(deal)

        await self._notifications.notify(
            user_id=deal.provider_id,
            deal_id=deal.id,
            notification_type=NotificationType.DEAL_FUNDED,
            message="Funds are secured in escrow, work can start",
        )
        logger.info("deal.funded", deal_id=deal.id, amount=str(deal.amount))
        return deal

    async def mark_work_complete(self, user_id: int, deal_id: int) -> Deal:
        """Provider reports delivery. work_in_progress -> completed_awaiting_confirmation."""
        deal = await self.load_for_update(deal_id)
        new_status = self.next_status(deal, "provider_completes")
        if deal.provider_id != user_id:
            raise NotProviderError(deal.id, "mark work complete on")

        deal.completed_at = _utcnow()
        deal.status = new_status.value
        await self._deal_repo.save(deal)

        await self._notifications.notify(
            user_id=deal.payer_id,
            deal_id=deal.id,
            notification_type=NotificationType.WORK_COMPLETED,
            message="The provider marked the work as complete",
        )
        logger.info("deal.work_completed", deal_id=deal.id)
        return deal

    async def confirm_and_release(self, user_id: int, deal_id: int) -> Deal:
        """Payer confirms delivery and the escrow pays the provider."""
        deal = await self.load_for_update(deal_id)
        new_status = self.next_status(deal, "payer_releases")
        if deal.payer_id != user_id:
            raise NotPayerError(deal.id, "confirm and release")

        await self._ledger.record_payout(deal, TransactionType.PAYOUT, PartyRole.PROVIDER)
        deal.released_at = _utcnow()
        deal.status = new_status.value
        await self._deal_repo.save(deal)

        await self._notifications.notify(
            user_id=deal.provider_id,
            deal_id=deal.id,
            notification_type=NotificationType.FUNDS_RELEASED,
            message="The payer confirmed the work and released the funds",
        )
        logger.info("deal.released", deal_id=deal.id, released_to=PartyRole.PROVIDER.value)
        return deal

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_deal(self, user_id: int, deal_id: int) -> Deal:
        """Cancel a deal before any funds are escrowed."""
        deal = await self.load_for_update(deal_id)
        if deal.payment_status == PaymentStatus.FUNDED:
            raise CannotCancelFundedDealError(deal.id)
        new_status = self.next_status(deal, "party_cancels")
        if user_id != deal.creator_id and user_id not in deal.party_ids():
            raise NotParticipantError(deal.id)

        deal.cancelled_at = _utcnow()
        deal.status = new_status.value
        await self._deal_repo.save(deal)
        if deal.invite_code is not None:
            # Already gone once the deal was joined.
            await self._invite_repo.consume(deal.invite_code)

        for other_id in ({deal.creator_id} | deal.party_ids()) - {user_id}:
            await self._notifications.notify(
                user_id=other_id,
                deal_id=deal.id,
                notification_type=NotificationType.DEAL_CANCELLED,
                message="The deal was cancelled",
            )
        logger.info("deal.cancelled", deal_id=deal.id, by=user_id)
        return deal

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_deal(self, deal_id: int) -> Deal:
        deal = await self._deal_repo.get_by_id(deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)
        return deal

    async def get_deal_for_viewer(self, user_id: int, deal_id: int) -> Deal:
        """Load a deal the caller may read: its creator, its parties and a pending invitee."""
        deal = await self.get_deal(deal_id)
        if user_id in {deal.creator_id, deal.invited_user_id} | deal.party_ids():
            return deal
        if (
            deal.invited_username is not None
            and deal.status == DealStatus.WAITING_FOR_OTHER_PARTY
        ):
            user = await self._identity.get_user(user_id)
            if user.username == deal.invited_username:
                return deal
        raise NotParticipantError(deal.id)

    async def get_status(self, deal_id: int) -> dict:
        """Get deal status with the events that may fire next."""
        deal = await self.get_deal(deal_id)
        sm = DealStateMachine(current_status=deal.status)
        return {
            "deal_id": deal.id,
            "status": deal.status,
            "payment_status": deal.payment_status,
            "allowed_events": sm.get_allowed_events(),
        }

    async def list_deals_for_user(
        self, user_id: int, bucket: DealBucket | None = None
    ) -> list[Deal]:
        """Deals the user created or joined, in creation order.

        With a bucket, only deals whose status falls in it are returned.
        """
        statuses = bucket.statuses if bucket is not None else None
        return await self._deal_repo.list_for_user(user_id, statuses=statuses)

    async def dashboard_summary(self, user_id: int) -> dict:
        """Per-bucket deal counts and the number of unread notifications."""
        deals = await self._deal_repo.list_for_user(user_id)
        summary: dict = {
            bucket.value: sum(1 for deal in deals if deal.status in bucket.statuses)
            for bucket in DealBucket
        }
        summary["unread_notifications"] = await self._notifications.unread_count(user_id)
        return summary

    # ------------------------------------------------------------------
    # Shared with DisputeService
    # ------------------------------------------------------------------

    async def load_for_update(self, deal_id: int) -> Deal:
        deal = await self._deal_repo.get_for_update(deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)
        return deal

    @staticmethod
    def next_status(deal: Deal, event_name: str) -> DealStatus:
        """Validate a transition without applying it.

        Raises InvalidStateTransitionError if the transition is illegal.
        """
        try:
            return DealStatus(validate_transition(deal.status, event_name))
        except TransitionNotAllowed as err:
            raise InvalidStateTransitionError(deal.status, event_name) from err

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _allocate_invite_code(self) -> str:
        """Draw codes until one is not live in the registry."""
        attempts = self._settings.invite_code_max_attempts
        for attempt in range(1, attempts + 1):
            code = generate_invite_code(self._settings.invite_code_length)
            if not await self._invite_repo.exists(code):
                return code
            logger.warning("deal.invite_code_collision", attempt=attempt)
        raise InviteCodeExhaustedError(attempts)

    @staticmethod
    def _assign_counterparty(deal: Deal, user_id: int) -> None:
        creator_role = PartyRole(deal.creator_role)
        setattr(deal, f"{creator_role.value}_id", deal.creator_id)
        setattr(deal, f"{creator_role.counterpart.value}_id", user_id)

    async def _notify_joined(self, deal: Deal, user_id: int) -> None:
        joiner = await self._identity.get_user(user_id)
        await self._notifications.notify(
            user_id=deal.creator_id,
            deal_id=deal.id,
            notification_type=NotificationType.DEAL_JOINED,
            message=f"{joiner.username} joined your deal",
        )
