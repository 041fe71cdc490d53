"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm.exc import StaleDataError

from escrow_platform.domain.enums import DisputeStatus
from escrow_platform.domain.exceptions import ConcurrentModificationError
from escrow_platform.infrastructure.database.orm_models import (
    Deal,
    Dispute,
    InviteCode,
    Notification,
    Transaction,
    User,
)

if TYPE_CHECKING:
    from collections.abc import Collection
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_platform.domain.enums import NotificationType, PartyRole, TransactionType


class UserRepository:
    """Data access for user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user: User) -> User:
        self._session.add(user)
        await self._session.flush()
        return user

    async def get_by_id(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self._session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


class DealRepository:
    """Data access for deals."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, deal: Deal) -> Deal:
        """Insert a new deal; the database assigns its id."""
        self._session.add(deal)
        await self._session.flush()
        return deal

    async def get_by_id(self, deal_id: int) -> Deal | None:
        return await self._session.get(Deal, deal_id)

    async def get_for_update(self, deal_id: int) -> Deal | None:
        """Fetch a deal and lock its row until the session commits.

        The lock is a no-op on SQLite; the version column still turns a lost
        race into ConcurrentModificationError, here or at flush time.
        """
        try:
            result = await self._session.execute(
                select(Deal).where(Deal.id == deal_id).with_for_update()
            )
        except StaleDataError as err:
            raise ConcurrentModificationError(deal_id) from err
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: int, statuses: Collection[str] | None = None
    ) -> list[Deal]:
        """Deals the user created or joined, oldest first, optionally by status."""
        query = select(Deal).where(
            or_(
                Deal.creator_id == user_id,
                Deal.payer_id == user_id,
                Deal.provider_id == user_id,
            )
        )
        if statuses is not None:
            query = query.where(Deal.status.in_([str(s) for s in statuses]))
        result = await self._session.execute(query.order_by(Deal.id.asc()))
        return list(result.scalars().all())

    async def save(self, deal: Deal) -> Deal:
        """Flush pending changes on a deal (call AFTER state machine validation)."""
        try:
            await self._session.flush()
        except StaleDataError as err:
            raise ConcurrentModificationError(deal.id) from err
        return deal


class InviteCodeRepository:
    """Data access for the invite code registry."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, code: str) -> bool:
        return await self._session.get(InviteCode, code) is not None

    async def register(self, code: str, deal_id: int) -> InviteCode:
        entry = InviteCode(code=code, deal_id=deal_id)
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def lookup(self, code: str) -> InviteCode | None:
        return await self._session.get(InviteCode, code)

    async def consume(self, code: str) -> bool:
        """Delete a code. Returns False if another request consumed it first."""
        result = await self._session.execute(delete(InviteCode).where(InviteCode.code == code))
        return result.rowcount == 1


class DisputeRepository:
    """Data access for disputes and their messages."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, dispute: Dispute) -> Dispute:
        self._session.add(dispute)
        await self._session.flush()
        return dispute

    async def get_by_deal(self, deal_id: int) -> Dispute | None:
        result = await self._session.execute(select(Dispute).where(Dispute.deal_id == deal_id))
        return result.scalar_one_or_none()

    async def list_open(self) -> list[Dispute]:
        result = await self._session.execute(
            select(Dispute)
            .where(Dispute.status == DisputeStatus.OPEN.value)
            .order_by(Dispute.id.asc())
        )
        return list(result.scalars().all())

    async def save(self, dispute: Dispute) -> Dispute:
        await self._session.flush()
        return dispute


class TransactionRepository:
    """Data access for the append-only transaction log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        deal_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
        released_to: PartyRole | None = None,
    ) -> Transaction:
        """Append a new transaction. This is the ONLY write operation allowed."""
        txn = Transaction(
            deal_id=deal_id,
            type=transaction_type.value,
            amount=amount,
            released_to=released_to.value if released_to else None,
        )
        self._session.add(txn)
        await self._session.flush()
        return txn

    async def get_by_deal(self, deal_id: int) -> list[Transaction]:
        """Fetch all transactions for a deal in append order."""
        result = await self._session.execute(
            select(Transaction)
            .where(Transaction.deal_id == deal_id)
            .order_by(Transaction.id.asc())
        )
        return list(result.scalars().all())


class NotificationRepository:
    """Data access for per-user notifications."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def push(
        self,
        user_id: int,
        deal_id: int,
        notification_type: NotificationType,
        message: str,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            deal_id=deal_id,
            type=notification_type.value,
            message=message,
            read=False,
        )
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def get_by_id(self, notification_id: int) -> Notification | None:
        return await self._session.get(Notification, notification_id)

    async def get_by_user(self, user_id: int, unread_only: bool = False) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        result = await self._session.execute(query.order_by(Notification.id.asc()))
        return list(result.scalars().all())

    async def count_unread(self, user_id: int) -> int:
        result = await self._session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.read.is_(False)
            )
        )
        return int(result.scalar_one())

    async def mark_read(self, notification: Notification) -> Notification:
        notification.read = True
        await self._session.flush()
        return notification
