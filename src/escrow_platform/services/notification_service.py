"""Notification Service — per-user queue of deal notices."""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_platform.domain.exceptions import NotificationNotFoundError
from escrow_platform.infrastructure.database.repositories import NotificationRepository
from escrow_platform.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_platform.domain.enums import NotificationType
    from escrow_platform.infrastructure.database.orm_models import Notification

logger = get_logger(__name__)


class NotificationService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._notification_repo = NotificationRepository(session)

    async def notify(
        self,
        user_id: int,
        deal_id: int,
        notification_type: NotificationType,
        message: str,
    ) -> Notification:
        """Queue a notice for a user. Fire-and-forget from the caller's view."""
        notification = await self._notification_repo.push(
            user_id=user_id,
            deal_id=deal_id,
            notification_type=notification_type,
            message=message,
        )
        logger.debug(
            "notification.queued",
            user_id=user_id,
            deal_id=deal_id,
            type=notification_type.value,
        )
        return notification

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> list[Notification]:
        return await self._notification_repo.get_by_user(user_id, unread_only=unread_only)

    async def unread_count(self, user_id: int) -> int:
        return await self._notification_repo.count_unread(user_id)

    async def mark_read(self, user_id: int, notification_id: int) -> Notification:
        """Mark one of the user's notifications as read.

        Another user's notification is reported as missing rather than
        forbidden, so ids cannot be probed.
        """
        notification = await self._notification_repo.get_by_id(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFoundError(notification_id)
        return await self._notification_repo.mark_read(notification)
