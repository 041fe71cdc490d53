"""Identity Service — user signup, login and lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_platform.config import Settings, get_settings
from escrow_platform.domain.exceptions import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from escrow_platform.infrastructure.database.orm_models import User
from escrow_platform.infrastructure.database.repositories import UserRepository
from escrow_platform.logging_config import get_logger
from escrow_platform.security.passwords import dummy_verify, hash_password, verify_password

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class IdentityService:
    """Creates and authenticates users. Credentials never leave this class."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._user_repo = UserRepository(session)

    async def create_user(self, username: str, email: str, password: str) -> User:
        """Register a user. Username and email must be unused (exact match)."""
        if await self._user_repo.get_by_username(username) is not None:
            raise DuplicateUsernameError(username)
        if await self._user_repo.get_by_email(email) is not None:
            raise DuplicateEmailError()

        user = User(
            username=username,
            email=email,
            credential_hash=hash_password(password, rounds=self._settings.password_hash_rounds),
        )
        user = await self._user_repo.create(user)
        logger.info("user.created", user_id=user.id, username=username)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        user = await self._user_repo.get_by_email(email)
        if user is None:
            # Burn the same hashing cost as a real check.
            dummy_verify(rounds=self._settings.password_hash_rounds)
            logger.info("user.login_failed", reason="unknown_email")
            raise InvalidCredentialsError()
        rounds = self._settings.password_hash_rounds
        if not verify_password(password, user.credential_hash, rounds=rounds):
            logger.info("user.login_failed", user_id=user.id, reason="bad_credential")
            raise InvalidCredentialsError()
        logger.info("user.logged_in", user_id=user.id)
        return user

    async def find_by_username(self, username: str) -> User | None:
        return await self._user_repo.get_by_username(username)

    async def get_user(self, user_id: int) -> User:
        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user
