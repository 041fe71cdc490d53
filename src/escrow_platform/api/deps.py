"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the database
session, settings, and the identity of the caller.

The caller is identified by the ``X-User-Id`` header. This is a simulated
identity for the host application to replace with real authentication; the
services only ever see a user id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Header, Request

from escrow_platform.config import Settings
from escrow_platform.infrastructure.database.engine import Database

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession


def get_database(request: Request) -> Database:
    """Provide the Database opened by the application lifespan."""
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    """Provide the settings the application was created with."""
    return request.app.state.settings


async def get_db_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session committed on success and rolled back on error."""
    async with database.session() as session:
        yield session


def get_current_user_id(
    x_user_id: int = Header(..., description="Id of the acting user"),
) -> int:
    return x_user_id


def get_admin_token(
    x_admin_token: str | None = Header(default=None, description="Admin capability token"),
) -> str | None:
    return x_admin_token
