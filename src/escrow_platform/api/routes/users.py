"""User REST API routes.

Routes:
    POST   /api/v1/users                              — Sign up
    POST   /api/v1/users/login                        — Authenticate by email + password
    GET    /api/v1/users/by-username/{username}       — Look up a user to invite
    GET    /api/v1/users/me/deals                     — Deals the caller created or joined
    GET    /api/v1/users/me/summary                   — Dashboard counts and unread badge
    GET    /api/v1/users/me/notifications             — Caller's notifications
    POST   /api/v1/users/me/notifications/{id}/read   — Mark a notification read
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from escrow_platform.api.deps import get_app_settings, get_current_user_id, get_db_session
from escrow_platform.config import Settings
from escrow_platform.schemas.deals import DealResponse, NotificationResponse
from escrow_platform.domain.enums import DealBucket
from escrow_platform.schemas.users import (
    CreateUserRequest,
    DashboardSummaryResponse,
    LoginRequest,
    UserResponse,
)
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.identity_service import IdentityService
from escrow_platform.services.notification_service import NotificationService

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=201, summary="Sign up")
async def create_user(
    request: CreateUserRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    svc = IdentityService(session, settings)
    user = await svc.create_user(
        username=request.username,
        email=request.email,
        password=request.password,
    )
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse, summary="Authenticate")
async def login(
    request: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    svc = IdentityService(session, settings)
    user = await svc.authenticate(email=request.email, password=request.password)
    return UserResponse.model_validate(user)


@router.get(
    "/by-username/{username}",
    response_model=UserResponse,
    summary="Find a user by exact username",
)
async def find_by_username(
    username: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    svc = IdentityService(session, settings)
    user = await svc.find_by_username(username)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User not found: {username}")
    return UserResponse.model_validate(user)


@router.get("/me/deals", response_model=list[DealResponse], summary="List my deals")
async def list_my_deals(
    bucket: DealBucket | None = None,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[DealResponse]:
    svc = DealService(session, settings)
    deals = await svc.list_deals_for_user(user_id, bucket=bucket)
    return [DealResponse.for_viewer(deal, user_id) for deal in deals]


@router.get(
    "/me/summary",
    response_model=DashboardSummaryResponse,
    summary="Dashboard counts for my deals",
)
async def my_summary(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DashboardSummaryResponse:
    svc = DealService(session, settings)
    return DashboardSummaryResponse(**await svc.dashboard_summary(user_id))


@router.get(
    "/me/notifications",
    response_model=list[NotificationResponse],
    summary="List my notifications",
)
async def list_my_notifications(
    unread_only: bool = False,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> list[NotificationResponse]:
    svc = NotificationService(session)
    notifications = await svc.list_for_user(user_id, unread_only=unread_only)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post(
    "/me/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification read",
)
async def mark_notification_read(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    svc = NotificationService(session)
    notification = await svc.mark_read(user_id, notification_id)
    return NotificationResponse.model_validate(notification)
