"""Dispute REST API routes.

Routes:
    POST   /api/v1/deals/{id}/dispute                 — Raise a dispute
    GET    /api/v1/deals/{id}/dispute                 — Dispute with its messages
    POST   /api/v1/deals/{id}/dispute/messages        — Add a message
    GET    /api/v1/admin/disputes                     — Open disputes (admin)
    POST   /api/v1/admin/disputes/{deal_id}/resolve   — Settle a dispute (admin)

Admin routes require the X-Admin-Token header; the token is checked by the
service, not here, so every caller of DisputeService gets the same check.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from escrow_platform.api.deps import (
    get_admin_token,
    get_app_settings,
    get_current_user_id,
    get_db_session,
)
from escrow_platform.config import Settings
from escrow_platform.schemas.deals import DealResponse
from escrow_platform.schemas.disputes import (
    DisputeMessageRequest,
    DisputeResponse,
    RaiseDisputeRequest,
    ResolveDisputeRequest,
)
from escrow_platform.services.dispute_service import DisputeService

router = APIRouter(prefix="/api/v1/deals", tags=["Disputes"])
admin_router = APIRouter(prefix="/api/v1/admin/disputes", tags=["Admin"])


@router.post("/{deal_id}/dispute", response_model=DealResponse, summary="Raise a dispute")
async def raise_dispute(
    deal_id: int,
    request: RaiseDisputeRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Dispute completed work. completed_awaiting_confirmation -> disputed."""
    svc = DisputeService(session, settings)
    deal = await svc.raise_dispute(user_id, deal_id, request.reason)
    return DealResponse.for_viewer(deal, user_id)


@router.get("/{deal_id}/dispute", response_model=DisputeResponse, summary="Get the dispute")
async def get_dispute(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DisputeResponse:
    svc = DisputeService(session, settings)
    dispute = await svc.get_dispute(user_id, deal_id)
    return DisputeResponse.model_validate(dispute)


@router.post(
    "/{deal_id}/dispute/messages",
    response_model=DisputeResponse,
    status_code=201,
    summary="Add a dispute message",
)
async def add_dispute_message(
    deal_id: int,
    request: DisputeMessageRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DisputeResponse:
    svc = DisputeService(session, settings)
    dispute = await svc.add_message(user_id, deal_id, request.message)
    return DisputeResponse.model_validate(dispute)


@admin_router.get("", response_model=list[DisputeResponse], summary="List open disputes")
async def list_open_disputes(
    admin_token: str | None = Depends(get_admin_token),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[DisputeResponse]:
    svc = DisputeService(session, settings)
    disputes = await svc.list_open_disputes(admin_token)
    return [DisputeResponse.model_validate(d) for d in disputes]


@admin_router.post(
    "/{deal_id}/resolve",
    response_model=DealResponse,
    summary="Resolve a dispute",
)
async def resolve_dispute(
    deal_id: int,
    request: ResolveDisputeRequest,
    admin_token: str | None = Depends(get_admin_token),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Release the escrow to one party. disputed -> released."""
    svc = DisputeService(session, settings)
    deal = await svc.resolve_dispute(deal_id, request.release_to, admin_token)
    return DealResponse.model_validate(deal)
