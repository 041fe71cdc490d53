"""Deal REST API routes.

Every mutating route maps to exactly one DealService call made on behalf of
the user in the X-User-Id header.

Routes:
    POST   /api/v1/deals                    — Create a deal
    POST   /api/v1/deals/join               — Join a deal with an invite code
    GET    /api/v1/deals/{id}               — Get deal details
    GET    /api/v1/deals/{id}/status        — Status + allowed next events
    GET    /api/v1/deals/{id}/transactions  — Transaction log
    POST   /api/v1/deals/{id}/accept        — Accept a username invitation
    POST   /api/v1/deals/{id}/fund          — Payer funds the escrow
    POST   /api/v1/deals/{id}/complete      — Provider marks work complete
    POST   /api/v1/deals/{id}/release       — Payer confirms and releases
    POST   /api/v1/deals/{id}/cancel        — Cancel before funding
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from escrow_platform.api.deps import get_app_settings, get_current_user_id, get_db_session
from escrow_platform.config import Settings
from escrow_platform.schemas.deals import (
    CreateDealRequest,
    DealResponse,
    DealStatusResponse,
    JoinDealRequest,
    TransactionResponse,
)
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/deals", tags=["Deals"])


# ---------------------------------------------------------------------------
# Create / Join
# ---------------------------------------------------------------------------


@router.post("", response_model=DealResponse, status_code=201, summary="Create a deal")
async def create_deal(
    request: CreateDealRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Open a deal in waiting_for_other_party and issue its invitation."""
    svc = DealService(session, settings)
    deal = await svc.create_deal(user_id, request.to_terms())
    return DealResponse.for_viewer(deal, user_id)


@router.post("/join", response_model=DealResponse, summary="Join with an invite code")
async def join_deal(
    request: JoinDealRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Join as the counterparty. waiting_for_other_party -> waiting_for_funding."""
    svc = DealService(session, settings)
    deal = await svc.join_by_code(user_id, request.code)
    return DealResponse.for_viewer(deal, user_id)


# ---------------------------------------------------------------------------
# Lifecycle actions
# ---------------------------------------------------------------------------


@router.post("/{deal_id}/accept", response_model=DealResponse, summary="Accept an invitation")
async def accept_invitation(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    svc = DealService(session, settings)
    deal = await svc.accept_invitation(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


@router.post("/{deal_id}/fund", response_model=DealResponse, summary="Fund the escrow")
async def fund_deal(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Payer deposits the amount. waiting_for_funding -> work_in_progress."""
    svc = DealService(session, settings)
    deal = await svc.fund_deal(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


@router.post("/{deal_id}/complete", response_model=DealResponse, summary="Mark work complete")
async def mark_work_complete(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Provider reports delivery. work_in_progress -> completed_awaiting_confirmation."""
    svc = DealService(session, settings)
    deal = await svc.mark_work_complete(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


@router.post("/{deal_id}/release", response_model=DealResponse, summary="Confirm and release")
async def confirm_and_release(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Payer accepts the work and the escrow pays the provider."""
    svc = DealService(session, settings)
    deal = await svc.confirm_and_release(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


@router.post("/{deal_id}/cancel", response_model=DealResponse, summary="Cancel a deal")
async def cancel_deal(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    """Cancel while no funds are escrowed."""
    svc = DealService(session, settings)
    deal = await svc.cancel_deal(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get("/{deal_id}", response_model=DealResponse, summary="Get deal details")
async def get_deal(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealResponse:
    svc = DealService(session, settings)
    deal = await svc.get_deal_for_viewer(user_id, deal_id)
    return DealResponse.for_viewer(deal, user_id)


@router.get(
    "/{deal_id}/status",
    response_model=DealStatusResponse,
    summary="Get lightweight status check",
)
async def get_status(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> DealStatusResponse:
    """Return the current status and allowed next events."""
    svc = DealService(session, settings)
    await svc.get_deal_for_viewer(user_id, deal_id)
    status_data = await svc.get_status(deal_id)
    return DealStatusResponse(**status_data)


@router.get(
    "/{deal_id}/transactions",
    response_model=list[TransactionResponse],
    summary="Get the transaction log",
)
async def list_transactions(
    deal_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[TransactionResponse]:
    await DealService(session, settings).get_deal_for_viewer(user_id, deal_id)
    svc = LedgerService(session)
    transactions = await svc.list_transactions(deal_id)
    return [TransactionResponse.model_validate(t) for t in transactions]
