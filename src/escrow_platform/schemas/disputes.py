"""Pydantic schemas for the dispute API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from escrow_platform.domain.enums import PartyRole


class RaiseDisputeRequest(BaseModel):
    """Request body for raising a dispute against a deal."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Why the work should not be accepted as delivered",
    )


class DisputeMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class ResolveDisputeRequest(BaseModel):
    """Request body for an administrator settling a dispute."""

    release_to: PartyRole = Field(..., description="Party that receives the escrowed funds")


class DisputeMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    message: str
    created_at: datetime


class DisputeResponse(BaseModel):
    """Response schema for a dispute and its conversation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    raised_by: int
    reason: str
    status: str
    resolution: str | None
    released_to: str | None
    created_at: datetime
    resolved_at: datetime | None
    messages: list[DisputeMessageResponse]
