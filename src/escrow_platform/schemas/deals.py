"""Pydantic schemas for the deal API.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep clean boundaries between the API and
database layers.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from escrow_platform.domain.deal_terms import DealTerms
from escrow_platform.domain.enums import InviteType, PartyRole

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateDealRequest(BaseModel):
    """Request body for opening a new deal."""

    service_description: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="What the provider will deliver",
        examples=["Design a logo for my bakery"],
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=6,
        description="Escrow amount, currency-agnostic",
        examples=["100.00"],
    )
    deadline: date = Field(..., description="Date the work is due")
    creator_role: PartyRole = Field(
        ...,
        description="Side the creator takes; whoever joins gets the other one",
    )
    invite_type: InviteType = Field(
        default=InviteType.CODE,
        description="Invite by single-use code or by username",
    )
    invited_username: str | None = Field(
        default=None,
        max_length=64,
        description="Username to invite (required when invite_type is 'username')",
    )

    @model_validator(mode="after")
    def _username_invite_has_target(self) -> CreateDealRequest:
        if self.invite_type is InviteType.USERNAME and not self.invited_username:
            raise ValueError("invited_username is required for username invites")
        return self

    def to_terms(self) -> DealTerms:
        return DealTerms(
            service_description=self.service_description,
            amount=self.amount,
            deadline=self.deadline,
            creator_role=self.creator_role,
            invite_type=self.invite_type,
            invited_username=self.invited_username,
        )


class JoinDealRequest(BaseModel):
    """Request body for joining a deal with an invite code."""

    code: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="Invite code shared by the deal creator (case-insensitive)",
        examples=["K7Q2M9XA"],
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class DealResponse(BaseModel):
    """Response schema for a deal snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    service_description: str
    amount: Decimal
    deadline: date
    creator_id: int
    creator_role: str
    payer_id: int | None
    provider_id: int | None
    invite_type: str
    invite_code: str | None
    invited_username: str | None
    status: str
    payment_status: str
    created_at: datetime
    funded_at: datetime | None
    completed_at: datetime | None
    released_at: datetime | None
    cancelled_at: datetime | None

    @classmethod
    def for_viewer(cls, deal: object, viewer_id: int) -> DealResponse:
        """Snapshot as seen by ``viewer_id``; only the creator sees the invite code."""
        response = cls.model_validate(deal)
        if response.creator_id != viewer_id:
            response = response.model_copy(update={"invite_code": None})
        return response


class DealStatusResponse(BaseModel):
    """Lightweight status check response."""

    deal_id: int
    status: str
    payment_status: str
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )


class TransactionResponse(BaseModel):
    """Response schema for one transaction log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    type: str
    amount: Decimal
    released_to: str | None
    created_at: datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    type: str
    message: str
    read: bool
    created_at: datetime
