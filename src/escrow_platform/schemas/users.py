"""Pydantic schemas for signup, login and user lookup."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, examples=["alice"])
    email: str = Field(
        ...,
        max_length=255,
        pattern=EMAIL_PATTERN,
        examples=["alice@example.com"],
    )
    password: str = Field(..., min_length=8, max_length=72)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)


class UserResponse(BaseModel):
    """Public view of a user. Never includes the credential."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: datetime


class DashboardSummaryResponse(BaseModel):
    """Deal counts per dashboard bucket plus the unread notification badge."""

    active: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    disputed: int = Field(..., ge=0)
    unread_notifications: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
