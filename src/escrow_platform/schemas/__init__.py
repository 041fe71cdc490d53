"""Pydantic API schemas."""

from escrow_platform.schemas.deals import (
    CreateDealRequest,
    DealResponse,
    DealStatusResponse,
    JoinDealRequest,
    NotificationResponse,
    TransactionResponse,
)
from escrow_platform.schemas.disputes import (
    DisputeMessageRequest,
    DisputeMessageResponse,
    DisputeResponse,
    RaiseDisputeRequest,
    ResolveDisputeRequest,
)
from escrow_platform.schemas.users import (
    CreateUserRequest,
    HealthResponse,
    LoginRequest,
    UserResponse,
)

__all__ = [
    "CreateDealRequest",
    "CreateUserRequest",
    "DealResponse",
    "DealStatusResponse",
    "DisputeMessageRequest",
    "DisputeMessageResponse",
    "DisputeResponse",
    "HealthResponse",
    "JoinDealRequest",
    "LoginRequest",
    "NotificationResponse",
    "RaiseDisputeRequest",
    "ResolveDisputeRequest",
    "TransactionResponse",
    "UserResponse",
]
