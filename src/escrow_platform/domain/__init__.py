"""Domain layer — pure business logic with zero framework dependencies."""

from escrow_platform.domain.enums import (
    DealStatus,
    DisputeStatus,
    InviteType,
    NotificationType,
    PartyRole,
    PaymentStatus,
    TransactionType,
)
from escrow_platform.domain.exceptions import (
    ConflictError,
    DealNotFoundError,
    EscrowPlatformError,
    InvalidStateError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
)
from escrow_platform.domain.invite_codes import generate_invite_code, normalize_invite_code
from escrow_platform.domain.state_machine import DealStateMachine, validate_transition

__all__ = [
    "DealStatus",
    "DisputeStatus",
    "InviteType",
    "NotificationType",
    "PartyRole",
    "PaymentStatus",
    "TransactionType",
    "ConflictError",
    "DealNotFoundError",
    "EscrowPlatformError",
    "InvalidStateError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "UnauthorizedError",
    "DealStateMachine",
    "validate_transition",
    "generate_invite_code",
    "normalize_invite_code",
]
