"""Database infrastructure — engine, ORM models, and repositories."""

from escrow_platform.infrastructure.database.engine import Database
from escrow_platform.infrastructure.database.orm_models import (
    Base,
    Deal,
    Dispute,
    DisputeMessage,
    InviteCode,
    Notification,
    Transaction,
    User,
)
from escrow_platform.infrastructure.database.repositories import (
    DealRepository,
    DisputeRepository,
    InviteCodeRepository,
    NotificationRepository,
    TransactionRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "Database",
    "Deal",
    "Dispute",
    "DisputeMessage",
    "InviteCode",
    "Notification",
    "Transaction",
    "User",
    "DealRepository",
    "DisputeRepository",
    "InviteCodeRepository",
    "NotificationRepository",
    "TransactionRepository",
    "UserRepository",
]
