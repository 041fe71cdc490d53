"""Application services — use case orchestration."""

from escrow_platform.services.deal_service import DealService
from escrow_platform.services.dispute_service import DisputeService
from escrow_platform.services.identity_service import IdentityService
from escrow_platform.services.ledger_service import LedgerService
from escrow_platform.services.notification_service import NotificationService

__all__ = [
    "DealService",
    "DisputeService",
    "IdentityService",
    "LedgerService",
    "NotificationService",
]
