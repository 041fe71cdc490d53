"""Domain enumerations for the Escrow Platform.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class DealStatus(enum.StrEnum):
    """Lifecycle states of a deal.

    Transitions are enforced by the DealStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    WAITING_FOR_OTHER_PARTY = "waiting_for_other_party"
    WAITING_FOR_FUNDING = "waiting_for_funding"
    WORK_IN_PROGRESS = "work_in_progress"
    COMPLETED_AWAITING_CONFIRMATION = "completed_awaiting_confirmation"
    RELEASED = "released"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"


class DealBucket(enum.StrEnum):
    """Dashboard grouping of a user's deals. Cancelled deals fall in no bucket."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DISPUTED = "disputed"

    @property
    def statuses(self) -> frozenset[DealStatus]:
        return _BUCKET_STATUSES[self]


class PaymentStatus(enum.StrEnum):
    """Whether the payer's funds are held in escrow."""

    UNPAID = "unpaid"
    FUNDED = "funded"


class PartyRole(enum.StrEnum):
    """The two sides of a deal."""

    PAYER = "payer"
    PROVIDER = "provider"

    @property
    def counterpart(self) -> "PartyRole":
        return PartyRole.PROVIDER if self is PartyRole.PAYER else PartyRole.PAYER


class InviteType(enum.StrEnum):
    """How the creator brings the second party into a deal."""

    CODE = "code"
    USERNAME = "username"


class DisputeStatus(enum.StrEnum):
    OPEN = "open"
    RESOLVED = "resolved"


class TransactionType(enum.StrEnum):
    """Monetary events recorded in the append-only transaction log."""

    ESCROW_DEPOSIT = "escrow_deposit"
    PAYOUT = "payout"
    DISPUTE_RESOLUTION = "dispute_resolution"

    @property
    def is_payout(self) -> bool:
        return self is not TransactionType.ESCROW_DEPOSIT


class NotificationType(enum.StrEnum):
    """Notices queued for a user about one of their deals."""

    DEAL_INVITATION = "deal_invitation"
    DEAL_JOINED = "deal_joined"
    DEAL_FUNDED = "deal_funded"
    WORK_COMPLETED = "work_completed"
    FUNDS_RELEASED = "funds_released"
    DEAL_CANCELLED = "deal_cancelled"
    DISPUTE_RAISED = "dispute_raised"
    DISPUTE_RESOLVED = "dispute_resolved"


_BUCKET_STATUSES: dict[DealBucket, frozenset[DealStatus]] = {
    DealBucket.ACTIVE: frozenset(
        {
            DealStatus.WAITING_FOR_OTHER_PARTY,
            DealStatus.WAITING_FOR_FUNDING,
            DealStatus.WORK_IN_PROGRESS,
            DealStatus.COMPLETED_AWAITING_CONFIRMATION,
        }
    ),
    DealBucket.COMPLETED: frozenset({DealStatus.RELEASED}),
    DealBucket.DISPUTED: frozenset({DealStatus.DISPUTED}),
}
