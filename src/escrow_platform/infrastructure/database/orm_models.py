"""SQLAlchemy 2.0 ORM models for the Escrow Platform.

Tables:
    1. users                  — Accounts that take part in deals.
    2. deals                  — Escrow agreements between a payer and a provider.
    3. invite_codes           — Single-use codes binding a second party to a deal.
    4. disputes               — At most one per deal, raised by a party.
    5. dispute_messages       — Ordered conversation attached to a dispute.
    6. transactions           — Append-only log of monetary events.
    7. notifications          — Per-user notices about deal activity.

Design decisions:
    - Integer primary keys, assigned monotonically by the database.
    - Decimal for amounts (no floating point rounding errors).
    - CHECK constraints on enum columns and amounts at the DB level.
    - deals.version is a version_id_col: every UPDATE is a compare-and-set,
      so two requests racing on the same deal cannot both commit a transition.
    - Portable column types only, so the same models run on PostgreSQL and
      SQLite (tests, simulation).
"""

from __future__ import annotations

from datetime import UTC, date, datetime  # noqa: TC003 - needed at runtime by Mapped[]
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. users
# ---------------------------------------------------------------------------
class User(Base):
    """An account that can create, join and settle deals."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    credential_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt modular crypt string, never the raw credential",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username}>"


# ---------------------------------------------------------------------------
# 2. deals
# ---------------------------------------------------------------------------
class Deal(Base):
    """An escrow agreement between a payer and a service provider."""

    __tablename__ = "deals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # --- Terms (immutable after creation) ---
    service_description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 6),
        nullable=False,
        comment="Escrow amount, currency-agnostic",
    )
    deadline: Mapped[date] = mapped_column(Date, nullable=False)

    # --- Parties ---
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    creator_role: Mapped[str] = mapped_column(String(10), nullable=False)
    payer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        default=None,
        comment="Set when the counterparty joins",
    )
    provider_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        default=None,
        comment="Set when the counterparty joins",
    )

    # --- Invitation ---
    invite_type: Mapped[str] = mapped_column(String(10), nullable=False)
    invite_code: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    invited_username: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None
    )
    invited_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        default=None,
        comment="Invitee resolved at creation time, if the account existed then",
    )

    # --- Lifecycle (guarded by DealStateMachine) ---
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(10), nullable=False)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    funded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    released_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # --- Optimistic concurrency ---
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "status IN ('waiting_for_other_party', 'waiting_for_funding', "
            "'work_in_progress', 'completed_awaiting_confirmation', "
            "'released', 'disputed', 'cancelled')",
            name="ck_deal_valid_status",
        ),
        CheckConstraint("payment_status IN ('unpaid', 'funded')", name="ck_deal_payment_status"),
        CheckConstraint("creator_role IN ('payer', 'provider')", name="ck_deal_creator_role"),
        CheckConstraint("invite_type IN ('code', 'username')", name="ck_deal_invite_type"),
        CheckConstraint("amount > 0", name="ck_deal_positive_amount"),
        CheckConstraint(
            "payer_id IS NULL OR provider_id IS NULL OR payer_id <> provider_id",
            name="ck_deal_distinct_parties",
        ),
        Index("idx_deal_status", "status"),
        Index("idx_deal_creator", "creator_id"),
        Index("idx_deal_payer", "payer_id"),
        Index("idx_deal_provider", "provider_id"),
    )

    def party_ids(self) -> set[int]:
        """Ids of the payer and provider that have joined so far."""
        return {uid for uid in (self.payer_id, self.provider_id) if uid is not None}

    def __repr__(self) -> str:
        return f"<Deal id={self.id} status={self.status} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 3. invite_codes
# ---------------------------------------------------------------------------
class InviteCode(Base):
    """A live invite code. The row is deleted on the first successful join."""

    __tablename__ = "invite_codes"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    deal_id: Mapped[int] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<InviteCode code={self.code} deal={self.deal_id}>"


# ---------------------------------------------------------------------------
# 4. disputes / 5. dispute_messages
# ---------------------------------------------------------------------------
class Dispute(Base):
    """An escalation on a deal, settled by an administrator."""

    __tablename__ = "disputes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="One dispute per deal",
    )
    raised_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)

    # --- Resolution ---
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    released_to: Mapped[str | None] = mapped_column(String(10), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    messages: Mapped[list[DisputeMessage]] = relationship(
        "DisputeMessage",
        back_populates="dispute",
        cascade="all, delete-orphan",
        order_by="DisputeMessage.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("status IN ('open', 'resolved')", name="ck_dispute_status"),
        CheckConstraint(
            "released_to IS NULL OR released_to IN ('payer', 'provider')",
            name="ck_dispute_released_to",
        ),
        Index("idx_dispute_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Dispute id={self.id} deal={self.deal_id} status={self.status}>"


class DisputeMessage(Base):
    """One entry in a dispute's conversation."""

    __tablename__ = "dispute_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dispute_id: Mapped[int] = mapped_column(
        ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    dispute: Mapped[Dispute] = relationship("Dispute", back_populates="messages")

    __table_args__ = (Index("idx_dispute_message_dispute", "dispute_id"),)


# ---------------------------------------------------------------------------
# 6. transactions (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class Transaction(Base):
    """Immutable record of money entering or leaving escrow for a deal.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    released_to: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        default=None,
        comment="Party role receiving a payout",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('escrow_deposit', 'payout', 'dispute_resolution')",
            name="ck_transaction_type",
        ),
        CheckConstraint("amount > 0", name="ck_transaction_positive_amount"),
        Index("idx_transaction_deal", "deal_id"),
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} deal={self.deal_id} type={self.type} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 7. notifications
# ---------------------------------------------------------------------------
class Notification(Base):
    """A notice for one user about one deal. Only `read` ever changes."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_notification_user", "user_id"),)


event.listen(Deal, "before_update", _set_updated_at)
