"""Terms a creator proposes when opening a deal.

Plain frozen dataclass so the domain stays free of pydantic and SQLAlchemy;
the API schema converts into it and the deal service validates it before
anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from escrow_platform.domain.enums import InviteType, PartyRole
from escrow_platform.domain.exceptions import InvalidDealTermsError


@dataclass(frozen=True)
class DealTerms:
    """Input to DealService.create_deal.

    Attributes:
        service_description: What the provider will deliver.
        amount: Escrow amount, strictly positive.
        deadline: Date the work is due.
        creator_role: Side the creator takes; the joiner gets the other one.
        invite_type: Invite by single-use code or by username.
        invited_username: Target of a username invite.
    """

    service_description: str
    amount: Decimal
    deadline: date
    creator_role: PartyRole
    invite_type: InviteType = InviteType.CODE
    invited_username: str | None = None

    def validate(self, creator_username: str) -> None:
        """Raise InvalidDealTermsError if the terms cannot open a deal."""
        if not self.service_description or not self.service_description.strip():
            raise InvalidDealTermsError("Service description must not be empty")
        try:
            amount = Decimal(self.amount)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise InvalidDealTermsError(f"Invalid amount: {self.amount!r}") from exc
        if not amount.is_finite() or amount <= 0:
            raise InvalidDealTermsError("Amount must be a positive number")
        if self.invite_type is InviteType.USERNAME:
            if not self.invited_username:
                raise InvalidDealTermsError("A username invite needs invited_username")
            if self.invited_username == creator_username:
                raise InvalidDealTermsError("You cannot invite yourself to a deal")
