"""Ledger Service — the append-only transaction log and escrow balance.

Simulated settlement: instead of moving money through a payment provider,
every deposit and payout is written to the transactions table, which doubles
as the audit trail. A payout is only recorded when the deal's escrow balance
covers it, so a deal can never pay out more than was deposited.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from escrow_platform.domain.enums import PartyRole, TransactionType
from escrow_platform.domain.exceptions import DealNotFoundError, InsufficientEscrowError
from escrow_platform.infrastructure.database.repositories import (
    DealRepository,
    TransactionRepository,
)
from escrow_platform.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_platform.infrastructure.database.orm_models import Deal, Transaction

logger = get_logger(__name__)


class LedgerService:
    """Records money moving into and out of escrow."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._deal_repo = DealRepository(session)
        self._transaction_repo = TransactionRepository(session)

    async def record_deposit(self, deal: Deal) -> Transaction:
        """Record the payer's deposit of the full deal amount."""
        txn = await self._transaction_repo.record(
            deal_id=deal.id,
            transaction_type=TransactionType.ESCROW_DEPOSIT,
            amount=deal.amount,
        )
        logger.info("ledger.deposit_recorded", deal_id=deal.id, amount=str(deal.amount))
        return txn

    async def record_payout(
        self,
        deal: Deal,
        transaction_type: TransactionType,
        released_to: PartyRole,
    ) -> Transaction:
        """Release the full deal amount to one party.

        Raises InsufficientEscrowError if the escrow no longer holds it.
        """
        if not transaction_type.is_payout:
            raise ValueError(f"{transaction_type} is not a payout type")

        balance = await self.escrow_balance(deal.id)
        if balance < deal.amount:
            raise InsufficientEscrowError(deal.id, required=str(deal.amount), available=str(balance))

        txn = await self._transaction_repo.record(
            deal_id=deal.id,
            transaction_type=transaction_type,
            amount=deal.amount,
            released_to=released_to,
        )
        logger.info(
            "ledger.payout_recorded",
            deal_id=deal.id,
            type=transaction_type.value,
            released_to=released_to.value,
            amount=str(deal.amount),
        )
        return txn

    async def escrow_balance(self, deal_id: int) -> Decimal:
        """Deposits minus payouts for a deal."""
        balance = Decimal("0")
        for txn in await self._transaction_repo.get_by_deal(deal_id):
            if TransactionType(txn.type).is_payout:
                balance -= txn.amount
            else:
                balance += txn.amount
        return balance

    async def list_transactions(self, deal_id: int) -> list[Transaction]:
        """Transaction log of one deal, in append order."""
        if await self._deal_repo.get_by_id(deal_id) is None:
            raise DealNotFoundError(deal_id)
        return await self._transaction_repo.get_by_deal(deal_id)
