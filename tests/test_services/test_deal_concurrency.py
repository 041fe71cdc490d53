"""Racing transitions on one deal: exactly one writer wins.

Uses a file-backed SQLite database so each session has its own connection,
and interleaves the sessions by hand. The loser either sees the winner's
committed state or trips the deals.version compare-and-set.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from escrow_platform.config import Settings
from escrow_platform.domain.deal_terms import DealTerms
from escrow_platform.domain.enums import DealStatus, PaymentStatus, TransactionType
from escrow_platform.domain.exceptions import (
    CannotCancelFundedDealError,
    ConcurrentModificationError,
)
from escrow_platform.infrastructure.database.engine import Database
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.identity_service import IdentityService
from escrow_platform.services.ledger_service import LedgerService


@pytest_asyncio.fixture
async def file_database(tmp_path: Path) -> AsyncIterator[Database]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    await db.open(create_tables=True)
    yield db
    await db.close()


@pytest_asyncio.fixture
async def paired_ids(
    file_database: Database, settings: Settings, make_terms: Callable[..., DealTerms]
) -> tuple[int, int, int]:
    """(payer id, provider id, deal id) for a committed deal waiting for funding."""
    async with file_database.session() as session:
        identity = IdentityService(session, settings)
        alice = await identity.create_user("alice", "alice@example.com", "alice-secret")
        bob = await identity.create_user("bob", "bob@example.com", "bob-secret")
        deals = DealService(session, settings)
        deal = await deals.create_deal(alice.id, make_terms())
        await deals.join_by_code(bob.id, deal.invite_code)
    return alice.id, bob.id, deal.id


async def _final_state(
    database: Database, settings: Settings, deal_id: int
) -> tuple[str, str, list[str]]:
    async with database.session() as session:
        deal = await DealService(session, settings).get_deal(deal_id)
        transactions = await LedgerService(session).list_transactions(deal_id)
        return deal.status, deal.payment_status, [t.type for t in transactions]


class TestFundCancelRace:
    @pytest.mark.asyncio
    async def test_cancel_from_stale_view_loses_to_fund(
        self, file_database: Database, settings: Settings, paired_ids: tuple[int, int, int]
    ) -> None:
        alice_id, bob_id, deal_id = paired_ids

        with pytest.raises(ConcurrentModificationError):
            async with file_database.session() as loser:
                loser_deals = DealService(loser, settings)
                await loser_deals.get_deal(deal_id)
                async with file_database.session() as winner:
                    await DealService(winner, settings).fund_deal(alice_id, deal_id)
                await loser_deals.cancel_deal(bob_id, deal_id)

        status, payment_status, types = await _final_state(file_database, settings, deal_id)
        assert status == DealStatus.WORK_IN_PROGRESS
        assert payment_status == PaymentStatus.FUNDED
        assert types == [TransactionType.ESCROW_DEPOSIT]

    @pytest.mark.asyncio
    async def test_fund_from_stale_view_loses_to_cancel(
        self, file_database: Database, settings: Settings, paired_ids: tuple[int, int, int]
    ) -> None:
        alice_id, bob_id, deal_id = paired_ids

        with pytest.raises(ConcurrentModificationError):
            async with file_database.session() as loser:
                loser_deals = DealService(loser, settings)
                await loser_deals.get_deal(deal_id)
                async with file_database.session() as winner:
                    await DealService(winner, settings).cancel_deal(bob_id, deal_id)
                await loser_deals.fund_deal(alice_id, deal_id)

        status, payment_status, types = await _final_state(file_database, settings, deal_id)
        assert status == DealStatus.CANCELLED
        assert payment_status == PaymentStatus.UNPAID
        assert types == []

    @pytest.mark.asyncio
    async def test_cancel_after_committed_fund_is_refused(
        self, file_database: Database, settings: Settings, paired_ids: tuple[int, int, int]
    ) -> None:
        alice_id, bob_id, deal_id = paired_ids

        async with file_database.session() as first:
            await DealService(first, settings).fund_deal(alice_id, deal_id)
        with pytest.raises(CannotCancelFundedDealError):
            async with file_database.session() as second:
                await DealService(second, settings).cancel_deal(bob_id, deal_id)

        status, payment_status, types = await _final_state(file_database, settings, deal_id)
        assert status == DealStatus.WORK_IN_PROGRESS
        assert payment_status == PaymentStatus.FUNDED
        assert types == [TransactionType.ESCROW_DEPOSIT]
