"""Shared test fixtures for the Escrow Platform test suite.

Provides:
    - Test settings with a cheap password hash and a known admin token
    - An in-memory SQLite database and a session per test
    - Signed-up users and deals advanced to each lifecycle stage
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from escrow_platform.config import Settings
from escrow_platform.domain.deal_terms import DealTerms
from escrow_platform.domain.enums import InviteType, PartyRole
from escrow_platform.infrastructure.database.engine import Database
from escrow_platform.infrastructure.database.orm_models import Deal, User
from escrow_platform.services.deal_service import DealService
from escrow_platform.services.identity_service import IdentityService

TEST_ADMIN_TOKEN = "test-admin-token"
SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"

# ---------------------------------------------------------------------------
# Infrastructure Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        app_env="development",
        app_log_level="WARNING",
        database_url=SQLITE_MEMORY_URL,
        admin_api_token=TEST_ADMIN_TOKEN,
        password_hash_rounds=4,
    )


@pytest_asyncio.fixture
async def database() -> AsyncIterator[Database]:
    db = Database(SQLITE_MEMORY_URL)
    await db.open(create_tables=True)
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session() as s:
        yield s


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_terms() -> Callable[..., DealTerms]:
    """Return a factory for valid deal terms; keyword arguments override fields."""

    def _make(**overrides: object) -> DealTerms:
        fields: dict = {
            "service_description": "Design a logo for my bakery",
            "amount": Decimal("100"),
            "deadline": date(2030, 1, 31),
            "creator_role": PartyRole.PAYER,
            "invite_type": InviteType.CODE,
            "invited_username": None,
        }
        fields.update(overrides)
        return DealTerms(**fields)

    return _make


# ---------------------------------------------------------------------------
# User Fixtures
# ---------------------------------------------------------------------------


async def _sign_up(session: AsyncSession, settings: Settings, username: str) -> User:
    return await IdentityService(session, settings).create_user(
        username=username,
        email=f"{username}@example.com",
        password=f"{username}-secret",
    )


@pytest_asyncio.fixture
async def alice(session: AsyncSession, settings: Settings) -> User:
    return await _sign_up(session, settings, "alice")


@pytest_asyncio.fixture
async def bob(session: AsyncSession, settings: Settings) -> User:
    return await _sign_up(session, settings, "bob")


@pytest_asyncio.fixture
async def carol(session: AsyncSession, settings: Settings) -> User:
    return await _sign_up(session, settings, "carol")


# ---------------------------------------------------------------------------
# Deal Fixtures (alice is the payer, bob the provider)
# ---------------------------------------------------------------------------


@pytest.fixture
def deal_service(session: AsyncSession, settings: Settings) -> DealService:
    return DealService(session, settings)


@pytest_asyncio.fixture
async def open_deal(
    deal_service: DealService, alice: User, make_terms: Callable[..., DealTerms]
) -> Deal:
    """A code-invite deal waiting for its counterparty."""
    return await deal_service.create_deal(alice.id, make_terms())


@pytest_asyncio.fixture
async def paired_deal(deal_service: DealService, open_deal: Deal, bob: User) -> Deal:
    """A deal waiting for the payer to fund it."""
    return await deal_service.join_by_code(bob.id, open_deal.invite_code)


@pytest_asyncio.fixture
async def funded_deal(deal_service: DealService, paired_deal: Deal, alice: User) -> Deal:
    return await deal_service.fund_deal(alice.id, paired_deal.id)


@pytest_asyncio.fixture
async def completed_deal(deal_service: DealService, funded_deal: Deal, bob: User) -> Deal:
    """Work delivered, waiting for the payer to confirm or dispute."""
    return await deal_service.mark_work_complete(bob.id, funded_deal.id)
