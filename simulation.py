#!/usr/bin/env python3
"""Escrow Platform — End-to-End Simulation.

Drives the services directly with two simulated users, Alice and Bob, and
prints each deal's transaction log and notifications.

    Scenario 1: Happy Path
        - Alice (payer) creates a deal and shares the invite code
        - Bob joins as provider, Alice funds, Bob delivers, Alice releases

    Scenario 2: Dispute
        - Bob (provider) invites Alice by username
        - Alice accepts and funds, Bob delivers
        - Alice disputes, both parties message, the admin releases to Bob

    Scenario 3: Cancellation
        - Alice creates a deal, Bob joins, Bob cancels before funding
        - Funding the cancelled deal is refused

Usage:
    # Option A: With Docker (PostgreSQL):
    docker compose up -d
    uv run python simulation.py

    # Option B: Without Docker (SQLite in-memory):
    uv run python simulation.py --sqlite

    # Run a specific scenario:
    uv run python simulation.py --sqlite --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from escrow_platform.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from escrow_platform.config import Settings  # noqa: E402
from escrow_platform.domain.deal_terms import DealTerms  # noqa: E402
from escrow_platform.domain.enums import InviteType, PartyRole  # noqa: E402
from escrow_platform.domain.exceptions import EscrowPlatformError  # noqa: E402
from escrow_platform.infrastructure.database.engine import Database  # noqa: E402
from escrow_platform.services import (  # noqa: E402
    DealService,
    DisputeService,
    IdentityService,
    LedgerService,
    NotificationService,
)

ADMIN_TOKEN = "simulation-admin-token"


def build_database(use_sqlite: bool, settings: Settings) -> Database:
    if use_sqlite:
        return Database("sqlite+aiosqlite:///:memory:")
    return Database.from_settings(settings)


# ---------------------------------------------------------------------------
# Simulated users
# ---------------------------------------------------------------------------
@dataclass
class SimUser:
    """A signed-up user acting through the services, one session per action."""

    database: Database
    settings: Settings
    name: str
    user_id: int = field(default=0)

    @classmethod
    async def sign_up(cls, database: Database, settings: Settings, name: str) -> SimUser:
        # Unique per run so repeated runs against PostgreSQL do not collide.
        username = f"{name.lower()}-{uuid.uuid4().hex[:6]}"
        async with database.session() as session:
            user = await IdentityService(session, settings).create_user(
                username=username,
                email=f"{username}@example.com",
                password=f"{name}-password",
            )
        logger.info("👤 Signed up", user=name, username=username, user_id=user.id)
        return cls(database=database, settings=settings, name=username, user_id=user.id)

    async def create_deal(
        self,
        role: PartyRole,
        amount: Decimal,
        description: str,
        invited_username: str | None = None,
    ) -> tuple[int, str | None]:
        terms = DealTerms(
            service_description=description,
            amount=amount,
            deadline=date.today() + timedelta(days=14),
            creator_role=role,
            invite_type=InviteType.USERNAME if invited_username else InviteType.CODE,
            invited_username=invited_username,
        )
        async with self.database.session() as session:
            deal = await DealService(session, self.settings).create_deal(self.user_id, terms)
        logger.info(
            "📝 Deal created",
            user=self.name,
            deal_id=deal.id,
            role=role.value,
            invite_code=deal.invite_code,
        )
        return deal.id, deal.invite_code

    async def join(self, code: str) -> None:
        async with self.database.session() as session:
            deal = await DealService(session, self.settings).join_by_code(self.user_id, code)
        logger.info("🤝 Joined", user=self.name, deal_id=deal.id, status=deal.status)

    async def accept(self, deal_id: int) -> None:
        async with self.database.session() as session:
            deal = await DealService(session, self.settings).accept_invitation(
                self.user_id, deal_id
            )
        logger.info("🤝 Accepted invitation", user=self.name, deal_id=deal.id)

    async def fund(self, deal_id: int) -> None:
        async with self.database.session() as session:
            deal = await DealService(session, self.settings).fund_deal(self.user_id, deal_id)
        logger.info("💰 Funded", user=self.name, deal_id=deal.id, amount=str(deal.amount))

    async def complete(self, deal_id: int) -> None:
        async with self.database.session() as session:
            await DealService(session, self.settings).mark_work_complete(self.user_id, deal_id)
        logger.info("📦 Work complete", user=self.name, deal_id=deal_id)

    async def release(self, deal_id: int) -> None:
        async with self.database.session() as session:
            await DealService(session, self.settings).confirm_and_release(self.user_id, deal_id)
        logger.info("✅ Released", user=self.name, deal_id=deal_id)

    async def cancel(self, deal_id: int) -> None:
        async with self.database.session() as session:
            await DealService(session, self.settings).cancel_deal(self.user_id, deal_id)
        logger.info("🛑 Cancelled", user=self.name, deal_id=deal_id)

    async def dispute(self, deal_id: int, reason: str) -> None:
        async with self.database.session() as session:
            await DisputeService(session, self.settings).raise_dispute(
                self.user_id, deal_id, reason
            )
        logger.info("⚠️  Dispute raised", user=self.name, deal_id=deal_id)

    async def say(self, deal_id: int, text: str) -> None:
        async with self.database.session() as session:
            await DisputeService(session, self.settings).add_message(self.user_id, deal_id, text)
        logger.info("💬 Message", user=self.name, deal_id=deal_id, text=text)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


async def print_deal_summary(database: Database, settings: Settings, deal_id: int) -> None:
    """Print the final status and the transaction log of a deal."""
    async with database.session() as session:
        status = await DealService(session, settings).get_status(deal_id)
        transactions = await LedgerService(session).list_transactions(deal_id)
        balance = await LedgerService(session).escrow_balance(deal_id)

    print(f"  Status: {status['status']} ({status['payment_status']})")
    print(f"  Allowed next events: {', '.join(status['allowed_events']) or 'none'}")
    print(f"  Escrow balance: {balance}")
    print("\n  📜 Transaction Log:")
    if not transactions:
        print("    (empty)")
    for i, txn in enumerate(transactions, 1):
        target = f" -> {txn.released_to}" if txn.released_to else ""
        print(f"    {i}. [{txn.type}] {txn.amount}{target}")
    print()


async def print_inbox(database: Database, settings: Settings, user: SimUser) -> None:
    async with database.session() as session:
        notifications = await NotificationService(session).list_for_user(user.user_id)
        summary = await DealService(session, settings).dashboard_summary(user.user_id)
    print(
        f"  📬 {user.name}: {summary['unread_notifications']} unread | "
        f"active {summary['active']}, completed {summary['completed']}, "
        f"disputed {summary['disputed']}"
    )
    for n in notifications:
        print(f"    - [{n.type}] {n.message}")


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
async def scenario_1_happy_path(database: Database, settings: Settings) -> None:
    banner("SCENARIO 1: Happy Path — invite code, fund, deliver, release")

    alice = await SimUser.sign_up(database, settings, "Alice")
    bob = await SimUser.sign_up(database, settings, "Bob")

    section("Step 1: Alice creates a deal as payer")
    deal_id, code = await alice.create_deal(
        PartyRole.PAYER, Decimal("250.00"), "Design a logo for my bakery"
    )

    section("Step 2: Bob joins with the invite code")
    await bob.join(code.lower())

    section("Step 3: Alice funds, Bob delivers, Alice releases")
    await alice.fund(deal_id)
    await bob.complete(deal_id)
    await alice.release(deal_id)

    section("Result")
    await print_deal_summary(database, settings, deal_id)
    await print_inbox(database, settings, alice)
    await print_inbox(database, settings, bob)


# ===========================================================================
# Scenario 2: Dispute
# ===========================================================================
async def scenario_2_dispute(database: Database, settings: Settings) -> None:
    banner("SCENARIO 2: Dispute — username invite, admin releases to provider")

    alice = await SimUser.sign_up(database, settings, "Alice")
    bob = await SimUser.sign_up(database, settings, "Bob")

    section("Step 1: Bob creates a deal as provider and invites Alice")
    deal_id, _ = await bob.create_deal(
        PartyRole.PROVIDER,
        Decimal("480.00"),
        "Translate a 20 page contract",
        invited_username=alice.name,
    )

    section("Step 2: Alice accepts and funds, Bob delivers")
    await alice.accept(deal_id)
    await alice.fund(deal_id)
    await bob.complete(deal_id)

    section("Step 3: Alice disputes the delivery")
    await alice.dispute(deal_id, "Two pages are missing")
    await alice.say(deal_id, "Pages 7 and 8 were not translated.")
    await bob.say(deal_id, "They were blank in the original, see attachment.")

    section("Step 4: The admin reviews and releases to the provider")
    async with database.session() as session:
        svc = DisputeService(session, settings)
        open_disputes = await svc.list_open_disputes(ADMIN_TOKEN)
        logger.info("🧑‍⚖️ Open disputes", count=len(open_disputes))
        await svc.resolve_dispute(deal_id, PartyRole.PROVIDER, ADMIN_TOKEN)

    section("Result")
    await print_deal_summary(database, settings, deal_id)
    await print_inbox(database, settings, alice)
    await print_inbox(database, settings, bob)


# ===========================================================================
# Scenario 3: Cancellation
# ===========================================================================
async def scenario_3_cancellation(database: Database, settings: Settings) -> None:
    banner("SCENARIO 3: Cancellation — cancelled before funding")

    alice = await SimUser.sign_up(database, settings, "Alice")
    bob = await SimUser.sign_up(database, settings, "Bob")

    section("Step 1: Alice creates a deal, Bob joins")
    deal_id, code = await alice.create_deal(
        PartyRole.PAYER, Decimal("90.00"), "Proofread a cover letter"
    )
    await bob.join(code)

    section("Step 2: Bob cancels before Alice funds")
    await bob.cancel(deal_id)

    section("Step 3: Alice tries to fund the cancelled deal")
    try:
        await alice.fund(deal_id)
    except EscrowPlatformError as exc:
        print(f"  ❌ Refused: {exc.code} — {exc.message}")

    section("Result")
    await print_deal_summary(database, settings, deal_id)
    await print_inbox(database, settings, alice)


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_dispute,
    3: scenario_3_cancellation,
}


async def run(scenario: int = 0, use_sqlite: bool = False) -> None:
    """Run one scenario, or all of them when ``scenario`` is 0."""
    if scenario and scenario not in SCENARIOS:
        print(f"Unknown scenario {scenario}. Available: 1, 2, 3")
        return

    settings = Settings(admin_api_token=ADMIN_TOKEN, password_hash_rounds=6)
    database = build_database(use_sqlite, settings)
    await database.open(create_tables=True)

    try:
        print("\n" + "🚀" * 35)
        print("  ESCROW PLATFORM — SIMULATION")
        db_type = "SQLite (in-memory)" if use_sqlite else "PostgreSQL"
        print(f"  Database: {db_type}")
        print("🚀" * 35 + "\n")

        selected = [SCENARIOS[scenario]] if scenario else list(SCENARIOS.values())
        for run_scenario in selected:
            await run_scenario(database, settings)

        print("\n" + "=" * 70)
        print("  ✅ SIMULATION COMPLETED SUCCESSFULLY")
        print("=" * 70 + "\n")
    finally:
        await database.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Escrow Platform Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use SQLite in-memory instead of PostgreSQL (no Docker needed).",
    )
    args = parser.parse_args()

    asyncio.run(run(args.scenario, use_sqlite=args.sqlite))
