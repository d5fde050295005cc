"""
Seed demo data for Quotaflow commission testing.

Usage:
    python scripts/seed_demo_data.py

Or with custom DATABASE_URL:
    DATABASE_URL="postgresql://..." python scripts/seed_demo_data.py

This script creates:
- A demo sales rep (if not exists)
- An annual target: quota 100,000, 5% base rate, 1.5x accelerator at 100%
- Three closed-won deals (40,000 + 40,000 + 30,000 = 110% attainment)
and then recalculates the period so every deal is priced at 7.5%.
"""

import asyncio
import os
import sys
from datetime import date
from decimal import Decimal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from quotaflow.config import settings
from quotaflow.models import Base, Deal, PeriodType, Target, User
from quotaflow.services.commission import recalculate_for_target
from quotaflow.services.money import format_currency

DEMO_EMAIL = "demo.rep@example.com"

DEMO_DEALS = [
    {"deal_name": "Acme renewal", "amount": Decimal("40000"), "close_date": date(2025, 3, 14)},
    {"deal_name": "Globex expansion", "amount": Decimal("40000"), "close_date": date(2025, 6, 2)},
    {"deal_name": "Initech new logo", "amount": Decimal("30000"), "close_date": date(2025, 9, 30)},
]


async def create_demo_rep(db: AsyncSession) -> User:
    """Create the demo sales rep."""
    result = await db.execute(select(User).where(User.email == DEMO_EMAIL))
    rep = result.scalar_one_or_none()

    if not rep:
        rep = User(email=DEMO_EMAIL, display_name="Demo Rep", is_active=True)
        db.add(rep)
        await db.flush()
        print(f"Created demo rep: {DEMO_EMAIL}")
    else:
        print(f"Demo rep already exists (id={rep.id})")

    return rep


async def create_demo_target(db: AsyncSession, rep: User) -> Target:
    """Create the annual 2025 target with an accelerator tier."""
    target = Target(
        user_id=rep.id,
        name="DR-ANNUAL-2025",
        period_type=PeriodType.ANNUAL.value,
        period_start=date(2025, 1, 1),
        period_end=date(2025, 12, 31),
        quota_amount=Decimal("100000"),
        commission_rate=Decimal("0.05"),
        is_active=True,
        commission_structure={
            "type": "accelerator",
            "accelerators": [{"threshold": 100, "multiplier": 1.5}],
        },
        performance_gates={
            "gates": [
                {
                    "name": "Minimum attainment",
                    "metric": "quota_attainment",
                    "operator": "<",
                    "value": 25,
                    "enforcement": "hard",
                    "penalty_type": "zero_commission",
                }
            ]
        },
    )
    db.add(target)
    await db.flush()
    print(f"Created target #{target.id} ({target.name})")
    return target


async def create_demo_deals(db: AsyncSession, rep: User) -> list[Deal]:
    deals = []
    for fields in DEMO_DEALS:
        deal = Deal(user_id=rep.id, stage="Closed Won", **fields)
        db.add(deal)
        deals.append(deal)
    await db.flush()
    for deal in deals:
        print(f"Created deal #{deal.id} {deal.deal_name} ({format_currency(deal.amount)})")
    return deals


async def seed_all(create_schema: bool = False):
    """Create demo data and run a period recalculation."""
    print(f"\nConnecting to database...")
    print(f"URL: {settings.database_url[:50]}...")

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    if create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        print("\n=== Creating demo data ===\n")

        rep = await create_demo_rep(db)
        target = await create_demo_target(db, rep)
        deals = await create_demo_deals(db, rep)
        await db.commit()

        result = await recalculate_for_target(db, target.id)

        print("\n" + "=" * 50)
        print("DEMO DATA CREATED SUCCESSFULLY!")
        print("=" * 50)
        if result:
            print(f"Attainment: {result.metrics.attainment_percent:.2f}%")
            print(f"Final rate: {result.decision.final_rate}")
        for deal in deals:
            print(f"  - {deal.deal_name}: {format_currency(deal.commission_amount)}")

    await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed demo data for Quotaflow")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables from the ORM metadata before seeding",
    )

    args = parser.parse_args()

    asyncio.run(seed_all(create_schema=args.create_schema))
