"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quotaflow.models import Base, Deal, PeriodType, ProductCategory, Target, User


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


# ── Factories ─────────────────────────────────────────────


@pytest.fixture
def add_user(db_session):
    async def _add(email: str = "rep@example.com", display_name: str = "Test Rep") -> User:
        user = User(email=email, display_name=display_name, is_active=True)
        db_session.add(user)
        await db_session.commit()
        return user

    return _add


@pytest.fixture
def add_category(db_session):
    async def _add(name: str) -> ProductCategory:
        category = ProductCategory(name=name)
        db_session.add(category)
        await db_session.commit()
        return category

    return _add


@pytest.fixture
def add_target(db_session):
    async def _add(
        user_id: int,
        quota_amount: str = "100000",
        commission_rate: str = "0.05",
        period_start: date = date(2025, 1, 1),
        period_end: date = date(2025, 12, 31),
        period_type: str = PeriodType.ANNUAL.value,
        **kwargs,
    ) -> Target:
        target = Target(
            user_id=user_id,
            quota_amount=Decimal(quota_amount),
            commission_rate=Decimal(commission_rate),
            period_start=period_start,
            period_end=period_end,
            period_type=period_type,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(target)
        await db_session.commit()
        return target

    return _add


@pytest.fixture
def add_deal(db_session):
    async def _add(
        user_id: int,
        amount: str,
        stage: Optional[str] = "closed_won",
        close_date: date = date(2025, 6, 15),
        **kwargs,
    ) -> Deal:
        deal = Deal(
            user_id=user_id,
            deal_name=kwargs.pop("deal_name", f"Deal {amount}"),
            amount=Decimal(amount),
            stage=stage,
            close_date=close_date,
            **kwargs,
        )
        db_session.add(deal)
        await db_session.commit()
        return deal

    return _add


@pytest_asyncio.fixture
async def rep(add_user) -> User:
    return await add_user()


ACCELERATOR_AT_100 = {
    "type": "accelerator",
    "accelerators": [{"threshold": 100, "multiplier": 1.5}],
}


@pytest_asyncio.fixture
async def annual_target(rep, add_target) -> Target:
    """Quota 100,000 at 5% with a 1.5x accelerator from 100% attainment."""
    return await add_target(rep.id, commission_structure=ACCELERATOR_AT_100)
