"""
Async SQLAlchemy engine and session factories.

Production runs on PostgreSQL through asyncpg behind a transaction
pooler; tests and local runs may point DATABASE_URL at SQLite
(aiosqlite) instead.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from quotaflow.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"poolclass": NullPool, "echo": False}
    if settings.uses_asyncpg:
        # Prepared statements don't survive a transaction pooler
        options["connect_args"] = {"statement_cache_size": 0}
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# Objects stay usable after commit: engine results are read after the write-back
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a session per request.

    Commits when the endpoint returns, rolls back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for code outside a request: scheduler jobs and scripts.

        async with get_db_context() as db:
            await reconcile_missing_commissions(db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
