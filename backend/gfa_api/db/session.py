"""
Async engine, per-request sessions and the scoped transaction helper.

Every service function receives the session explicitly and does its
database work inside ``atomic(db)``, which commits on normal exit and rolls
back on any exception, so no half-applied unit is ever committed.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gfa_api.core.config import get_settings
from gfa_api.core.logging import get_logger
from gfa_api.core.metrics import record_db_operation

logger = get_logger(__name__)
settings = get_settings()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
        kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=settings.DEBUG, **kwargs)


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Scoped transaction. Commits when the block exits normally and rolls back
    on any exception before re-raising it.

    Blocks do not nest: the session must be idle on entry. Work that has to
    join an open unit (``release_all_for_user``) takes the session without
    opening its own block.
    """
    if db.in_transaction():
        raise RuntimeError("atomic() entered while the session already holds a transaction")
    try:
        async with db.begin():
            yield db
    except Exception:
        record_db_operation("rollback")
        raise


async def dispose_engine() -> None:
    await engine.dispose()
    logger.info("database_engine_disposed")
