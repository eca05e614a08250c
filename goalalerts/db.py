"""Async engine and the key-value table behind SqlStore."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from goalalerts.config import settings

_ASYNC_SCHEMES = ("postgres://", "postgresql://")


def async_database_url(url: str) -> str:
    """Hosted Postgres URLs come without a driver; pin asyncpg."""
    for scheme in _ASYNC_SCHEMES:
        if url.startswith(scheme):
            return "postgresql+asyncpg://" + url[len(scheme):]
    return url


engine = create_async_engine(async_database_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# One row per engine state key (preferences, milestones, deadlines, streaks, queue)
STATE_TABLE_DDL = (
    "CREATE TABLE IF NOT EXISTS notification_state ("
    "key TEXT PRIMARY KEY, "
    "value TEXT NOT NULL, "
    "updated_at TIMESTAMP WITH TIME ZONE"
    ")"
)


async def init_state_table() -> None:
    async with engine.begin() as conn:
        await conn.execute(text(STATE_TABLE_DDL))
