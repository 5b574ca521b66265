"""Async SQLAlchemy engine and session factory.

Learn: One engine per process, one AsyncSession per request. The URL
decides the driver: asyncpg against Postgres in production, aiosqlite
in tests. Services own their commits; get_db only guarantees that a
request which blew up mid-transaction leaves nothing half-written.
"""

import json
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog.config import settings


def json_dumps(value) -> str:
    # Non-ASCII stays literal so LIKE on the JSON text matches tags as typed
    return json.dumps(value, ensure_ascii=False)


def _engine_kwargs(url: str) -> dict:
    # SQLite has no connection pool sizing
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 15, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    json_serializer=json_dumps,
    **_engine_kwargs(settings.database_url),
)

# Objects stay readable after commit, so routes can serialise them
async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: a session for the duration of one request."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
