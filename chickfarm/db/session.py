from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession, async_sessionmaker,
                                    create_async_engine)

from chickfarm.core.config import make_async_db_url

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None

log = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    url = make_async_db_url(database_url)
    if url.startswith("sqlite+aiosqlite://"):
        # single writer: wait for the file lock instead of failing fast
        return create_async_engine(url, connect_args={"timeout": 30})
    return create_async_engine(url, pool_pre_ping=True, pool_size=10, max_overflow=5)


def init_engine(database_url: str) -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        return
    _engine = build_engine(database_url)
    # objects returned by the facade outlive their session
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
    log.info("db_engine_initialized dialect=%s", _engine.dialect.name)


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _sessionmaker = None
    log.info("db_engine_disposed")


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if _sessionmaker is None:
        raise RuntimeError("DB engine not initialized. Call init_engine() first.")
    return _sessionmaker


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Bare session; the caller commits."""
    async with get_sessionmaker()() as session:
        yield session
