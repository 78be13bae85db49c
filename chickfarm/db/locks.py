from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

SCHEDULER_LOCK_KEY = 947_382_611  # arbitrary stable int
ACCOUNT_LOCK_NAMESPACE = 947_382  # first half of the (ns, account_id) advisory key


def _is_postgres(session: AsyncSession) -> bool:
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def try_advisory_lock(session: AsyncSession) -> bool:
    if not _is_postgres(session):
        return True
    res = await session.execute(text("SELECT pg_try_advisory_lock(:k)"), {"k": SCHEDULER_LOCK_KEY})
    return bool(res.scalar())


async def advisory_unlock(session: AsyncSession) -> None:
    if not _is_postgres(session):
        return
    await session.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": SCHEDULER_LOCK_KEY})


async def lock_account_xact(session: AsyncSession, account_id: int) -> None:
    """Serializes writers of one account across processes until the transaction ends."""
    if not _is_postgres(session):
        return
    await session.execute(
        text("SELECT pg_advisory_xact_lock(:ns, :id)"),
        {"ns": ACCOUNT_LOCK_NAMESPACE, "id": int(account_id)},
    )


class KeyedLocks:
    """In-process asyncio locks keyed by account id / transaction id."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
