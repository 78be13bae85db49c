import random
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from chickfarm.db import models  # noqa: F401
from chickfarm.db.base import Base
from chickfarm.repo import ensure_account
from chickfarm.scheduler import worker
from chickfarm.services.game import GameService
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import StaticPriceLookup


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'farm.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def game(sessionmaker):
    return GameService(sessionmaker, prices=StaticPriceLookup(), rng=random.Random(7))


@pytest.fixture
def make_account(sessionmaker):
    """Commits a fresh account, optionally under `parent` and with a starting balance."""

    async def _make(*, parent=None, balance_cents=0, tg_id=None):
        async with sessionmaker() as s:
            account, _ = await ensure_account(
                s, tg_id, referral_code=parent.referral_code if parent else None
            )
            if balance_cents:
                await ledger_service.credit(s, account.id, balance_cents)
            await s.commit()
            return account

    return _make


@pytest.fixture
def balance_of(sessionmaker):
    async def _balance(account_id):
        async with sessionmaker() as s:
            return await ledger_service.balance(s, account_id)

    return _balance


@pytest.fixture
def deposit(game):
    async def _deposit(account, amount_cents, transaction_id):
        res = await game.request_deposit(account.id, amount_cents, transaction_id)
        assert res.ok, res
        res = await game.confirm_deposit(transaction_id)
        assert res.ok, res
        return res.value

    return _deposit


@pytest.fixture
def patched_scope(sessionmaker, monkeypatch):
    """Points the scheduler's sessions at the test database."""

    @asynccontextmanager
    async def _scope():
        async with sessionmaker() as s:
            yield s

    monkeypatch.setattr(worker, "session_scope", _scope)
