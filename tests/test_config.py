import dataclasses

import pytest

from chickfarm.core.config import make_async_db_url, make_sync_db_url, settings
from chickfarm.core.money import fmt_usdt, percent_of, to_cents


def test_database_urls():
    assert make_async_db_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert make_async_db_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert make_sync_db_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert make_sync_db_url("sqlite+aiosqlite:///farm.db") == "sqlite:///farm.db"
    with pytest.raises(RuntimeError):
        make_async_db_url("mysql://h/db")


def test_admin_ids():
    s = dataclasses.replace(settings, owner_tg_id=10, admin_tg_ids=(20, 30))
    assert s.is_admin(10) and s.is_admin(30)
    assert not s.is_admin(40)
    assert not s.is_admin(None)

    nobody = dataclasses.replace(settings, owner_tg_id=0, admin_tg_ids=())
    assert not nobody.is_admin(0)


def test_money_helpers():
    assert to_cents("10") == 1_000
    assert to_cents("0.015") == 2  # half-up
    assert percent_of(4_000, 5) == 200
    assert percent_of(5, 10) == 1
    assert fmt_usdt(1_050) == "10.50 USDT"
