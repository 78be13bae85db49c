import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from chickfarm.core.errors import (AlreadyClaimed, InsufficientFunds, InvalidConfiguration, InvalidTransition,
                                   NoBoxesAvailable, NoSpinsAvailable, NotFound)
from chickfarm.db.models import Account, SpinHistory, Transaction
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import StaticPriceLookup
from chickfarm.services.rewards.daily import daily_reward_service, next_streak_day
from chickfarm.services.rewards.kinds import EggReward, UsdtReward, apply_reward, from_dict, to_dict
from chickfarm.services.rewards.mystery_box import MysteryBoxService
from chickfarm.services.rewards.spin import spin_service

NOW = datetime(2026, 5, 10, 9, 30, tzinfo=timezone.utc)


def test_streak_rules():
    yesterday = NOW - timedelta(days=1)
    assert next_streak_day(0, None, NOW) == 1
    assert next_streak_day(3, yesterday, NOW) == 4
    assert next_streak_day(3, NOW - timedelta(days=2), NOW) == 1
    assert next_streak_day(7, yesterday, NOW) == 1
    # calendar days, not 24h windows
    assert next_streak_day(2, datetime(2026, 5, 9, 23, 59, tzinfo=timezone.utc), datetime(2026, 5, 10, 0, 1, tzinfo=timezone.utc)) == 3


def test_reward_dicts():
    for reward in (UsdtReward(150), EggReward(7)):
        assert from_dict(reward.type, to_dict(reward)) == reward
    with pytest.raises(InvalidConfiguration):
        from_dict("diamonds", {"amount": 1})
    with pytest.raises(InvalidConfiguration):
        from_dict("eggs", {})


async def test_daily_reward_once_per_day(session, make_account):
    acc = await make_account()
    rng = random.Random(3)

    row = await daily_reward_service.get(session, acc.id, rng=rng, now=NOW)
    again = await daily_reward_service.get(session, acc.id, rng=rng, now=NOW + timedelta(hours=5))
    assert again.id == row.id
    assert row.day == 1

    await daily_reward_service.claim(session, acc.id, row.id, now=NOW)
    with pytest.raises(AlreadyClaimed):
        await daily_reward_service.claim(session, acc.id, row.id, now=NOW)

    account = await session.get(Account, acc.id)
    assert account.current_streak == 1

    tomorrow = await daily_reward_service.get(session, acc.id, rng=rng, now=NOW + timedelta(days=1))
    assert tomorrow.id != row.id
    assert tomorrow.day == 2

    with pytest.raises(NotFound):
        await daily_reward_service.claim(session, acc.id, 999, now=NOW)


async def test_daily_reward_is_applied(session, make_account):
    acc = await make_account()
    row = await daily_reward_service.get(session, acc.id, rng=random.Random(1), now=NOW)
    reward = from_dict(row.reward_type, row.reward_details)
    before_balance = await ledger_service.balance(session, acc.id)
    before = await inventory_service.get_or_create(session, acc.id)
    before_eggs, before_water = before.eggs, before.water_buckets

    await daily_reward_service.claim(session, acc.id, row.id, now=NOW)

    bundle = await inventory_service.get_or_create(session, acc.id)
    if reward.type == "eggs":
        assert bundle.eggs == before_eggs + reward.amount
    elif reward.type == "resources" and reward.kind == "water":
        assert bundle.water_buckets == before_water + reward.amount
    elif reward.type == "usdt":
        assert await ledger_service.balance(session, acc.id) == before_balance + reward.amount_cents


async def test_apply_usdt_reward_logs_bonus(session, make_account):
    acc = await make_account()
    await apply_reward(session, acc.id, UsdtReward(300), source="daily_spin", now=NOW)

    assert await ledger_service.balance(session, acc.id) == 300
    tx = (await ledger_service.list_transactions(session, acc.id))[0]
    assert (tx.type, tx.status, tx.amount_cents, tx.meta["kind"]) == ("bonus", "completed", 300, "daily_spin")


async def test_daily_spin_gate_then_extra_spins(session, make_account):
    acc = await make_account()
    rng = random.Random(4)

    first = await spin_service.spin_daily(session, acc.id, rng=rng, now=NOW)
    assert first.gate == "daily"
    with pytest.raises(NoSpinsAvailable):
        await spin_service.spin_daily(session, acc.id, rng=rng, now=NOW + timedelta(hours=1))

    assert await spin_service.grant_extra_spins(session, acc.id, 2) == 2
    extra = await spin_service.spin_daily(session, acc.id, rng=rng, now=NOW + timedelta(hours=2))
    assert extra.gate == "extra"

    # new UTC day: free spin first, extras untouched
    nxt = await spin_service.spin_daily(session, acc.id, rng=rng, now=NOW + timedelta(days=1))
    assert nxt.gate == "daily"
    account = await session.get(Account, acc.id)
    assert account.extra_spins_available == 1

    spins = await session.scalar(select(func.count(SpinHistory.id)).where(SpinHistory.account_id == acc.id))
    assert spins == 3

    with pytest.raises(ValueError):
        await spin_service.grant_extra_spins(session, acc.id, 0)


async def test_super_spin_costs_ten_usdt(session, make_account):
    poor = await make_account(balance_cents=999)
    acc = await make_account(balance_cents=2_000)

    with pytest.raises(InsufficientFunds):
        await spin_service.spin_super(session, poor.id, rng=random.Random(1), now=NOW)

    result = await spin_service.spin_super(session, acc.id, rng=random.Random(1), now=NOW)
    expected = 1_000 + (result.reward.amount_cents if isinstance(result.reward, UsdtReward) else 0)
    assert await ledger_service.balance(session, acc.id) == expected
    assert result.history.spin_type == "super"

    purchase = await session.scalar(
        select(Transaction).where(Transaction.account_id == acc.id, Transaction.type == "purchase")
    )
    assert purchase.amount_cents == 1_000


async def test_mystery_box_lifecycle(session, make_account):
    acc = await make_account(balance_cents=500)
    boxes = MysteryBoxService(StaticPriceLookup())

    with pytest.raises(NoBoxesAvailable):
        await boxes.open(session, acc.id, rng=random.Random(1), now=NOW)

    box = await boxes.buy(session, acc.id, "basic", now=NOW)
    assert await ledger_service.balance(session, acc.id) == 0
    assert (await inventory_service.get_or_create(session, acc.id)).mystery_boxes == 1

    with pytest.raises(InvalidTransition):
        await boxes.claim(session, acc.id, box.id, now=NOW)

    opened = await boxes.open(session, acc.id, rng=random.Random(1), now=NOW)
    assert opened.id == box.id
    assert opened.reward_type == "eggs"
    assert opened.rarity in ("common", "uncommon", "rare")
    amount = opened.reward_details["amount"]
    assert 5 <= amount <= 20
    assert (await inventory_service.get_or_create(session, acc.id)).mystery_boxes == 0

    await boxes.claim(session, acc.id, box.id, now=NOW)
    assert (await inventory_service.get_or_create(session, acc.id)).eggs == amount
    with pytest.raises(AlreadyClaimed):
        await boxes.claim(session, acc.id, box.id, now=NOW)

    with pytest.raises(NoBoxesAvailable):
        await boxes.open(session, acc.id, rng=random.Random(1), now=NOW)


async def test_mystery_box_unknown_type_charges_nothing(session, make_account):
    acc = await make_account(balance_cents=4_000)
    boxes = MysteryBoxService(StaticPriceLookup())

    with pytest.raises(InvalidConfiguration):
        await boxes.buy(session, acc.id, "mythic", now=NOW)
    with pytest.raises(InsufficientFunds):
        await boxes.buy(session, acc.id, "legendary", now=NOW)
    assert await ledger_service.balance(session, acc.id) == 4_000


async def test_daily_spin_day_is_utc_whatever_the_offset(session, make_account):
    acc = await make_account()
    rng = random.Random(3)
    first = datetime(2026, 5, 4, 1, 0, tzinfo=timezone.utc)
    await spin_service.spin_daily(session, acc.id, rng=rng, now=first)

    # 17:00 at UTC-5 is 22:00 UTC on the same day
    new_york = timezone(timedelta(hours=-5))
    with pytest.raises(NoSpinsAvailable):
        await spin_service.spin_daily(session, acc.id, rng=rng, now=datetime(2026, 5, 4, 17, 0, tzinfo=new_york))

    # 20:00 at UTC-5 is already the next UTC day
    nxt = await spin_service.spin_daily(session, acc.id, rng=rng, now=datetime(2026, 5, 4, 20, 0, tzinfo=new_york))
    assert nxt.gate == "daily"
