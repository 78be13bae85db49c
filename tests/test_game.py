import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from chickfarm.core.errors import Conflict, InsufficientFunds
from chickfarm.services.game import GameService
from chickfarm.services.prices.service import DbPriceLookup
from chickfarm.services.referrals.service import referral_service

NOW = datetime(2026, 5, 4, 8, 0, tzinfo=timezone.utc)


async def test_expected_failures_become_results(game, make_account):
    acc = await make_account(balance_cents=100)

    res = await game.buy_chicken(acc.id, "baby")
    assert (res.ok, res.error) == (False, "insufficient_funds")

    res = await game.sell_eggs(acc.id, 0)
    assert (res.ok, res.error) == (False, "invalid_input")

    res = await game.buy_chicken(acc.id, "platinum")
    assert (res.ok, res.error) == (False, "invalid_configuration")

    res = await game.open_mystery_box(acc.id)
    assert res.error == "no_boxes_available"

    res = await game.claim_milestone_reward(acc.id, 999)
    assert res.error == "not_found"


async def test_conflict_is_retried_once(game):
    calls = []

    async def flaky(session):
        calls.append(1)
        if len(calls) == 1:
            raise Conflict("busy")
        return "done"

    res = await game._run("flaky", flaky, lock_key="k")
    assert (res.ok, res.value, len(calls)) == (True, "done", 2)

    async def always_busy(session):
        calls.append(1)
        raise Conflict("busy")

    calls.clear()
    res = await game._run("busy", always_busy, lock_key="k")
    assert (res.ok, res.error, len(calls)) == (False, "conflict", 2)


async def test_business_errors_are_not_retried(game):
    calls = []

    async def broke(session):
        calls.append(1)
        raise InsufficientFunds("need 500, have 0")

    res = await game._run("broke", broke, lock_key="k")
    assert (res.ok, res.error, len(calls)) == (False, "insufficient_funds", 1)


async def test_unexpected_errors_propagate(game):
    async def broken(session):
        raise KeyError("boom")

    with pytest.raises(KeyError):
        await game._run("broken", broken, lock_key="k")


async def test_set_price(sessionmaker, game, make_account, balance_of):
    res = await game.set_price("baby_chicken", 100)
    assert res.error == "invalid_configuration"

    tunable = GameService(sessionmaker, prices=DbPriceLookup())
    assert (await tunable.set_price("baby_chicken", 100)).ok
    assert (await tunable.set_price("rocket", 100)).error == "invalid_configuration"
    assert (await tunable.set_price("baby_chicken", 0)).error == "invalid_input"

    acc = await make_account(balance_cents=150)
    assert (await tunable.buy_chicken(acc.id, "baby")).ok
    assert await balance_of(acc.id) == 50


async def test_parallel_purchases_never_overdraw(game, make_account, balance_of):
    acc = await make_account(balance_cents=18_000)

    results = await asyncio.gather(*(game.buy_chicken(acc.id, "baby") for _ in range(5)))

    assert sum(r.ok for r in results) == 2
    assert {r.error for r in results if not r.ok} == {"insufficient_funds"}
    assert await balance_of(acc.id) == 0
    assert len(game.locks) == 0


async def test_grant_extra_spins(game, make_account):
    acc = await make_account()

    assert (await game.grant_extra_spins(acc.id, 2)).value == 2
    assert (await game.grant_extra_spins(acc.id, 0)).error == "invalid_input"
    assert (await game.grant_extra_spins(acc.id + 100, 1)).error == "not_found"

    assert (await game.spin_daily(acc.id, now=NOW)).ok
    assert (await game.spin_daily(acc.id, now=NOW)).ok
    assert (await game.spin_daily(acc.id, now=NOW)).ok
    assert (await game.spin_daily(acc.id, now=NOW)).error == "no_spins_available"


async def test_full_flow(game, make_account, balance_of):
    boss = (await game.register_account(500, username="boss")).value
    player = (await game.register_account(501, referral_code=boss.referral_code)).value

    assert (await game.request_deposit(player.id, 20_000, "tx-flow", now=NOW)).ok
    conf = (await game.confirm_deposit("tx-flow", now=NOW)).value
    assert conf.bonus_cents == 2_000
    assert conf.commissions == ((1, boss.id, 2_000),)
    assert await balance_of(player.id) == 22_000

    chicken = (await game.buy_chicken(player.id, "baby", now=NOW)).value
    assert (await game.buy_resource(player.id, "water_bucket", 4, now=NOW)).ok
    assert (await game.buy_resource(player.id, "wheat_bag", 4, now=NOW)).ok
    assert await balance_of(player.id) == 22_000 - 9_000 - 400

    assert (await game.hatch_chicken(player.id, chicken.id, now=NOW)).value.eggs == 2
    early = await game.hatch_chicken(player.id, chicken.id, now=NOW + timedelta(hours=1))
    assert early.error == "cooldown_active"
    assert (await game.hatch_chicken(player.id, chicken.id, now=NOW + timedelta(hours=6))).ok
    assert (await game.sell_eggs(player.id, 4, now=NOW + timedelta(hours=6))).value == 40

    withdrawal = (await game.request_withdrawal(player.id, 10_000, "TXYZabcdefghijklmnopqrstuvwx12345")).value
    assert (await game.reject_transaction(withdrawal.transaction_id)).ok
    assert (await game.complete_withdrawal(withdrawal.transaction_id)).error == "invalid_transition"
    assert await balance_of(player.id) == 22_000 - 9_000 - 400 + 40

    async with game._sm()() as s:
        earning_id = (await referral_service.list_earnings(s, boss.id))[0].id
    before = await balance_of(boss.id)
    assert (await game.claim_referral_earning(boss.id, earning_id)).ok
    assert await balance_of(boss.id) == before + 2_000
