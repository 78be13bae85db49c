from datetime import datetime, timedelta, timezone

import pytest

from chickfarm.core.errors import CooldownActive, InsufficientFunds, InsufficientResources, InvalidConfiguration, NotFound
from chickfarm.services.farm.service import FarmService, readiness
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import StaticPriceLookup

T = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def farm():
    return FarmService(StaticPriceLookup())


async def test_sell_round_trip(session, make_account, farm):
    acc = await make_account(balance_cents=20_000)

    chicken = await farm.purchase(session, acc.id, "regular")
    chicken_id = chicken.id
    assert await ledger_service.balance(session, acc.id) == 5_000

    amount = await farm.sell(session, acc.id, chicken_id)
    assert amount == 11_250  # 75% of 150 USDT
    assert await ledger_service.balance(session, acc.id) == 16_250
    assert chicken_id not in [c.id for c in await farm.list_chickens(session, acc.id)]

    with pytest.raises(NotFound):
        await farm.sell(session, acc.id, chicken_id)


async def test_failed_purchase_leaves_no_chicken(session, make_account, farm):
    acc = await make_account(balance_cents=8_999)

    with pytest.raises(InsufficientFunds):
        await farm.purchase(session, acc.id, "baby")
    assert await farm.list_chickens(session, acc.id) == []
    assert await ledger_service.balance(session, acc.id) == 8_999

    with pytest.raises(InvalidConfiguration):
        await farm.purchase(session, acc.id, "platinum")


async def test_sell_someone_elses_chicken(session, make_account, farm):
    owner = await make_account()
    other = await make_account()
    chicken = await farm.grant(session, owner.id, "golden")

    with pytest.raises(NotFound):
        await farm.sell(session, other.id, chicken.id)
    with pytest.raises(NotFound):
        await farm.hatch(session, other.id, chicken.id)


async def test_hatch_cooldown_boundary(session, make_account, farm):
    acc = await make_account()
    chicken = await farm.grant(session, acc.id, "baby")
    await inventory_service.apply_delta(session, acc.id, water=5, wheat=5)

    assert readiness(chicken, T).ready

    res = await farm.hatch(session, acc.id, chicken.id, now=T)
    assert res.eggs == 2

    state = readiness(chicken, T + timedelta(hours=1))
    assert not state.ready
    assert state.remaining == timedelta(hours=5)

    with pytest.raises(CooldownActive):
        await farm.hatch(session, acc.id, chicken.id, now=T + timedelta(hours=6) - timedelta(seconds=1))

    res = await farm.hatch(session, acc.id, chicken.id, now=T + timedelta(hours=6))
    assert res.resources.eggs == 4
    assert (res.resources.water_buckets, res.resources.wheat_bags) == (3, 3)


async def test_hatch_needs_feed(session, make_account, farm):
    acc = await make_account()
    chicken = await farm.grant(session, acc.id, "golden")
    await inventory_service.apply_delta(session, acc.id, water=10, wheat=14)

    with pytest.raises(InsufficientResources):
        await farm.hatch(session, acc.id, chicken.id, now=T)
    assert chicken.last_hatch_time is None

    bundle = await inventory_service.get_or_create(session, acc.id)
    assert (bundle.water_buckets, bundle.wheat_bags, bundle.eggs) == (10, 14, 0)


async def test_resource_market(session, make_account, farm):
    acc = await make_account(balance_cents=1_000)

    bundle = await farm.buy_resource(session, acc.id, "water_bucket", 10)
    assert bundle.water_buckets == 10
    assert await ledger_service.balance(session, acc.id) == 500

    with pytest.raises(InsufficientFunds):
        await farm.buy_resource(session, acc.id, "wheat_bag", 11)
    with pytest.raises(InvalidConfiguration):
        await farm.buy_resource(session, acc.id, "egg", 1)
    with pytest.raises(ValueError):
        await farm.buy_resource(session, acc.id, "wheat_bag", 0)


async def test_sell_eggs(session, make_account, farm):
    acc = await make_account()
    await inventory_service.apply_delta(session, acc.id, eggs=25)

    assert await farm.sell_eggs(session, acc.id, 20) == 200
    assert await ledger_service.balance(session, acc.id) == 200

    with pytest.raises(InsufficientResources):
        await farm.sell_eggs(session, acc.id, 6)
    assert (await inventory_service.get_or_create(session, acc.id)).eggs == 5
