import pytest

from chickfarm.core.errors import InsufficientResources, NotFound
from chickfarm.services.inventory.service import inventory_service


async def test_bundle_starts_empty(session, make_account):
    acc = await make_account()

    bundle = await inventory_service.get_or_create(session, acc.id)
    assert (bundle.water_buckets, bundle.wheat_bags, bundle.eggs, bundle.mystery_boxes) == (0, 0, 0, 0)
    assert await inventory_service.get_or_create(session, acc.id) is bundle

    with pytest.raises(NotFound):
        await inventory_service.get_or_create(session, 12345)


async def test_delta_is_all_or_nothing(session, make_account):
    acc = await make_account()
    await inventory_service.apply_delta(session, acc.id, water=5, wheat=1)

    with pytest.raises(InsufficientResources) as exc:
        await inventory_service.apply_delta(session, acc.id, water=-1, wheat=-2, eggs=10)
    assert "wheat" in exc.value.message

    bundle = await inventory_service.get_or_create(session, acc.id)
    assert (bundle.water_buckets, bundle.wheat_bags, bundle.eggs) == (5, 1, 0)

    bundle = await inventory_service.apply_delta(session, acc.id, water=-5, wheat=-1, eggs=3)
    assert (bundle.water_buckets, bundle.wheat_bags, bundle.eggs) == (0, 0, 3)
