import random
from collections import Counter

import pytest

from chickfarm.core.errors import InvalidConfiguration
from chickfarm.services.rewards.kinds import ChickenReward, EggReward, UsdtReward
from chickfarm.services.rewards.tables import (DAILY_REWARD_TABLES, DAILY_SPIN_TABLE, MYSTERY_BOX_TABLES,
                                               SUPER_SPIN_TABLE, ChickenChoice, EggRange)
from chickfarm.services.rewards.weighted import draw

TABLE = (("first", 70), ("second", 30))


def test_boundary_selects_next_entry():
    assert draw(TABLE, r=0) == "first"
    assert draw(TABLE, r=69.999) == "first"
    assert draw(TABLE, r=70) == "second"
    assert draw(TABLE, r=99.999) == "second"


def test_last_entry_catches_drift():
    assert draw(TABLE, r=100) == "second"
    assert draw(TABLE, r=1e9) == "second"


@pytest.mark.parametrize("table", [(), (("a", 0), ("b", 0)), (("a", -1), ("b", 5))])
def test_bad_tables(table):
    with pytest.raises(InvalidConfiguration):
        draw(table, r=0)


def test_seeded_draws_follow_weights():
    rng = random.Random(1)
    counts = Counter(draw(TABLE, rng) for _ in range(10_000))
    assert 0.66 < counts["first"] / 10_000 < 0.74


def test_ranges_materialize_inside_bounds():
    rng = random.Random(5)
    prize_range = EggRange(5, 10)
    amounts = {prize_range.materialize(rng).amount for _ in range(500)}
    assert amounts == set(range(5, 11))

    types = {ChickenChoice(("baby", "regular")).materialize(rng).chicken_type for _ in range(100)}
    assert types == {"baby", "regular"}


def test_every_table_is_drawable():
    rng = random.Random(11)
    tables = [DAILY_SPIN_TABLE, SUPER_SPIN_TABLE, *DAILY_REWARD_TABLES.values(), *MYSTERY_BOX_TABLES.values()]
    for table in tables:
        for _ in range(50):
            reward = draw(table, rng).materialize(rng)
            assert reward.type in ("usdt", "chicken", "resources", "eggs")


def test_basic_box_only_gives_eggs():
    rng = random.Random(2)
    for _ in range(200):
        reward = draw(MYSTERY_BOX_TABLES["basic"], rng).materialize(rng)
        assert isinstance(reward, EggReward)
        assert 5 <= reward.amount <= 20


def test_legendary_box_tail():
    table = MYSTERY_BOX_TABLES["legendary"]
    total = sum(w for _, w in table)
    assert draw(table, r=total - 1).materialize(random.Random()) == UsdtReward(500)
    chicken = draw(table, r=35 + 30 + 22).materialize(random.Random(0))
    assert isinstance(chicken, ChickenReward) and chicken.chicken_type in ("regular", "golden")
