"""Fixed reward tables.

A table is an ordered tuple of ``(Prize, weight)``. A prize is either a
concrete reward or a range that is materialized after the category draw.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Union

from chickfarm.services.rewards.kinds import ChickenReward, EggReward, ResourceReward, Reward, UsdtReward


@dataclass(frozen=True)
class EggRange:
    low: int
    high: int

    def materialize(self, rng: random.Random) -> Reward:
        return EggReward(rng.randint(self.low, self.high))


@dataclass(frozen=True)
class ResourceRange:
    kind: str
    low: int
    high: int

    def materialize(self, rng: random.Random) -> Reward:
        return ResourceReward(self.kind, rng.randint(self.low, self.high))


@dataclass(frozen=True)
class UsdtRange:
    low_cents: int
    high_cents: int

    def materialize(self, rng: random.Random) -> Reward:
        return UsdtReward(rng.randint(self.low_cents, self.high_cents))


@dataclass(frozen=True)
class ChickenChoice:
    types: tuple[str, ...]

    def materialize(self, rng: random.Random) -> Reward:
        return ChickenReward(rng.choice(self.types))


RangePrize = Union[EggRange, ResourceRange, UsdtRange, ChickenChoice]


@dataclass(frozen=True)
class Prize:
    outcome: Union[Reward, RangePrize]
    rarity: str = "common"

    def materialize(self, rng: random.Random) -> Reward:
        if isinstance(self.outcome, (EggRange, ResourceRange, UsdtRange, ChickenChoice)):
            return self.outcome.materialize(rng)
        return self.outcome


# ==========================
# Daily login reward, by streak day 1..7
# ==========================
DAILY_REWARD_TABLES: dict[int, tuple[tuple[Prize, int], ...]] = {
    1: (
        (Prize(EggRange(5, 10)), 70),
        (Prize(ResourceRange("water", 1, 2)), 30),
    ),
    2: (
        (Prize(EggRange(8, 15)), 60),
        (Prize(ResourceRange("wheat", 1, 3)), 40),
    ),
    3: (
        (Prize(EggRange(10, 20)), 50),
        (Prize(ResourceRange("water", 2, 4)), 25),
        (Prize(ResourceRange("wheat", 2, 4)), 25),
    ),
    4: (
        (Prize(EggRange(15, 25)), 60),
        (Prize(UsdtRange(10, 50), "uncommon"), 40),
    ),
    5: (
        (Prize(EggRange(20, 30)), 50),
        (Prize(ResourceRange("water", 3, 5)), 25),
        (Prize(ResourceRange("wheat", 3, 5)), 25),
    ),
    6: (
        (Prize(EggRange(25, 40)), 60),
        (Prize(UsdtRange(50, 100), "uncommon"), 40),
    ),
    7: (
        (Prize(EggRange(50, 80), "rare"), 60),
        (Prize(UsdtRange(100, 300), "rare"), 30),
        (Prize(ChickenReward("baby"), "epic"), 10),
    ),
}

STREAK_LENGTH = len(DAILY_REWARD_TABLES)


# ==========================
# Spin wheel
# ==========================
DAILY_SPIN_TABLE: tuple[tuple[Prize, int], ...] = (
    (Prize(EggReward(5)), 30),
    (Prize(EggReward(10)), 25),
    (Prize(ResourceReward("water", 3)), 15),
    (Prize(ResourceReward("wheat", 3)), 15),
    (Prize(UsdtReward(50), "uncommon"), 10),
    (Prize(UsdtReward(100), "rare"), 4),
    (Prize(ChickenReward("baby"), "epic"), 1),
)

SUPER_SPIN_TABLE: tuple[tuple[Prize, int], ...] = (
    (Prize(UsdtReward(500)), 30),
    (Prize(EggReward(100)), 25),
    (Prize(UsdtReward(1_000), "uncommon"), 20),
    (Prize(ChickenReward("regular"), "rare"), 15),
    (Prize(UsdtReward(2_500), "epic"), 8),
    (Prize(ChickenReward("golden"), "legendary"), 2),
)


# ==========================
# Mystery boxes (price lives in the price table as mystery_box_<type>)
# ==========================
MYSTERY_BOX_TABLES: dict[str, tuple[tuple[Prize, int], ...]] = {
    "basic": (
        (Prize(EggRange(5, 10)), 50),
        (Prize(EggRange(11, 15), "uncommon"), 40),
        (Prize(EggRange(16, 20), "rare"), 10),
    ),
    "standard": (
        (Prize(EggRange(10, 20)), 45),
        (Prize(EggRange(21, 30), "uncommon"), 35),
        (Prize(EggRange(31, 40), "rare"), 20),
        (Prize(ChickenReward("baby"), "epic"), 5),
    ),
    "advanced": (
        (Prize(EggRange(20, 40)), 40),
        (Prize(EggRange(41, 60), "uncommon"), 35),
        (Prize(EggRange(61, 80), "rare"), 20),
        (Prize(ChickenChoice(("baby", "regular")), "epic"), 8),
        (Prize(UsdtReward(200), "legendary"), 2),
    ),
    "legendary": (
        (Prize(EggRange(50, 100)), 35),
        (Prize(EggRange(101, 150), "uncommon"), 30),
        (Prize(EggRange(151, 200), "rare"), 22),
        (Prize(ChickenChoice(("regular", "golden")), "epic"), 10),
        (Prize(UsdtReward(500), "legendary"), 3),
    ),
}


def box_price_item(box_type: str) -> str:
    return f"mystery_box_{box_type}"
