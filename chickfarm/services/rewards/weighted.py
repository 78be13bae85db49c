from __future__ import annotations

import random
from typing import Sequence, TypeVar

from chickfarm.core.errors import InvalidConfiguration

T = TypeVar("T")


def total_weight(table: Sequence[tuple[T, float]]) -> float:
    if not table:
        raise InvalidConfiguration("empty_reward_table")
    total = 0.0
    for _, weight in table:
        if weight < 0:
            raise InvalidConfiguration("negative_reward_weight")
        total += weight
    if total <= 0:
        raise InvalidConfiguration("reward_table_has_no_weight")
    return total


def draw(table: Sequence[tuple[T, float]], rng: random.Random | None = None, r: float | None = None) -> T:
    """Pick one outcome from an ordered ``(outcome, weight)`` table.

    ``r`` is uniform in ``[0, total)``; the winner is the first entry whose
    cumulative weight is strictly greater than ``r``. With weights 70/30,
    ``r = 70`` lands on the second entry. The last entry catches float drift.
    Passing ``r`` explicitly is for tests.
    """
    total = total_weight(table)
    if r is None:
        r = (rng or random).random() * total

    acc = 0.0
    for outcome, weight in table:
        acc += weight
        if acc > r:
            return outcome
    return table[-1][0]
