from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from chickfarm.core.errors import InvalidConfiguration
from chickfarm.services.farm.service import CHICKEN_SPECS, farm_service
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsdtReward:
    amount_cents: int
    type = "usdt"


@dataclass(frozen=True)
class ChickenReward:
    chicken_type: str
    type = "chicken"


@dataclass(frozen=True)
class ResourceReward:
    kind: str  # water | wheat
    amount: int
    type = "resources"


@dataclass(frozen=True)
class EggReward:
    amount: int
    type = "eggs"


Reward = Union[UsdtReward, ChickenReward, ResourceReward, EggReward]

RESOURCE_KINDS = ("water", "wheat")


def to_dict(reward: Reward) -> dict[str, Any]:
    if isinstance(reward, UsdtReward):
        return {"amount_cents": reward.amount_cents}
    if isinstance(reward, ChickenReward):
        return {"chicken_type": reward.chicken_type}
    if isinstance(reward, ResourceReward):
        return {"kind": reward.kind, "amount": reward.amount}
    if isinstance(reward, EggReward):
        return {"amount": reward.amount}
    raise InvalidConfiguration(f"unknown reward {reward!r}")


def from_dict(reward_type: str | None, details: dict[str, Any] | None) -> Reward:
    details = details or {}
    try:
        if reward_type == "usdt":
            return UsdtReward(int(details["amount_cents"]))
        if reward_type == "chicken":
            return ChickenReward(str(details["chicken_type"]))
        if reward_type == "resources":
            return ResourceReward(str(details["kind"]), int(details["amount"]))
        if reward_type == "eggs":
            return EggReward(int(details["amount"]))
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidConfiguration(f"malformed {reward_type} reward: {details!r}") from e
    raise InvalidConfiguration(f"unknown reward type {reward_type!r}")


def describe(reward: Reward) -> str:
    if isinstance(reward, UsdtReward):
        return f"{reward.amount_cents / 100:.2f} USDT"
    if isinstance(reward, ChickenReward):
        return f"1 {reward.chicken_type} chicken"
    if isinstance(reward, ResourceReward):
        unit = "water buckets" if reward.kind == "water" else "wheat bags"
        return f"{reward.amount} {unit}"
    return f"{reward.amount} eggs"


async def apply_reward(
    session,
    account_id: int,
    reward: Reward,
    *,
    source: str,
    now: datetime | None = None,
) -> None:
    """Moves a materialized reward into the ledger / inventory / chicken registry."""
    if isinstance(reward, UsdtReward):
        if reward.amount_cents <= 0:
            raise InvalidConfiguration("usdt reward must be positive")
        await ledger_service.credit(session, account_id, reward.amount_cents)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="bonus",
            amount_cents=reward.amount_cents,
            meta={"kind": source},
            now=now,
        )
    elif isinstance(reward, ChickenReward):
        if reward.chicken_type not in CHICKEN_SPECS:
            raise InvalidConfiguration(f"unknown chicken type {reward.chicken_type!r}")
        await farm_service.grant(session, account_id, reward.chicken_type)
    elif isinstance(reward, ResourceReward):
        if reward.kind not in RESOURCE_KINDS:
            raise InvalidConfiguration(f"unknown resource kind {reward.kind!r}")
        await inventory_service.apply_delta(session, account_id, **{reward.kind: reward.amount})
    elif isinstance(reward, EggReward):
        await inventory_service.apply_delta(session, account_id, eggs=reward.amount)
    else:
        raise InvalidConfiguration(f"unknown reward {reward!r}")

    log.info("reward_applied account_id=%s source=%s reward=%s", account_id, source, describe(reward))
