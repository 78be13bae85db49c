from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select

from chickfarm.core.config import settings
from chickfarm.core.errors import CooldownActive, InvalidConfiguration, NotFound
from chickfarm.core.money import percent_of
from chickfarm.core.time import ensure_aware_utc, fmt_timedelta, utcnow
from chickfarm.db.models import Chicken, ResourceBundle
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import PriceLookup, price_lookup

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChickenSpec:
    price_item: str
    water: int
    wheat: int
    eggs: int
    cooldown: timedelta


CHICKEN_SPECS: dict[str, ChickenSpec] = {
    "baby": ChickenSpec("baby_chicken", water=1, wheat=1, eggs=2, cooldown=timedelta(hours=6)),
    "regular": ChickenSpec("regular_chicken", water=2, wheat=2, eggs=5, cooldown=timedelta(hours=5)),
    "golden": ChickenSpec("golden_chicken", water=10, wheat=15, eggs=20, cooldown=timedelta(hours=3)),
}

# market item -> inventory delta name
RESOURCE_ITEMS = {"water_bucket": "water", "wheat_bag": "wheat"}


@dataclass(frozen=True)
class Readiness:
    ready: bool
    remaining: timedelta


@dataclass(frozen=True)
class HatchResult:
    chicken: Chicken
    eggs: int
    resources: ResourceBundle


def chicken_spec(chicken_type: str) -> ChickenSpec:
    try:
        return CHICKEN_SPECS[chicken_type]
    except KeyError:
        raise InvalidConfiguration(f"unknown chicken type {chicken_type!r}") from None


def readiness(chicken: Chicken, now: datetime | None = None) -> Readiness:
    """Cooling -> Ready once `cooldown` has elapsed since the last hatch.

    A chicken that never hatched is Ready.
    """
    last = ensure_aware_utc(chicken.last_hatch_time)
    if last is None:
        return Readiness(True, timedelta(0))
    ready_at = last + chicken_spec(chicken.type).cooldown
    now = ensure_aware_utc(now or utcnow())
    if now >= ready_at:
        return Readiness(True, timedelta(0))
    return Readiness(False, ready_at - now)


def _positive_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValueError("quantity_must_be_positive_int")
    return quantity


class FarmService:
    """Chickens (discrete assets) and the resource market."""

    def __init__(self, prices: PriceLookup = price_lookup) -> None:
        self.prices = prices

    async def list_chickens(self, session, account_id: int) -> list[Chicken]:
        q = select(Chicken).where(Chicken.account_id == account_id).order_by(Chicken.id.asc())
        return list((await session.scalars(q)).all())

    async def get_owned(self, session, account_id: int, chicken_id: int) -> Chicken:
        chicken = await session.get(Chicken, chicken_id)
        if not chicken or chicken.account_id != account_id:
            raise NotFound(f"chicken {chicken_id} not found")
        return chicken

    async def grant(self, session, account_id: int, chicken_type: str) -> Chicken:
        chicken_spec(chicken_type)
        chicken = Chicken(account_id=account_id, type=chicken_type, last_hatch_time=None)
        session.add(chicken)
        await session.flush()
        return chicken

    async def purchase(self, session, account_id: int, chicken_type: str, *, now: datetime | None = None) -> Chicken:
        spec = chicken_spec(chicken_type)
        price = await self.prices.get(session, spec.price_item)

        # debit first: a failed debit leaves no chicken behind
        await ledger_service.debit(session, account_id, price)
        chicken = await self.grant(session, account_id, chicken_type)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="purchase",
            amount_cents=price,
            meta={"item_type": spec.price_item, "chicken_id": chicken.id},
            now=now,
        )
        log.info("chicken_purchased account_id=%s chicken_id=%s type=%s", account_id, chicken.id, chicken_type)
        return chicken

    async def hatch(self, session, account_id: int, chicken_id: int, *, now: datetime | None = None) -> HatchResult:
        now = now or utcnow()
        chicken = await self.get_owned(session, account_id, chicken_id)
        spec = chicken_spec(chicken.type)

        state = readiness(chicken, now)
        if not state.ready:
            raise CooldownActive(f"chicken {chicken_id} ready in {fmt_timedelta(state.remaining)}")

        # feed and collect in one guarded update
        bundle = await inventory_service.apply_delta(
            session,
            account_id,
            water=-spec.water,
            wheat=-spec.wheat,
            eggs=spec.eggs,
        )
        chicken.last_hatch_time = now
        await session.flush()
        log.info("chicken_hatched account_id=%s chicken_id=%s eggs=%s", account_id, chicken_id, spec.eggs)
        return HatchResult(chicken=chicken, eggs=spec.eggs, resources=bundle)

    async def sell(self, session, account_id: int, chicken_id: int, *, now: datetime | None = None) -> int:
        chicken = await self.get_owned(session, account_id, chicken_id)
        spec = chicken_spec(chicken.type)
        price = await self.prices.get(session, spec.price_item)
        amount = percent_of(price, settings.sell_back_percent)

        await session.delete(chicken)
        await session.flush()
        await ledger_service.credit(session, account_id, amount)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="sale",
            amount_cents=amount,
            meta={"item_type": spec.price_item, "action": "sell", "chicken_id": chicken_id},
            now=now,
        )
        log.info("chicken_sold account_id=%s chicken_id=%s amount_cents=%s", account_id, chicken_id, amount)
        return amount

    async def buy_resource(
        self,
        session,
        account_id: int,
        item_type: str,
        quantity: int,
        *,
        now: datetime | None = None,
    ) -> ResourceBundle:
        quantity = _positive_quantity(quantity)
        if item_type not in RESOURCE_ITEMS:
            raise InvalidConfiguration(f"{item_type!r} is not sold on the market")
        total = await self.prices.get(session, item_type) * quantity

        await ledger_service.debit(session, account_id, total)
        bundle = await inventory_service.apply_delta(session, account_id, **{RESOURCE_ITEMS[item_type]: quantity})
        await ledger_service.log(
            session,
            account_id=account_id,
            type="purchase",
            amount_cents=total,
            meta={"item_type": item_type, "quantity": quantity},
            now=now,
        )
        return bundle

    async def sell_eggs(self, session, account_id: int, quantity: int, *, now: datetime | None = None) -> int:
        quantity = _positive_quantity(quantity)
        total = await self.prices.get(session, "egg") * quantity

        await inventory_service.apply_delta(session, account_id, eggs=-quantity)
        await ledger_service.credit(session, account_id, total)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="sale",
            amount_cents=total,
            meta={"item_type": "egg", "quantity": quantity},
            now=now,
        )
        return total


farm_service = FarmService()
