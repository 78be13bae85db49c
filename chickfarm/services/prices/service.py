from __future__ import annotations

import logging
from typing import Mapping, Protocol

from sqlalchemy import select

from chickfarm.core.errors import InvalidConfiguration
from chickfarm.core.time import utcnow
from chickfarm.db.models import Price

log = logging.getLogger(__name__)

# USDT cents
DEFAULT_PRICES: dict[str, int] = {
    "baby_chicken": 9_000,
    "regular_chicken": 15_000,
    "golden_chicken": 40_000,
    "water_bucket": 50,
    "wheat_bag": 50,
    "egg": 10,
    "mystery_box_basic": 500,
    "mystery_box_standard": 1_000,
    "mystery_box_advanced": 2_000,
    "mystery_box_legendary": 5_000,
}


class PriceLookup(Protocol):
    async def get(self, session, item_type: str) -> int: ...


class StaticPriceLookup:
    """Fixed table; used by tests and as the fallback of the DB lookup."""

    def __init__(self, prices: Mapping[str, int] | None = None) -> None:
        self._prices = dict(DEFAULT_PRICES if prices is None else prices)

    async def get(self, session, item_type: str) -> int:
        try:
            return int(self._prices[item_type])
        except KeyError:
            raise InvalidConfiguration(f"no price for {item_type!r}") from None


class DbPriceLookup:
    """Admin-tunable prices from the `prices` table. Falls back to DEFAULT_PRICES."""

    def __init__(self, defaults: Mapping[str, int] | None = None) -> None:
        self._fallback = StaticPriceLookup(defaults)

    async def get(self, session, item_type: str) -> int:
        row = await session.get(Price, item_type)
        if row is not None:
            return int(row.price_cents)
        return await self._fallback.get(session, item_type)

    async def set(self, session, item_type: str, price_cents: int) -> Price:
        if item_type not in DEFAULT_PRICES:
            raise InvalidConfiguration(f"unknown item type {item_type!r}")
        if int(price_cents) <= 0:
            raise ValueError("price_must_be_positive")
        row = await session.get(Price, item_type)
        if not row:
            row = Price(item_type=item_type)
            session.add(row)
        row.price_cents = int(price_cents)
        row.updated_at = utcnow()
        await session.flush()
        log.info("price_updated item_type=%s price_cents=%s", item_type, price_cents)
        return row

    async def all(self, session) -> dict[str, int]:
        out = dict(DEFAULT_PRICES)
        for row in (await session.scalars(select(Price))).all():
            out[row.item_type] = int(row.price_cents)
        return out


price_lookup = DbPriceLookup()
