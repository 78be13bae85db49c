from __future__ import annotations

import logging
import random
from datetime import datetime

from sqlalchemy import select, update

from chickfarm.core.errors import (AlreadyClaimed, InsufficientResources, InvalidConfiguration,
                                   InvalidTransition, NoBoxesAvailable, NotFound)
from chickfarm.core.time import utcnow
from chickfarm.db.models import MysteryBoxReward
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import PriceLookup, price_lookup
from chickfarm.services.rewards.kinds import apply_reward, from_dict, to_dict
from chickfarm.services.rewards.tables import MYSTERY_BOX_TABLES, box_price_item
from chickfarm.services.rewards.weighted import draw

log = logging.getLogger(__name__)


def box_table(box_type: str):
    try:
        return MYSTERY_BOX_TABLES[box_type]
    except KeyError:
        raise InvalidConfiguration(f"unknown mystery box type {box_type!r}") from None


class MysteryBoxService:
    """Box lifecycle: bought (sealed) -> opened (reward drawn) -> claimed (reward applied)."""

    def __init__(self, prices: PriceLookup = price_lookup) -> None:
        self.prices = prices

    async def buy(self, session, account_id: int, box_type: str, *, now: datetime | None = None) -> MysteryBoxReward:
        now = now or utcnow()
        box_table(box_type)
        price = await self.prices.get(session, box_price_item(box_type))

        await ledger_service.debit(session, account_id, price)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="mystery_box",
            amount_cents=price,
            meta={"box_type": box_type},
            now=now,
        )
        await inventory_service.apply_delta(session, account_id, mystery_boxes=1)

        row = MysteryBoxReward(account_id=account_id, box_type=box_type, opened=False, created_at=now)
        session.add(row)
        await session.flush()
        log.info("mystery_box_bought account_id=%s box_id=%s box_type=%s", account_id, row.id, box_type)
        return row

    async def open(
        self,
        session,
        account_id: int,
        *,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> MysteryBoxReward:
        """Consumes one box and draws the reward of the oldest sealed box."""
        now = now or utcnow()
        try:
            await inventory_service.apply_delta(session, account_id, mystery_boxes=-1)
        except InsufficientResources:
            raise NoBoxesAvailable("no mystery boxes to open") from None

        row = await session.scalar(
            select(MysteryBoxReward)
            .where(MysteryBoxReward.account_id == account_id, MysteryBoxReward.reward_type.is_(None))
            .order_by(MysteryBoxReward.id.asc())
            .limit(1)
        )
        if not row:
            raise NotFound("no sealed mystery box")

        prize = draw(box_table(row.box_type), rng)
        reward = prize.materialize(rng or random.Random())
        row.reward_type = reward.type
        row.reward_details = to_dict(reward)
        row.rarity = prize.rarity
        row.drawn_at = now
        await session.flush()
        log.info(
            "mystery_box_opened account_id=%s box_id=%s reward_type=%s rarity=%s",
            account_id,
            row.id,
            reward.type,
            prize.rarity,
        )
        return row

    async def claim(self, session, account_id: int, reward_id: int, *, now: datetime | None = None) -> MysteryBoxReward:
        now = now or utcnow()
        stmt = (
            update(MysteryBoxReward)
            .where(
                MysteryBoxReward.id == reward_id,
                MysteryBoxReward.account_id == account_id,
                MysteryBoxReward.reward_type.is_not(None),
                MysteryBoxReward.opened.is_(False),
            )
            .values(opened=True, claimed_at=now)
            .returning(MysteryBoxReward.id)
            .execution_options(synchronize_session="fetch")
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            row = await session.get(MysteryBoxReward, reward_id)
            if not row or row.account_id != account_id:
                raise NotFound(f"mystery box {reward_id} not found")
            if row.reward_type is None:
                raise InvalidTransition(f"mystery box {reward_id} is still sealed")
            raise AlreadyClaimed(f"mystery box {reward_id} already claimed")

        row = await session.get(MysteryBoxReward, reward_id)
        await apply_reward(session, account_id, from_dict(row.reward_type, row.reward_details), source="mystery_box", now=now)
        log.info("mystery_box_claimed account_id=%s box_id=%s", account_id, reward_id)
        return row

    async def list_boxes(self, session, account_id: int, *, pending_only: bool = False) -> list[MysteryBoxReward]:
        q = select(MysteryBoxReward).where(MysteryBoxReward.account_id == account_id)
        if pending_only:
            q = q.where(MysteryBoxReward.opened.is_(False))
        q = q.order_by(MysteryBoxReward.id.desc()).limit(20)
        return list((await session.scalars(q)).all())


mystery_box_service = MysteryBoxService()
