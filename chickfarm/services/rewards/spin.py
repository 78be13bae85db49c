from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, time, timezone

from sqlalchemy import or_, update

from chickfarm.core.config import settings
from chickfarm.core.errors import NoSpinsAvailable, NotFound
from chickfarm.core.money import to_cents
from chickfarm.core.time import ensure_aware_utc, utc_date, utcnow
from chickfarm.db.models import Account, SpinHistory
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.rewards.kinds import Reward, apply_reward, to_dict
from chickfarm.services.rewards.tables import DAILY_SPIN_TABLE, SUPER_SPIN_TABLE, Prize
from chickfarm.services.rewards.weighted import draw

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpinResult:
    spin_type: str  # daily | super
    gate: str  # daily | extra | paid
    reward: Reward
    rarity: str
    history: SpinHistory


class SpinService:
    async def _take_daily_gate(self, session, account_id: int, now: datetime) -> bool:
        now = ensure_aware_utc(now)
        midnight = datetime.combine(utc_date(now), time.min, tzinfo=timezone.utc)
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                or_(Account.last_spin_at.is_(None), Account.last_spin_at < midnight),
            )
            .values(last_spin_at=now)
            .returning(Account.id)
            .execution_options(synchronize_session="fetch")
        )
        return (await session.execute(stmt)).scalar_one_or_none() is not None

    async def _take_extra_spin(self, session, account_id: int, now: datetime) -> bool:
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.extra_spins_available > 0)
            .values(extra_spins_available=Account.extra_spins_available - 1, last_spin_at=now)
            .returning(Account.id)
            .execution_options(synchronize_session="fetch")
        )
        return (await session.execute(stmt)).scalar_one_or_none() is not None

    async def _payout(
        self,
        session,
        account_id: int,
        *,
        spin_type: str,
        gate: str,
        table: tuple[tuple[Prize, int], ...],
        rng: random.Random | None,
        now: datetime,
    ) -> SpinResult:
        prize = draw(table, rng)
        reward = prize.materialize(rng or random.Random())
        await apply_reward(session, account_id, reward, source=f"{spin_type}_spin", now=now)

        history = SpinHistory(
            account_id=account_id,
            spin_type=spin_type,
            reward_type=reward.type,
            reward_details=to_dict(reward),
            created_at=now,
        )
        session.add(history)
        await session.flush()
        log.info("spin_done account_id=%s spin_type=%s gate=%s reward_type=%s", account_id, spin_type, gate, reward.type)
        return SpinResult(spin_type=spin_type, gate=gate, reward=reward, rarity=prize.rarity, history=history)

    async def spin_daily(
        self,
        session,
        account_id: int,
        *,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> SpinResult:
        """Free spin once per UTC day; after that each spin consumes an extra spin."""
        now = now or utcnow()
        if not await session.get(Account, account_id):
            raise NotFound(f"account {account_id} not found")

        if await self._take_daily_gate(session, account_id, now):
            gate = "daily"
        elif await self._take_extra_spin(session, account_id, now):
            gate = "extra"
        else:
            raise NoSpinsAvailable("daily spin already used and no extra spins left")

        return await self._payout(
            session, account_id, spin_type="daily", gate=gate, table=DAILY_SPIN_TABLE, rng=rng, now=now
        )

    async def spin_super(
        self,
        session,
        account_id: int,
        *,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> SpinResult:
        now = now or utcnow()
        cost = to_cents(settings.super_spin_cost_usdt)

        await ledger_service.debit(session, account_id, cost)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="purchase",
            amount_cents=cost,
            meta={"item_type": "super_spin"},
            now=now,
        )
        return await self._payout(
            session, account_id, spin_type="super", gate="paid", table=SUPER_SPIN_TABLE, rng=rng, now=now
        )

    async def grant_extra_spins(self, session, account_id: int, count: int) -> int:
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValueError("count_must_be_positive_int")
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(extra_spins_available=Account.extra_spins_available + count)
            .returning(Account.extra_spins_available)
            .execution_options(synchronize_session="fetch")
        )
        left = (await session.execute(stmt)).scalar_one_or_none()
        if left is None:
            raise NotFound(f"account {account_id} not found")
        log.info("extra_spins_granted account_id=%s count=%s total=%s", account_id, count, left)
        return int(left)


spin_service = SpinService()
