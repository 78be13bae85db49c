from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import select, update

from chickfarm.core.errors import AlreadyClaimed, NotFound
from chickfarm.core.time import ensure_aware_utc, utc_date, utcnow
from chickfarm.db.models import Account, DailyReward
from chickfarm.services.rewards.kinds import apply_reward, from_dict, to_dict
from chickfarm.services.rewards.tables import DAILY_REWARD_TABLES, STREAK_LENGTH
from chickfarm.services.rewards.weighted import draw

log = logging.getLogger(__name__)


def next_streak_day(current_streak: int, last_claimed_at: datetime | None, now: datetime) -> int:
    """Streak day for a reward materialized on `now`'s UTC date.

    Continues only if the previous claim was on the calendar day before;
    day 7 wraps to 1.
    """
    last = ensure_aware_utc(last_claimed_at)
    if last is None or current_streak <= 0:
        return 1
    if utc_date(last) != utc_date(now) - timedelta(days=1):
        return 1
    return current_streak % STREAK_LENGTH + 1


class DailyRewardService:
    async def get(
        self,
        session,
        account_id: int,
        *,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> DailyReward:
        """Today's reward; drawn on the first request of the day, then returned as is."""
        now = now or utcnow()
        today = utc_date(now)

        existing = await session.scalar(
            select(DailyReward).where(DailyReward.account_id == account_id, DailyReward.reward_date == today)
        )
        if existing:
            return existing

        account = await session.get(Account, account_id)
        if not account:
            raise NotFound(f"account {account_id} not found")

        day = next_streak_day(account.current_streak, account.last_daily_reward_at, now)
        reward = draw(DAILY_REWARD_TABLES[day], rng).materialize(rng or random.Random())

        row = DailyReward(
            account_id=account_id,
            reward_date=today,
            day=day,
            reward_type=reward.type,
            reward_details=to_dict(reward),
            claimed=False,
            created_at=now,
        )
        session.add(row)
        await session.flush()
        log.info("daily_reward_drawn account_id=%s day=%s reward_type=%s", account_id, day, reward.type)
        return row

    async def claim(self, session, account_id: int, reward_id: int, *, now: datetime | None = None) -> DailyReward:
        now = now or utcnow()
        stmt = (
            update(DailyReward)
            .where(
                DailyReward.id == reward_id,
                DailyReward.account_id == account_id,
                DailyReward.claimed.is_(False),
            )
            .values(claimed=True, claimed_at=now)
            .returning(DailyReward.id)
            .execution_options(synchronize_session="fetch")
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            row = await session.get(DailyReward, reward_id)
            if not row or row.account_id != account_id:
                raise NotFound(f"daily reward {reward_id} not found")
            raise AlreadyClaimed(f"daily reward {reward_id} already claimed")

        row = await session.get(DailyReward, reward_id)
        await apply_reward(session, account_id, from_dict(row.reward_type, row.reward_details), source="daily_reward", now=now)

        account = await session.get(Account, account_id)
        account.current_streak = row.day
        account.last_daily_reward_at = now
        await session.flush()
        log.info("daily_reward_claimed account_id=%s reward_id=%s day=%s", account_id, reward_id, row.day)
        return row


daily_reward_service = DailyRewardService()
