from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update

from chickfarm.core.errors import AlreadyClaimed, NotFound
from chickfarm.core.time import utcnow
from chickfarm.db.models import MilestoneReward
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)

# (threshold, reward) in USDT cents, ascending
MILESTONES: tuple[tuple[int, int], ...] = (
    (100_000, 5_000),  # 1 000 -> 50
    (1_000_000, 50_000),  # 10 000 -> 500
    (5_000_000, 250_000),  # 50 000 -> 2 500
    (10_000_000, 500_000),  # 100 000 -> 5 000
)


class MilestoneService:
    """One-time bonuses for crossing referral-earning thresholds.

    Thresholds are never retracted: a row, once created, stays claimable.
    """

    async def check(
        self,
        session,
        account_id: int,
        total_referral_earnings_cents: int,
        *,
        now: datetime | None = None,
    ) -> list[MilestoneReward]:
        reached = [(t, r) for t, r in MILESTONES if total_referral_earnings_cents >= t]
        if not reached:
            return []

        existing = set(
            (
                await session.scalars(
                    select(MilestoneReward.milestone_cents).where(MilestoneReward.account_id == account_id)
                )
            ).all()
        )

        created: list[MilestoneReward] = []
        for threshold, reward in reached:
            if threshold in existing:
                continue
            row = MilestoneReward(
                account_id=account_id,
                milestone_cents=threshold,
                reward_cents=reward,
                claimed=False,
                created_at=now or utcnow(),
            )
            session.add(row)
            created.append(row)

        if created:
            await session.flush()
            log.info(
                "milestones_reached account_id=%s thresholds=%s",
                account_id,
                ",".join(str(r.milestone_cents) for r in created),
            )
        return created

    async def claim(self, session, account_id: int, reward_id: int, *, now: datetime | None = None) -> MilestoneReward:
        now = now or utcnow()
        stmt = (
            update(MilestoneReward)
            .where(
                MilestoneReward.id == reward_id,
                MilestoneReward.account_id == account_id,
                MilestoneReward.claimed.is_(False),
            )
            .values(claimed=True, claimed_at=now)
            .returning(MilestoneReward.reward_cents)
            .execution_options(synchronize_session="fetch")
        )
        amount = (await session.execute(stmt)).scalar_one_or_none()
        if amount is None:
            row = await session.get(MilestoneReward, reward_id)
            if not row or row.account_id != account_id:
                raise NotFound(f"milestone reward {reward_id} not found")
            raise AlreadyClaimed(f"milestone reward {reward_id} already claimed")

        await ledger_service.credit(session, account_id, int(amount))
        row = await session.get(MilestoneReward, reward_id)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="bonus",
            amount_cents=int(amount),
            meta={"kind": "milestone", "milestone_cents": row.milestone_cents, "reward_id": reward_id},
            now=now,
        )
        log.info("milestone_claimed account_id=%s reward_id=%s amount_cents=%s", account_id, reward_id, amount)
        return row

    async def list_rewards(self, session, account_id: int, *, claimed: bool | None = None) -> list[MilestoneReward]:
        q = select(MilestoneReward).where(MilestoneReward.account_id == account_id)
        if claimed is not None:
            q = q.where(MilestoneReward.claimed.is_(claimed))
        q = q.order_by(MilestoneReward.milestone_cents.asc())
        return list((await session.scalars(q)).all())


milestone_service = MilestoneService()
