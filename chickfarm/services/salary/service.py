from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import exists, func, select, update

from chickfarm.core.config import settings
from chickfarm.core.money import to_cents
from chickfarm.core.time import ensure_aware_utc, period_key, utcnow
from chickfarm.db.models import Account, SalaryPayment, Transaction
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)


class SalaryService:
    """Monthly payout proportional to depositing direct referrals.

    There is no scheduler: eligibility is recomputed whenever the account's
    team earnings grow (see ReferralService.credit_level).
    """

    def __init__(self, per_active_referral_cents: int | None = None, min_interval_days: int | None = None) -> None:
        self.per_active_referral_cents = (
            per_active_referral_cents
            if per_active_referral_cents is not None
            else to_cents(settings.salary_per_active_referral_usdt)
        )
        self.min_interval = timedelta(
            days=min_interval_days if min_interval_days is not None else settings.salary_min_interval_days
        )

    async def direct_referral_ids(self, session, account_id: int) -> list[int]:
        q = select(Account.id).where(Account.parent_id == account_id).order_by(Account.id.asc())
        return list((await session.scalars(q)).all())

    async def active_direct_referral_count(self, session, account_id: int) -> int:
        """Direct referrals with at least one completed recharge."""
        has_deposit = exists().where(
            Transaction.account_id == Account.id,
            Transaction.type == "recharge",
            Transaction.status == "completed",
        )
        cnt = await session.scalar(
            select(func.count(Account.id)).where(Account.parent_id == account_id, has_deposit)
        )
        return int(cnt or 0)

    async def check(
        self,
        session,
        account_id: int,
        total_team_earnings_cents: int | None = None,
        *,
        now: datetime | None = None,
    ) -> SalaryPayment | None:
        now = now or utcnow()
        period = period_key(now)

        paid = await session.scalar(
            select(SalaryPayment.id).where(
                SalaryPayment.account_id == account_id,
                SalaryPayment.period == period,
            ).limit(1)
        )
        if paid:
            return None

        last_paid = ensure_aware_utc(
            await session.scalar(select(Account.last_salary_paid_at).where(Account.id == account_id))
        )
        if last_paid and now - last_paid < self.min_interval:
            return None

        active = await self.active_direct_referral_count(session, account_id)
        amount = active * self.per_active_referral_cents
        if amount <= 0:
            return None

        payment = SalaryPayment(
            account_id=account_id,
            amount_cents=amount,
            active_referrals=active,
            period=period,
            paid_at=now,
        )
        session.add(payment)
        await session.flush()

        await session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(last_salary_paid_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await ledger_service.credit(session, account_id, amount)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="bonus",
            amount_cents=amount,
            meta={"kind": "salary", "period": period, "active_referrals": active},
            now=now,
        )
        log.info(
            "salary_paid account_id=%s period=%s active=%s amount_cents=%s team_total_cents=%s",
            account_id,
            period,
            active,
            amount,
            total_team_earnings_cents,
        )
        return payment

    async def list_payments(self, session, account_id: int) -> list[SalaryPayment]:
        q = (
            select(SalaryPayment)
            .where(SalaryPayment.account_id == account_id)
            .order_by(SalaryPayment.paid_at.desc())
        )
        return list((await session.scalars(q)).all())

    async def accounts_with_referrals(self, session) -> list[int]:
        """Candidates for the optional periodic sweep."""
        q = select(Account.parent_id).where(Account.parent_id.is_not(None)).distinct()
        return sorted(int(x) for x in (await session.scalars(q)).all())


salary_service = SalaryService()
