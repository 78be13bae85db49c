from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update

from chickfarm.core.errors import AlreadyClaimed, NotFound
from chickfarm.core.money import percent_of
from chickfarm.core.time import utcnow
from chickfarm.db.models import Account, ReferralEarning
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.milestones.service import milestone_service
from chickfarm.services.salary.service import salary_service

log = logging.getLogger(__name__)

MAX_UPLINE_DEPTH = 6

# level -> percent of the deposit
COMMISSION_RATES: dict[int, int] = {1: 10, 2: 6, 3: 4, 4: 3, 5: 2, 6: 1}


@dataclass(frozen=True)
class CommissionLine:
    level: int
    beneficiary_id: int
    amount_cents: int


@dataclass(frozen=True)
class TeamSummary:
    direct_referrals: int
    active_direct_referrals: int
    unclaimed_cents: int
    total_referral_earnings_cents: int
    total_team_earnings_cents: int


class ReferralService:
    async def generate_code(self, session) -> str:
        """Unique 8-char hex code."""
        for _ in range(8):
            code = secrets.token_hex(4)
            taken = await session.scalar(select(Account.id).where(Account.referral_code == code).limit(1))
            if not taken:
                return code
        # fallback (should never happen)
        return secrets.token_hex(8)

    async def resolve_code(self, session, code: str | None) -> Account | None:
        code = (code or "").strip()
        if not code:
            return None
        return await session.scalar(select(Account).where(Account.referral_code == code).limit(1))

    async def upline(self, session, account_id: int, *, depth: int = MAX_UPLINE_DEPTH) -> list[int]:
        """[level 1 referrer, level 2, ...], at most `depth` long.

        Parents are written once at signup so the chain can't loop, but the
        visited set keeps the walk bounded even on bad data.
        """
        chain: list[int] = []
        visited = {account_id}
        current = account_id
        while len(chain) < depth:
            parent_id = await session.scalar(select(Account.parent_id).where(Account.id == current))
            if parent_id is None or parent_id in visited:
                break
            chain.append(int(parent_id))
            visited.add(parent_id)
            current = parent_id
        return chain

    async def commission_plan(self, session, *, depositor_id: int, deposit_cents: int) -> list[CommissionLine]:
        lines: list[CommissionLine] = []
        for level, beneficiary_id in enumerate(await self.upline(session, depositor_id), start=1):
            lines.append(
                CommissionLine(
                    level=level,
                    beneficiary_id=beneficiary_id,
                    amount_cents=percent_of(deposit_cents, COMMISSION_RATES[level]),
                )
            )
        return lines

    async def credit_level(
        self,
        session,
        *,
        line: CommissionLine,
        source_id: int,
        deposit_transaction_id: str,
        now: datetime | None = None,
    ) -> ReferralEarning | None:
        """Record one upline commission and run the milestone/salary checks.

        Returns None when the line was already recorded or rounds to zero.
        """
        now = now or utcnow()
        # levels that round to 0 cents are not recorded
        if line.amount_cents <= 0:
            return None

        # Idempotency: one earning per (deposit, beneficiary)
        exists = await session.scalar(
            select(ReferralEarning.id).where(
                ReferralEarning.deposit_transaction_id == deposit_transaction_id,
                ReferralEarning.beneficiary_id == line.beneficiary_id,
            ).limit(1)
        )
        if exists:
            return None

        earning = ReferralEarning(
            beneficiary_id=line.beneficiary_id,
            source_id=source_id,
            deposit_transaction_id=deposit_transaction_id,
            level=line.level,
            amount_cents=line.amount_cents,
            claimed=False,
            created_at=now,
        )
        session.add(earning)
        await session.flush()

        stmt = (
            update(Account)
            .where(Account.id == line.beneficiary_id)
            .values(
                total_referral_earnings_cents=Account.total_referral_earnings_cents + line.amount_cents,
                total_team_earnings_cents=Account.total_team_earnings_cents + line.amount_cents,
            )
            .returning(Account.total_referral_earnings_cents, Account.total_team_earnings_cents)
            .execution_options(synchronize_session="fetch")
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            raise NotFound(f"account {line.beneficiary_id} not found")
        total_referral, total_team = int(row[0]), int(row[1])

        log.info(
            "referral_commission account_id=%s source_id=%s level=%s amount_cents=%s",
            line.beneficiary_id,
            source_id,
            line.level,
            line.amount_cents,
        )

        await milestone_service.check(session, line.beneficiary_id, total_referral, now=now)
        await salary_service.check(session, line.beneficiary_id, total_team, now=now)
        return earning

    async def claim(self, session, account_id: int, earning_id: int, *, now: datetime | None = None) -> ReferralEarning:
        """unclaimed -> claimed, credits the ledger. A second claim fails loudly."""
        now = now or utcnow()
        stmt = (
            update(ReferralEarning)
            .where(
                ReferralEarning.id == earning_id,
                ReferralEarning.beneficiary_id == account_id,
                ReferralEarning.claimed.is_(False),
            )
            .values(claimed=True, claimed_at=now)
            .returning(ReferralEarning.amount_cents)
            .execution_options(synchronize_session="fetch")
        )
        amount = (await session.execute(stmt)).scalar_one_or_none()
        if amount is None:
            e = await session.get(ReferralEarning, earning_id)
            if not e or e.beneficiary_id != account_id:
                raise NotFound(f"referral earning {earning_id} not found")
            raise AlreadyClaimed(f"referral earning {earning_id} already claimed")

        await ledger_service.credit(session, account_id, int(amount))
        earning = await session.get(ReferralEarning, earning_id)
        await ledger_service.log(
            session,
            account_id=account_id,
            type="commission",
            amount_cents=int(amount),
            meta={"earning_id": earning_id, "level": earning.level, "source_id": earning.source_id},
            now=now,
        )
        log.info("referral_earning_claimed account_id=%s earning_id=%s amount_cents=%s", account_id, earning_id, amount)
        return earning

    async def list_earnings(self, session, account_id: int, *, claimed: bool | None = None) -> list[ReferralEarning]:
        q = select(ReferralEarning).where(ReferralEarning.beneficiary_id == account_id)
        if claimed is not None:
            q = q.where(ReferralEarning.claimed.is_(claimed))
        q = q.order_by(ReferralEarning.id.desc())
        return list((await session.scalars(q)).all())

    async def team_summary(self, session, account_id: int) -> TeamSummary:
        account = await session.get(Account, account_id)
        if not account:
            raise NotFound(f"account {account_id} not found")
        unclaimed = await session.scalar(
            select(func.coalesce(func.sum(ReferralEarning.amount_cents), 0)).where(
                ReferralEarning.beneficiary_id == account_id,
                ReferralEarning.claimed.is_(False),
            )
        )
        return TeamSummary(
            direct_referrals=len(await salary_service.direct_referral_ids(session, account_id)),
            active_direct_referrals=await salary_service.active_direct_referral_count(session, account_id),
            unclaimed_cents=int(unclaimed or 0),
            total_referral_earnings_cents=int(account.total_referral_earnings_cents),
            total_team_earnings_cents=int(account.total_team_earnings_cents),
        )


referral_service = ReferralService()
