from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from chickfarm.core.config import settings
from chickfarm.core.time import utcnow
from chickfarm.db.locks import advisory_unlock, lock_account_xact, try_advisory_lock
from chickfarm.db.session import session_scope
from chickfarm.services.game import game_service
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.salary.service import salary_service

log = logging.getLogger(__name__)


async def sweep_salaries(now=None) -> int:
    """Runs the salary check for every account with direct referrals.

    Salary is normally recomputed on the next team-earnings credit; the
    sweep only pays dormant accounts earlier. Returns the number paid.
    """
    now = now or utcnow()
    async with session_scope() as session:
        account_ids = await salary_service.accounts_with_referrals(session)

    paid = 0
    for account_id in account_ids:
        try:
            async with session_scope() as session:
                await lock_account_xact(session, account_id)
                payment = await salary_service.check(session, account_id, now=now)
                await session.commit()
        except Exception:
            log.exception("salary_sweep_account_error account_id=%s", account_id)
            continue
        if payment is not None:
            paid += 1
    log.info("salary_sweep_done accounts=%s paid=%s", len(account_ids), paid)
    return paid


async def resume_fan_outs(now=None, *, game=None) -> int:
    """Finishes upline credits interrupted after a deposit was confirmed.

    Returns the number of commission lines credited.
    """
    now = now or utcnow()
    game = game or game_service
    cutoff = now - timedelta(seconds=settings.fanout_resume_grace_seconds)
    async with session_scope() as session:
        pending = await ledger_service.unfinished_fanouts(session, processed_before=cutoff)

    credited = 0
    for transaction_id in pending:
        res = await game.resume_fan_out(transaction_id, now=now)
        if not res.ok:
            log.warning("fanout_resume_failed tx=%s error=%s", transaction_id, res.error)
            continue
        credited += len(res.value)
    if pending:
        log.info("fanout_resume_done transactions=%s credited=%s", len(pending), credited)
    return credited


async def run_scheduler() -> None:
    """Optional periodic jobs (single replica) protected by advisory lock."""
    log.info("scheduler_start period=%s", settings.scheduler_period_seconds)

    while True:
        try:
            async with session_scope() as session:
                locked = await try_advisory_lock(session)
                if not locked:
                    await asyncio.sleep(3)
                    continue

                try:
                    await resume_fan_outs()
                    await sweep_salaries()
                finally:
                    await advisory_unlock(session)
        except Exception:
            log.exception("scheduler_loop_error")

        await asyncio.sleep(settings.scheduler_period_seconds)
