import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from chickfarm.core.errors import Conflict
from chickfarm.db.models import ReferralEarning, Transaction
from chickfarm.scheduler import worker
from chickfarm.services.game import GameService
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.prices.service import StaticPriceLookup
from chickfarm.services.referrals.service import referral_service

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)


async def _earnings(sessionmaker):
    async with sessionmaker() as s:
        rows = (await s.scalars(select(ReferralEarning).order_by(ReferralEarning.level))).all()
    return [(r.level, r.beneficiary_id, r.amount_cents, r.claimed) for r in rows]


async def test_three_level_commission(sessionmaker, make_account, deposit):
    a = await make_account()
    b = await make_account(parent=a)
    c = await make_account(parent=b)
    d = await make_account(parent=c)

    conf = await deposit(d, 10_000, "tx-1")

    assert conf.commissions == ((1, c.id, 1_000), (2, b.id, 600), (3, a.id, 400))
    assert await _earnings(sessionmaker) == [
        (1, c.id, 1_000, False),
        (2, b.id, 600, False),
        (3, a.id, 400, False),
    ]


async def test_upline_stops_at_six_levels(sessionmaker, make_account, deposit):
    chain = [await make_account()]
    for _ in range(7):
        chain.append(await make_account(parent=chain[-1]))
    depositor = chain[-1]

    async with sessionmaker() as s:
        upline = await referral_service.upline(s, depositor.id)
    assert upline == [acc.id for acc in reversed(chain[1:-1])]

    conf = await deposit(depositor, 10_000, "tx-deep")
    assert [amount for _, _, amount in conf.commissions] == [1_000, 600, 400, 300, 200, 100]
    assert chain[0].id not in [beneficiary for _, beneficiary, _ in conf.commissions]


async def test_first_deposit_bonus_only_once(sessionmaker, make_account, deposit, balance_of):
    acc = await make_account()

    first = await deposit(acc, 5_000, "tx-a")
    assert first.bonus_cents == 500
    assert await balance_of(acc.id) == 5_500

    async with sessionmaker() as s:
        bonus = await s.scalar(select(Transaction).where(Transaction.transaction_id == "bonus-tx-a"))
    assert (bonus.type, bonus.status, bonus.amount_cents) == ("bonus", "completed", 500)

    second = await deposit(acc, 5_000, "tx-b")
    assert second.bonus_cents == 0
    assert await balance_of(acc.id) == 10_500


async def test_concurrent_confirm_runs_side_effects_once(sessionmaker, game, make_account, balance_of):
    parent = await make_account()
    kid = await make_account(parent=parent)
    assert (await game.request_deposit(kid.id, 10_000, "tx-race")).ok

    results = await asyncio.gather(game.confirm_deposit("tx-race"), game.confirm_deposit("tx-race"))

    assert sorted(r.ok for r in results) == [False, True]
    assert [r.error for r in results if not r.ok] == ["invalid_transition"]
    assert await _earnings(sessionmaker) == [(1, parent.id, 1_000, False)]
    assert await balance_of(kid.id) == 11_000

    # a second process with its own locks is stopped by the status guard
    other = GameService(sessionmaker, prices=StaticPriceLookup())
    res = await other.confirm_deposit("tx-race")
    assert res.error == "invalid_transition"

    async with sessionmaker() as s:
        bonuses = await s.scalar(select(func.count(Transaction.id)).where(Transaction.type == "bonus", Transaction.account_id == kid.id))
    assert bonuses == 1


async def test_claim_earning_once(sessionmaker, game, make_account, deposit, balance_of):
    parent = await make_account()
    stranger = await make_account()
    kid = await make_account(parent=parent)
    await deposit(kid, 10_000, "tx-claim")

    async with sessionmaker() as s:
        earning = (await referral_service.list_earnings(s, parent.id))[0]

    before = await balance_of(parent.id)
    res = await game.claim_referral_earning(parent.id, earning.id)
    assert res.ok and res.value.claimed
    assert await balance_of(parent.id) == before + 1_000

    again = await game.claim_referral_earning(parent.id, earning.id)
    assert (again.ok, again.error) == (False, "already_claimed")
    assert await balance_of(parent.id) == before + 1_000

    theft = await game.claim_referral_earning(stranger.id, earning.id)
    assert theft.error == "not_found"

    async with sessionmaker() as s:
        commissions = (
            await s.scalars(select(Transaction).where(Transaction.account_id == parent.id, Transaction.type == "commission"))
        ).all()
    assert [t.amount_cents for t in commissions] == [1_000]


async def test_team_summary(sessionmaker, make_account, deposit):
    parent = await make_account()
    active = await make_account(parent=parent)
    await make_account(parent=parent)
    await deposit(active, 2_000, "tx-sum")

    async with sessionmaker() as s:
        summary = await referral_service.team_summary(s, parent.id)
    assert summary.direct_referrals == 2
    assert summary.active_direct_referrals == 1
    assert summary.unclaimed_cents == 200
    assert summary.total_referral_earnings_cents == 200
    assert summary.total_team_earnings_cents == 200


async def test_registration_resolves_parent_once(sessionmaker, game):
    parent = (await game.register_account(1001)).value
    child = (await game.register_account(1002, referral_code=parent.referral_code)).value
    assert child.parent_id == parent.id
    assert child.referred_by_code == parent.referral_code

    stranger = (await game.register_account(1003, referral_code="nope")).value
    assert stranger.parent_id is None

    # existing accounts are never re-parented
    again = (await game.register_account(1002, referral_code=stranger.referral_code)).value
    assert again.id == child.id
    assert again.parent_id == parent.id


async def test_levels_rounding_to_zero_are_skipped(sessionmaker, make_account, deposit):
    a = await make_account()
    b = await make_account(parent=a)
    c = await make_account(parent=b)
    d = await make_account(parent=c)

    conf = await deposit(d, 10, "tx-dust")

    # 6% of 10 cents rounds up to 1, 4% rounds down to 0
    assert conf.commissions == ((1, c.id, 1), (2, b.id, 1))
    assert [row[1] for row in await _earnings(sessionmaker)] == [c.id, b.id]
    async with sessionmaker() as s:
        tx = await ledger_service.find_transaction(s, "tx-dust")
    assert tx.fanout_completed_at is not None


async def test_fan_out_interrupted_after_confirm_is_resumed(sessionmaker, game, make_account, monkeypatch):
    parent = await make_account()
    kid = await make_account(parent=parent)
    assert (await game.request_deposit(kid.id, 10_000, "tx-crash")).ok

    async def crash(tx, *, now):
        raise RuntimeError("worker died")

    with monkeypatch.context() as m:
        m.setattr(game, "_fan_out", crash)
        with pytest.raises(RuntimeError):
            await game.confirm_deposit("tx-crash", now=NOW)

    assert (await game.confirm_deposit("tx-crash")).error == "invalid_transition"
    assert await _earnings(sessionmaker) == []

    res = await game.resume_fan_out("tx-crash", now=NOW)
    assert res.ok and res.value == ((1, parent.id, 1_000),)
    assert await _earnings(sessionmaker) == [(1, parent.id, 1_000, False)]

    again = await game.resume_fan_out("tx-crash", now=NOW)
    assert (again.ok, again.value) == (True, ())
    assert len(await _earnings(sessionmaker)) == 1


async def test_scheduler_finishes_fan_out_stopped_by_conflicts(
    sessionmaker, game, make_account, patched_scope, monkeypatch
):
    top = await make_account()
    mid = await make_account(parent=top)
    kid = await make_account(parent=mid)
    assert (await game.request_deposit(kid.id, 10_000, "tx-busy")).ok

    credit_level = referral_service.credit_level

    async def busy_on_level_two(session, *, line, **kw):
        if line.level == 2:
            raise Conflict("row busy")
        return await credit_level(session, line=line, **kw)

    with monkeypatch.context() as m:
        m.setattr(referral_service, "credit_level", busy_on_level_two)
        res = await game.confirm_deposit("tx-busy", now=NOW)
    assert res.ok and res.value.commissions == ((1, mid.id, 1_000),)

    # still inside the grace period
    assert await worker.resume_fan_outs(NOW + timedelta(seconds=10), game=game) == 0

    assert await worker.resume_fan_outs(NOW + timedelta(hours=1), game=game) == 1
    assert await _earnings(sessionmaker) == [(1, mid.id, 1_000, False), (2, top.id, 600, False)]
    assert await worker.resume_fan_outs(NOW + timedelta(hours=2), game=game) == 0


async def test_resume_fan_out_needs_confirmed_recharge(game, make_account):
    acc = await make_account()
    assert (await game.request_deposit(acc.id, 5_000, "tx-wait")).ok

    assert (await game.resume_fan_out("tx-wait")).error == "invalid_transition"
    assert (await game.resume_fan_out("tx-nope")).error == "not_found"
