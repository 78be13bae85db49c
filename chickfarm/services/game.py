from __future__ import annotations

import dataclasses
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Hashable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chickfarm.core.errors import Conflict, FarmError, InvalidConfiguration, InvalidTransition, NotFound
from chickfarm.core.time import utcnow
from chickfarm.db.locks import KeyedLocks, lock_account_xact
from chickfarm.db.session import get_sessionmaker
from chickfarm.repo import ensure_account
from chickfarm.services.app_settings.service import app_settings_service
from chickfarm.services.farm.service import FarmService
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.milestones.service import milestone_service
from chickfarm.services.prices.service import PriceLookup, price_lookup
from chickfarm.services.referrals.service import CommissionLine, referral_service
from chickfarm.services.rewards.daily import daily_reward_service
from chickfarm.services.rewards.mystery_box import MysteryBoxService
from chickfarm.services.rewards.spin import spin_service
from chickfarm.services.wallet.service import wallet_service

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpResult:
    ok: bool
    value: Any = None
    error: str | None = None
    message: str | None = None


class GameService:
    """Caller-facing operations.

    Each operation runs in its own DB transaction under a per-key lock,
    retries retryable errors (`Conflict`) once and reports failures as `OpResult` instead of
    raising. Exceptions that are not `FarmError`/`ValueError` propagate.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
        *,
        prices: PriceLookup | None = None,
        rng: random.Random | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self.prices = prices or price_lookup
        self.rng = rng or random.Random()
        self.locks = locks or KeyedLocks()
        self.farm = FarmService(self.prices)
        self.boxes = MysteryBoxService(self.prices)

    def _sm(self) -> async_sessionmaker[AsyncSession]:
        return self._sessionmaker or get_sessionmaker()

    async def _in_tx(
        self,
        fn: Callable[[AsyncSession], Awaitable[Any]],
        *,
        lock_key: Hashable,
        account_id: int | None = None,
    ) -> Any:
        async with self.locks.hold(lock_key):
            async with self._sm()() as session:
                try:
                    if account_id is not None:
                        await lock_account_xact(session, account_id)
                    value = await fn(session)
                    await session.commit()
                    return value
                except IntegrityError as e:
                    await session.rollback()
                    raise Conflict(f"concurrent update: {e.orig}") from e
                except BaseException:
                    await session.rollback()
                    raise

    async def _with_retry(self, op: str, fn, *, lock_key: Hashable, account_id: int | None = None) -> Any:
        try:
            return await self._in_tx(fn, lock_key=lock_key, account_id=account_id)
        except FarmError as e:
            if not e.retryable:
                raise
            log.info("op_retry op=%s key=%s error=%s", op, lock_key, e.code)
            return await self._in_tx(fn, lock_key=lock_key, account_id=account_id)

    async def _run(
        self,
        op: str,
        fn: Callable[[AsyncSession], Awaitable[Any]],
        *,
        account_id: int | None = None,
        lock_key: Hashable | None = None,
    ) -> OpResult:
        key = lock_key if lock_key is not None else ("account", account_id)
        try:
            value = await self._with_retry(op, fn, lock_key=key, account_id=account_id)
        except FarmError as e:
            log.info("op_failed op=%s account_id=%s error=%s msg=%s", op, account_id, e.code, e.message)
            return OpResult(ok=False, error=e.code, message=e.message)
        except ValueError as e:
            log.info("op_invalid_input op=%s account_id=%s msg=%s", op, account_id, e)
            return OpResult(ok=False, error="invalid_input", message=str(e))
        return OpResult(ok=True, value=value)

    # ==========================
    # Accounts
    # ==========================
    async def register_account(
        self,
        tg_id: int | None,
        *,
        username: str | None = None,
        referral_code: str | None = None,
    ) -> OpResult:
        async def fn(session):
            account, _created = await ensure_account(
                session, tg_id, username=username, referral_code=referral_code
            )
            return account

        return await self._run("register_account", fn, lock_key=("tg", tg_id))

    # ==========================
    # Farm / market
    # ==========================
    async def buy_chicken(self, account_id: int, chicken_type: str, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "buy_chicken",
            lambda s: self.farm.purchase(s, account_id, chicken_type, now=now),
            account_id=account_id,
        )

    async def hatch_chicken(self, account_id: int, chicken_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "hatch_chicken",
            lambda s: self.farm.hatch(s, account_id, chicken_id, now=now),
            account_id=account_id,
        )

    async def sell_chicken(self, account_id: int, chicken_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "sell_chicken",
            lambda s: self.farm.sell(s, account_id, chicken_id, now=now),
            account_id=account_id,
        )

    async def buy_resource(
        self, account_id: int, item_type: str, quantity: int, *, now: datetime | None = None
    ) -> OpResult:
        return await self._run(
            "buy_resource",
            lambda s: self.farm.buy_resource(s, account_id, item_type, quantity, now=now),
            account_id=account_id,
        )

    async def sell_eggs(self, account_id: int, quantity: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "sell_eggs",
            lambda s: self.farm.sell_eggs(s, account_id, quantity, now=now),
            account_id=account_id,
        )

    # ==========================
    # Wallet
    # ==========================
    async def request_deposit(
        self, account_id: int, amount_cents: int, transaction_id: str, *, now: datetime | None = None
    ) -> OpResult:
        return await self._run(
            "request_deposit",
            lambda s: wallet_service.request_deposit(s, account_id, amount_cents, transaction_id, now=now),
            account_id=account_id,
        )

    async def request_withdrawal(
        self, account_id: int, amount_cents: int, usdt_address: str, *, now: datetime | None = None
    ) -> OpResult:
        return await self._run(
            "request_withdrawal",
            lambda s: wallet_service.request_withdrawal(s, account_id, amount_cents, usdt_address, now=now),
            account_id=account_id,
        )

    async def confirm_deposit(self, transaction_id: str, *, now: datetime | None = None) -> OpResult:
        """Admin approval of a pending recharge.

        The status flip, the depositor credit and the first-deposit bonus
        commit together. The upline is then credited one account at a time,
        each in its own short transaction; `fanout_completed_at` is set once
        every level went through. An unfinished fan-out is picked up again
        by `resume_fan_out`.
        """
        now = now or utcnow()

        async def fn(session):
            tx = await ledger_service.get_transaction(session, transaction_id)
            await lock_account_xact(session, tx.account_id)
            return await wallet_service.confirm_deposit(session, transaction_id, now=now)

        result = await self._run("confirm_deposit", fn, lock_key=("tx", transaction_id))
        if not result.ok:
            return result

        confirmation = result.value
        credited = await self._fan_out(confirmation.transaction, now=now)
        return OpResult(ok=True, value=dataclasses.replace(confirmation, commissions=credited))

    async def resume_fan_out(self, transaction_id: str, *, now: datetime | None = None) -> OpResult:
        """Credits the upline levels a confirmed recharge is still missing.

        Levels already recorded are skipped, so this is safe to repeat.
        Returns the (level, beneficiary_id, amount_cents) lines credited now.
        """
        now = now or utcnow()
        async with self._sm()() as session:
            tx = await ledger_service.find_transaction(session, transaction_id)
        if tx is None:
            return OpResult(ok=False, error=NotFound.code, message=f"transaction {transaction_id} not found")
        if tx.type != "recharge" or tx.status != "completed":
            return OpResult(
                ok=False,
                error=InvalidTransition.code,
                message=f"transaction {transaction_id} is a {tx.status} {tx.type}",
            )
        if tx.fanout_completed_at is not None:
            return OpResult(ok=True, value=())

        log.info("referral_fanout_resumed tx=%s account_id=%s", transaction_id, tx.account_id)
        return OpResult(ok=True, value=await self._fan_out(tx, now=now))

    async def _fan_out(self, tx, *, now: datetime) -> tuple[tuple[int, int, int], ...]:
        async with self._sm()() as session:
            plan = await referral_service.commission_plan(
                session, depositor_id=tx.account_id, deposit_cents=tx.amount_cents
            )

        credited: list[tuple[int, int, int]] = []
        for line in plan:
            try:
                earning = await self._with_retry(
                    "referral_commission",
                    self._credit_line(line, source_id=tx.account_id, deposit_tx=tx.transaction_id, now=now),
                    lock_key=("account", line.beneficiary_id),
                    account_id=line.beneficiary_id,
                )
            except FarmError as e:
                # left unmarked: resume_fan_out finishes the walk later
                log.warning(
                    "referral_fanout_stopped tx=%s level=%s beneficiary_id=%s error=%s",
                    tx.transaction_id,
                    line.level,
                    line.beneficiary_id,
                    e.code,
                )
                return tuple(credited)
            if earning is not None:
                credited.append((line.level, line.beneficiary_id, line.amount_cents))

        await self._with_retry(
            "referral_fanout_done",
            lambda s: ledger_service.mark_fanout_completed(s, tx.transaction_id, now=now),
            lock_key=("tx", tx.transaction_id),
        )
        return tuple(credited)

    @staticmethod
    def _credit_line(line: CommissionLine, *, source_id: int, deposit_tx: str, now: datetime):
        async def fn(session):
            return await referral_service.credit_level(
                session,
                line=line,
                source_id=source_id,
                deposit_transaction_id=deposit_tx,
                now=now,
            )

        return fn

    async def reject_transaction(self, transaction_id: str, *, now: datetime | None = None) -> OpResult:
        async def fn(session):
            tx = await ledger_service.get_transaction(session, transaction_id)
            await lock_account_xact(session, tx.account_id)
            return await wallet_service.reject_transaction(session, transaction_id, now=now)

        return await self._run("reject_transaction", fn, lock_key=("tx", transaction_id))

    async def complete_withdrawal(self, transaction_id: str, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "complete_withdrawal",
            lambda s: wallet_service.complete_withdrawal(s, transaction_id, now=now),
            lock_key=("tx", transaction_id),
        )

    # ==========================
    # Claims
    # ==========================
    async def claim_referral_earning(self, account_id: int, earning_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "claim_referral_earning",
            lambda s: referral_service.claim(s, account_id, earning_id, now=now),
            account_id=account_id,
        )

    async def claim_milestone_reward(self, account_id: int, reward_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "claim_milestone_reward",
            lambda s: milestone_service.claim(s, account_id, reward_id, now=now),
            account_id=account_id,
        )

    async def claim_mystery_box_reward(
        self, account_id: int, reward_id: int, *, now: datetime | None = None
    ) -> OpResult:
        return await self._run(
            "claim_mystery_box_reward",
            lambda s: self.boxes.claim(s, account_id, reward_id, now=now),
            account_id=account_id,
        )

    # ==========================
    # Randomized rewards
    # ==========================
    async def spin_daily(self, account_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "spin_daily",
            lambda s: spin_service.spin_daily(s, account_id, rng=self.rng, now=now),
            account_id=account_id,
        )

    async def spin_super(self, account_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "spin_super",
            lambda s: spin_service.spin_super(s, account_id, rng=self.rng, now=now),
            account_id=account_id,
        )

    async def buy_mystery_box(self, account_id: int, box_type: str, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "buy_mystery_box",
            lambda s: self.boxes.buy(s, account_id, box_type, now=now),
            account_id=account_id,
        )

    async def open_mystery_box(self, account_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "open_mystery_box",
            lambda s: self.boxes.open(s, account_id, rng=self.rng, now=now),
            account_id=account_id,
        )

    async def get_daily_reward(self, account_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "get_daily_reward",
            lambda s: daily_reward_service.get(s, account_id, rng=self.rng, now=now),
            account_id=account_id,
        )

    async def claim_daily_reward(self, account_id: int, reward_id: int, *, now: datetime | None = None) -> OpResult:
        return await self._run(
            "claim_daily_reward",
            lambda s: daily_reward_service.claim(s, account_id, reward_id, now=now),
            account_id=account_id,
        )

    # ==========================
    # Admin
    # ==========================
    async def set_price(self, item_type: str, price_cents: int) -> OpResult:
        setter = getattr(self.prices, "set", None)
        if setter is None:
            return OpResult(ok=False, error=InvalidConfiguration.code, message="price table is read-only")
        return await self._run(
            "set_price",
            lambda s: setter(s, item_type, price_cents),
            lock_key=("price", item_type),
        )

    async def set_withdrawal_tax(self, percent: int) -> OpResult:
        return await self._run(
            "set_withdrawal_tax",
            lambda s: app_settings_service.set_withdrawal_tax_percent(s, percent),
            lock_key=("setting", "withdrawal_tax_percent"),
        )

    async def grant_extra_spins(self, account_id: int, count: int) -> OpResult:
        return await self._run(
            "grant_extra_spins",
            lambda s: spin_service.grant_extra_spins(s, account_id, count),
            account_id=account_id,
        )


game_service = GameService()
