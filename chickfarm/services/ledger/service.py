from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update

from chickfarm.core.errors import InsufficientFunds, InvalidTransition, NotFound
from chickfarm.core.time import utcnow
from chickfarm.db.models import Account, Transaction
from chickfarm.db.models.transaction import TX_TYPES

log = logging.getLogger(__name__)

FINAL_STATUSES = ("completed", "rejected")


def new_transaction_id() -> str:
    return secrets.token_hex(16)


class LedgerService:
    """USDT balances (integer cents) and the transaction log.

    Every balance change is one conditional UPDATE, so the non-negative
    check and the write happen atomically in the database.
    """

    async def balance(self, session, account_id: int) -> int:
        value = await session.scalar(select(Account.balance_cents).where(Account.id == account_id))
        if value is None:
            raise NotFound(f"account {account_id} not found")
        return int(value)

    async def adjust(self, session, account_id: int, delta_cents: int) -> int:
        """Signed balance change. Returns the new balance."""
        delta_cents = int(delta_cents)
        if delta_cents == 0:
            raise ValueError("amount_must_be_non_zero")

        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.balance_cents + delta_cents >= 0)
            .values(balance_cents=Account.balance_cents + delta_cents)
            .returning(Account.balance_cents)
            .execution_options(synchronize_session="fetch")
        )
        new_balance = (await session.execute(stmt)).scalar_one_or_none()
        if new_balance is not None:
            return int(new_balance)

        # distinguish a missing account from a failed non-negative check
        current = await self.balance(session, account_id)
        log.info(
            "ledger_debit_rejected account_id=%s balance=%s delta=%s",
            account_id,
            current,
            delta_cents,
        )
        raise InsufficientFunds(f"balance {current} < {-delta_cents}")

    async def credit(self, session, account_id: int, amount_cents: int) -> int:
        if int(amount_cents) <= 0:
            raise ValueError("amount_must_be_positive")
        return await self.adjust(session, account_id, int(amount_cents))

    async def debit(self, session, account_id: int, amount_cents: int) -> int:
        if int(amount_cents) <= 0:
            raise ValueError("amount_must_be_positive")
        return await self.adjust(session, account_id, -int(amount_cents))

    # ---- transaction log -------------------------------------------------

    async def log(
        self,
        session,
        *,
        account_id: int,
        type: str,
        amount_cents: int,
        status: str = "completed",
        transaction_id: str | None = None,
        meta: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Transaction:
        if type not in TX_TYPES:
            raise ValueError(f"unknown_transaction_type: {type}")
        now = now or utcnow()
        tx = Transaction(
            account_id=account_id,
            type=type,
            amount_cents=int(amount_cents),
            status=status,
            transaction_id=transaction_id or new_transaction_id(),
            meta=meta,
            created_at=now,
            processed_at=now if status in FINAL_STATUSES else None,
        )
        session.add(tx)
        await session.flush()
        return tx

    async def get_transaction(self, session, transaction_id: str) -> Transaction:
        tx = await self.find_transaction(session, transaction_id)
        if not tx:
            raise NotFound(f"transaction {transaction_id} not found")
        return tx

    async def transition(
        self,
        session,
        *,
        transaction_id: str,
        to_status: str,
        expected_type: str | None = None,
        now: datetime | None = None,
    ) -> Transaction:
        """pending -> completed | rejected, exactly once.

        The guard lives in the WHERE clause: of two concurrent callers only
        one sees an affected row.
        """
        if to_status not in FINAL_STATUSES:
            raise ValueError(f"invalid_status: {to_status}")

        conds = [Transaction.transaction_id == transaction_id, Transaction.status == "pending"]
        if expected_type:
            conds.append(Transaction.type == expected_type)

        stmt = (
            update(Transaction)
            .where(*conds)
            .values(status=to_status, processed_at=now or utcnow())
            .returning(Transaction.id)
            .execution_options(synchronize_session="fetch")
        )
        row_id = (await session.execute(stmt)).scalar_one_or_none()
        if row_id is None:
            tx = await self.get_transaction(session, transaction_id)
            if expected_type and tx.type != expected_type:
                raise InvalidTransition(f"transaction {transaction_id} is {tx.type}, not {expected_type}")
            raise InvalidTransition(f"transaction {transaction_id} is already {tx.status}")
        return await session.get(Transaction, row_id)

    async def list_transactions(self, session, account_id: int, *, limit: int = 20) -> list[Transaction]:
        q = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return list((await session.scalars(q)).all())

    async def list_pending(self, session, *, type: str | None = None, limit: int = 50) -> list[Transaction]:
        q = select(Transaction).where(Transaction.status == "pending")
        if type:
            q = q.where(Transaction.type == type)
        q = q.order_by(Transaction.id.asc()).limit(limit)
        return list((await session.scalars(q)).all())

    async def find_transaction(self, session, transaction_id: str) -> Transaction | None:
        return await session.scalar(
            select(Transaction).where(Transaction.transaction_id == transaction_id).limit(1)
        )

    async def mark_fanout_completed(self, session, transaction_id: str, *, now: datetime | None = None) -> bool:
        stmt = (
            update(Transaction)
            .where(Transaction.transaction_id == transaction_id, Transaction.fanout_completed_at.is_(None))
            .values(fanout_completed_at=now or utcnow())
            .returning(Transaction.id)
            .execution_options(synchronize_session="fetch")
        )
        return (await session.execute(stmt)).scalar_one_or_none() is not None

    async def unfinished_fanouts(self, session, *, processed_before: datetime, limit: int = 100) -> list[str]:
        """Completed recharges whose upline credit never finished."""
        q = (
            select(Transaction.transaction_id)
            .where(
                Transaction.type == "recharge",
                Transaction.status == "completed",
                Transaction.fanout_completed_at.is_(None),
                Transaction.processed_at <= processed_before,
            )
            .order_by(Transaction.id.asc())
            .limit(limit)
        )
        return list((await session.scalars(q)).all())

    async def completed_recharge_count(self, session, account_id: int) -> int:
        cnt = await session.scalar(
            select(func.count(Transaction.id)).where(
                Transaction.account_id == account_id,
                Transaction.type == "recharge",
                Transaction.status == "completed",
            )
        )
        return int(cnt or 0)


ledger_service = LedgerService()
