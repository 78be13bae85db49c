from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import datetime

from chickfarm.core.config import settings
from chickfarm.core.errors import DuplicateTransaction, InvalidTransition
from chickfarm.core.money import percent_of
from chickfarm.core.time import utcnow
from chickfarm.db.models import Transaction
from chickfarm.services.app_settings.service import app_settings_service
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)

# TRC20 / ERC20 style
_ADDRESS_RE = re.compile(r"^[A-Za-z0-9]{26,64}$")


def new_withdrawal_id() -> str:
    return f"W{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def bonus_transaction_id(deposit_transaction_id: str) -> str:
    return f"bonus-{deposit_transaction_id}"


@dataclass(frozen=True)
class DepositConfirmation:
    transaction: Transaction
    bonus_cents: int
    # (level, beneficiary_id, amount_cents) actually credited to the upline
    commissions: tuple[tuple[int, int, int], ...] = ()


class WalletService:
    """Deposits and withdrawals: the externally confirmed side of the ledger."""

    async def request_deposit(
        self,
        session,
        account_id: int,
        amount_cents: int,
        transaction_id: str,
        *,
        now: datetime | None = None,
    ) -> Transaction:
        """Pending recharge keyed by the external `transaction_id`.

        Repeating the same request returns the existing row; reusing the id
        for anything else raises DuplicateTransaction.
        """
        if int(amount_cents) <= 0:
            raise ValueError("amount_must_be_positive")
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise ValueError("transaction_id_required")

        existing = await ledger_service.find_transaction(session, transaction_id)
        if existing is not None:
            if (
                existing.type == "recharge"
                and existing.account_id == account_id
                and existing.amount_cents == int(amount_cents)
            ):
                log.info("deposit_request_repeated account_id=%s tx=%s", account_id, transaction_id)
                return existing
            raise DuplicateTransaction(f"transaction {transaction_id} already exists")

        tx = await ledger_service.log(
            session,
            account_id=account_id,
            type="recharge",
            amount_cents=int(amount_cents),
            status="pending",
            transaction_id=transaction_id,
            now=now,
        )
        log.info("deposit_requested account_id=%s tx=%s amount_cents=%s", account_id, transaction_id, amount_cents)
        return tx

    async def request_withdrawal(
        self,
        session,
        account_id: int,
        amount_cents: int,
        usdt_address: str,
        *,
        now: datetime | None = None,
    ) -> Transaction:
        """Debits right away; a rejected withdrawal refunds."""
        amount_cents = int(amount_cents)
        if amount_cents <= 0:
            raise ValueError("amount_must_be_positive")
        usdt_address = (usdt_address or "").strip()
        if not _ADDRESS_RE.match(usdt_address):
            raise ValueError("invalid_usdt_address")

        tax_percent = await app_settings_service.withdrawal_tax_percent(session)
        tax = percent_of(amount_cents, tax_percent)
        await ledger_service.debit(session, account_id, amount_cents)
        tx = await ledger_service.log(
            session,
            account_id=account_id,
            type="withdrawal",
            amount_cents=amount_cents,
            status="pending",
            transaction_id=new_withdrawal_id(),
            meta={
                "usdt_address": usdt_address,
                "tax_cents": tax,
                "net_cents": amount_cents - tax,
                "tax_percent": tax_percent,
            },
            now=now,
        )
        log.info("withdrawal_requested account_id=%s tx=%s amount_cents=%s", account_id, tx.transaction_id, amount_cents)
        return tx

    async def confirm_deposit(
        self,
        session,
        transaction_id: str,
        *,
        now: datetime | None = None,
    ) -> DepositConfirmation:
        """pending recharge -> completed, credit, first-deposit bonus.

        The upline fan-out is not done here; it runs account by account in
        separate transactions after this one commits.
        """
        now = now or utcnow()
        tx = await ledger_service.transition(
            session,
            transaction_id=transaction_id,
            to_status="completed",
            expected_type="recharge",
            now=now,
        )
        await ledger_service.credit(session, tx.account_id, tx.amount_cents)

        bonus = 0
        if await ledger_service.completed_recharge_count(session, tx.account_id) == 1:
            bonus = percent_of(tx.amount_cents, settings.first_deposit_bonus_percent)
            if bonus > 0:
                await ledger_service.credit(session, tx.account_id, bonus)
                await ledger_service.log(
                    session,
                    account_id=tx.account_id,
                    type="bonus",
                    amount_cents=bonus,
                    transaction_id=bonus_transaction_id(transaction_id),
                    meta={"kind": "first_deposit", "deposit_transaction_id": transaction_id},
                    now=now,
                )

        log.info(
            "deposit_confirmed tx=%s account_id=%s amount_cents=%s bonus_cents=%s",
            transaction_id,
            tx.account_id,
            tx.amount_cents,
            bonus,
        )
        return DepositConfirmation(transaction=tx, bonus_cents=bonus)

    async def reject_transaction(self, session, transaction_id: str, *, now: datetime | None = None) -> Transaction:
        tx = await ledger_service.get_transaction(session, transaction_id)
        if tx.type not in ("recharge", "withdrawal"):
            raise InvalidTransition(f"{tx.type} transactions are not reviewed")

        tx = await ledger_service.transition(session, transaction_id=transaction_id, to_status="rejected", now=now)
        if tx.type == "withdrawal":
            await ledger_service.credit(session, tx.account_id, tx.amount_cents)
        log.info("transaction_rejected tx=%s type=%s account_id=%s", transaction_id, tx.type, tx.account_id)
        return tx

    async def complete_withdrawal(self, session, transaction_id: str, *, now: datetime | None = None) -> Transaction:
        tx = await ledger_service.transition(
            session,
            transaction_id=transaction_id,
            to_status="completed",
            expected_type="withdrawal",
            now=now,
        )
        log.info("withdrawal_completed tx=%s account_id=%s", transaction_id, tx.account_id)
        return tx


wallet_service = WalletService()
