from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chickfarm.core.config import settings
from chickfarm.core.errors import NotFound
from chickfarm.db.models import Account
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.referrals.service import referral_service

log = logging.getLogger(__name__)


async def get_account(session: AsyncSession, account_id: int) -> Account:
    account = await session.get(Account, account_id)
    if not account:
        raise NotFound(f"account {account_id} not found")
    return account


async def get_account_by_tg(session: AsyncSession, tg_id: int) -> Account | None:
    return await session.scalar(select(Account).where(Account.tg_id == tg_id).limit(1))


async def ensure_account(
    session: AsyncSession,
    tg_id: int | None,
    *,
    username: str | None = None,
    referral_code: str | None = None,
) -> tuple[Account, bool]:
    """Returns (account, created).

    The referrer is resolved only when the account is created: unknown codes
    are ignored and an existing account is never re-parented.
    """
    if tg_id is not None:
        account = await get_account_by_tg(session, tg_id)
        if account:
            if username is not None and account.username != username:
                account.username = username
                await session.flush()
            return account, False

    parent = await referral_service.resolve_code(session, referral_code)

    account = Account(
        tg_id=tg_id,
        username=username or None,
        is_admin=settings.is_admin(tg_id),
        referral_code=await referral_service.generate_code(session),
        referred_by_code=parent.referral_code if parent else None,
        parent_id=parent.id if parent else None,
    )
    session.add(account)
    await session.flush()  # account row must exist before the bundle FK
    await inventory_service.get_or_create(session, account.id)

    log.info(
        "account_created account_id=%s tg_id=%s parent_id=%s",
        account.id,
        tg_id,
        account.parent_id,
    )
    return account, True
