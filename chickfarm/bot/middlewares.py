from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update

from chickfarm.db.session import session_scope
from chickfarm.repo import get_account_by_tg

log = logging.getLogger(__name__)


class CorrelationIdMiddleware(BaseMiddleware):
    """corr_id per update, passed to handlers for `extra=` logging."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        update: Update | None = data.get("event_update")
        if update:
            data["corr_id"] = f"u{update.update_id}"
            data["update_id"] = update.update_id
        return await handler(event, data)


class RateLimitMiddleware(BaseMiddleware):
    """Drops repeated taps on the same action button (spin, claim, buy...).

    Navigation callbacks are never throttled.
    """

    def __init__(self, min_interval_sec: float = 0.4, exempt_prefixes: tuple[str, ...] = ("nav:",)):
        self.min_interval_sec = min_interval_sec
        self.exempt_prefixes = exempt_prefixes
        self._last: dict[tuple[int, str], float] = {}

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        cb = getattr(event, "data", None)
        from_user = getattr(event, "from_user", None)
        if cb and from_user and not cb.startswith(self.exempt_prefixes):
            key = (from_user.id, cb)
            now = time.monotonic()
            last = self._last.get(key)
            if last and (now - last) < self.min_interval_sec:
                log.debug("callback_throttled", extra={"tg_id": from_user.id, "op": cb})
                return None
            self._last[key] = now
        return await handler(event, data)


class AccountMiddleware(BaseMiddleware):
    """Telegram user -> account_id (None until /start registered them)."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        from_user = getattr(event, "from_user", None)
        account_id = None
        if from_user:
            async with session_scope() as session:
                account = await get_account_by_tg(session, from_user.id)
            account_id = account.id if account else None
            log.debug(
                "account_resolved",
                extra={"tg_id": from_user.id, "account_id": account_id, "corr_id": data.get("corr_id")},
            )
        data["account_id"] = account_id
        return await handler(event, data)
