from __future__ import annotations

import logging

from chickfarm.core.config import settings
from chickfarm.core.time import utcnow
from chickfarm.db.models import AppSetting

log = logging.getLogger(__name__)

WITHDRAWAL_TAX_PERCENT = "withdrawal_tax_percent"


class AppSettingsService:
    """Admin-tunable integers; environment values are the defaults."""

    async def get_int(self, session, key: str, default: int) -> int:
        row = await session.get(AppSetting, key)
        if row is None or row.int_value is None:
            return int(default)
        return int(row.int_value)

    async def set_int(self, session, key: str, value: int) -> AppSetting:
        row = await session.get(AppSetting, key)
        if not row:
            row = AppSetting(key=key)
            session.add(row)
        row.int_value = int(value)
        row.updated_at = utcnow()
        await session.flush()
        log.info("app_setting_updated key=%s value=%s", key, value)
        return row

    async def withdrawal_tax_percent(self, session) -> int:
        return await self.get_int(session, WITHDRAWAL_TAX_PERCENT, settings.withdrawal_tax_percent)

    async def set_withdrawal_tax_percent(self, session, percent: int) -> int:
        if isinstance(percent, bool) or not isinstance(percent, int) or not 0 <= percent <= 100:
            raise ValueError("tax_percent_must_be_0_to_100")
        await self.set_int(session, WITHDRAWAL_TAX_PERCENT, percent)
        return percent


app_settings_service = AppSettingsService()
