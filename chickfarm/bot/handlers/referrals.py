from __future__ import annotations

from aiogram import Router
from aiogram.types import CallbackQuery

from chickfarm.bot.ui import NOT_REGISTERED, error_text, usdt
from chickfarm.services.game import game_service

router = Router()


@router.callback_query(lambda c: c.data and (c.data.startswith("ref:claim:") or c.data.startswith("ms:claim:")))
async def on_claim(cb: CallbackQuery, account_id: int | None = None) -> None:
    tail = cb.data.rsplit(":", 1)[-1]
    if account_id is None or not tail.isdigit():
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    if cb.data.startswith("ref:"):
        res = await game_service.claim_referral_earning(account_id, int(tail))
        amount = res.value.amount_cents if res.ok else 0
    else:
        res = await game_service.claim_milestone_reward(account_id, int(tail))
        amount = res.value.reward_cents if res.ok else 0

    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    await cb.answer(f"💵 +{usdt(amount)}", show_alert=True)
