from __future__ import annotations

from aiogram import Router
from aiogram.types import CallbackQuery

from chickfarm.bot.keyboards import kb_boxes, kb_daily
from chickfarm.bot.ui import NOT_REGISTERED, error_text, reward_text
from chickfarm.db.session import session_scope
from chickfarm.services.game import game_service
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.rewards.kinds import describe
from chickfarm.services.rewards.mystery_box import mystery_box_service

router = Router()


@router.callback_query(lambda c: c.data in ("daily:get",) or (c.data or "").startswith("daily:claim:"))
async def on_daily(cb: CallbackQuery, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    if cb.data.startswith("daily:claim:"):
        tail = cb.data.rsplit(":", 1)[-1]
        if not tail.isdigit():
            await cb.answer()
            return
        res = await game_service.claim_daily_reward(account_id, int(tail))
        if not res.ok:
            await cb.answer(error_text(res), show_alert=True)
            return
        await cb.answer(f"🎉 {reward_text(res.value.reward_type, res.value.reward_details)}", show_alert=True)

    res = await game_service.get_daily_reward(account_id)
    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    row = res.value
    status = "claimed ✅" if row.claimed else "ready to claim"
    await cb.message.edit_text(
        "📅 <b>Daily reward</b>\n\n"
        f"Streak day: <b>{row.day}</b> / 7\n"
        f"Today: <b>{reward_text(row.reward_type, row.reward_details)}</b> ({status})",
        reply_markup=kb_daily(row.id, claimed=row.claimed),
        parse_mode="HTML",
    )
    if not cb.data.startswith("daily:claim:"):
        await cb.answer()


@router.callback_query(lambda c: c.data in ("spin:daily", "spin:super"))
async def on_spin(cb: CallbackQuery, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    if cb.data == "spin:super":
        res = await game_service.spin_super(account_id)
    else:
        res = await game_service.spin_daily(account_id)
    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    await cb.answer(f"🎡 You won {describe(res.value.reward)}!", show_alert=True)


async def _show_boxes(cb: CallbackQuery, account_id: int) -> None:
    async with session_scope() as session:
        bundle = await inventory_service.get_or_create(session, account_id)
        pending = await mystery_box_service.list_boxes(session, account_id, pending_only=True)
    drawn = [b for b in pending if b.reward_type]
    lines = ["📦 <b>Mystery boxes</b>\n", f"Unopened: <b>{bundle.mystery_boxes}</b>"]
    for box in drawn[:10]:
        lines.append(f"#{box.id} {box.box_type}: {reward_text(box.reward_type, box.reward_details)} ({box.rarity})")
    await cb.message.edit_text("\n".join(lines), reply_markup=kb_boxes(drawn), parse_mode="HTML")


@router.callback_query(lambda c: c.data and c.data.startswith("box:"))
async def on_box(cb: CallbackQuery, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    parts = cb.data.split(":")
    action = parts[1] if len(parts) > 1 else ""
    note = None

    if action == "buy" and len(parts) == 3:
        res = await game_service.buy_mystery_box(account_id, parts[2])
        note = f"📦 Bought a {parts[2]} box" if res.ok else None
    elif action == "open":
        res = await game_service.open_mystery_box(account_id)
        if res.ok:
            note = f"✨ {res.value.rarity}: {reward_text(res.value.reward_type, res.value.reward_details)}"
    elif action == "claim" and len(parts) == 3 and parts[2].isdigit():
        res = await game_service.claim_mystery_box_reward(account_id, int(parts[2]))
        note = "🎉 Reward added" if res.ok else None
    else:
        res = None

    if res is not None and not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return

    await _show_boxes(cb, account_id)
    await cb.answer(note or "")
