from __future__ import annotations

from aiogram import Router
from aiogram.types import CallbackQuery

from chickfarm.bot.keyboards import kb_back_home, kb_confirm_sell
from chickfarm.bot.ui import NOT_REGISTERED, error_text, usdt
from chickfarm.db.session import session_scope
from chickfarm.services.game import game_service
from chickfarm.services.inventory.service import inventory_service

router = Router()


def _tail_int(data: str) -> int | None:
    tail = data.rsplit(":", 1)[-1]
    return int(tail) if tail.isdigit() else None


@router.callback_query(lambda c: c.data and c.data.startswith("farm:hatch:"))
async def on_hatch(cb: CallbackQuery, account_id: int | None = None) -> None:
    chicken_id = _tail_int(cb.data)
    if account_id is None or chicken_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    res = await game_service.hatch_chicken(account_id, chicken_id)
    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    await cb.answer(f"🥚 +{res.value.eggs} eggs (total {res.value.resources.eggs})", show_alert=True)


@router.callback_query(lambda c: c.data and c.data.startswith("farm:sell:"))
async def on_sell_confirm(cb: CallbackQuery) -> None:
    chicken_id = _tail_int(cb.data)
    if chicken_id is None:
        await cb.answer()
        return
    await cb.message.edit_text(
        f"Sell chicken #{chicken_id}? You get back part of its price.",
        reply_markup=kb_confirm_sell(chicken_id),
    )
    await cb.answer()


@router.callback_query(lambda c: c.data and c.data.startswith("farm:sell_ok:"))
async def on_sell(cb: CallbackQuery, account_id: int | None = None) -> None:
    chicken_id = _tail_int(cb.data)
    if account_id is None or chicken_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    res = await game_service.sell_chicken(account_id, chicken_id)
    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    await cb.message.edit_text(f"✅ Sold for <b>{usdt(res.value)}</b>", reply_markup=kb_back_home(), parse_mode="HTML")
    await cb.answer()


@router.callback_query(lambda c: c.data and c.data.startswith("market:"))
async def on_market(cb: CallbackQuery, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    parts = cb.data.split(":")
    kind = parts[1] if len(parts) > 1 else ""

    if kind == "chicken" and len(parts) == 3:
        res = await game_service.buy_chicken(account_id, parts[2])
        text = f"✅ Bought a {parts[2]} chicken (#{res.value.id})" if res.ok else None
    elif kind == "res" and len(parts) == 4 and parts[3].isdigit():
        res = await game_service.buy_resource(account_id, parts[2], int(parts[3]))
        text = f"✅ Bought {parts[3]} x {parts[2].replace('_', ' ')}" if res.ok else None
    elif kind == "eggs":
        async with session_scope() as session:
            bundle = await inventory_service.get_or_create(session, account_id)
            eggs = bundle.eggs
        if eggs <= 0:
            await cb.answer("You have no eggs.", show_alert=True)
            return
        res = await game_service.sell_eggs(account_id, eggs)
        text = f"✅ Sold {eggs} eggs for {usdt(res.value)}" if res.ok else None
    else:
        await cb.answer()
        return

    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return
    await cb.answer(text, show_alert=True)
