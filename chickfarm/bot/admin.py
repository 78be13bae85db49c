from __future__ import annotations

import logging

from aiogram import Router
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message

from chickfarm.bot.keyboards import kb_admin_menu, kb_admin_review
from chickfarm.bot.ui import error_text, usdt
from chickfarm.core.config import settings
from chickfarm.core.money import to_cents
from chickfarm.core.time import fmt_dt
from chickfarm.db.models import Account, Transaction
from chickfarm.db.session import session_scope
from chickfarm.services.app_settings.service import app_settings_service
from chickfarm.services.game import game_service
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)

router = Router()


class AdminPriceFSM(StatesGroup):
    waiting_value = State()


class AdminSpinsFSM(StatesGroup):
    waiting_value = State()


class AdminTaxFSM(StatesGroup):
    waiting_value = State()


async def _notify(bot, tg_id: int | None, text: str) -> None:
    if not tg_id:
        return
    try:
        await bot.send_message(chat_id=tg_id, text=text)
    except Exception:
        log.warning("user_notify_failed tg_id=%s", tg_id, exc_info=True)


@router.callback_query(lambda c: c.data == "admin:menu")
async def on_admin_menu(cb: CallbackQuery) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    await cb.message.edit_text("🛠 <b>Admin</b>", reply_markup=kb_admin_menu(), parse_mode="HTML")
    await cb.answer()


@router.callback_query(lambda c: c.data and c.data.startswith("admin:pending:"))
async def on_admin_pending(cb: CallbackQuery) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    tx_type = cb.data.split(":", 2)[2]

    async with session_scope() as session:
        pending = await ledger_service.list_pending(session, type=tx_type, limit=10)

    if not pending:
        await cb.answer("Nothing pending", show_alert=True)
        return

    for tx in pending:
        meta = tx.meta or {}
        extra = f"\nAddress: <code>{meta['usdt_address']}</code>\nNet: {usdt(meta.get('net_cents', 0))}" if "usdt_address" in meta else ""
        await cb.message.answer(
            f"<b>{tx.type}</b> #{tx.id}\n"
            f"Account: {tx.account_id}\n"
            f"Amount: <b>{usdt(tx.amount_cents)}</b>\n"
            f"Tx: <code>{tx.transaction_id}</code>\n"
            f"Created: {fmt_dt(tx.created_at)}" + extra,
            reply_markup=kb_admin_review(tx.id),
            parse_mode="HTML",
        )
    await cb.answer()


@router.callback_query(lambda c: c.data and (c.data.startswith("admin:approve:") or c.data.startswith("admin:reject:")))
async def on_admin_review(cb: CallbackQuery) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    _, action, raw_id = cb.data.split(":", 2)
    if not raw_id.isdigit():
        await cb.answer()
        return

    async with session_scope() as session:
        tx = await session.get(Transaction, int(raw_id))
        if not tx:
            await cb.answer("Not found", show_alert=True)
            return
        account = await session.get(Account, tx.account_id)
        transaction_id, tx_type, amount = tx.transaction_id, tx.type, tx.amount_cents
        owner_tg = account.tg_id if account else None

    if action == "reject":
        res = await game_service.reject_transaction(transaction_id)
        user_text = f"❌ Your {tx_type} of {usdt(amount)} was rejected."
    elif tx_type == "recharge":
        res = await game_service.confirm_deposit(transaction_id)
        user_text = f"✅ Deposit of {usdt(amount)} confirmed."
        if res.ok and res.value.bonus_cents:
            user_text += f"\n🎁 First deposit bonus: {usdt(res.value.bonus_cents)}"
    else:
        res = await game_service.complete_withdrawal(transaction_id)
        user_text = f"✅ Withdrawal of {usdt(amount)} sent."

    if not res.ok:
        await cb.answer(error_text(res), show_alert=True)
        return

    log.info("admin_review admin_tg_id=%s action=%s tx=%s", cb.from_user.id, action, transaction_id)
    await cb.message.edit_text(f"{cb.message.html_text}\n\n<b>{action}d</b>", parse_mode="HTML")
    await _notify(cb.bot, owner_tg, user_text)
    await cb.answer()


@router.callback_query(lambda c: c.data == "admin:price")
async def on_admin_price(cb: CallbackQuery, state: FSMContext) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    await state.set_state(AdminPriceFSM.waiting_value)
    await cb.message.answer("Send <code>item_type price</code>, e.g. <code>golden_chicken 400</code>", parse_mode="HTML")
    await cb.answer()


@router.message(AdminPriceFSM.waiting_value)
async def on_admin_price_value(message: Message, state: FSMContext) -> None:
    if not settings.is_admin(message.from_user.id):
        await state.clear()
        return
    parts = (message.text or "").split()
    await state.clear()
    if len(parts) != 2:
        await message.answer("❌ Format: item_type price")
        return
    try:
        cents = to_cents(parts[1])
    except ValueError:
        await message.answer("❌ Bad price")
        return

    res = await game_service.set_price(parts[0], cents)
    if not res.ok:
        await message.answer(f"❌ {error_text(res)} {res.message or ''}")
        return
    await message.answer(f"✅ {parts[0]} = {usdt(cents)}", reply_markup=kb_admin_menu())


@router.callback_query(lambda c: c.data == "admin:spins")
async def on_admin_spins(cb: CallbackQuery, state: FSMContext) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    await state.set_state(AdminSpinsFSM.waiting_value)
    await cb.message.answer("Send <code>account_id count</code>", parse_mode="HTML")
    await cb.answer()


@router.message(AdminSpinsFSM.waiting_value)
async def on_admin_spins_value(message: Message, state: FSMContext) -> None:
    if not settings.is_admin(message.from_user.id):
        await state.clear()
        return
    parts = (message.text or "").split()
    await state.clear()
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        await message.answer("❌ Format: account_id count")
        return

    res = await game_service.grant_extra_spins(int(parts[0]), int(parts[1]))
    if not res.ok:
        await message.answer(f"❌ {error_text(res)}")
        return
    await message.answer(f"✅ Account {parts[0]} now has {res.value} extra spins", reply_markup=kb_admin_menu())


@router.callback_query(lambda c: c.data == "admin:tax")
async def on_admin_tax(cb: CallbackQuery, state: FSMContext) -> None:
    if not settings.is_admin(cb.from_user.id):
        await cb.answer("Access denied", show_alert=True)
        return
    async with session_scope() as session:
        current = await app_settings_service.withdrawal_tax_percent(session)
    await state.set_state(AdminTaxFSM.waiting_value)
    await cb.message.answer(f"Withdrawal fee is {current}%. Send the new percent (0-100):")
    await cb.answer()


@router.message(AdminTaxFSM.waiting_value)
async def on_admin_tax_value(message: Message, state: FSMContext) -> None:
    if not settings.is_admin(message.from_user.id):
        await state.clear()
        return
    raw = (message.text or "").strip().rstrip("%")
    await state.clear()
    if not raw.isdigit():
        await message.answer("❌ Send a whole number, e.g. 5")
        return

    res = await game_service.set_withdrawal_tax(int(raw))
    if not res.ok:
        await message.answer(f"❌ {error_text(res)}")
        return
    log.info("admin_withdrawal_tax admin_tg_id=%s percent=%s", message.from_user.id, res.value)
    await message.answer(f"✅ Withdrawal fee = {res.value}%", reply_markup=kb_admin_menu())
