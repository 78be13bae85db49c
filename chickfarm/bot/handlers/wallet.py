from __future__ import annotations

import logging

from aiogram import Router
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message

from chickfarm.bot.keyboards import kb_back_home
from chickfarm.bot.ui import NOT_REGISTERED, error_text, usdt
from chickfarm.core.config import settings
from chickfarm.core.money import to_cents
from chickfarm.core.time import fmt_dt
from chickfarm.db.session import session_scope
from chickfarm.services.app_settings.service import app_settings_service
from chickfarm.services.game import game_service
from chickfarm.services.ledger.service import ledger_service

log = logging.getLogger(__name__)

router = Router()


class DepositFSM(StatesGroup):
    waiting_amount = State()
    waiting_txid = State()


class WithdrawFSM(StatesGroup):
    waiting_amount = State()
    waiting_address = State()


def _parse_amount(text: str | None) -> int | None:
    try:
        cents = to_cents((text or "").strip().replace(",", "."))
    except ValueError:
        return None
    return cents if cents > 0 else None


async def _notify_owner(bot, text: str) -> None:
    owner_id = int(settings.owner_tg_id or 0)
    if not owner_id:
        return
    try:
        await bot.send_message(chat_id=owner_id, text=text)
    except Exception:
        log.warning("owner_notify_failed", exc_info=True)


@router.callback_query(lambda c: c.data == "wallet:deposit")
async def on_deposit(cb: CallbackQuery, state: FSMContext, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return
    await state.clear()
    await state.set_state(DepositFSM.waiting_amount)
    await cb.message.edit_text(
        "➕ <b>Deposit</b>\n\nSend the USDT amount you transferred (e.g. 50):",
        reply_markup=kb_back_home(),
        parse_mode="HTML",
    )
    await cb.answer()


@router.message(DepositFSM.waiting_amount)
async def on_deposit_amount(message: Message, state: FSMContext) -> None:
    cents = _parse_amount(message.text)
    if cents is None:
        await message.answer("❌ Send the amount as a number, e.g. 50")
        return
    await state.update_data(amount_cents=cents)
    await state.set_state(DepositFSM.waiting_txid)
    await message.answer("🧾 Now send the blockchain transaction hash:")


@router.message(DepositFSM.waiting_txid)
async def on_deposit_txid(message: Message, state: FSMContext, account_id: int | None = None) -> None:
    txid = (message.text or "").strip()
    data = await state.get_data()
    cents = int(data.get("amount_cents") or 0)
    await state.clear()
    if account_id is None or cents <= 0:
        await message.answer("❌ Session expired. Open Wallet → Deposit again.")
        return

    res = await game_service.request_deposit(account_id, cents, txid)
    if not res.ok:
        await message.answer(f"❌ {error_text(res)}", reply_markup=kb_back_home())
        return

    await message.answer(
        f"✅ Deposit of <b>{usdt(cents)}</b> is pending review.",
        reply_markup=kb_back_home(),
        parse_mode="HTML",
    )
    await _notify_owner(message.bot, f"📥 New deposit\nAccount: {account_id}\nAmount: {usdt(cents)}\nTx: {txid}")


@router.callback_query(lambda c: c.data == "wallet:withdraw")
async def on_withdraw(cb: CallbackQuery, state: FSMContext, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return
    async with session_scope() as session:
        balance = await ledger_service.balance(session, account_id)
        tax_percent = await app_settings_service.withdrawal_tax_percent(session)
    await state.clear()
    await state.set_state(WithdrawFSM.waiting_amount)
    await cb.message.edit_text(
        "➖ <b>Withdraw</b>\n\n"
        f"Available: <b>{usdt(balance)}</b>\n"
        f"Fee: {tax_percent}%\n\n"
        "Send the amount to withdraw:",
        reply_markup=kb_back_home(),
        parse_mode="HTML",
    )
    await cb.answer()


@router.message(WithdrawFSM.waiting_amount)
async def on_withdraw_amount(message: Message, state: FSMContext) -> None:
    cents = _parse_amount(message.text)
    if cents is None:
        await message.answer("❌ Send the amount as a number, e.g. 25.5")
        return
    await state.update_data(amount_cents=cents)
    await state.set_state(WithdrawFSM.waiting_address)
    await message.answer("🏦 Send your USDT (TRC20) address:")


@router.message(WithdrawFSM.waiting_address)
async def on_withdraw_address(message: Message, state: FSMContext, account_id: int | None = None) -> None:
    address = (message.text or "").strip()
    data = await state.get_data()
    cents = int(data.get("amount_cents") or 0)
    await state.clear()
    if account_id is None or cents <= 0:
        await message.answer("❌ Session expired. Open Wallet → Withdraw again.")
        return

    res = await game_service.request_withdrawal(account_id, cents, address)
    if not res.ok:
        await message.answer(f"❌ {error_text(res)}", reply_markup=kb_back_home())
        return

    meta = res.value.meta or {}
    await message.answer(
        "✅ <b>Withdrawal requested</b>\n\n"
        f"Amount: <b>{usdt(cents)}</b>\n"
        f"You receive: <b>{usdt(meta.get('net_cents', cents))}</b>\n"
        "Status: <b>pending</b>",
        reply_markup=kb_back_home(),
        parse_mode="HTML",
    )
    await _notify_owner(
        message.bot,
        f"📤 New withdrawal\nAccount: {account_id}\nAmount: {usdt(cents)}\nAddress: {address}",
    )


@router.callback_query(lambda c: c.data == "wallet:history")
async def on_history(cb: CallbackQuery, account_id: int | None = None) -> None:
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return
    async with session_scope() as session:
        txs = await ledger_service.list_transactions(session, account_id, limit=15)
    lines = ["📜 <b>History</b>\n"]
    if not txs:
        lines.append("Nothing yet.")
    for tx in txs:
        lines.append(f"{fmt_dt(tx.created_at)} {tx.type} {usdt(tx.amount_cents)} [{tx.status}]")
    await cb.message.edit_text("\n".join(lines), reply_markup=kb_back_home(), parse_mode="HTML")
    await cb.answer()
