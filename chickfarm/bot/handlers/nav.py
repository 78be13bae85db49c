from __future__ import annotations

from aiogram import Router
from aiogram.types import CallbackQuery

from chickfarm.bot.keyboards import kb_farm, kb_main, kb_market, kb_referrals, kb_rewards, kb_wallet
from chickfarm.bot.ui import CHICKEN_EMOJI, NOT_REGISTERED, usdt
from chickfarm.core.config import settings
from chickfarm.core.time import fmt_timedelta
from chickfarm.db.session import session_scope
from chickfarm.repo import get_account
from chickfarm.services.app_settings.service import app_settings_service
from chickfarm.services.farm.service import farm_service, readiness
from chickfarm.services.inventory.service import inventory_service
from chickfarm.services.milestones.service import milestone_service
from chickfarm.services.prices.service import price_lookup
from chickfarm.services.referrals.service import referral_service
from chickfarm.services.salary.service import salary_service

router = Router()


async def _farm_text(session, account_id: int):
    bundle = await inventory_service.get_or_create(session, account_id)
    chickens = await farm_service.list_chickens(session, account_id)
    lines = [
        "🐔 <b>My farm</b>\n",
        f"💧 Water: <b>{bundle.water_buckets}</b>   🌾 Wheat: <b>{bundle.wheat_bags}</b>",
        f"🥚 Eggs: <b>{bundle.eggs}</b>   📦 Boxes: <b>{bundle.mystery_boxes}</b>\n",
    ]
    if not chickens:
        lines.append("No chickens yet. Visit the market!")
    for c in chickens:
        state = readiness(c)
        status = "ready ✅" if state.ready else f"resting {fmt_timedelta(state.remaining)}"
        lines.append(f"{CHICKEN_EMOJI.get(c.type, '🐔')} #{c.id} {c.type}: {status}")
    return "\n".join(lines), chickens


@router.callback_query(lambda c: c.data and c.data.startswith("nav:"))
async def on_nav(cb: CallbackQuery, account_id: int | None = None) -> None:
    where = cb.data.split(":", 1)[1]
    if account_id is None:
        await cb.answer(NOT_REGISTERED, show_alert=True)
        return

    async with session_scope() as session:
        account = await get_account(session, account_id)

        if where == "farm":
            text, chickens = await _farm_text(session, account_id)
            markup = kb_farm(chickens)
        elif where == "market":
            prices = await price_lookup.all(session)
            text = (
                "🛒 <b>Market</b>\n\n"
                f"🐣 Baby: {usdt(prices['baby_chicken'])}\n"
                f"🐔 Regular: {usdt(prices['regular_chicken'])}\n"
                f"🌟 Golden: {usdt(prices['golden_chicken'])}\n"
                f"💧 Water bucket: {usdt(prices['water_bucket'])}\n"
                f"🌾 Wheat bag: {usdt(prices['wheat_bag'])}\n"
                f"🥚 Egg (sell): {usdt(prices['egg'])}\n\n"
                f"Chickens sell back for {settings.sell_back_percent}% of the price."
            )
            markup = kb_market()
        elif where == "rewards":
            text = (
                "🎁 <b>Rewards</b>\n\n"
                f"🔥 Streak: <b>{account.current_streak}</b> day(s)\n"
                f"🎡 Extra spins: <b>{account.extra_spins_available}</b>\n"
                f"💎 Super spin costs {settings.super_spin_cost_usdt} USDT"
            )
            markup = kb_rewards()
        elif where == "wallet":
            tax_percent = await app_settings_service.withdrawal_tax_percent(session)
            text = (
                "💰 <b>Wallet</b>\n\n"
                f"Balance: <b>{usdt(account.balance_cents)}</b>\n"
                f"First deposit bonus: {settings.first_deposit_bonus_percent}%\n"
                f"Withdrawal fee: {tax_percent}%"
            )
            markup = kb_wallet()
        elif where == "referrals":
            summary = await referral_service.team_summary(session, account_id)
            earnings = await referral_service.list_earnings(session, account_id, claimed=False)
            milestones = await milestone_service.list_rewards(session, account_id, claimed=False)
            salaries = await salary_service.list_payments(session, account_id)
            me = await cb.bot.get_me()
            text = (
                "👥 <b>Referrals</b>\n\n"
                f"Your link: <code>https://t.me/{me.username}?start=ref_{account.referral_code}</code>\n\n"
                f"Direct referrals: <b>{summary.direct_referrals}</b> (active {summary.active_direct_referrals})\n"
                f"Unclaimed: <b>{usdt(summary.unclaimed_cents)}</b>\n"
                f"Total earned: <b>{usdt(summary.total_referral_earnings_cents)}</b>"
            )
            if salaries:
                text += "\n\n💼 <b>Salary</b>\n" + "\n".join(
                    f"{p.period}: {usdt(p.amount_cents)} ({p.active_referrals} active)" for p in salaries[:6]
                )
            markup = kb_referrals(earnings, milestones)
        else:
            text = f"🏠 <b>Main menu</b>\n\nBalance: <b>{usdt(account.balance_cents)}</b>"
            markup = kb_main(is_owner=settings.is_admin(cb.from_user.id))

    await cb.message.edit_text(text, reply_markup=markup, parse_mode="HTML")
    await cb.answer()
