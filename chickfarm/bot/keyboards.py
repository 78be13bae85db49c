from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from chickfarm.bot.ui import CHICKEN_EMOJI


def kb_main(*, is_owner: bool = False) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="🐔 My farm", callback_data="nav:farm")
    b.button(text="🛒 Market", callback_data="nav:market")
    b.button(text="🎁 Rewards", callback_data="nav:rewards")
    b.button(text="💰 Wallet", callback_data="nav:wallet")
    b.button(text="👥 Referrals", callback_data="nav:referrals")
    if is_owner:
        b.button(text="🛠 Admin", callback_data="admin:menu")
    b.adjust(2)
    return b.as_markup()


def kb_back_home() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(1)
    return b.as_markup()


def kb_farm(chickens) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for c in chickens[:20]:
        emoji = CHICKEN_EMOJI.get(c.type, "🐔")
        b.button(text=f"{emoji} #{c.id} hatch", callback_data=f"farm:hatch:{c.id}")
        b.button(text=f"💸 #{c.id} sell", callback_data=f"farm:sell:{c.id}")
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(*([2] * min(len(chickens), 20)), 1)
    return b.as_markup()


def kb_confirm_sell(chicken_id: int) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="✅ Yes, sell", callback_data=f"farm:sell_ok:{chicken_id}")
    b.button(text="⬅️ Back", callback_data="nav:farm")
    b.adjust(1)
    return b.as_markup()


def kb_market() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="🐣 Baby chicken", callback_data="market:chicken:baby")
    b.button(text="🐔 Regular chicken", callback_data="market:chicken:regular")
    b.button(text="🌟 Golden chicken", callback_data="market:chicken:golden")
    b.button(text="💧 Water x10", callback_data="market:res:water_bucket:10")
    b.button(text="🌾 Wheat x10", callback_data="market:res:wheat_bag:10")
    b.button(text="🥚 Sell all eggs", callback_data="market:eggs:all")
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(1, 1, 1, 2, 1, 1)
    return b.as_markup()


def kb_rewards() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="📅 Daily reward", callback_data="daily:get")
    b.button(text="🎡 Daily spin", callback_data="spin:daily")
    b.button(text="💎 Super spin", callback_data="spin:super")
    b.button(text="📦 Mystery boxes", callback_data="box:menu")
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(1)
    return b.as_markup()


def kb_daily(reward_id: int, *, claimed: bool) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    if not claimed:
        b.button(text="✅ Claim", callback_data=f"daily:claim:{reward_id}")
    b.button(text="⬅️ Back", callback_data="nav:rewards")
    b.adjust(1)
    return b.as_markup()


def kb_boxes(unclaimed) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for box_type in ("basic", "standard", "advanced", "legendary"):
        b.button(text=f"🛒 {box_type.title()}", callback_data=f"box:buy:{box_type}")
    b.button(text="🔓 Open a box", callback_data="box:open")
    for box in unclaimed[:10]:
        b.button(text=f"🎁 Claim #{box.id}", callback_data=f"box:claim:{box.id}")
    b.button(text="⬅️ Back", callback_data="nav:rewards")
    b.adjust(2, 2, 1)
    return b.as_markup()


def kb_wallet() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="➕ Deposit", callback_data="wallet:deposit")
    b.button(text="➖ Withdraw", callback_data="wallet:withdraw")
    b.button(text="📜 History", callback_data="wallet:history")
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(2, 1, 1)
    return b.as_markup()


def kb_referrals(earnings, milestones) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for e in earnings[:10]:
        b.button(text=f"💵 Claim L{e.level} #{e.id}", callback_data=f"ref:claim:{e.id}")
    for m in milestones[:4]:
        b.button(text=f"🏆 Claim milestone #{m.id}", callback_data=f"ms:claim:{m.id}")
    b.button(text="⬅️ Back", callback_data="nav:home")
    b.adjust(1)
    return b.as_markup()


def kb_admin_menu() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="📥 Pending deposits", callback_data="admin:pending:recharge")
    b.button(text="📤 Pending withdrawals", callback_data="admin:pending:withdrawal")
    b.button(text="🏷 Set price", callback_data="admin:price")
    b.button(text="🎡 Grant extra spins", callback_data="admin:spins")
    b.button(text="💸 Withdrawal fee", callback_data="admin:tax")
    b.button(text="🏠 Main menu", callback_data="nav:home")
    b.adjust(1)
    return b.as_markup()


def kb_admin_review(row_id: int) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="✅ Approve", callback_data=f"admin:approve:{row_id}")
    b.button(text="❌ Reject", callback_data=f"admin:reject:{row_id}")
    b.adjust(2)
    return b.as_markup()
