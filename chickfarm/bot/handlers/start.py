from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message, ReplyKeyboardRemove

from chickfarm.bot.keyboards import kb_main
from chickfarm.bot.ui import error_text
from chickfarm.core.config import settings
from chickfarm.services.game import game_service

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    tg_id = message.from_user.id

    # /start ref_<CODE>, CODE is the referrer's stable referral_code
    code = None
    parts = (message.text or "").split(maxsplit=1)
    if len(parts) == 2 and parts[1].strip().startswith("ref_"):
        code = parts[1].strip()[len("ref_") :].strip() or None

    res = await game_service.register_account(
        tg_id,
        username=message.from_user.username,
        referral_code=code,
    )
    if not res.ok:
        await message.answer(error_text(res))
        return

    await message.answer(
        "Welcome to the farm! 🐔\n\n"
        "Buy chickens, feed them water and wheat, collect eggs and sell them for USDT.\n"
        "Invite friends and earn commission on six levels.",
        reply_markup=ReplyKeyboardRemove(),
    )
    await message.answer(
        "🏠 <b>Main menu</b>",
        reply_markup=kb_main(is_owner=settings.is_admin(tg_id)),
        parse_mode="HTML",
    )
