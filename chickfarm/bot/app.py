import logging

from aiogram import Bot, Dispatcher

from chickfarm.bot.admin import router as admin_router
from chickfarm.bot.handlers.farm import router as farm_router
from chickfarm.bot.handlers.nav import router as nav_router
from chickfarm.bot.handlers.referrals import router as referrals_router
from chickfarm.bot.handlers.rewards import router as rewards_router
from chickfarm.bot.handlers.start import router as start_router
from chickfarm.bot.handlers.wallet import router as wallet_router
from chickfarm.bot.middlewares import AccountMiddleware, CorrelationIdMiddleware, RateLimitMiddleware
from chickfarm.core.config import settings

log = logging.getLogger(__name__)


async def run_bot() -> None:
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is not set")

    bot = Bot(token=settings.bot_token)
    dp = Dispatcher()
    dp.message.middleware(CorrelationIdMiddleware())
    dp.callback_query.middleware(CorrelationIdMiddleware())
    dp.callback_query.middleware(RateLimitMiddleware(min_interval_sec=0.4))
    dp.message.middleware(AccountMiddleware())
    dp.callback_query.middleware(AccountMiddleware())

    dp.include_router(start_router)
    dp.include_router(nav_router)
    dp.include_router(farm_router)
    dp.include_router(rewards_router)
    dp.include_router(wallet_router)
    dp.include_router(referrals_router)
    dp.include_router(admin_router)

    log.info("bot_start")
    await dp.start_polling(bot)
