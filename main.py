import asyncio
import logging
import subprocess
import sys

from chickfarm.bot.app import run_bot
from chickfarm.core.config import settings
from chickfarm.core.logging import setup_logging
from chickfarm.db.session import dispose_engine, init_engine
from chickfarm.scheduler.worker import run_scheduler

log = logging.getLogger(__name__)


def _run_alembic_upgrade_head_best_effort() -> None:
    """Apply migrations at boot (best-effort)."""
    try:
        subprocess.check_call([sys.executable, "-m", "alembic", "upgrade", "head"])
        log.info("alembic_upgrade_head_ok")
    except Exception:
        log.exception("alembic_upgrade_head_failed")


async def main() -> None:
    setup_logging()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is missing")
    init_engine(settings.database_url)
    _run_alembic_upgrade_head_best_effort()

    tasks = [asyncio.create_task(run_bot(), name="bot")]
    if settings.scheduler_enabled:
        tasks.append(asyncio.create_task(run_scheduler(), name="scheduler"))

    try:
        await asyncio.gather(*tasks)
    finally:
        for t in tasks:
            t.cancel()
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
