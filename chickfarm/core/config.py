import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def make_async_db_url(url: str) -> str:
    """Accepts Railway-style DATABASE_URL and returns sqlalchemy async url."""
    if url.startswith("postgresql+asyncpg://"):
        return url
    if url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://") :]
    raise RuntimeError("Unsupported DATABASE_URL format")


def make_sync_db_url(url: str) -> str:
    """Same database through a sync driver (Alembic runs synchronously)."""
    url = make_async_db_url(url)
    if url.startswith("sqlite+aiosqlite://"):
        return "sqlite://" + url[len("sqlite+aiosqlite://") :]
    return "postgresql://" + url[len("postgresql+asyncpg://") :]


@dataclass(frozen=True)
class Settings:
    bot_token: str | None
    database_url: str
    scheduler_enabled: bool
    log_level: str

    # owner (admin access)
    owner_tg_id: int
    admin_tg_ids: tuple[int, ...] = ()

    # Wallet
    first_deposit_bonus_percent: int = 10
    withdrawal_tax_percent: int = 5

    # Market
    sell_back_percent: int = 75

    # Spin wheel
    super_spin_cost_usdt: str = "10"

    # Salary
    salary_per_active_referral_usdt: str = "1"
    salary_min_interval_days: int = 28

    # optional salary sweep (off: salary is recomputed on the next team credit)
    scheduler_period_seconds: int = 3600
    # confirmed recharges older than this with an unfinished fan-out are resumed
    fanout_resume_grace_seconds: int = 300

    def is_admin(self, tg_id: int | None) -> bool:
        if not tg_id:
            return False
        tid = int(tg_id)
        return (bool(self.owner_tg_id) and tid == self.owner_tg_id) or tid in self.admin_tg_ids


def _load_settings() -> Settings:
    database_url_raw = os.getenv("DATABASE_URL", "").strip()

    owner_raw = os.getenv("OWNER_TG_ID", "0").strip()
    if not owner_raw.isdigit():
        raise RuntimeError("OWNER_TG_ID is invalid (must be digits)")

    return Settings(
        bot_token=(os.getenv("BOT_TOKEN") or "").strip() or None,
        database_url=make_async_db_url(database_url_raw) if database_url_raw else "",
        scheduler_enabled=_env_bool("SCHEDULER_ENABLED", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        owner_tg_id=int(owner_raw),
        admin_tg_ids=tuple(
            int(x.strip())
            for x in (os.getenv("ADMIN_TG_IDS") or "").split(",")
            if x.strip().isdigit()
        ),

        # Wallet
        first_deposit_bonus_percent=int(os.getenv("FIRST_DEPOSIT_BONUS_PERCENT", "10")),
        withdrawal_tax_percent=int(os.getenv("WITHDRAWAL_TAX_PERCENT", "5")),

        # Market
        sell_back_percent=int(os.getenv("SELL_BACK_PERCENT", "75")),

        # Spin wheel
        super_spin_cost_usdt=os.getenv("SUPER_SPIN_COST_USDT", "10").strip(),

        # Salary
        salary_per_active_referral_usdt=os.getenv("SALARY_PER_ACTIVE_REFERRAL_USDT", "1").strip(),
        salary_min_interval_days=int(os.getenv("SALARY_MIN_INTERVAL_DAYS", "28")),
        scheduler_period_seconds=int(os.getenv("SCHEDULER_PERIOD_SECONDS", "3600")),
        fanout_resume_grace_seconds=int(os.getenv("FANOUT_RESUME_GRACE_SECONDS", "300")),
    )


settings = _load_settings()
