from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_date(dt: datetime) -> date:
    return ensure_aware_utc(dt).date()


def period_key(dt: datetime) -> str:
    """Salary period, e.g. 2025-01."""
    return ensure_aware_utc(dt).strftime("%Y-%m")


def fmt_dt(dt: datetime | None) -> str:
    if not dt:
        return "—"
    return ensure_aware_utc(dt).strftime("%d.%m.%Y %H:%M UTC")


def fmt_timedelta(delta: timedelta) -> str:
    total = max(0, int(delta.total_seconds()))
    hours, rem = divmod(total, 3600)
    minutes = rem // 60
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"
