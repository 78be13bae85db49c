import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from chickfarm.core.config import settings

# picked up from `extra=` when present
CONTEXT_FIELDS = ("corr_id", "tg_id", "account_id", "op", "tx")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in CONTEXT_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None) -> None:
    """JSON lines on stdout."""
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)
    for noisy in ("sqlalchemy.engine", "aiogram.event"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
