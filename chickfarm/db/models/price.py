from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class Price(Base):
    """Admin-tunable price per item type; missing rows fall back to defaults."""

    __tablename__ = "prices"

    item_type: Mapped[str] = mapped_column(String(32), primary_key=True)
    price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
