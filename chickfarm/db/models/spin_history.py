from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class SpinHistory(Base):
    """Audit log of spins; payout already happened when the row is written."""

    __tablename__ = "spin_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)

    spin_type: Mapped[str] = mapped_column(String(8), nullable=False)  # daily | super
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
