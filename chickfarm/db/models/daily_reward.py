from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class DailyReward(Base):
    __tablename__ = "daily_rewards"
    __table_args__ = (UniqueConstraint("account_id", "reward_date", name="uq_daily_rewards_account_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)

    reward_date: Mapped[date] = mapped_column(Date, nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)  # streak day 1..7

    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    claimed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
