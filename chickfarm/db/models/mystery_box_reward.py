from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class MysteryBoxReward(Base):
    """One purchased box.

    sealed (reward_type is NULL) -> drawn (reward materialized) -> opened (claimed).
    """

    __tablename__ = "mystery_box_rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)

    box_type: Mapped[str] = mapped_column(String(16), nullable=False)

    # usdt | chicken | resources | eggs
    reward_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    reward_details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    rarity: Mapped[str | None] = mapped_column(String(16), nullable=True)

    opened: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    drawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
