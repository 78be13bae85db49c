from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class MilestoneReward(Base):
    __tablename__ = "milestone_rewards"
    __table_args__ = (
        UniqueConstraint("account_id", "milestone_cents", name="uq_milestone_rewards_account_milestone"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)

    milestone_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reward_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    claimed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
