from __future__ import annotations

from datetime import datetime

from sqlalchemy import (BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Integer,
                        String, func)
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_accounts_balance_non_negative"),
        CheckConstraint("extra_spins_available >= 0", name="ck_accounts_extra_spins_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Telegram identity of the owner (request layer)
    tg_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, index=True, nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)

    balance_cents: Mapped[int] = mapped_column(BigInteger, default=0, server_default="0", nullable=False)

    # ==========================
    # Referrals
    # ==========================
    # Stable personal code, never reassigned.
    referral_code: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    # Code typed at signup and the account it resolved to. Both are written once.
    referred_by_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounts.id"), index=True, nullable=True
    )

    total_referral_earnings_cents: Mapped[int] = mapped_column(
        BigInteger, default=0, server_default="0", nullable=False
    )
    total_team_earnings_cents: Mapped[int] = mapped_column(
        BigInteger, default=0, server_default="0", nullable=False
    )
    last_salary_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # ==========================
    # Daily reward / spin wheel
    # ==========================
    current_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    last_daily_reward_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_spin_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    extra_spins_available: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
