from __future__ import annotations

from datetime import datetime

from sqlalchemy import (BigInteger, Boolean, DateTime, ForeignKey, Integer, String,
                        UniqueConstraint, func)
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class ReferralEarning(Base):
    """Commission line for one upline level of a single confirmed deposit."""

    __tablename__ = "referral_earnings"
    __table_args__ = (
        UniqueConstraint(
            "deposit_transaction_id", "beneficiary_id", name="uq_referral_earnings_deposit_beneficiary"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    beneficiary_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    # transactions.transaction_id of the recharge that produced this line
    deposit_transaction_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # one-way: unclaimed -> claimed
    claimed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
