from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base

TX_TYPES = ("recharge", "withdrawal", "purchase", "sale", "bonus", "commission", "mystery_box")


class Transaction(Base):
    """Balance-affecting event.

    recharge / withdrawal start as pending and are moved once by an admin:
    pending -> completed | rejected. Internal entries are written completed.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )

    type: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(16), server_default="pending", nullable=False)

    # external-facing idempotency key
    transaction_id: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # recharge only: set once every upline level has been credited
    fanout_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
