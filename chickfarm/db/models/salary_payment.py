from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class SalaryPayment(Base):
    __tablename__ = "salary_payments"
    __table_args__ = (UniqueConstraint("account_id", "period", name="uq_salary_payments_account_period"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)

    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # snapshot of the count the amount was computed from
    active_referrals: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
