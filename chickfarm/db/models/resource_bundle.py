from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from chickfarm.db.base import Base


class ResourceBundle(Base):
    """Fungible farm inventory, one row per account."""

    __tablename__ = "resource_bundles"
    __table_args__ = (
        CheckConstraint(
            "water_buckets >= 0 AND wheat_bags >= 0 AND eggs >= 0 AND mystery_boxes >= 0",
            name="ck_resource_bundles_non_negative",
        ),
    )

    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )

    water_buckets: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    wheat_bags: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    eggs: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    mystery_boxes: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
