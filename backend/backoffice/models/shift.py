"""
Branch shifts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin, utcnow


class Shift(TimestampMixin, Base):
    """
    A branch-scoped operating session. At most one shift per branch is open,
    enforced by a partial unique index.
    """

    __tablename__ = "shift"
    __table_args__ = (
        Index(
            "uq_shift_one_open_per_branch",
            "branch_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branch.id"), nullable=False, index=True
    )
    # open | closed
    status: Mapped[str] = mapped_column(Text, default="open", nullable=False)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    opened_by: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("app_user.id"))
    closed_by: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("app_user.id"))
    total_orders_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_orders_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
