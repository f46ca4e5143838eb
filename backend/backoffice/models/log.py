"""
Domain log rows shown in the back-office "Logs" section.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin


class LogEntry(TimestampMixin, Base):
    __tablename__ = "log_entry"
    __table_args__ = (
        Index("ix_log_partner_created", "partner_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    section: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # info | warning | error | critical
    level: Mapped[str] = mapped_column(Text, default="info", nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    action: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger)
