"""
Call-center models: clients and Binotel call records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin


class Client(TimestampMixin, Base):
    __tablename__ = "client"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    # Stored normalized (380XXXXXXXXX)
    phone: Mapped[Optional[str]] = mapped_column(Text, index=True)
    additional_phones: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)


class CallRecord(TimestampMixin, Base):
    """One telephony call as reported by Binotel webhooks."""

    __tablename__ = "call_record"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    general_call_id: Mapped[Optional[str]] = mapped_column(Text, index=True)
    company_id: Mapped[Optional[str]] = mapped_column(Text)
    branch_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("branch.id", ondelete="SET NULL"), index=True
    )
    client_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("client.id", ondelete="SET NULL")
    )
    # 0 = incoming, 1 = outgoing
    call_type: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_outgoing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    external_number: Mapped[Optional[str]] = mapped_column(Text, index=True)
    internal_number: Mapped[Optional[str]] = mapped_column(Text)
    pbx_number: Mapped[Optional[str]] = mapped_column(Text)
    # ringing | ANSWER | NOANSWER | BUSY | FAILED | ...
    call_status: Mapped[Optional[str]] = mapped_column(Text)
    waitsec: Mapped[Optional[int]] = mapped_column(Integer)
    billsec: Mapped[Optional[int]] = mapped_column(Integer)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    is_missed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_lost: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    employee_name: Mapped[Optional[str]] = mapped_column(Text)
    employee_email: Mapped[Optional[str]] = mapped_column(Text)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    answered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    raw: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
