"""
Couriers and the partner's own courier delivery zones.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, Float, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin


class Courier(TimestampMixin, Base):
    __tablename__ = "courier"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    branch_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("branch.id", ondelete="SET NULL"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    lastname: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    vehicle_type: Mapped[Optional[str]] = mapped_column(Text)
    telegram_user_id: Mapped[Optional[str]] = mapped_column(Text)
    telegram_username: Mapped[Optional[str]] = mapped_column(Text)
    is_own: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_external: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Personal cabinet address for external couriers, e.g. "ivan-petrenko"
    cabinet_slug: Mapped[Optional[str]] = mapped_column(Text, index=True)

    def __repr__(self) -> str:
        return f"<Courier(id={self.id}, name='{self.name}')>"


class CourierDeliveryZone(TimestampMixin, Base):
    """Priced polygon served by the partner's own couriers."""

    __tablename__ = "courier_delivery_zone"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(Text)
    price_uah: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    courier_payment: Mapped[Optional[float]] = mapped_column(Float)
    free_delivery_threshold: Mapped[Optional[float]] = mapped_column(Float)
    min_order_amount: Mapped[Optional[float]] = mapped_column(Float)
    polygons: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)
