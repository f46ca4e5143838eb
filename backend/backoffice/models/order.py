"""
Orders and order items.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin


class Order(TimestampMixin, Base):
    """
    A customer order. Lives in the active board until its shift closes,
    then it is archived and only visible through history.
    """

    __tablename__ = "customer_order"
    __table_args__ = (
        Index("ix_order_partner_archived", "partner_id", "archived_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branch.id"), nullable=False, index=True
    )
    shift_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("shift.id"), index=True
    )
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # in_progress | en_route | completed
    status: Mapped[str] = mapped_column(Text, default="in_progress", nullable=False, index=True)
    # paid | unpaid
    payment_status: Mapped[str] = mapped_column(Text, default="unpaid", nullable=False)
    payment_method_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("payment_method.id", ondelete="SET NULL")
    )
    # delivery | pickup
    delivery_type: Mapped[str] = mapped_column(Text, default="delivery", nullable=False)

    client_name: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text, index=True)
    address_line: Mapped[Optional[str]] = mapped_column(Text)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    comment: Mapped[Optional[str]] = mapped_column(Text)

    total_amount: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    delivery_price_uah: Mapped[Optional[float]] = mapped_column(Float)
    distance_km: Mapped[Optional[float]] = mapped_column(Float)

    # courier | performer | null
    executor_type: Mapped[Optional[str]] = mapped_column(Text)
    executor_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("executor.id", ondelete="SET NULL"), index=True
    )
    executor_zone_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("performer_delivery_zone.id", ondelete="SET NULL")
    )
    courier_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("courier.id", ondelete="SET NULL"), index=True
    )
    courier_zone_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("courier_delivery_zone.id", ondelete="SET NULL")
    )
    # restaurant | client
    delivery_payer: Mapped[Optional[str]] = mapped_column(Text)
    courier_payment_amount: Mapped[Optional[float]] = mapped_column(Float)
    bad_weather: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    en_route_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.order_number}, status='{self.status}')>"


class OrderItem(Base):
    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customer_order.id"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    base_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    # [{"name": .., "price": .., "quantity": ..}]
    modifiers: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items")
