"""
Executors (delivery partners) and their delivery zones.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import DEFAULT_KM_GRADUATION_METERS, DeliveryPayer, EntityStatus

from .base import Base, BigIntPK, TimestampMixin


class Executor(TimestampMixin, Base):
    """
    A delivery-fulfillment partner: an own courier fleet or a third-party
    courier service. Carries its own pricing and distance-pay settings.
    """

    __tablename__ = "executor"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    own_couriers: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    telegram_bot_token: Mapped[Optional[str]] = mapped_column(Text)
    telegram_chat_id: Mapped[Optional[str]] = mapped_column(Text)

    payment_for_pour: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_terminal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_cashless: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    commission_percent: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    different_prices: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price_markup_percent: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    bad_weather_surcharge_percent: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    # restaurant | client
    delivery_payer_default: Mapped[str] = mapped_column(Text, default=DeliveryPayer.RESTAURANT, nullable=False)
    default_payment_method_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("payment_method.id", ondelete="SET NULL")
    )
    # active | inactive
    status: Mapped[str] = mapped_column(Text, default=EntityStatus.ACTIVE, nullable=False)
    no_zone_message: Mapped[Optional[str]] = mapped_column(Text)

    km_calculation_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price_per_km: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    km_graduation_meters: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_KM_GRADUATION_METERS, nullable=False
    )

    zones: Mapped[list["PerformerDeliveryZone"]] = relationship(
        back_populates="executor",
        cascade="all, delete-orphan",
        order_by="PerformerDeliveryZone.id",
    )

    def __repr__(self) -> str:
        return f"<Executor(id={self.id}, name='{self.name}')>"


class PerformerDeliveryZone(TimestampMixin, Base):
    """Priced polygon belonging to an executor."""

    __tablename__ = "performer_delivery_zone"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    executor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("executor.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(Text)
    price_uah: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    courier_payment: Mapped[Optional[float]] = mapped_column(Float)
    # [[{"lat": .., "lng": ..}, ...], ...]
    polygons: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)

    executor: Mapped["Executor"] = relationship(back_populates="zones")
