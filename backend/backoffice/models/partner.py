"""
Multi-tenancy models: Partner, PartnerSettings and Branch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import EntityStatus, PartnerStatus

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class Partner(TimestampMixin, Base):
    """
    A restaurant business (top-level tenant).
    Every other row belongs to a partner for complete data isolation.
    """

    __tablename__ = "partner"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    url_suffix: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(Text)
    # active | paused | deleted
    status: Mapped[str] = mapped_column(Text, default=PartnerStatus.ACTIVE, nullable=False)
    pause_message: Mapped[Optional[str]] = mapped_column(Text)

    settings: Mapped[Optional["PartnerSettings"]] = relationship(
        back_populates="partner", uselist=False, cascade="all, delete-orphan"
    )
    branches: Mapped[list["Branch"]] = relationship(back_populates="partner")
    users: Mapped[list["User"]] = relationship(back_populates="partner")

    def __repr__(self) -> str:
        return f"<Partner(id={self.id}, name='{self.name}', url_suffix='{self.url_suffix}')>"


class PartnerSettings(TimestampMixin, Base):
    """Per-partner configuration, including integration credentials."""

    __tablename__ = "partner_settings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), unique=True, nullable=False
    )
    order_completion_norm_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    timezone: Mapped[str] = mapped_column(Text, default="Europe/Kyiv", nullable=False)
    next_order_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    currency_code: Mapped[str] = mapped_column(Text, default="UAH", nullable=False)
    currency_symbol: Mapped[str] = mapped_column(Text, default="₴", nullable=False)
    courier_no_zone_message: Mapped[Optional[str]] = mapped_column(Text)
    min_pickup_order_amount: Mapped[Optional[float]] = mapped_column(Float)

    # Telegram bots
    courier_bot_token: Mapped[Optional[str]] = mapped_column(Text)
    courier_bot_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    external_courier_bot_token: Mapped[Optional[str]] = mapped_column(Text)

    # Poster POS
    poster_account: Mapped[Optional[str]] = mapped_column(Text)
    poster_api_token: Mapped[Optional[str]] = mapped_column(Text)

    # Binotel telephony
    binotel_company_id: Mapped[Optional[str]] = mapped_column(Text, index=True)

    # Order history retention
    history_retention_days: Mapped[Optional[int]] = mapped_column(Integer)
    history_auto_cleanup_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    partner: Mapped["Partner"] = relationship(back_populates="settings")


class Branch(TimestampMixin, Base):
    """A physical restaurant location."""

    __tablename__ = "branch"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    # active | inactive
    status: Mapped[str] = mapped_column(Text, default=EntityStatus.ACTIVE, nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    telegram_bot_token: Mapped[Optional[str]] = mapped_column(Text)
    telegram_chat_id: Mapped[Optional[str]] = mapped_column(Text)

    poster_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    poster_spot_id: Mapped[Optional[int]] = mapped_column(Integer)
    poster_spot_name: Mapped[Optional[str]] = mapped_column(Text)
    poster_spot_address: Mapped[Optional[str]] = mapped_column(Text)

    partner: Mapped["Partner"] = relationship(back_populates="branches")

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, partner_id={self.partner_id}, name='{self.name}')>"
