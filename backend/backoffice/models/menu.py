"""
Menu mirror of the partner's Poster POS account.

Rows are keyed by (partner_id, poster_*_id) and kept in sync by the Poster
integration; rows that disappear from Poster are deactivated, not deleted.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin


class MenuCategory(TimestampMixin, Base):
    __tablename__ = "menu_category"
    __table_args__ = (
        UniqueConstraint("partner_id", "poster_category_id", name="uq_menu_category_poster"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    poster_category_id: Mapped[Optional[int]] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_poster_category_id: Mapped[Optional[int]] = mapped_column(Integer)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class MenuProduct(TimestampMixin, Base):
    __tablename__ = "menu_product"
    __table_args__ = (
        UniqueConstraint("partner_id", "poster_product_id", name="uq_menu_product_poster"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    poster_product_id: Mapped[Optional[int]] = mapped_column(Integer)
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("menu_category.id", ondelete="SET NULL"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class MenuModifier(TimestampMixin, Base):
    __tablename__ = "menu_modifier"
    __table_args__ = (
        UniqueConstraint("partner_id", "poster_modifier_id", name="uq_menu_modifier_poster"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    poster_modifier_id: Mapped[Optional[int]] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    group_name: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class ProductModifier(Base):
    __tablename__ = "product_modifier"
    __table_args__ = (
        UniqueConstraint("product_id", "modifier_id", name="uq_product_modifier"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_product.id"), nullable=False, index=True
    )
    modifier_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_modifier.id"), nullable=False, index=True
    )
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    min_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
