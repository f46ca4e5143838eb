"""
Users and positions.

A position bundles the sections a staff member can open, the branches they
can see (none = all) and three order-action flags.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .partner import Partner


class User(TimestampMixin, Base):
    """Partner owner or staff member. Login is unique within a partner."""

    __tablename__ = "app_user"
    __table_args__ = (
        UniqueConstraint("partner_id", "login", name="uq_user_partner_login"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    login: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    # OWNER | STAFF
    role: Mapped[str] = mapped_column(Text, default="STAFF", nullable=False)
    position_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("position.id"), index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    fired_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    fired_reason: Mapped[Optional[str]] = mapped_column(Text)

    partner: Mapped["Partner"] = relationship(back_populates="users")
    position: Mapped[Optional["Position"]] = relationship(back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login='{self.login}', role='{self.role}')>"


class Position(TimestampMixin, Base):
    __tablename__ = "position"
    __table_args__ = (
        UniqueConstraint("partner_id", "name", name="uq_position_partner_name"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    partner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("partner.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    can_delete_orders: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_revert_order_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_skip_order_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    permissions: Mapped[list["PositionPermission"]] = relationship(
        back_populates="position", cascade="all, delete-orphan"
    )
    branches: Mapped[list["PositionBranch"]] = relationship(
        back_populates="position", cascade="all, delete-orphan"
    )
    users: Mapped[list["User"]] = relationship(back_populates="position")

    @property
    def sections(self) -> list[str]:
        return sorted(p.section for p in self.permissions)

    @property
    def branch_ids(self) -> list[int]:
        return sorted(b.branch_id for b in self.branches)


class PositionPermission(Base):
    __tablename__ = "position_permission"
    __table_args__ = (
        UniqueConstraint("position_id", "section", name="uq_position_permission"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    position_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("position.id"), nullable=False, index=True
    )
    section: Mapped[str] = mapped_column(Text, nullable=False)

    position: Mapped["Position"] = relationship(back_populates="permissions")


class PositionBranch(Base):
    __tablename__ = "position_branch"
    __table_args__ = (
        UniqueConstraint("position_id", "branch_id", name="uq_position_branch"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    position_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("position.id"), nullable=False, index=True
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branch.id"), nullable=False, index=True
    )

    position: Mapped["Position"] = relationship(back_populates="branches")
