"""
Login and token claims.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backoffice.models import Partner, Position, User
from backoffice.services.domain.log_service import record_log
from shared.config.constants import LogLevel, LogSection, OrderActions, PartnerStatus, Roles, Sections
from shared.config.logging import auth_logger as logger
from shared.infrastructure.db import safe_commit
from shared.security.password import verify_password


def build_access_claims(user: User) -> dict[str, Any]:
    """
    Token claims for a user.

    Owners get every section and order action with no branch restriction.
    Staff get their position's grants; an empty branch list means all
    branches (null claim).
    """
    if user.role == Roles.OWNER:
        return {
            "sub": str(user.id),
            "partner_id": user.partner_id,
            "role": Roles.OWNER,
            "login": user.login,
            "branch_ids": None,
            "sections": list(Sections.ALL),
            "flags": {flag: True for flag in OrderActions.ALL},
            "position_id": None,
        }

    position: Position | None = user.position
    if position is None:
        sections: list[str] = []
        branch_ids: list[int] | None = None
        flags = {flag: False for flag in OrderActions.ALL}
    else:
        sections = [s for s in position.sections if s in Sections.ALL]
        branch_ids = position.branch_ids or None
        flags = {
            OrderActions.CAN_DELETE_ORDERS: position.can_delete_orders,
            OrderActions.CAN_REVERT_ORDER_STATUS: position.can_revert_order_status,
            OrderActions.CAN_SKIP_ORDER_STATUS: position.can_skip_order_status,
        }

    return {
        "sub": str(user.id),
        "partner_id": user.partner_id,
        "role": Roles.STAFF,
        "login": user.login,
        "branch_ids": branch_ids,
        "sections": sections,
        "flags": flags,
        "position_id": user.position_id,
    }


class AuthService:
    def __init__(self, db: Session):
        self._db = db

    def _reject(self, reason: str, partner: Partner | None = None, **context: Any) -> HTTPException:
        logger.warning(f"LOGIN_FAILED: {reason}", **context)
        if partner is not None:
            record_log(
                self._db,
                partner_id=partner.id,
                section=LogSection.AUTH,
                level=LogLevel.WARNING,
                message=f"Failed login: {reason}",
                action="login_failed",
                details={"login": context.get("login")},
            )
            safe_commit(self._db)
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login or password",
        )

    def authenticate(self, partner_suffix: str, login: str, password: str) -> User:
        """
        Resolve the partner by url suffix and check the user's password.

        Raises:
            HTTPException 401: unknown partner/user or wrong password.
            HTTPException 403: paused or deleted partner, fired or inactive user.
        """
        partner = self._db.scalar(
            select(Partner).where(Partner.url_suffix == partner_suffix.strip().lower())
        )
        if partner is None:
            raise self._reject("partner not found", partner_suffix=partner_suffix)

        user = self._db.scalar(
            select(User)
            .options(
                selectinload(User.position).selectinload(Position.permissions),
                selectinload(User.position).selectinload(Position.branches),
            )
            .where(User.partner_id == partner.id, User.login == login.strip())
        )
        if user is None:
            raise self._reject("user not found", partner, login=login)

        if not verify_password(password, user.password_hash):
            raise self._reject("invalid password", partner, login=login, user_id=user.id)

        if partner.status != PartnerStatus.ACTIVE:
            logger.warning("LOGIN_REJECTED: partner not active", partner_id=partner.id, status=partner.status)
            message = partner.pause_message if partner.status == PartnerStatus.PAUSED else None
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=message or f"Partner account is {partner.status}",
            )

        if not user.active or user.fired_at is not None:
            logger.warning("LOGIN_REJECTED: user inactive", user_id=user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User account is disabled",
            )

        record_log(
            self._db,
            partner_id=partner.id,
            section=LogSection.AUTH,
            message=f"User {user.login} logged in",
            action="login",
            user_id=user.id,
        )
        safe_commit(self._db)
        logger.info("LOGIN_SUCCESS", user_id=user.id, partner_id=partner.id, role=user.role)
        return user
