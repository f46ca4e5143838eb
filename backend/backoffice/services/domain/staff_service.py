"""
Staff Service: partner users, their positions and the fire/restore cycle.

Business rules:
- Login is unique within a partner
- Passwords are at least MIN_PASSWORD_LENGTH characters and stored as bcrypt
- A position must belong to the same partner
- Firing keeps the row (login is blocked); restoring clears the fired state
- The partner owner cannot be fired or edited through this service
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from backoffice.models import Position, User, utcnow
from backoffice.routers.schemas import StaffOutput
from backoffice.services.base_service import BaseCRUDService
from shared.config.constants import Limits, LogSection, Roles
from shared.config.logging import get_logger
from shared.security.password import hash_password
from shared.utils.exceptions import (
    DuplicateEntityError,
    ForbiddenError,
    InvalidStateError,
    ValidationError,
)

logger = get_logger(__name__)


class StaffService(BaseCRUDService[User, StaffOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=User,
            output_schema=StaffOutput,
            entity_name="Staff member",
            log_section=LogSection.STAFF,
        )

    def to_output(self, entity: User) -> StaffOutput:
        return StaffOutput(
            id=entity.id,
            partner_id=entity.partner_id,
            login=entity.login,
            name=entity.name,
            last_name=entity.last_name,
            phone=entity.phone,
            role=entity.role,
            position_id=entity.position_id,
            position_name=entity.position.name if entity.position else None,
            active=entity.active,
            fired_at=entity.fired_at,
            fired_reason=entity.fired_reason,
            created_at=entity.created_at,
        )

    def list_staff(self, partner_id: int, *, include_fired: bool = True) -> list[StaffOutput]:
        where = []
        if not include_fired:
            where.append(User.fired_at.is_(None))
        entities = self._repo.find_all(
            partner_id,
            where=where,
            options=[selectinload(User.position)],
            order_by=User.id,
        )
        return [self.to_output(e) for e in entities]

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_login(self, login: str, partner_id: int, exclude_id: int | None = None) -> str:
        login = (login or "").strip()
        if not login:
            raise ValidationError("Login is required", field="login")
        query = select(User.id).where(
            User.partner_id == partner_id,
            func.lower(User.login) == login.lower(),
        )
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if self._db.scalar(query) is not None:
            raise DuplicateEntityError("Staff member", login, partner_id=partner_id)
        return login

    @staticmethod
    def _check_password(password: str | None) -> str:
        if not password or len(password) < Limits.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {Limits.MIN_PASSWORD_LENGTH} characters",
                field="password",
            )
        return hash_password(password)

    def _check_position(self, position_id: int | None, partner_id: int) -> None:
        if position_id is None:
            return
        position = self._db.scalar(
            select(Position.id).where(Position.id == position_id, Position.partner_id == partner_id)
        )
        if position is None:
            raise ValidationError("Position does not belong to this partner", field="position_id")

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        data["login"] = self._check_login(data.get("login"), partner_id)
        data["password_hash"] = self._check_password(data.pop("password", None))
        self._check_position(data.get("position_id"), partner_id)
        data["role"] = Roles.STAFF
        data["active"] = True
        return data

    def _validate_update(self, entity: User, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        if entity.role == Roles.OWNER:
            raise ForbiddenError("edit the partner owner", user_id=entity.id)
        data = {k: v for k, v in data.items() if v is not None or k == "position_id"}
        if "login" in data:
            data["login"] = self._check_login(data["login"], partner_id, exclude_id=entity.id)
        if "password" in data:
            data["password_hash"] = self._check_password(data.pop("password"))
        if "position_id" in data:
            self._check_position(data["position_id"], partner_id)
        return data

    def _validate_delete(self, entity: User, partner_id: int) -> None:
        raise ValidationError("Staff members are fired, not deleted", user_id=entity.id)

    def _entity_info(self, entity: User) -> dict[str, Any]:
        return {"id": entity.id, "name": entity.login, "partner_id": entity.partner_id}

    # =========================================================================
    # Fire / restore
    # =========================================================================

    def fire(self, staff_id: int, partner_id: int, user_id: int | None, reason: str | None) -> StaffOutput:
        entity = self.get_entity(staff_id, partner_id)
        if entity.role == Roles.OWNER:
            raise ForbiddenError("fire the partner owner", user_id=staff_id)
        if entity.id == user_id:
            raise ValidationError("You cannot fire yourself", field="id")
        if entity.fired_at is not None:
            raise InvalidStateError("Staff member", "fired", ["active"], user_id=staff_id)

        entity.active = False
        entity.fired_at = utcnow()
        entity.fired_reason = (reason or "").strip() or None
        self._record(partner_id, user_id, "fire", "Staff member fired", entity, reason=entity.fired_reason)
        self._commit("fire staff member", staff_id=staff_id)
        self._db.refresh(entity)
        logger.info("Staff member fired", partner_id=partner_id, staff_id=staff_id)
        return self.to_output(entity)

    def restore(self, staff_id: int, partner_id: int, user_id: int | None) -> StaffOutput:
        entity = self.get_entity(staff_id, partner_id)
        if entity.fired_at is None and entity.active:
            raise InvalidStateError("Staff member", "active", ["fired"], user_id=staff_id)

        entity.active = True
        entity.fired_at = None
        entity.fired_reason = None
        self._record(partner_id, user_id, "restore", "Staff member restored", entity)
        self._commit("restore staff member", staff_id=staff_id)
        self._db.refresh(entity)
        return self.to_output(entity)

    def _record(self, partner_id, user_id, action, message, entity, **details) -> None:
        super()._record(partner_id, user_id, action, message, entity, login=entity.login, **details)
