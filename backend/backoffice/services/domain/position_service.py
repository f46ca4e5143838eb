"""
Position Service: named bundles of section access, branch scope and
order-action permissions.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backoffice.models import Branch, Position, PositionBranch, PositionPermission, User
from backoffice.routers.schemas import PositionOutput
from backoffice.services.base_service import BaseCRUDService
from shared.config.constants import LogSection, Sections
from shared.utils.exceptions import ConflictError, DuplicateEntityError, ValidationError


class PositionService(BaseCRUDService[Position, PositionOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Position,
            output_schema=PositionOutput,
            entity_name="Position",
            log_section=LogSection.POSITIONS,
        )

    def to_output(self, entity: Position) -> PositionOutput:
        staff_count = self._db.scalar(
            select(func.count()).select_from(User).where(User.position_id == entity.id)
        ) or 0
        return PositionOutput(
            id=entity.id,
            partner_id=entity.partner_id,
            name=entity.name,
            can_delete_orders=entity.can_delete_orders,
            can_revert_order_status=entity.can_revert_order_status,
            can_skip_order_status=entity.can_skip_order_status,
            sections=entity.sections,
            branch_ids=entity.branch_ids,
            staff_count=staff_count,
        )

    def list_positions(self, partner_id: int) -> list[PositionOutput]:
        return self.list_all(partner_id, order_by=Position.name)

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_sections(self, sections: list[str]) -> list[str]:
        unknown = sorted(set(sections) - set(Sections.ALL))
        if unknown:
            raise ValidationError(f"Unknown sections: {', '.join(unknown)}", sections=unknown)
        return sorted(set(sections))

    def _check_branches(self, branch_ids: list[int], partner_id: int) -> list[int]:
        wanted = sorted(set(branch_ids))
        if not wanted:
            return []
        found = set(
            self._db.scalars(
                select(Branch.id).where(Branch.partner_id == partner_id, Branch.id.in_(wanted))
            ).all()
        )
        missing = [b for b in wanted if b not in found]
        if missing:
            raise ValidationError(f"Unknown branches: {missing}", branch_ids=missing)
        return wanted

    def _check_name_unique(self, name: str, partner_id: int, exclude_id: int | None = None) -> None:
        query = select(Position.id).where(
            Position.partner_id == partner_id,
            func.lower(Position.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Position.id != exclude_id)
        if self._db.scalar(query) is not None:
            raise DuplicateEntityError("Position", name, partner_id=partner_id)

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        self._check_name_unique(data["name"], partner_id)
        data["sections"] = self._check_sections(data.get("sections") or [])
        data["branch_ids"] = self._check_branches(data.get("branch_ids") or [], partner_id)
        return data

    def _validate_update(self, entity: Position, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        if data.get("name") is not None:
            self._require_name(data)
            self._check_name_unique(data["name"], partner_id, exclude_id=entity.id)
        elif "name" in data:
            data.pop("name")
        if data.get("sections") is not None:
            data["sections"] = self._check_sections(data["sections"])
        if data.get("branch_ids") is not None:
            data["branch_ids"] = self._check_branches(data["branch_ids"], partner_id)
        return data

    def _validate_delete(self, entity: Position, partner_id: int) -> None:
        staff = self._db.scalar(
            select(func.count()).select_from(User).where(User.position_id == entity.id)
        ) or 0
        if staff:
            raise ConflictError(
                f"Position '{entity.name}' is assigned to {staff} staff member(s)",
                position_id=entity.id,
            )

    # =========================================================================
    # Child rows
    # =========================================================================

    def _apply_children(self, entity: Position, sections: list[str] | None, branch_ids: list[int] | None) -> None:
        # Removals flush before re-adding rows under the same unique key
        if sections is not None:
            entity.permissions.clear()
            self._db.flush()
            entity.permissions = [PositionPermission(section=s) for s in sections]
        if branch_ids is not None:
            entity.branches.clear()
            self._db.flush()
            entity.branches = [PositionBranch(branch_id=b) for b in branch_ids]

    def create(self, data: dict[str, Any], partner_id: int, user_id: int | None) -> PositionOutput:
        data = dict(data)
        sections = data.pop("sections", None) if "sections" in data else None
        branch_ids = data.pop("branch_ids", None) if "branch_ids" in data else None
        data = self._validate_create({**data, "sections": sections or [], "branch_ids": branch_ids or []}, partner_id)
        sections = data.pop("sections")
        branch_ids = data.pop("branch_ids")

        entity = Position(partner_id=partner_id, **data)
        self._apply_children(entity, sections, branch_ids)
        self._db.add(entity)
        self._db.flush()
        self._record(partner_id, user_id, "create", "Position created", entity, sections=sections)
        self._commit("create position", partner_id=partner_id)
        self._db.refresh(entity)
        return self.to_output(entity)

    def update(self, entity_id: int, data: dict[str, Any], partner_id: int, user_id: int | None) -> PositionOutput:
        entity = self.get_entity(entity_id, partner_id)
        data = self._validate_update(entity, dict(data), partner_id)
        sections = data.pop("sections", None)
        branch_ids = data.pop("branch_ids", None)

        for field_name, value in data.items():
            if value is not None:
                setattr(entity, field_name, value)
        self._apply_children(entity, sections, branch_ids)

        self._record(partner_id, user_id, "update", "Position updated", entity, fields=sorted(data.keys()))
        self._commit("update position", entity_id=entity_id)
        self._db.refresh(entity)
        return self.to_output(entity)
