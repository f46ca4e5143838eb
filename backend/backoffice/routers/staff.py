"""
Staff management endpoints.

Thin router that delegates to StaffService. Staff are fired and restored,
never deleted.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import FireStaffRequest, StaffCreate, StaffOutput, StaffUpdate
from backoffice.services.domain import StaffService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section

router = APIRouter(prefix="/api/staff", tags=["staff"])

require_staff = require_section(Sections.STAFF, Sections.EMPLOYEES)


@router.get("", response_model=list[StaffOutput])
def list_staff(
    include_fired: bool = True,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> list[StaffOutput]:
    return StaffService(db).list_staff(get_partner_id(ctx), include_fired=include_fired)


@router.get("/{staff_id}", response_model=StaffOutput)
def get_staff(
    staff_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> StaffOutput:
    return StaffService(db).get_by_id(staff_id, get_partner_id(ctx))


@router.post("", response_model=StaffOutput, status_code=status.HTTP_201_CREATED)
def create_staff(
    body: StaffCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> StaffOutput:
    return StaffService(db).create(body.model_dump(), get_partner_id(ctx), get_user_id(ctx))


@router.patch("/{staff_id}", response_model=StaffOutput)
def update_staff(
    staff_id: int,
    body: StaffUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> StaffOutput:
    return StaffService(db).update(
        staff_id,
        body.model_dump(exclude_unset=True),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.post("/{staff_id}/fire", response_model=StaffOutput)
def fire_staff(
    staff_id: int,
    body: FireStaffRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> StaffOutput:
    return StaffService(db).fire(staff_id, get_partner_id(ctx), get_user_id(ctx), body.reason)


@router.post("/{staff_id}/restore", response_model=StaffOutput)
def restore_staff(
    staff_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_staff),
) -> StaffOutput:
    return StaffService(db).restore(staff_id, get_partner_id(ctx), get_user_id(ctx))
