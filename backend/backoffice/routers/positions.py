"""
Positions: section grants, order-action flags and branch scope for staff.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import PositionCreate, PositionOutput, PositionUpdate
from backoffice.services.domain import PositionService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section

router = APIRouter(prefix="/api/positions", tags=["positions"])

require_positions = require_section(Sections.POSITIONS, Sections.EMPLOYEES)


@router.get("", response_model=list[PositionOutput])
def list_positions(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.POSITIONS, Sections.EMPLOYEES, Sections.STAFF)),
) -> list[PositionOutput]:
    return PositionService(db).list_positions(get_partner_id(ctx))


@router.get("/{position_id}", response_model=PositionOutput)
def get_position(
    position_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_positions),
) -> PositionOutput:
    return PositionService(db).get_by_id(position_id, get_partner_id(ctx))


@router.post("", response_model=PositionOutput, status_code=status.HTTP_201_CREATED)
def create_position(
    body: PositionCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_positions),
) -> PositionOutput:
    return PositionService(db).create(body.model_dump(), get_partner_id(ctx), get_user_id(ctx))


@router.patch("/{position_id}", response_model=PositionOutput)
def update_position(
    position_id: int,
    body: PositionUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_positions),
) -> PositionOutput:
    return PositionService(db).update(
        position_id,
        body.model_dump(exclude_unset=True),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.delete("/{position_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_position(
    position_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_positions),
) -> None:
    PositionService(db).delete(position_id, get_partner_id(ctx), get_user_id(ctx))
