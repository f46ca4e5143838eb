"""
Shift endpoints: open, close and per-shift statistics.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import ShiftOpen, ShiftOutput, ShiftStatsOutput
from backoffice.services.domain import ShiftService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_UPDATED, queue_change
from shared.security.access import allowed_branch_ids, ensure_branch_access, require_section

router = APIRouter(prefix="/api/shifts", tags=["shifts"])

require_shifts = require_section(Sections.OPEN_SHIFTS, Sections.ORDERS)


@router.get("", response_model=list[ShiftOutput])
def list_shifts(
    status_filter: str | None = Query(default=None, alias="status"),
    branch_id: int | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.OPEN_SHIFTS, Sections.ORDERS, Sections.HISTORY)),
) -> list[ShiftOutput]:
    if branch_id is not None:
        ensure_branch_access(ctx, branch_id)
        branch_ids = [branch_id]
    else:
        branch_ids = allowed_branch_ids(ctx)
    return ShiftService(db).list_shifts(
        get_partner_id(ctx),
        status=status_filter,
        branch_ids=branch_ids,
        limit=limit,
    )


@router.post("", response_model=ShiftOutput, status_code=status.HTTP_201_CREATED)
def open_shift(
    body: ShiftOpen,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_shifts),
) -> ShiftOutput:
    ensure_branch_access(ctx, body.branch_id)
    partner_id = get_partner_id(ctx)
    shift = ShiftService(db).open_shift(body.branch_id, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_CREATED, "shift", shift.id, partner_id, shift.branch_id)
    return shift


@router.post("/{shift_id}/close", response_model=ShiftOutput)
def close_shift(
    shift_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_shifts),
) -> ShiftOutput:
    """Close the shift and archive its completed orders."""
    partner_id = get_partner_id(ctx)
    service = ShiftService(db)
    ensure_branch_access(ctx, service.get_entity(shift_id, partner_id).branch_id)
    shift = service.close_shift(shift_id, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_UPDATED, "shift", shift.id, partner_id, shift.branch_id)
    return shift


@router.get("/{shift_id}/stats", response_model=ShiftStatsOutput)
def shift_stats(
    shift_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.OPEN_SHIFTS, Sections.ORDERS, Sections.REPORTS)),
) -> ShiftStatsOutput:
    partner_id = get_partner_id(ctx)
    service = ShiftService(db)
    ensure_branch_access(ctx, service.get_entity(shift_id, partner_id).branch_id)
    return service.stats(shift_id, partner_id)
