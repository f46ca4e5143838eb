"""
Call center: Binotel webhooks and call history.

Binotel posts without credentials; the webhook endpoints always answer
{"status": "success"} so the PBX does not retry, including for unknown
companies.
"""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id
from backoffice.routers.schemas import CallOutput, WaitStats
from backoffice.services.domain import CallService
from backoffice.services.integrations import parse_body
from shared.config.constants import Limits, Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_UPDATED, queue_change
from shared.security.access import allowed_branch_ids, ensure_branch_access, require_section

router = APIRouter(tags=["calls"])

require_calls = require_section(Sections.CLIENTS, Sections.ORDERS, Sections.REPORTS)

SUCCESS = {"status": "success"}


async def _payload(request: Request) -> dict:
    body = await request.body()
    return parse_body(body, request.headers.get("content-type"))


@router.post("/api/integrations/binotel/incoming")
async def binotel_incoming(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> dict:
    record = CallService(db).handle_webhook("incoming", await _payload(request))
    if record is not None:
        queue_change(background_tasks, ENTITY_CREATED, "call", record.id, record.partner_id, record.branch_id)
    return SUCCESS


@router.post("/api/integrations/binotel/completed")
async def binotel_completed(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> dict:
    record = CallService(db).handle_webhook("completed", await _payload(request))
    if record is not None:
        queue_change(background_tasks, ENTITY_UPDATED, "call", record.id, record.partner_id, record.branch_id)
    return SUCCESS


@router.get("/api/calls", response_model=list[CallOutput])
def list_calls(
    branch_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    missed_only: bool = False,
    phone: str | None = None,
    limit: int = Query(default=Limits.CALLS_MAX_ROWS, ge=1, le=Limits.CALLS_MAX_ROWS),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_calls),
) -> list[CallOutput]:
    if branch_id is not None:
        ensure_branch_access(ctx, branch_id)
    calls = CallService(db).list_calls(
        get_partner_id(ctx),
        allowed_branches=allowed_branch_ids(ctx),
        branch_id=branch_id,
        date_from=date_from,
        date_to=date_to,
        missed_only=missed_only,
        phone=phone,
        limit=limit,
    )
    return [CallOutput.model_validate(c) for c in calls]


@router.get("/api/calls/lost", response_model=list[CallOutput])
def lost_calls(
    since: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_calls),
) -> list[CallOutput]:
    """Missed incoming calls with no later answered or outgoing call to the number."""
    calls = CallService(db).lost_calls(
        get_partner_id(ctx),
        allowed_branches=allowed_branch_ids(ctx),
        since=since,
    )
    return [CallOutput.model_validate(c) for c in calls]


@router.get("/api/calls/wait-stats", response_model=list[WaitStats])
def wait_stats(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_calls),
) -> list[WaitStats]:
    return CallService(db).wait_stats(
        get_partner_id(ctx),
        allowed_branches=allowed_branch_ids(ctx),
        date_from=date_from,
        date_to=date_to,
    )
