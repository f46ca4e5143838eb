"""
Domain log endpoints.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import LogCreate, LogOutput
from backoffice.services.domain import LogService
from backoffice.services.domain.log_service import LOG_EXPORT_COLUMNS
from shared.config.constants import Limits, Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section
from shared.security.auth import current_user_context
from shared.utils.export import export_response
from shared.utils.schemas import ExportFormat

router = APIRouter(prefix="/api/logs", tags=["logs"])

require_logs = require_section(Sections.LOGS)


@router.get("", response_model=list[LogOutput])
def list_logs(
    section: str | None = None,
    level: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    limit: int = Query(default=200, ge=1, le=Limits.LOGS_MAX_ROWS),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_logs),
) -> list[LogOutput]:
    entries = LogService(db).list_logs(
        get_partner_id(ctx),
        section=section,
        level=level,
        date_from=date_from,
        date_to=date_to,
        search=search,
        limit=limit,
    )
    return [LogOutput.model_validate(e) for e in entries]


@router.post("", response_model=LogOutput, status_code=status.HTTP_201_CREATED)
def report_log(
    body: LogCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(current_user_context),
) -> LogOutput:
    """Error reports from the back-office client. Any signed-in user may send one."""
    entry = LogService(db).create(
        get_partner_id(ctx),
        get_user_id(ctx),
        section=body.section,
        level=body.level,
        message=body.message,
        details=body.details,
        action=body.action,
    )
    return LogOutput.model_validate(entry)


@router.get("/export")
def export_logs(
    export_format: ExportFormat = Query(default="csv", alias="format"),
    section: str | None = None,
    level: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_logs),
) -> Response:
    service = LogService(db)
    entries = service.list_logs(
        get_partner_id(ctx),
        section=section,
        level=level,
        date_from=date_from,
        date_to=date_to,
        search=search,
        limit=Limits.LOGS_MAX_ROWS,
    )
    rows = [service.to_export_row(e) for e in entries]
    return export_response(rows, LOG_EXPORT_COLUMNS, export_format, "logs")
