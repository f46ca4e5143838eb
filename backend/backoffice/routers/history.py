"""
Order history, export, retention cleanup and the dashboard report.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id, parse_id_list
from backoffice.routers.schemas import CleanupOutput, CleanupRequest, DashboardReport, HistoryOutput
from backoffice.services.domain import HistoryService
from backoffice.services.domain.history_service import HISTORY_EXPORT_COLUMNS
from shared.config.constants import Limits, Sections
from shared.infrastructure.db import get_db
from shared.security.access import allowed_branch_ids, ensure_branch_access, require_owner, require_section
from shared.utils.export import export_response
from shared.utils.schemas import DeliveryTypeLiteral, ExportFormat

router = APIRouter(tags=["history"])

require_history = require_section(Sections.HISTORY)


class HistoryFilters:
    """Query parameters shared by the history list and its export."""

    def __init__(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        branch_ids: str | None = Query(default=None, description="Comma separated ids"),
        courier_ids: str | None = None,
        executor_ids: str | None = None,
        shift_ids: str | None = None,
        payment_method_ids: str | None = None,
        delivery_type: DeliveryTypeLiteral | None = None,
        sort_by: str = "completed_at",
        sort_dir: str = "desc",
        limit: int = Query(default=Limits.HISTORY_MAX_ROWS, ge=1, le=Limits.HISTORY_MAX_ROWS),
    ):
        self.filters = {
            "date_from": date_from,
            "date_to": date_to,
            "branch_ids": parse_id_list(branch_ids),
            "courier_ids": parse_id_list(courier_ids),
            "executor_ids": parse_id_list(executor_ids),
            "shift_ids": parse_id_list(shift_ids),
            "payment_method_ids": parse_id_list(payment_method_ids),
            "delivery_type": delivery_type,
        }
        self.sort_by = sort_by
        self.sort_dir = sort_dir
        self.limit = limit


def _run(db: Session, ctx: dict, params: HistoryFilters) -> HistoryOutput:
    for branch_id in params.filters["branch_ids"] or []:
        ensure_branch_access(ctx, branch_id)
    return HistoryService(db).history(
        get_partner_id(ctx),
        allowed_branches=allowed_branch_ids(ctx),
        sort_by=params.sort_by,
        sort_dir=params.sort_dir,
        limit=params.limit,
        **params.filters,
    )


@router.get("/api/history", response_model=HistoryOutput)
def history(
    params: HistoryFilters = Depends(),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_history),
) -> HistoryOutput:
    """Completed orders with totals, capped at 500 rows."""
    return _run(db, ctx, params)


@router.get("/api/history/export")
def export_history(
    export_format: ExportFormat = Query(default="csv", alias="format"),
    params: HistoryFilters = Depends(),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_history),
) -> Response:
    result = _run(db, ctx, params)
    rows = [HistoryService.to_export_row(row) for row in result.orders]
    return export_response(rows, HISTORY_EXPORT_COLUMNS, export_format, "order-history")


@router.post("/api/history/cleanup", response_model=CleanupOutput)
def cleanup_history(
    body: CleanupRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_owner),
) -> CleanupOutput:
    """Delete archived orders older than the retention period. Owner only."""
    return HistoryService(db).cleanup(get_partner_id(ctx), body.retention_days, get_user_id(ctx))


@router.get("/api/reports/dashboard", response_model=DashboardReport)
def dashboard(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.DASHBOARD, Sections.REPORTS)),
) -> DashboardReport:
    return HistoryService(db).dashboard(
        get_partner_id(ctx),
        allowed_branches=allowed_branch_ids(ctx),
        date_from=date_from,
        date_to=date_to,
    )
