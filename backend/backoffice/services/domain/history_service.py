"""
Order history, totals, exports, retention cleanup and the dashboard report.

History covers completed orders, whether still on the board or archived by
a closed shift. Delivery price and courier payment per row follow
pricing.history_delivery_and_payment.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backoffice.models import (
    Branch,
    Courier,
    CourierDeliveryZone,
    Executor,
    Order,
    OrderItem,
    PartnerSettings,
    PaymentMethod,
    PerformerDeliveryZone,
    utcnow,
)
from backoffice.routers.schemas import (
    CleanupOutput,
    DashboardReport,
    HistoryOutput,
    HistoryRow,
    HistoryTotals,
    ReportBucket,
)
from backoffice.services.domain.log_service import record_log
from backoffice.services.pricing import history_delivery_and_payment
from shared.config.constants import DeliveryType, ExecutorType, Limits, LogSection, OrderStatus
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import ValidationError

logger = get_logger(__name__)

SORT_FIELDS = {
    "completed_at": Order.completed_at,
    "created_at": Order.created_at,
    "archived_at": Order.archived_at,
    "order_number": Order.order_number,
    "total_amount": Order.total_amount,
}

HISTORY_EXPORT_COLUMNS = [
    "order_number",
    "created_at",
    "completed_at",
    "branch_name",
    "delivery_type",
    "client_name",
    "phone",
    "address_line",
    "payment_method_name",
    "payment_status",
    "total_amount",
    "delivery_price",
    "courier_payment",
    "zone_name",
    "executor_type",
    "executor_name",
    "courier_name",
    "distance_km",
]


def _by_id(db: Session, model, ids: set[int]) -> dict[int, Any]:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {row.id: row for row in db.scalars(select(model).where(model.id.in_(ids))).all()}


class HistoryService:
    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # History
    # =========================================================================

    def _query(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        branch_ids: list[int] | None = None,
        courier_ids: list[int] | None = None,
        executor_ids: list[int] | None = None,
        shift_ids: list[int] | None = None,
        payment_method_ids: list[int] | None = None,
        delivery_type: str | None = None,
    ):
        query = select(Order).where(
            Order.partner_id == partner_id,
            Order.status == OrderStatus.COMPLETED,
        )
        if date_from:
            query = query.where(Order.completed_at >= date_from)
        if date_to:
            query = query.where(Order.completed_at <= date_to)
        if branch_ids:
            query = query.where(Order.branch_id.in_(branch_ids))
        if allowed_branches is not None:
            query = query.where(Order.branch_id.in_(allowed_branches))
        if courier_ids:
            query = query.where(Order.courier_id.in_(courier_ids))
        if executor_ids:
            query = query.where(Order.executor_id.in_(executor_ids))
        if shift_ids:
            query = query.where(Order.shift_id.in_(shift_ids))
        if payment_method_ids:
            query = query.where(Order.payment_method_id.in_(payment_method_ids))
        if delivery_type:
            query = query.where(Order.delivery_type == delivery_type)
        return query

    def _rows(self, orders: list[Order]) -> list[HistoryRow]:
        branches = _by_id(self._db, Branch, {o.branch_id for o in orders})
        methods = _by_id(self._db, PaymentMethod, {o.payment_method_id for o in orders})
        executors = _by_id(self._db, Executor, {o.executor_id for o in orders})
        couriers = _by_id(self._db, Courier, {o.courier_id for o in orders})
        executor_zones = _by_id(self._db, PerformerDeliveryZone, {o.executor_zone_id for o in orders})
        courier_zones = _by_id(self._db, CourierDeliveryZone, {o.courier_zone_id for o in orders})

        rows = []
        for o in orders:
            executor = executors.get(o.executor_id)
            courier = couriers.get(o.courier_id)
            amounts = history_delivery_and_payment(
                o,
                executor_zone=executor_zones.get(o.executor_zone_id),
                courier_zone=courier_zones.get(o.courier_zone_id),
                executor=executor,
            )
            branch = branches.get(o.branch_id)
            method = methods.get(o.payment_method_id)
            rows.append(
                HistoryRow(
                    id=o.id,
                    order_number=o.order_number,
                    branch_id=o.branch_id,
                    branch_name=branch.name if branch else None,
                    shift_id=o.shift_id,
                    status=o.status,
                    payment_status=o.payment_status,
                    payment_method_id=o.payment_method_id,
                    payment_method_name=method.name if method else None,
                    delivery_type=o.delivery_type,
                    client_name=o.client_name,
                    phone=o.phone,
                    address_line=o.address_line,
                    total_amount=o.total_amount,
                    delivery_price=amounts.delivery_price,
                    courier_payment=amounts.courier_payment,
                    zone_name=amounts.zone_name,
                    executor_type=o.executor_type,
                    executor_id=o.executor_id,
                    executor_name=executor.name if executor else None,
                    courier_id=o.courier_id,
                    courier_name=" ".join(filter(None, [courier.name, courier.lastname])) if courier else None,
                    distance_km=o.distance_km,
                    created_at=o.created_at,
                    completed_at=o.completed_at,
                    archived_at=o.archived_at,
                )
            )
        return rows

    @staticmethod
    def totals(rows: list[HistoryRow]) -> HistoryTotals:
        totals = HistoryTotals()
        for row in rows:
            totals.total_amount += row.total_amount or 0
            totals.total_delivery += row.delivery_price or 0
            totals.total_courier_payment += row.courier_payment or 0
            if row.delivery_type == DeliveryType.PICKUP:
                totals.pickup_count += 1
                totals.pickup_amount += row.total_amount or 0
            else:
                totals.delivery_count += 1
                totals.delivery_amount += row.total_amount or 0
        for name in ("total_amount", "total_delivery", "total_courier_payment", "delivery_amount", "pickup_amount"):
            setattr(totals, name, round(getattr(totals, name), 2))
        return totals

    def history(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None = None,
        sort_by: str = "completed_at",
        sort_dir: str = "desc",
        limit: int = Limits.HISTORY_MAX_ROWS,
        **filters: Any,
    ) -> HistoryOutput:
        column = SORT_FIELDS.get(sort_by)
        if column is None:
            raise ValidationError(f"Cannot sort history by {sort_by}", field="sort_by")
        if sort_dir not in ("asc", "desc"):
            raise ValidationError("Sort direction must be asc or desc", field="sort_dir")
        limit = max(1, min(limit, Limits.HISTORY_MAX_ROWS))

        query = self._query(partner_id, allowed_branches=allowed_branches, **filters)
        order_by = column.asc() if sort_dir == "asc" else column.desc()
        # One extra row tells us whether the result was cut
        orders = list(self._db.scalars(query.order_by(order_by, Order.id.desc()).limit(limit + 1)).all())
        truncated = len(orders) > limit
        rows = self._rows(orders[:limit])
        return HistoryOutput(orders=rows, totals=self.totals(rows), limit=limit, truncated=truncated)

    @staticmethod
    def to_export_row(row: HistoryRow) -> dict[str, Any]:
        data = row.model_dump()
        return {column: data.get(column) for column in HISTORY_EXPORT_COLUMNS}

    # =========================================================================
    # Cleanup
    # =========================================================================

    def _retention_days(self, partner_id: int, retention_days: int | None) -> int:
        if retention_days:
            return retention_days
        configured = self._db.scalar(
            select(PartnerSettings.history_retention_days).where(PartnerSettings.partner_id == partner_id)
        )
        return configured or settings.history_retention_days_default

    def cleanup(
        self,
        partner_id: int,
        retention_days: int | None = None,
        user_id: int | None = None,
        *,
        now: datetime | None = None,
    ) -> CleanupOutput:
        """Delete archived orders older than the retention period."""
        days = self._retention_days(partner_id, retention_days)
        if days < 1:
            raise ValidationError("Retention must be at least one day", field="retention_days")
        cutoff = (now or utcnow()) - timedelta(days=days)

        stale = select(Order.id).where(
            Order.partner_id == partner_id,
            Order.archived_at.is_not(None),
            Order.archived_at < cutoff,
        )
        order_ids = list(self._db.scalars(stale).all())
        if order_ids:
            self._db.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids)))
            self._db.execute(delete(Order).where(Order.id.in_(order_ids)))

        record_log(
            self._db,
            partner_id=partner_id,
            section=LogSection.HISTORY_CLEANUP,
            message=f"Deleted {len(order_ids)} archived order(s) older than {days} day(s)",
            action="cleanup",
            user_id=user_id,
            details={"deleted": len(order_ids), "retention_days": days, "cutoff": cutoff.isoformat()},
        )
        safe_commit(self._db)
        logger.info("History cleanup", partner_id=partner_id, deleted=len(order_ids), retention_days=days)
        return CleanupOutput(deleted=len(order_ids), retention_days=days, cutoff=cutoff)

    def cleanup_all(self, *, now: datetime | None = None) -> dict[int, int]:
        """Run cleanup for every partner with automatic cleanup enabled."""
        partner_ids = self._db.scalars(
            select(PartnerSettings.partner_id).where(PartnerSettings.history_auto_cleanup_enabled.is_(True))
        ).all()
        return {pid: self.cleanup(pid, now=now).deleted for pid in partner_ids}

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> DashboardReport:
        query = self._query(
            partner_id,
            allowed_branches=allowed_branches,
            date_from=date_from,
            date_to=date_to,
        )
        orders = list(self._db.scalars(query.order_by(Order.id)).all())
        rows = self._rows(orders)

        by_branch: dict[int, ReportBucket] = {}
        by_executor: dict[tuple, ReportBucket] = {}
        for row in rows:
            bucket = by_branch.get(row.branch_id)
            if bucket is None:
                bucket = ReportBucket(
                    id=row.branch_id,
                    name=row.branch_name or f"Branch {row.branch_id}",
                    orders=0,
                    revenue=0,
                    delivery_total=0,
                    courier_payment_total=0,
                )
                by_branch[row.branch_id] = bucket
            self._add(bucket, row)

            if row.delivery_type == DeliveryType.PICKUP:
                continue
            if row.executor_type == ExecutorType.PERFORMER:
                key, name = ("performer", row.executor_id), row.executor_name or "Executor"
            elif row.executor_type == ExecutorType.COURIER:
                key, name = ("courier", None), "Own couriers"
            else:
                key, name = ("none", None), "Unassigned"
            bucket = by_executor.get(key)
            if bucket is None:
                bucket = ReportBucket(
                    id=key[1],
                    name=name,
                    orders=0,
                    revenue=0,
                    delivery_total=0,
                    courier_payment_total=0,
                )
                by_executor[key] = bucket
            self._add(bucket, row)

        return DashboardReport(
            date_from=date_from,
            date_to=date_to,
            totals=self.totals(rows),
            by_branch=sorted(by_branch.values(), key=lambda b: -b.revenue),
            by_executor=sorted(by_executor.values(), key=lambda b: -b.revenue),
        )

    @staticmethod
    def _add(bucket: ReportBucket, row: HistoryRow) -> None:
        bucket.orders += 1
        bucket.revenue = round(bucket.revenue + (row.total_amount or 0), 2)
        bucket.delivery_total = round(bucket.delivery_total + (row.delivery_price or 0), 2)
        bucket.courier_payment_total = round(bucket.courier_payment_total + (row.courier_payment or 0), 2)
