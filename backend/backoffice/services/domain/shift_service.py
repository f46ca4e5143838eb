"""
Shift Service: branch operating sessions.

Business rules:
- At most one open shift per branch (service check plus a partial unique
  index for concurrent opens)
- Closing a shift recomputes its counters and archives its completed
  orders; unfinished orders stay on the board
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.models import Branch, Order, Shift, as_utc, utcnow
from backoffice.routers.schemas import ShiftOutput, ShiftStatsOutput
from backoffice.services.base_service import BaseService
from backoffice.services.domain.log_service import record_log
from shared.config.constants import DeliveryType, LogSection, OrderStatus, ShiftStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError, InvalidStateError, NotFoundError

logger = get_logger(__name__)


class ShiftService(BaseService[Shift]):
    def __init__(self, db: Session):
        super().__init__(db, Shift)

    def get_entity(self, shift_id: int, partner_id: int) -> Shift:
        shift = self._repo.find_by_id(shift_id, partner_id)
        if shift is None:
            raise NotFoundError("Shift", shift_id, partner_id=partner_id)
        return shift

    def list_shifts(
        self,
        partner_id: int,
        *,
        status: str | None = None,
        branch_ids: list[int] | None = None,
        limit: int = 100,
    ) -> list[ShiftOutput]:
        where = []
        if status:
            where.append(Shift.status == status)
        if branch_ids is not None:
            where.append(Shift.branch_id.in_(branch_ids))
        shifts = self._repo.find_all(
            partner_id,
            where=where,
            order_by=[Shift.opened_at.desc(), Shift.id.desc()],
            limit=max(1, min(limit, 500)),
        )
        return [ShiftOutput.model_validate(s) for s in shifts]

    def get_open_shift(self, branch_id: int, partner_id: int) -> Shift | None:
        return self._repo.find_one(
            partner_id,
            Shift.branch_id == branch_id,
            Shift.status == ShiftStatus.OPEN,
        )

    def open_shift(self, branch_id: int, partner_id: int, user_id: int | None) -> ShiftOutput:
        branch = self._db.scalar(
            select(Branch).where(Branch.id == branch_id, Branch.partner_id == partner_id)
        )
        if branch is None:
            raise NotFoundError("Branch", branch_id, partner_id=partner_id)

        if self.get_open_shift(branch_id, partner_id) is not None:
            raise ConflictError("Branch already has an open shift", branch_id=branch_id)

        shift = Shift(
            partner_id=partner_id,
            branch_id=branch_id,
            status=ShiftStatus.OPEN,
            opened_at=utcnow(),
            opened_by=user_id,
        )
        self._db.add(shift)
        try:
            self._db.flush()
        except IntegrityError:
            self._db.rollback()
            raise ConflictError("Branch already has an open shift", branch_id=branch_id)

        record_log(
            self._db,
            partner_id=partner_id,
            section=LogSection.SHIFTS,
            message=f"Shift opened for branch '{branch.name}'",
            action="open",
            user_id=user_id,
            details={"shift_id": shift.id, "branch_id": branch_id},
        )
        self._commit("open shift", branch_id=branch_id)
        self._db.refresh(shift)
        logger.info("Shift opened", partner_id=partner_id, branch_id=branch_id, shift_id=shift.id)
        return ShiftOutput.model_validate(shift)

    def _count(self, shift_id: int, *where) -> int:
        return self._db.scalar(
            select(func.count()).select_from(Order).where(Order.shift_id == shift_id, *where)
        ) or 0

    def close_shift(self, shift_id: int, partner_id: int, user_id: int | None) -> ShiftOutput:
        shift = self.get_entity(shift_id, partner_id)
        if shift.status != ShiftStatus.OPEN:
            raise InvalidStateError("Shift", shift.status, [ShiftStatus.OPEN], shift_id=shift_id)

        now = utcnow()
        shift.total_orders_count = self._count(shift.id)
        shift.completed_orders_count = self._count(shift.id, Order.status == OrderStatus.COMPLETED)
        shift.status = ShiftStatus.CLOSED
        shift.closed_at = now
        shift.closed_by = user_id

        archived = self._db.execute(
            update(Order)
            .where(
                Order.shift_id == shift.id,
                Order.status == OrderStatus.COMPLETED,
                Order.archived_at.is_(None),
            )
            .values(archived_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount

        record_log(
            self._db,
            partner_id=partner_id,
            section=LogSection.SHIFTS,
            message="Shift closed",
            action="close",
            user_id=user_id,
            details={
                "shift_id": shift.id,
                "branch_id": shift.branch_id,
                "total_orders": shift.total_orders_count,
                "completed_orders": shift.completed_orders_count,
                "archived_orders": archived,
            },
        )
        self._commit("close shift", shift_id=shift_id)
        self._db.refresh(shift)
        logger.info("Shift closed", partner_id=partner_id, shift_id=shift_id, archived=archived)
        return ShiftOutput.model_validate(shift)

    def stats(self, shift_id: int, partner_id: int) -> ShiftStatsOutput:
        shift = self.get_entity(shift_id, partner_id)
        orders = self._db.scalars(select(Order).where(Order.shift_id == shift.id)).all()

        completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
        delivery = [o for o in completed if o.delivery_type == DeliveryType.DELIVERY]
        pickup = [o for o in completed if o.delivery_type == DeliveryType.PICKUP]

        end = as_utc(shift.closed_at) or utcnow()
        duration = max(int((end - as_utc(shift.opened_at)).total_seconds() // 60), 0)

        return ShiftStatsOutput(
            shift_id=shift.id,
            branch_id=shift.branch_id,
            status=shift.status,
            total_orders=len(orders),
            completed_orders=len(completed),
            revenue=round(sum(o.total_amount or 0 for o in completed), 2),
            delivery_orders=len(delivery),
            pickup_orders=len(pickup),
            delivery_revenue=round(sum(o.delivery_price_uah or 0 for o in delivery), 2),
            courier_payments=round(sum(o.courier_payment_amount or 0 for o in delivery), 2),
            duration_minutes=duration,
        )
