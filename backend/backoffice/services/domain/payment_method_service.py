"""
Payment methods offered at order intake (cash or cashless).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backoffice.models import Executor, Order, PaymentMethod
from backoffice.routers.schemas import PaymentMethodOutput
from backoffice.services.base_service import BaseCRUDService
from shared.config.constants import LogSection, PaymentMethodType
from shared.utils.exceptions import ConflictError, ValidationError


class PaymentMethodService(BaseCRUDService[PaymentMethod, PaymentMethodOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=PaymentMethod,
            output_schema=PaymentMethodOutput,
            entity_name="Payment method",
            log_section=LogSection.PAYMENT_METHODS,
        )

    def list_methods(self, partner_id: int, *, active_only: bool = False) -> list[PaymentMethodOutput]:
        """Newest first."""
        where = [PaymentMethod.is_active.is_(True)] if active_only else None
        return self.list_all(
            partner_id,
            where=where,
            order_by=[PaymentMethod.created_at.desc(), PaymentMethod.id.desc()],
        )

    def _check_type(self, method_type: str | None) -> None:
        if method_type not in PaymentMethodType.ALL:
            raise ValidationError("Payment method type must be cash or cashless", field="method_type")

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        self._check_type(data.get("method_type"))
        return data

    def _validate_update(self, entity: PaymentMethod, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        data = {k: v for k, v in data.items() if v is not None}
        self._require_name(data)
        if "method_type" in data:
            self._check_type(data["method_type"])
        return data

    def _validate_delete(self, entity: PaymentMethod, partner_id: int) -> None:
        active_orders = self._db.scalar(
            select(func.count())
            .select_from(Order)
            .where(Order.payment_method_id == entity.id, Order.archived_at.is_(None))
        ) or 0
        if active_orders:
            raise ConflictError(
                f"Payment method '{entity.name}' is used by {active_orders} active order(s)",
                payment_method_id=entity.id,
            )

    def _before_delete(self, entity: PaymentMethod) -> None:
        self._db.execute(
            update(Order).where(Order.payment_method_id == entity.id).values(payment_method_id=None)
        )
        self._db.execute(
            update(Executor)
            .where(Executor.default_payment_method_id == entity.id)
            .values(default_payment_method_id=None)
        )
