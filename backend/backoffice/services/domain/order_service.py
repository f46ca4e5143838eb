"""
Order Service: intake, status workflow, payment and executor assignment.

Business rules:
- Orders are created only while the branch has an open shift and take the
  next number of the partner's sequence
- Item total = (base price + modifier prices) * quantity; order total =
  items + delivery price (delivery orders only)
- Status moves one step forward freely; skipping en_route needs
  can_skip_order_status (pickup orders go straight to completed), any
  backward move needs can_revert_order_status
- A cashless order cannot be completed while unpaid
- Completing a delivery order stamps courier_payment_amount when unset
- Archived orders are read-only
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

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
from backoffice.routers.schemas import OrderOutput
from backoffice.services.base_service import BaseService
from backoffice.services.domain.log_service import record_log
from backoffice.services.domain.settings_service import SettingsService
from backoffice.services.domain.shift_service import ShiftService
from backoffice.services.pricing import (
    KmSettings,
    courier_payment,
    find_zone_for_point,
    js_round,
    performer_price_breakdown,
)
from shared.config.constants import (
    DeliveryType,
    ExecutorType,
    LogSection,
    OrderActions,
    OrderStatus,
    PaymentMethodType,
    PaymentStatus,
)
from shared.config.logging import orders_logger as logger
from shared.security.access import allowed_branch_ids, ensure_branch_access, ensure_flag, has_flag
from shared.utils.exceptions import (
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shared.utils.validators import normalize_phone


def item_total(base_price: float, quantity: int, modifiers: list[dict[str, Any]] | None) -> float:
    modifiers_total = sum(
        float(m.get("price") or 0) * int(m.get("quantity") or 1) for m in (modifiers or [])
    )
    return round((float(base_price) + modifiers_total) * int(quantity), 2)


def check_status_change(order: Order, new_status: str, ctx: dict[str, Any]) -> None:
    """Raise if ctx may not move order from its status to new_status."""
    if new_status not in OrderStatus.FLOW:
        raise ValidationError(f"Unknown order status: {new_status}", field="status")

    current = OrderStatus.FLOW.index(order.status)
    target = OrderStatus.FLOW.index(new_status)
    if target > current + 1:
        pickup_completion = order.delivery_type == DeliveryType.PICKUP and new_status == OrderStatus.COMPLETED
        if not pickup_completion and not has_flag(ctx, OrderActions.CAN_SKIP_ORDER_STATUS):
            raise ForbiddenError(
                f"move an order from {order.status} to {new_status}",
                order_id=order.id,
                flag=OrderActions.CAN_SKIP_ORDER_STATUS,
            )
    elif target < current:
        if not has_flag(ctx, OrderActions.CAN_REVERT_ORDER_STATUS):
            raise ForbiddenError(
                f"move an order back from {order.status} to {new_status}",
                order_id=order.id,
                flag=OrderActions.CAN_REVERT_ORDER_STATUS,
            )


class OrderService(BaseService[Order]):
    def __init__(self, db: Session):
        super().__init__(db, Order)

    # =========================================================================
    # Read
    # =========================================================================

    def get_entity(self, order_id: int, ctx: dict[str, Any]) -> Order:
        order = self._repo.find_by_id(
            order_id,
            ctx["partner_id"],
            options=[selectinload(Order.items)],
        )
        if order is None:
            raise NotFoundError("Order", order_id, partner_id=ctx["partner_id"])
        ensure_branch_access(ctx, order.branch_id)
        return order

    def get(self, order_id: int, ctx: dict[str, Any]) -> OrderOutput:
        return OrderOutput.model_validate(self.get_entity(order_id, ctx))

    def list_active(
        self,
        ctx: dict[str, Any],
        *,
        branch_id: int | None = None,
        status: str | None = None,
    ) -> list[OrderOutput]:
        """Orders on the board: not archived, within the caller's branches."""
        where: list[Any] = [Order.archived_at.is_(None)]
        if branch_id is not None:
            ensure_branch_access(ctx, branch_id)
            where.append(Order.branch_id == branch_id)
        else:
            allowed = allowed_branch_ids(ctx)
            if allowed is not None:
                where.append(Order.branch_id.in_(allowed))
        if status:
            where.append(Order.status == status)

        orders = self._repo.find_all(
            ctx["partner_id"],
            where=where,
            options=[selectinload(Order.items)],
            order_by=[Order.created_at.desc(), Order.id.desc()],
        )
        return [OrderOutput.model_validate(o) for o in orders]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _ensure_editable(order: Order) -> None:
        if order.archived_at is not None:
            raise InvalidStateError("Order", "archived", order_id=order.id)

    def _build_items(self, items: list[dict[str, Any]]) -> list[OrderItem]:
        built = []
        for raw in items:
            name = (raw.get("product_name") or "").strip()
            if not name:
                raise ValidationError("Item product name is required", field="items")
            quantity = int(raw.get("quantity") or 1)
            base_price = float(raw.get("base_price") or 0)
            modifiers = list(raw.get("modifiers") or [])
            built.append(
                OrderItem(
                    product_name=name,
                    quantity=quantity,
                    base_price=base_price,
                    total_price=item_total(base_price, quantity, modifiers),
                    modifiers=modifiers,
                )
            )
        return built

    @staticmethod
    def _items_total(order: Order) -> float:
        return round(sum(i.total_price for i in order.items), 2)

    def _recompute_total(self, order: Order) -> None:
        delivery = 0.0
        if order.delivery_type == DeliveryType.DELIVERY and order.delivery_price_uah:
            delivery = float(order.delivery_price_uah)
        order.total_amount = round(self._items_total(order) + delivery, 2)

    def _check_payment_method(self, payment_method_id: int | None, partner_id: int) -> PaymentMethod | None:
        if payment_method_id is None:
            return None
        method = self._db.scalar(
            select(PaymentMethod).where(
                PaymentMethod.id == payment_method_id,
                PaymentMethod.partner_id == partner_id,
            )
        )
        if method is None:
            raise ValidationError("Payment method does not belong to this partner", field="payment_method_id")
        return method

    def _courier_zone_at(self, order: Order) -> CourierDeliveryZone | None:
        if order.latitude is None or order.longitude is None:
            return None
        zones = self._db.scalars(
            select(CourierDeliveryZone)
            .where(CourierDeliveryZone.partner_id == order.partner_id)
            .order_by(CourierDeliveryZone.id)
        ).all()
        return find_zone_for_point((order.latitude, order.longitude), zones)

    def _apply_courier_zone(self, order: Order, zone: CourierDeliveryZone | None) -> None:
        """Delivery price from a courier zone, free above its threshold."""
        if zone is None:
            return
        order.courier_zone_id = zone.id
        threshold = zone.free_delivery_threshold
        if threshold and threshold > 0 and self._items_total(order) >= threshold:
            order.delivery_price_uah = 0.0
        else:
            order.delivery_price_uah = float(zone.price_uah or 0)

    def _check_zone_minimum(self, order: Order, zone: CourierDeliveryZone | None) -> None:
        if zone is None or order.delivery_type != DeliveryType.DELIVERY:
            return
        minimum = zone.min_order_amount
        if minimum and minimum > 0 and self._items_total(order) < minimum:
            raise ValidationError(
                f"Delivery to zone '{zone.name}' requires an order of at least {minimum:g}",
                field="items",
                min_order_amount=minimum,
                zone_id=zone.id,
            )

    def _log(self, order: Order, user_id: int | None, action: str, message: str, **details: Any) -> None:
        record_log(
            self._db,
            partner_id=order.partner_id,
            section=LogSection.ORDERS,
            message=message,
            action=action,
            user_id=user_id,
            details={"order_id": order.id, "order_number": order.order_number, **details},
        )

    # =========================================================================
    # Write
    # =========================================================================

    def create(self, data: dict[str, Any], ctx: dict[str, Any]) -> OrderOutput:
        partner_id = ctx["partner_id"]
        user_id = int(ctx["sub"])
        branch_id = data["branch_id"]

        branch = self._db.scalar(
            select(Branch).where(Branch.id == branch_id, Branch.partner_id == partner_id)
        )
        if branch is None:
            raise NotFoundError("Branch", branch_id, partner_id=partner_id)
        ensure_branch_access(ctx, branch_id)

        shift = ShiftService(self._db).get_open_shift(branch_id, partner_id)
        if shift is None:
            raise InvalidStateError("Branch shift", "closed", ["open"], branch_id=branch_id)

        self._check_payment_method(data.get("payment_method_id"), partner_id)

        items = self._build_items(data.get("items") or [])
        delivery_type = data.get("delivery_type") or DeliveryType.DELIVERY

        order = Order(
            partner_id=partner_id,
            branch_id=branch_id,
            shift_id=shift.id,
            status=OrderStatus.IN_PROGRESS,
            payment_status=data.get("payment_status") or PaymentStatus.UNPAID,
            payment_method_id=data.get("payment_method_id"),
            delivery_type=delivery_type,
            client_name=(data.get("client_name") or "").strip() or None,
            phone=normalize_phone(data["phone"]) if data.get("phone") else None,
            address_line=data.get("address_line"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            comment=data.get("comment"),
            distance_km=data.get("distance_km"),
            items=items,
        )

        if delivery_type == DeliveryType.PICKUP:
            order.delivery_price_uah = None
            order.address_line = order.address_line or branch.address
            min_pickup = self._db.scalar(
                select(PartnerSettings.min_pickup_order_amount).where(PartnerSettings.partner_id == partner_id)
            )
            if min_pickup and self._items_total(order) < min_pickup:
                raise ValidationError(
                    f"Pickup orders must be at least {min_pickup:g}",
                    field="items",
                    min_pickup_order_amount=min_pickup,
                )
        elif data.get("delivery_price_uah") is not None:
            order.delivery_price_uah = float(data["delivery_price_uah"])
            zone = self._courier_zone_at(order)
            order.courier_zone_id = zone.id if zone else None
            self._check_zone_minimum(order, zone)
        else:
            zone = self._courier_zone_at(order)
            self._check_zone_minimum(order, zone)
            self._apply_courier_zone(order, zone)

        self._recompute_total(order)
        order.order_number = SettingsService(self._db).take_order_number(partner_id, commit=False)

        self._db.add(order)
        self._db.flush()
        self._log(order, user_id, "create", f"Order #{order.order_number} created", branch_id=branch_id)
        self._commit("create order", partner_id=partner_id, branch_id=branch_id)
        self._db.refresh(order)

        logger.info(
            "Order created",
            partner_id=partner_id,
            order_id=order.id,
            order_number=order.order_number,
            branch_id=branch_id,
        )
        return OrderOutput.model_validate(order)

    def update(self, order_id: int, data: dict[str, Any], ctx: dict[str, Any]) -> OrderOutput:
        order = self.get_entity(order_id, ctx)
        self._ensure_editable(order)

        if "payment_method_id" in data:
            self._check_payment_method(data["payment_method_id"], order.partner_id)
        if data.get("phone"):
            data["phone"] = normalize_phone(data["phone"])

        items = data.pop("items", None)
        for field_name, value in data.items():
            if value is None and field_name not in ("payment_method_id", "comment", "distance_km"):
                continue
            setattr(order, field_name, value)
        if items is not None:
            order.items = self._build_items(items)

        if order.delivery_type == DeliveryType.PICKUP:
            order.delivery_price_uah = None
        else:
            zone = self._courier_zone_at(order)
            if zone is None and order.courier_zone_id:
                zone = self._db.get(CourierDeliveryZone, order.courier_zone_id)
            try:
                self._check_zone_minimum(order, zone)
            except ValidationError:
                self._db.rollback()
                raise
        self._recompute_total(order)

        self._log(order, int(ctx["sub"]), "update", f"Order #{order.order_number} updated", fields=sorted(data))
        self._commit("update order", order_id=order_id)
        self._db.refresh(order)
        return OrderOutput.model_validate(order)

    def change_status(self, order_id: int, new_status: str, ctx: dict[str, Any]) -> OrderOutput:
        order = self.get_entity(order_id, ctx)
        self._ensure_editable(order)
        if order.status == new_status:
            return OrderOutput.model_validate(order)

        check_status_change(order, new_status, ctx)
        previous = order.status

        if new_status == OrderStatus.COMPLETED:
            if order.payment_status != PaymentStatus.PAID and order.payment_method_id is not None:
                method = self._db.get(PaymentMethod, order.payment_method_id)
                if method is not None and method.method_type == PaymentMethodType.CASHLESS:
                    raise ValidationError(
                        "Cannot complete an order with an unpaid cashless payment",
                        field="payment_status",
                        order_id=order.id,
                    )
            order.completed_at = utcnow()
            if order.en_route_at is None and order.delivery_type == DeliveryType.DELIVERY:
                order.en_route_at = order.completed_at
            if order.delivery_type == DeliveryType.DELIVERY and order.courier_payment_amount is None:
                order.courier_payment_amount = self._completion_payment(order)
        elif new_status == OrderStatus.EN_ROUTE:
            order.en_route_at = utcnow()
            order.completed_at = None
        else:
            order.en_route_at = None
            order.completed_at = None

        order.status = new_status
        self._log(
            order,
            int(ctx["sub"]),
            "status",
            f"Order #{order.order_number}: {previous} -> {new_status}",
            from_status=previous,
            to_status=new_status,
        )
        self._commit("change order status", order_id=order_id)
        self._db.refresh(order)
        logger.info("Order status changed", order_id=order.id, from_status=previous, to_status=new_status)
        return OrderOutput.model_validate(order)

    def _completion_payment(self, order: Order) -> float | None:
        """Courier payout at completion: performer zone plus distance pay, else courier zone."""
        if order.executor_type == ExecutorType.PERFORMER and order.executor_zone_id:
            zone = self._db.get(PerformerDeliveryZone, order.executor_zone_id)
            if zone is None:
                return None
            executor = self._db.get(Executor, order.executor_id) if order.executor_id else None
            base = zone.courier_payment if zone.courier_payment is not None else zone.price_uah
            return float(courier_payment(base, KmSettings.from_executor(executor), order.distance_km))
        if order.courier_zone_id:
            zone = self._db.get(CourierDeliveryZone, order.courier_zone_id)
            if zone is None:
                return None
            return float(js_round(zone.courier_payment or 0))
        return None

    def toggle_payment(self, order_id: int, ctx: dict[str, Any]) -> OrderOutput:
        order = self.get_entity(order_id, ctx)
        self._ensure_editable(order)
        order.payment_status = (
            PaymentStatus.UNPAID if order.payment_status == PaymentStatus.PAID else PaymentStatus.PAID
        )
        self._log(
            order,
            int(ctx["sub"]),
            "payment",
            f"Order #{order.order_number} marked {order.payment_status}",
            payment_status=order.payment_status,
        )
        self._commit("toggle order payment", order_id=order_id)
        self._db.refresh(order)
        return OrderOutput.model_validate(order)

    def assign_executor(self, order_id: int, data: dict[str, Any], ctx: dict[str, Any]) -> OrderOutput:
        order = self.get_entity(order_id, ctx)
        self._ensure_editable(order)
        if order.delivery_type != DeliveryType.DELIVERY:
            raise ValidationError("Only delivery orders can be assigned", field="executor_type")

        partner_id = order.partner_id
        if data.get("distance_km") is not None:
            order.distance_km = data["distance_km"]
        if data.get("bad_weather") is not None:
            order.bad_weather = bool(data["bad_weather"])

        if data["executor_type"] == ExecutorType.COURIER:
            courier_id = data.get("courier_id")
            courier = self._db.scalar(
                select(Courier).where(Courier.id == courier_id, Courier.partner_id == partner_id)
            ) if courier_id is not None else None
            if courier is None:
                raise NotFoundError("Courier", courier_id, partner_id=partner_id)
            if not courier.is_active:
                raise InvalidStateError("Courier", "inactive", ["active"], courier_id=courier.id)

            zone = self._db.get(CourierDeliveryZone, order.courier_zone_id) if order.courier_zone_id else None
            if zone is None:
                zone = self._courier_zone_at(order)
            self._apply_courier_zone(order, zone)

            order.executor_type = ExecutorType.COURIER
            order.courier_id = courier.id
            order.executor_id = None
            order.executor_zone_id = None
            order.courier_payment_amount = (
                float(js_round(zone.courier_payment or 0)) if zone is not None else None
            )
            order.delivery_payer = data.get("delivery_payer")
            assignee = courier.name
        else:
            executor_id = data.get("executor_id")
            executor = self._db.scalar(
                select(Executor).where(Executor.id == executor_id, Executor.partner_id == partner_id)
            ) if executor_id is not None else None
            if executor is None:
                raise NotFoundError("Executor", executor_id, partner_id=partner_id)

            order.executor_type = ExecutorType.PERFORMER
            order.executor_id = executor.id
            order.courier_id = None
            order.courier_zone_id = None
            order.delivery_payer = data.get("delivery_payer") or executor.delivery_payer_default

            zone_id = data.get("zone_id")
            if zone_id is not None:
                zone = self._db.scalar(
                    select(PerformerDeliveryZone).where(
                        PerformerDeliveryZone.id == zone_id,
                        PerformerDeliveryZone.executor_id == executor.id,
                    )
                )
                if zone is None:
                    raise NotFoundError("Zone", zone_id, executor_id=executor.id)
                breakdown = performer_price_breakdown(zone, executor, order.distance_km, order.bad_weather)
                order.executor_zone_id = zone.id
                order.delivery_price_uah = float(breakdown.delivery_price)
                order.courier_payment_amount = float(breakdown.total_courier_payment)
            else:
                order.executor_zone_id = None
                order.courier_payment_amount = None
            assignee = executor.name

        self._recompute_total(order)
        self._log(
            order,
            int(ctx["sub"]),
            "assign",
            f"Order #{order.order_number} assigned to {assignee}",
            executor_type=order.executor_type,
        )
        self._commit("assign order executor", order_id=order_id)
        self._db.refresh(order)
        return OrderOutput.model_validate(order)

    def delete(self, order_id: int, ctx: dict[str, Any]) -> dict[str, Any]:
        ensure_flag(ctx, OrderActions.CAN_DELETE_ORDERS, "delete orders")
        order = self.get_entity(order_id, ctx)
        info = {"id": order.id, "branch_id": order.branch_id, "order_number": order.order_number}
        self._log(order, int(ctx["sub"]), "delete", f"Order #{order.order_number} deleted")
        self._db.delete(order)
        self._commit("delete order", order_id=order_id)
        logger.info("Order deleted", order_id=order_id, partner_id=ctx["partner_id"])
        return info
