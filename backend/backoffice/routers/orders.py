"""
Order board endpoints.

Thin router over OrderService; every mutation publishes an order change
event for the partner's open screens.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id
from backoffice.routers.schemas import (
    AssignExecutorRequest,
    OrderCreate,
    OrderOutput,
    OrderStatusUpdate,
    OrderUpdate,
)
from backoffice.services.domain import OrderService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_DELETED, ENTITY_UPDATED, queue_change
from shared.security.access import require_section

router = APIRouter(prefix="/api/orders", tags=["orders"])

require_orders = require_section(Sections.ORDERS)


def _changed(background_tasks: BackgroundTasks, event_type: str, order: OrderOutput) -> None:
    queue_change(
        background_tasks,
        event_type,
        "order",
        order.id,
        order.partner_id,
        order.branch_id,
        data={"status": order.status, "order_number": order.order_number},
    )


@router.get("", response_model=list[OrderOutput])
def list_orders(
    branch_id: int | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> list[OrderOutput]:
    """Active (not archived) orders within the caller's branch scope."""
    return OrderService(db).list_active(ctx, branch_id=branch_id, status=status_filter)


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.ORDERS, Sections.HISTORY)),
) -> OrderOutput:
    return OrderService(db).get(order_id, ctx)


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> OrderOutput:
    order = OrderService(db).create(body.model_dump(), ctx)
    _changed(background_tasks, ENTITY_CREATED, order)
    return order


@router.patch("/{order_id}", response_model=OrderOutput)
def update_order(
    order_id: int,
    body: OrderUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> OrderOutput:
    order = OrderService(db).update(order_id, body.model_dump(exclude_unset=True), ctx)
    _changed(background_tasks, ENTITY_UPDATED, order)
    return order


@router.post("/{order_id}/status", response_model=OrderOutput)
def change_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> OrderOutput:
    order = OrderService(db).change_status(order_id, body.status, ctx)
    _changed(background_tasks, ENTITY_UPDATED, order)
    return order


@router.post("/{order_id}/toggle-payment", response_model=OrderOutput)
def toggle_payment(
    order_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> OrderOutput:
    order = OrderService(db).toggle_payment(order_id, ctx)
    _changed(background_tasks, ENTITY_UPDATED, order)
    return order


@router.post("/{order_id}/assign-executor", response_model=OrderOutput)
def assign_executor(
    order_id: int,
    body: AssignExecutorRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> OrderOutput:
    order = OrderService(db).assign_executor(order_id, body.model_dump(), ctx)
    _changed(background_tasks, ENTITY_UPDATED, order)
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_orders),
) -> None:
    """Requires the can_delete_orders flag."""
    info = OrderService(db).delete(order_id, ctx)
    queue_change(
        background_tasks,
        ENTITY_DELETED,
        "order",
        info["id"],
        get_partner_id(ctx),
        info["branch_id"],
        data={"order_number": info["order_number"]},
    )
