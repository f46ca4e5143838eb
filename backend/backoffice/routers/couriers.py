"""
Couriers and courier delivery zones.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import (
    CourierCreate,
    CourierDeliveryPriceOutput,
    CourierOutput,
    CourierUpdate,
    CourierZoneCreate,
    CourierZoneOutput,
    CourierZoneUpdate,
    ZoneLookupOutput,
)
from backoffice.services.domain import CourierService, CourierZoneService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_DELETED, ENTITY_UPDATED, queue_change
from shared.security.access import allowed_branch_ids, ensure_branch_access, require_section

router = APIRouter(tags=["couriers"])

require_couriers = require_section(Sections.COURIERS)
require_couriers_read = require_section(Sections.COURIERS, Sections.ORDERS)
require_zones = require_section(Sections.COURIER_ZONES)
require_zones_read = require_section(Sections.COURIER_ZONES, Sections.ORDERS)


@router.get("/api/couriers", response_model=list[CourierOutput])
def list_couriers(
    branch_id: int | None = None,
    is_own: bool | None = None,
    is_active: bool | None = None,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_couriers_read),
) -> list[CourierOutput]:
    if branch_id is not None:
        ensure_branch_access(ctx, branch_id)
    return CourierService(db).list_couriers(
        get_partner_id(ctx),
        branch_id=branch_id,
        is_own=is_own,
        is_active=is_active,
        branch_ids=allowed_branch_ids(ctx),
    )


@router.get("/api/couriers/{courier_id}", response_model=CourierOutput)
def get_courier(
    courier_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_couriers_read),
) -> CourierOutput:
    courier = CourierService(db).get_by_id(courier_id, get_partner_id(ctx))
    ensure_branch_access(ctx, courier.branch_id)
    return courier


@router.post("/api/couriers", response_model=CourierOutput, status_code=status.HTTP_201_CREATED)
def create_courier(
    body: CourierCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_couriers),
) -> CourierOutput:
    ensure_branch_access(ctx, body.branch_id)
    partner_id = get_partner_id(ctx)
    courier = CourierService(db).create(body.model_dump(), partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_CREATED, "courier", courier.id, partner_id, courier.branch_id)
    return courier


@router.patch("/api/couriers/{courier_id}", response_model=CourierOutput)
def update_courier(
    courier_id: int,
    body: CourierUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_couriers),
) -> CourierOutput:
    partner_id = get_partner_id(ctx)
    service = CourierService(db)
    ensure_branch_access(ctx, service.get_entity(courier_id, partner_id).branch_id)
    data = body.model_dump(exclude_unset=True)
    if "branch_id" in data:
        ensure_branch_access(ctx, data["branch_id"])
    courier = service.update(courier_id, data, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_UPDATED, "courier", courier.id, partner_id, courier.branch_id)
    return courier


@router.delete("/api/couriers/{courier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_courier(
    courier_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_couriers),
) -> None:
    partner_id = get_partner_id(ctx)
    service = CourierService(db)
    ensure_branch_access(ctx, service.get_entity(courier_id, partner_id).branch_id)
    info = service.delete(courier_id, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_DELETED, "courier", courier_id, partner_id, info.get("branch_id"))


# =============================================================================
# Courier delivery zones
# =============================================================================


@router.get("/api/courier-zones", response_model=list[CourierZoneOutput])
def list_courier_zones(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones_read),
) -> list[CourierZoneOutput]:
    return CourierZoneService(db).list_zones(get_partner_id(ctx))


@router.get("/api/courier-zones/lookup", response_model=ZoneLookupOutput)
def lookup_courier_zone(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones_read),
) -> ZoneLookupOutput:
    return CourierZoneService(db).lookup(get_partner_id(ctx), lat, lng)


@router.get("/api/courier-zones/delivery-price", response_model=CourierDeliveryPriceOutput)
def courier_delivery_price(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    order_amount: float | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones_read),
) -> CourierDeliveryPriceOutput:
    return CourierZoneService(db).delivery_price(get_partner_id(ctx), lat, lng, order_amount)


@router.get("/api/courier-zones/{zone_id}", response_model=CourierZoneOutput)
def get_courier_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones_read),
) -> CourierZoneOutput:
    return CourierZoneService(db).get_by_id(zone_id, get_partner_id(ctx))


@router.post("/api/courier-zones", response_model=CourierZoneOutput, status_code=status.HTTP_201_CREATED)
def create_courier_zone(
    body: CourierZoneCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones),
) -> CourierZoneOutput:
    return CourierZoneService(db).create(body.model_dump(), get_partner_id(ctx), get_user_id(ctx))


@router.patch("/api/courier-zones/{zone_id}", response_model=CourierZoneOutput)
def update_courier_zone(
    zone_id: int,
    body: CourierZoneUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones),
) -> CourierZoneOutput:
    return CourierZoneService(db).update(
        zone_id,
        body.model_dump(exclude_unset=True),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.delete("/api/courier-zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_courier_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_zones),
) -> None:
    CourierZoneService(db).delete(zone_id, get_partner_id(ctx), get_user_id(ctx))
