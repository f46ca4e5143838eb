"""
Executors (delivery services), their performer zones and price quotes.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import (
    ExecutorCreate,
    ExecutorOutput,
    ExecutorUpdate,
    PerformerZoneCreate,
    PerformerZoneOutput,
    PerformerZoneUpdate,
    PriceBreakdownOutput,
    WebhookOutput,
    ZoneLookupOutput,
)
from backoffice.services.domain import ExecutorService, PerformerZoneService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_DELETED, ENTITY_UPDATED, queue_change
from shared.security.access import require_section

router = APIRouter(prefix="/api/executors", tags=["executors"])

require_executors = require_section(Sections.EXECUTORS)
# The order screen reads executors and quotes prices
require_executors_read = require_section(Sections.EXECUTORS, Sections.ORDERS)


@router.get("", response_model=list[ExecutorOutput])
def list_executors(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> list[ExecutorOutput]:
    return ExecutorService(db).list_executors(get_partner_id(ctx), status=status_filter)


@router.get("/{executor_id}", response_model=ExecutorOutput)
def get_executor(
    executor_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> ExecutorOutput:
    return ExecutorService(db).get_by_id(executor_id, get_partner_id(ctx))


@router.post("", response_model=ExecutorOutput, status_code=status.HTTP_201_CREATED)
def create_executor(
    body: ExecutorCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> ExecutorOutput:
    partner_id = get_partner_id(ctx)
    executor = ExecutorService(db).create(body.model_dump(), partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_CREATED, "executor", executor.id, partner_id)
    return executor


@router.patch("/{executor_id}", response_model=ExecutorOutput)
def update_executor(
    executor_id: int,
    body: ExecutorUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> ExecutorOutput:
    partner_id = get_partner_id(ctx)
    executor = ExecutorService(db).update(
        executor_id,
        body.model_dump(exclude_unset=True),
        partner_id,
        get_user_id(ctx),
    )
    queue_change(background_tasks, ENTITY_UPDATED, "executor", executor.id, partner_id)
    return executor


@router.delete("/{executor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_executor(
    executor_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> None:
    partner_id = get_partner_id(ctx)
    ExecutorService(db).delete(executor_id, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_DELETED, "executor", executor_id, partner_id)


@router.post("/{executor_id}/telegram-webhook", response_model=WebhookOutput)
async def register_executor_webhook(
    executor_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> WebhookOutput:
    return await ExecutorService(db).register_webhook(executor_id, get_partner_id(ctx), get_user_id(ctx))


@router.get("/{executor_id}/price-quote", response_model=PriceBreakdownOutput)
def price_quote(
    executor_id: int,
    zone_id: int,
    distance_km: float | None = Query(default=None, ge=0),
    bad_weather: bool = False,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> PriceBreakdownOutput:
    return ExecutorService(db).price_quote(
        executor_id,
        get_partner_id(ctx),
        zone_id=zone_id,
        distance_km=distance_km,
        bad_weather=bad_weather,
    )


# =============================================================================
# Performer zones
# =============================================================================


@router.get("/{executor_id}/zones", response_model=list[PerformerZoneOutput])
def list_zones(
    executor_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> list[PerformerZoneOutput]:
    return PerformerZoneService(db).list_for_executor(executor_id, get_partner_id(ctx))


@router.get("/{executor_id}/zones/lookup", response_model=ZoneLookupOutput)
def lookup_zone(
    executor_id: int,
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> ZoneLookupOutput:
    return ExecutorService(db).lookup_zone(executor_id, get_partner_id(ctx), lat, lng)


@router.get("/{executor_id}/zones/{zone_id}", response_model=PerformerZoneOutput)
def get_zone(
    executor_id: int,
    zone_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors_read),
) -> PerformerZoneOutput:
    service = PerformerZoneService(db)
    return service.to_output(service.get_for_executor(executor_id, zone_id, get_partner_id(ctx)))


@router.post(
    "/{executor_id}/zones",
    response_model=PerformerZoneOutput,
    status_code=status.HTTP_201_CREATED,
)
def create_zone(
    executor_id: int,
    body: PerformerZoneCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> PerformerZoneOutput:
    return PerformerZoneService(db).create_for_executor(
        executor_id,
        body.model_dump(),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.patch("/{executor_id}/zones/{zone_id}", response_model=PerformerZoneOutput)
def update_zone(
    executor_id: int,
    zone_id: int,
    body: PerformerZoneUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> PerformerZoneOutput:
    return PerformerZoneService(db).update_for_executor(
        executor_id,
        zone_id,
        body.model_dump(exclude_unset=True),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.delete("/{executor_id}/zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_zone(
    executor_id: int,
    zone_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_executors),
) -> None:
    PerformerZoneService(db).delete_for_executor(executor_id, zone_id, get_partner_id(ctx), get_user_id(ctx))
