"""
Executor Service: delivery partners, their priced zones and price quotes.

Usage:
    service = ExecutorService(db)
    quote = service.price_quote(executor_id, partner_id, zone_id=3, distance_km=4.2)

    zones = PerformerZoneService(db)
    zones.create_for_executor(executor_id, data, partner_id, user_id)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.models import Executor, PaymentMethod, PerformerDeliveryZone
from backoffice.routers.schemas import (
    ExecutorOutput,
    PerformerZoneOutput,
    PriceBreakdownOutput,
    WebhookOutput,
    ZoneLookupOutput,
)
from backoffice.services.base_service import BaseCRUDService
from backoffice.services.domain.bot_tokens import EXECUTOR, ensure_bot_token_unique
from backoffice.services.integrations import telegram
from backoffice.services.pricing import find_zone_for_point, performer_price_breakdown
from shared.config.constants import LogSection
from shared.utils.exceptions import NotFoundError, ValidationError

EXECUTOR_WEBHOOK_PATH = "/api/integrations/telegram/executor-bot"


class ExecutorService(BaseCRUDService[Executor, ExecutorOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Executor,
            output_schema=ExecutorOutput,
            entity_name="Executor",
            log_section=LogSection.EXECUTORS,
        )

    def list_executors(self, partner_id: int, *, status: str | None = None) -> list[ExecutorOutput]:
        where = [Executor.status == status] if status else None
        return self.list_all(partner_id, where=where, order_by=Executor.name)

    def _check_payment_method(self, payment_method_id: int | None, partner_id: int) -> None:
        if payment_method_id is None:
            return
        found = self._db.scalar(
            select(PaymentMethod.id).where(
                PaymentMethod.id == payment_method_id,
                PaymentMethod.partner_id == partner_id,
            )
        )
        if found is None:
            raise ValidationError(
                "Payment method does not belong to this partner",
                field="default_payment_method_id",
            )

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        if isinstance(data.get("telegram_bot_token"), str):
            data["telegram_bot_token"] = data["telegram_bot_token"].strip() or None
        ensure_bot_token_unique(self._db, partner_id, data.get("telegram_bot_token"), owner_type=EXECUTOR)
        self._check_payment_method(data.get("default_payment_method_id"), partner_id)
        return data

    def _validate_update(self, entity: Executor, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        if "name" in data and data["name"] is None:
            data.pop("name")
        self._require_name(data)
        if isinstance(data.get("telegram_bot_token"), str):
            data["telegram_bot_token"] = data["telegram_bot_token"].strip() or None
        if data.get("telegram_bot_token"):
            ensure_bot_token_unique(
                self._db,
                partner_id,
                data["telegram_bot_token"],
                owner_type=EXECUTOR,
                owner_id=entity.id,
            )
        if "default_payment_method_id" in data:
            self._check_payment_method(data["default_payment_method_id"], partner_id)
        return {k: v for k, v in data.items() if v is not None or k in ("default_payment_method_id", "telegram_bot_token")}

    async def register_webhook(self, executor_id: int, partner_id: int, user_id: int | None) -> WebhookOutput:
        executor = self.get_entity(executor_id, partner_id)
        url = telegram.webhook_url(EXECUTOR_WEBHOOK_PATH)
        info = await telegram.set_webhook(
            executor.telegram_bot_token,
            url,
            allowed_updates=["callback_query"],
        )
        self._record(partner_id, user_id, "webhook", "Executor bot webhook configured", executor, url=url)
        self._commit("record executor webhook", executor_id=executor_id)
        return WebhookOutput(ok=True, webhook_url=url, webhook_info=info)

    # =========================================================================
    # Pricing
    # =========================================================================

    def _zone(self, executor_id: int, zone_id: int, partner_id: int) -> PerformerDeliveryZone:
        zone = self._db.scalar(
            select(PerformerDeliveryZone).where(
                PerformerDeliveryZone.id == zone_id,
                PerformerDeliveryZone.executor_id == executor_id,
                PerformerDeliveryZone.partner_id == partner_id,
            )
        )
        if zone is None:
            raise NotFoundError("Zone", zone_id, executor_id=executor_id)
        return zone

    def price_quote(
        self,
        executor_id: int,
        partner_id: int,
        *,
        zone_id: int,
        distance_km: float | None = None,
        bad_weather: bool = False,
    ) -> PriceBreakdownOutput:
        executor = self.get_entity(executor_id, partner_id)
        zone = self._zone(executor_id, zone_id, partner_id)
        breakdown = performer_price_breakdown(zone, executor, distance_km, bad_weather)
        return PriceBreakdownOutput(zone_id=zone.id, zone_name=zone.name, **breakdown.to_dict())

    def lookup_zone(self, executor_id: int, partner_id: int, lat: float, lng: float) -> ZoneLookupOutput:
        executor = self.get_entity(executor_id, partner_id)
        zone = find_zone_for_point((lat, lng), executor.zones)
        if zone is None:
            return ZoneLookupOutput(
                found=False,
                message=executor.no_zone_message or "Address is outside the executor's delivery zones",
            )
        return ZoneLookupOutput(
            found=True,
            zone_id=zone.id,
            zone_name=zone.name,
            price_uah=zone.price_uah,
            courier_payment=zone.courier_payment,
        )


class PerformerZoneService(BaseCRUDService[PerformerDeliveryZone, PerformerZoneOutput]):
    """Zones of one executor. The executor must belong to the partner."""

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=PerformerDeliveryZone,
            output_schema=PerformerZoneOutput,
            entity_name="Zone",
            log_section=LogSection.EXECUTORS,
        )

    def _executor(self, executor_id: int, partner_id: int) -> Executor:
        executor = self._db.scalar(
            select(Executor).where(Executor.id == executor_id, Executor.partner_id == partner_id)
        )
        if executor is None:
            raise NotFoundError("Executor", executor_id, partner_id=partner_id)
        return executor

    def list_for_executor(self, executor_id: int, partner_id: int) -> list[PerformerZoneOutput]:
        self._executor(executor_id, partner_id)
        return self.list_all(
            partner_id,
            where=[PerformerDeliveryZone.executor_id == executor_id],
            order_by=PerformerDeliveryZone.id,
        )

    def get_for_executor(self, executor_id: int, zone_id: int, partner_id: int) -> PerformerDeliveryZone:
        zone = self.get_entity(zone_id, partner_id)
        if zone.executor_id != executor_id:
            raise NotFoundError(self._entity_name, zone_id, executor_id=executor_id)
        return zone

    def create_for_executor(
        self,
        executor_id: int,
        data: dict[str, Any],
        partner_id: int,
        user_id: int | None,
    ) -> PerformerZoneOutput:
        self._executor(executor_id, partner_id)
        return self.create({**data, "executor_id": executor_id}, partner_id, user_id)

    def update_for_executor(
        self,
        executor_id: int,
        zone_id: int,
        data: dict[str, Any],
        partner_id: int,
        user_id: int | None,
    ) -> PerformerZoneOutput:
        self.get_for_executor(executor_id, zone_id, partner_id)
        return self.update(zone_id, data, partner_id, user_id)

    def delete_for_executor(self, executor_id: int, zone_id: int, partner_id: int, user_id: int | None) -> None:
        self.get_for_executor(executor_id, zone_id, partner_id)
        self.delete(zone_id, partner_id, user_id)

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        data["polygons"] = data.get("polygons") or []
        return data

    def _validate_update(
        self, entity: PerformerDeliveryZone, data: dict[str, Any], partner_id: int
    ) -> dict[str, Any]:
        if "name" in data and data["name"] is None:
            data.pop("name")
        self._require_name(data)
        if "polygons" in data and data["polygons"] is None:
            data.pop("polygons")
        return data
