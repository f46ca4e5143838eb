"""
Courier Service: own and external couriers plus the partner's courier
delivery zones.

External couriers get a personal cabinet slug transliterated from their
name ("Іван Петренко" -> "ivan-petrenko"); duplicates get a numeric suffix.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.models import Branch, Courier, CourierDeliveryZone, PartnerSettings
from backoffice.routers.schemas import CourierDeliveryPriceOutput, CourierOutput, CourierZoneOutput, ZoneLookupOutput
from backoffice.services.base_service import BaseCRUDService
from backoffice.services.integrations.transliteration import cabinet_slug
from backoffice.services.pricing import find_zone_for_point
from shared.config.constants import LogSection
from shared.utils.exceptions import ValidationError
from shared.utils.validators import normalize_phone

DEFAULT_NO_ZONE_MESSAGE = "Address is outside the delivery zones"


class CourierService(BaseCRUDService[Courier, CourierOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Courier,
            output_schema=CourierOutput,
            entity_name="Courier",
            log_section=LogSection.COURIERS,
        )

    def list_couriers(
        self,
        partner_id: int,
        *,
        branch_id: int | None = None,
        is_own: bool | None = None,
        is_active: bool | None = None,
        branch_ids: list[int] | None = None,
    ) -> list[CourierOutput]:
        where: list[Any] = []
        if branch_id is not None:
            where.append(Courier.branch_id == branch_id)
        elif branch_ids is not None:
            where.append(Courier.branch_id.in_(branch_ids) | Courier.branch_id.is_(None))
        if is_own is not None:
            where.append(Courier.is_own.is_(is_own))
        if is_active is not None:
            where.append(Courier.is_active.is_(is_active))
        return self.list_all(partner_id, where=where, order_by=Courier.name)

    def _check_branch(self, branch_id: int | None, partner_id: int) -> None:
        if branch_id is None:
            return
        found = self._db.scalar(
            select(Branch.id).where(Branch.id == branch_id, Branch.partner_id == partner_id)
        )
        if found is None:
            raise ValidationError("Branch does not belong to this partner", field="branch_id")

    def _unique_slug(self, base: str, partner_id: int, exclude_id: int | None = None) -> str | None:
        if not base:
            return None
        query = select(Courier.cabinet_slug).where(
            Courier.partner_id == partner_id,
            Courier.cabinet_slug.like(f"{base}%"),
        )
        if exclude_id is not None:
            query = query.where(Courier.id != exclude_id)
        taken = set(self._db.scalars(query).all())
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        self._check_branch(data.get("branch_id"), partner_id)
        if data.get("phone"):
            data["phone"] = normalize_phone(data["phone"])
        if data.get("is_external"):
            data["is_own"] = False
            data["cabinet_slug"] = self._unique_slug(
                cabinet_slug(data["name"], data.get("lastname")), partner_id
            )
        return data

    def _validate_update(self, entity: Courier, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        data = {k: v for k, v in data.items() if v is not None or k == "branch_id"}
        self._require_name(data)
        if "branch_id" in data:
            self._check_branch(data["branch_id"], partner_id)
        if data.get("phone"):
            data["phone"] = normalize_phone(data["phone"])

        is_external = data.get("is_external", entity.is_external)
        name_changed = "name" in data or "lastname" in data
        if is_external and (name_changed or not entity.cabinet_slug):
            data["cabinet_slug"] = self._unique_slug(
                cabinet_slug(data.get("name", entity.name), data.get("lastname", entity.lastname)),
                partner_id,
                exclude_id=entity.id,
            )
            data["is_own"] = False
        elif "is_external" in data and not is_external:
            data["cabinet_slug"] = None
        return data


class CourierZoneService(BaseCRUDService[CourierDeliveryZone, CourierZoneOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=CourierDeliveryZone,
            output_schema=CourierZoneOutput,
            entity_name="Courier zone",
            log_section=LogSection.COURIERS,
        )

    def list_zones(self, partner_id: int) -> list[CourierZoneOutput]:
        return self.list_all(partner_id, order_by=CourierDeliveryZone.id)

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        data["polygons"] = data.get("polygons") or []
        return data

    def _validate_update(
        self, entity: CourierDeliveryZone, data: dict[str, Any], partner_id: int
    ) -> dict[str, Any]:
        if "name" in data and data["name"] is None:
            data.pop("name")
        self._require_name(data)
        if "polygons" in data and data["polygons"] is None:
            data.pop("polygons")
        return data

    def find_zone(self, partner_id: int, lat: float, lng: float) -> CourierDeliveryZone | None:
        zones = self._repo.find_all(partner_id, order_by=CourierDeliveryZone.id)
        return find_zone_for_point((lat, lng), zones)

    def _no_zone_message(self, partner_id: int) -> str:
        message = self._db.scalar(
            select(PartnerSettings.courier_no_zone_message).where(PartnerSettings.partner_id == partner_id)
        )
        return message or DEFAULT_NO_ZONE_MESSAGE

    def lookup(self, partner_id: int, lat: float, lng: float) -> ZoneLookupOutput:
        zone = self.find_zone(partner_id, lat, lng)
        if zone is None:
            return ZoneLookupOutput(found=False, message=self._no_zone_message(partner_id))
        return ZoneLookupOutput(
            found=True,
            zone_id=zone.id,
            zone_name=zone.name,
            price_uah=zone.price_uah,
            courier_payment=zone.courier_payment,
        )

    def delivery_price(
        self,
        partner_id: int,
        lat: float,
        lng: float,
        order_amount: float | None = None,
    ) -> CourierDeliveryPriceOutput:
        """
        Zone price at a point. Orders at or above the zone's free delivery
        threshold deliver for free.
        """
        zone = self.find_zone(partner_id, lat, lng)
        if zone is None:
            return CourierDeliveryPriceOutput(found=False, message=self._no_zone_message(partner_id))

        free = (
            zone.free_delivery_threshold is not None
            and zone.free_delivery_threshold > 0
            and order_amount is not None
            and order_amount >= zone.free_delivery_threshold
        )
        return CourierDeliveryPriceOutput(
            found=True,
            zone_id=zone.id,
            delivery_price=0.0 if free else zone.price_uah,
            free_delivery=free,
            min_order_amount=zone.min_order_amount,
        )
