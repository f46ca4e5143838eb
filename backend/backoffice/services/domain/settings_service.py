"""
Partner profile and settings, including the order number sequence.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.models import Partner, PartnerSettings
from backoffice.routers.schemas import PartnerOutput, PartnerSettingsOutput, SettingsOutput
from backoffice.services.domain.bot_tokens import COURIER_BOT, EXTERNAL_COURIER_BOT, ensure_bot_token_unique
from backoffice.services.domain.log_service import record_log
from shared.config.constants import LogSection, PartnerStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit, supports_row_locks
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.validators import validate_image_url

logger = get_logger(__name__)

PARTNER_FIELDS = ("name", "logo_url", "pause_message", "status")


class SettingsService:
    """Read and patch one partner's profile and settings row."""

    def __init__(self, db: Session):
        self._db = db

    def _get_partner(self, partner_id: int) -> Partner:
        partner = self._db.get(Partner, partner_id)
        if partner is None or partner.status == PartnerStatus.DELETED:
            raise NotFoundError("Partner", partner_id)
        return partner

    def _get_settings(self, partner_id: int, *, for_update: bool = False) -> PartnerSettings:
        """Settings row, created with defaults on first access."""
        query = select(PartnerSettings).where(PartnerSettings.partner_id == partner_id)
        if for_update and supports_row_locks(self._db):
            query = query.with_for_update()
        row = self._db.scalar(query)
        if row is None:
            row = PartnerSettings(partner_id=partner_id)
            self._db.add(row)
            self._db.flush()
        return row

    def get(self, partner_id: int) -> SettingsOutput:
        partner = self._get_partner(partner_id)
        row = self._get_settings(partner_id)
        safe_commit(self._db)
        return SettingsOutput(
            partner=PartnerOutput.model_validate(partner),
            settings=PartnerSettingsOutput.model_validate(row),
        )

    def update(self, partner_id: int, data: dict[str, Any], user_id: int | None) -> SettingsOutput:
        partner = self._get_partner(partner_id)
        row = self._get_settings(partner_id)

        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationError("Partner name is required", field="name")
            data["name"] = name
        if data.get("logo_url"):
            try:
                data["logo_url"] = validate_image_url(data["logo_url"])
            except ValueError as e:
                raise ValidationError(str(e), field="logo_url")

        for field_name, owner_type in (
            ("courier_bot_token", COURIER_BOT),
            ("external_courier_bot_token", EXTERNAL_COURIER_BOT),
        ):
            if field_name in data:
                data[field_name] = (data[field_name] or "").strip() or None
                ensure_bot_token_unique(self._db, partner_id, data[field_name], owner_type=owner_type)
        if (
            data.get("courier_bot_token")
            and data.get("courier_bot_token") == data.get("external_courier_bot_token")
        ):
            raise ValidationError("Courier bots must use different tokens", field="external_courier_bot_token")

        changed: list[str] = []
        for field_name, value in data.items():
            target = partner if field_name in PARTNER_FIELDS else row
            if not hasattr(target, field_name):
                continue
            if field_name == "status" and value is None:
                continue
            setattr(target, field_name, value)
            changed.append(field_name)

        record_log(
            self._db,
            partner_id=partner_id,
            section=LogSection.SETTINGS,
            message="Settings updated",
            action="update",
            user_id=user_id,
            details={"fields": sorted(changed)},
        )
        safe_commit(self._db)
        self._db.refresh(partner)
        self._db.refresh(row)
        logger.info("Partner settings updated", partner_id=partner_id, fields=changed)
        return SettingsOutput(
            partner=PartnerOutput.model_validate(partner),
            settings=PartnerSettingsOutput.model_validate(row),
        )

    def take_order_number(self, partner_id: int, *, commit: bool = True) -> int:
        """
        Return the current order number and advance the sequence.

        The settings row is locked (SELECT ... FOR UPDATE) where the database
        supports it, so concurrent callers never share a number.
        """
        row = self._get_settings(partner_id, for_update=True)
        number = max(int(row.next_order_number or 1), 1)
        row.next_order_number = number + 1
        if commit:
            safe_commit(self._db)
        return number
