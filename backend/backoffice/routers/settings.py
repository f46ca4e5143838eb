"""
Partner settings and the order number sequence.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import NextOrderNumberOutput, SettingsOutput, SettingsUpdate
from backoffice.services.domain import SettingsService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingsOutput)
def get_settings(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.GENERAL_SETTINGS, Sections.ORDERS)),
) -> SettingsOutput:
    return SettingsService(db).get(get_partner_id(ctx))


@router.patch("", response_model=SettingsOutput)
def update_settings(
    body: SettingsUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.GENERAL_SETTINGS)),
) -> SettingsOutput:
    return SettingsService(db).update(
        get_partner_id(ctx),
        body.model_dump(exclude_unset=True),
        get_user_id(ctx),
    )


@router.post("/next-order-number", response_model=NextOrderNumberOutput)
def next_order_number(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.ORDERS)),
) -> NextOrderNumberOutput:
    """Hand out the current order number and advance the sequence."""
    number = SettingsService(db).take_order_number(get_partner_id(ctx))
    return NextOrderNumberOutput(order_number=number)
