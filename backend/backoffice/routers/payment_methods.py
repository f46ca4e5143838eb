"""
Payment method endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import PaymentMethodCreate, PaymentMethodOutput, PaymentMethodUpdate
from backoffice.services.domain import PaymentMethodService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section

router = APIRouter(prefix="/api/payment-methods", tags=["payment-methods"])

require_methods = require_section(Sections.PAYMENT_METHODS)


@router.get("", response_model=list[PaymentMethodOutput])
def list_payment_methods(
    active_only: bool = False,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.PAYMENT_METHODS, Sections.ORDERS, Sections.HISTORY)),
) -> list[PaymentMethodOutput]:
    """Newest first."""
    return PaymentMethodService(db).list_methods(get_partner_id(ctx), active_only=active_only)


@router.post("", response_model=PaymentMethodOutput, status_code=status.HTTP_201_CREATED)
def create_payment_method(
    body: PaymentMethodCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_methods),
) -> PaymentMethodOutput:
    return PaymentMethodService(db).create(body.model_dump(), get_partner_id(ctx), get_user_id(ctx))


@router.patch("/{method_id}", response_model=PaymentMethodOutput)
def update_payment_method(
    method_id: int,
    body: PaymentMethodUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_methods),
) -> PaymentMethodOutput:
    return PaymentMethodService(db).update(
        method_id,
        body.model_dump(exclude_unset=True),
        get_partner_id(ctx),
        get_user_id(ctx),
    )


@router.delete("/{method_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment_method(
    method_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_methods),
) -> None:
    PaymentMethodService(db).delete(method_id, get_partner_id(ctx), get_user_id(ctx))
