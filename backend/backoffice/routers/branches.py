"""
Branch management endpoints.

Uses FastAPI BackgroundTasks for change notifications.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import BranchCreate, BranchOutput, BranchUpdate, WebhookOutput
from backoffice.services.domain import BranchService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ENTITY_CREATED, ENTITY_DELETED, ENTITY_UPDATED, queue_change
from shared.security.access import allowed_branch_ids, ensure_branch_access, require_section

router = APIRouter(prefix="/api/branches", tags=["branches"])

require_branches = require_section(Sections.BRANCHES)


@router.get("", response_model=list[BranchOutput])
def list_branches(
    db: Session = Depends(get_db),
    ctx: dict = Depends(
        require_section(Sections.BRANCHES, Sections.ORDERS, Sections.OPEN_SHIFTS, Sections.HISTORY)
    ),
) -> list[BranchOutput]:
    """Branches of the partner, limited to the caller's branch scope."""
    return BranchService(db).list_branches(get_partner_id(ctx), allowed_branch_ids(ctx))


@router.get("/{branch_id}", response_model=BranchOutput)
def get_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_branches),
) -> BranchOutput:
    ensure_branch_access(ctx, branch_id)
    return BranchService(db).get_by_id(branch_id, get_partner_id(ctx))


@router.post("", response_model=BranchOutput, status_code=status.HTTP_201_CREATED)
def create_branch(
    body: BranchCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_branches),
) -> BranchOutput:
    partner_id = get_partner_id(ctx)
    branch = BranchService(db).create(body.model_dump(), partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_CREATED, "branch", branch.id, partner_id, branch.id)
    return branch


@router.patch("/{branch_id}", response_model=BranchOutput)
def update_branch(
    branch_id: int,
    body: BranchUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_branches),
) -> BranchOutput:
    ensure_branch_access(ctx, branch_id)
    partner_id = get_partner_id(ctx)
    branch = BranchService(db).update(
        branch_id,
        body.model_dump(exclude_unset=True),
        partner_id,
        get_user_id(ctx),
    )
    queue_change(background_tasks, ENTITY_UPDATED, "branch", branch.id, partner_id, branch.id)
    return branch


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_branch(
    branch_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_branches),
) -> None:
    ensure_branch_access(ctx, branch_id)
    partner_id = get_partner_id(ctx)
    BranchService(db).delete(branch_id, partner_id, get_user_id(ctx))
    queue_change(background_tasks, ENTITY_DELETED, "branch", branch_id, partner_id, branch_id)


@router.post("/{branch_id}/telegram-webhook", response_model=WebhookOutput)
async def register_branch_webhook(
    branch_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_branches),
) -> WebhookOutput:
    ensure_branch_access(ctx, branch_id)
    return await BranchService(db).register_webhook(branch_id, get_partner_id(ctx), get_user_id(ctx))
