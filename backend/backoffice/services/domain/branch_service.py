"""
Branch Service: restaurant locations, their Telegram bots and Poster spots.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from backoffice.models import Branch, CallRecord, Courier, Order, PositionBranch, Shift
from backoffice.routers.schemas import BranchOutput, WebhookOutput
from backoffice.services.base_service import BaseCRUDService
from backoffice.services.domain.bot_tokens import BRANCH, ensure_bot_token_unique
from backoffice.services.integrations import telegram
from shared.config.constants import LogSection
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError

logger = get_logger(__name__)

BRANCH_WEBHOOK_PATH = "/api/integrations/telegram/branch-bot"


class BranchService(BaseCRUDService[Branch, BranchOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Branch,
            output_schema=BranchOutput,
            entity_name="Branch",
            log_section=LogSection.BRANCHES,
        )

    def list_branches(self, partner_id: int, branch_ids: list[int] | None) -> list[BranchOutput]:
        where = [Branch.id.in_(branch_ids)] if branch_ids is not None else None
        return self.list_all(partner_id, where=where, order_by=Branch.id)

    def _clean(self, data: dict[str, Any]) -> dict[str, Any]:
        for key in ("telegram_bot_token", "telegram_chat_id", "phone", "address"):
            if key in data and isinstance(data[key], str):
                data[key] = data[key].strip() or None
        return data

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        self._require_name(data)
        data = self._clean(data)
        ensure_bot_token_unique(self._db, partner_id, data.get("telegram_bot_token"), owner_type=BRANCH)
        return data

    def _validate_update(self, entity: Branch, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        if "name" in data and data["name"] is None:
            data.pop("name")
        self._require_name(data)
        data = self._clean(data)
        if data.get("telegram_bot_token"):
            ensure_bot_token_unique(
                self._db,
                partner_id,
                data["telegram_bot_token"],
                owner_type=BRANCH,
                owner_id=entity.id,
            )
        return data

    def _validate_delete(self, entity: Branch, partner_id: int) -> None:
        orders = self._db.scalar(
            select(func.count()).select_from(Order).where(Order.branch_id == entity.id)
        ) or 0
        shifts = self._db.scalar(
            select(func.count()).select_from(Shift).where(Shift.branch_id == entity.id)
        ) or 0
        if orders or shifts:
            raise ConflictError(
                f"Branch '{entity.name}' has {orders} order(s) and {shifts} shift(s); "
                "deactivate it instead",
                branch_id=entity.id,
            )

    def _before_delete(self, entity: Branch) -> None:
        self._db.execute(delete(PositionBranch).where(PositionBranch.branch_id == entity.id))
        self._db.execute(update(Courier).where(Courier.branch_id == entity.id).values(branch_id=None))
        self._db.execute(update(CallRecord).where(CallRecord.branch_id == entity.id).values(branch_id=None))

    async def register_webhook(self, branch_id: int, partner_id: int, user_id: int | None) -> WebhookOutput:
        """Register the branch bot's webhook (order accept buttons)."""
        branch = self.get_entity(branch_id, partner_id)
        url = telegram.webhook_url(BRANCH_WEBHOOK_PATH)
        info = await telegram.set_webhook(
            branch.telegram_bot_token,
            url,
            allowed_updates=["callback_query"],
        )
        self._record(partner_id, user_id, "webhook", "Branch bot webhook configured", branch, url=url)
        self._commit("record branch webhook", branch_id=branch_id)
        return WebhookOutput(ok=True, webhook_url=url, webhook_info=info)
