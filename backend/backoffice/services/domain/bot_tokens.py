"""
Telegram bot token uniqueness within a partner.

A token may be used by exactly one of: a branch bot, an executor bot, the
courier registration bot or the external courier bot.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.models import Branch, Executor, PartnerSettings
from shared.utils.exceptions import ConflictError

BRANCH = "branch"
EXECUTOR = "executor"
COURIER_BOT = "courier"
EXTERNAL_COURIER_BOT = "external_courier"

CONFLICT_MESSAGES = {
    BRANCH: "This token is already used by a branch bot",
    EXECUTOR: "This token is already used by an executor bot",
    COURIER_BOT: "This token is already used by the courier registration bot",
    EXTERNAL_COURIER_BOT: "This token is already used by the external courier bot",
}


def find_bot_token_conflict(
    db: Session,
    partner_id: int,
    token: str | None,
    *,
    owner_type: str,
    owner_id: int | None = None,
) -> str | None:
    """
    Return the conflict type for a token, or None when it is free.

    The row identified by (owner_type, owner_id) is not counted against
    itself. For the two settings bots, owner_id is irrelevant: the settings
    row owns its own field.
    """
    token = (token or "").strip()
    if not token:
        return None

    branch_q = select(Branch.id).where(Branch.partner_id == partner_id, Branch.telegram_bot_token == token)
    if owner_type == BRANCH and owner_id is not None:
        branch_q = branch_q.where(Branch.id != owner_id)
    if db.scalar(branch_q.limit(1)) is not None:
        return BRANCH

    executor_q = select(Executor.id).where(
        Executor.partner_id == partner_id, Executor.telegram_bot_token == token
    )
    if owner_type == EXECUTOR and owner_id is not None:
        executor_q = executor_q.where(Executor.id != owner_id)
    if db.scalar(executor_q.limit(1)) is not None:
        return EXECUTOR

    settings_row = db.scalar(select(PartnerSettings).where(PartnerSettings.partner_id == partner_id))
    if settings_row is not None:
        if owner_type != COURIER_BOT and settings_row.courier_bot_token == token:
            return COURIER_BOT
        if owner_type != EXTERNAL_COURIER_BOT and settings_row.external_courier_bot_token == token:
            return EXTERNAL_COURIER_BOT
    return None


def ensure_bot_token_unique(
    db: Session,
    partner_id: int,
    token: str | None,
    *,
    owner_type: str,
    owner_id: int | None = None,
) -> None:
    conflict = find_bot_token_conflict(db, partner_id, token, owner_type=owner_type, owner_id=owner_id)
    if conflict is not None:
        raise ConflictError(
            CONFLICT_MESSAGES[conflict],
            conflict_type=conflict,
            partner_id=partner_id,
        )
