"""
Domain log: partner-visible records of what happened in the back office.

record_log() adds a row to the caller's session without committing, so a
log line lands in the same transaction as the change it describes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backoffice.models import LogEntry
from shared.config.constants import Limits, LogLevel, LogSection
from shared.config.logging import get_logger
from shared.infrastructure.db import get_db_context, safe_commit
from shared.utils.exceptions import ValidationError
from shared.utils.validators import escape_like_pattern, sanitize_search_term

logger = get_logger(__name__)

LOG_EXPORT_COLUMNS = ["id", "created_at", "section", "level", "action", "message", "user_id", "details"]


def record_log(
    db: Session,
    *,
    partner_id: int,
    section: str,
    message: str,
    level: str = LogLevel.INFO,
    details: dict[str, Any] | None = None,
    action: str | None = None,
    user_id: int | None = None,
) -> LogEntry:
    entry = LogEntry(
        partner_id=partner_id,
        section=section,
        level=level,
        message=message,
        details=details,
        action=action,
        user_id=user_id,
    )
    db.add(entry)
    return entry


def record_log_detached(
    *,
    partner_id: int,
    section: str,
    message: str,
    level: str = LogLevel.ERROR,
    details: dict[str, Any] | None = None,
    action: str | None = None,
    user_id: int | None = None,
) -> None:
    """
    Write a log row in its own session. Used by the error handler, where the
    request session may hold a failed transaction. Never raises.
    """
    try:
        with get_db_context() as db:
            record_log(
                db,
                partner_id=partner_id,
                section=section,
                message=message,
                level=level,
                details=details,
                action=action,
                user_id=user_id,
            )
            safe_commit(db)
    except Exception as e:
        logger.error("Failed to write domain log entry", partner_id=partner_id, error=str(e))


class LogService:
    """Query and create domain log entries."""

    def __init__(self, db: Session):
        self._db = db

    def list_logs(
        self,
        partner_id: int,
        *,
        section: str | None = None,
        level: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        search: str | None = None,
        limit: int = 200,
    ) -> list[LogEntry]:
        query = select(LogEntry).where(LogEntry.partner_id == partner_id)
        if section:
            query = query.where(LogEntry.section == section)
        if level:
            query = query.where(LogEntry.level == level)
        if date_from:
            query = query.where(LogEntry.created_at >= date_from)
        if date_to:
            query = query.where(LogEntry.created_at <= date_to)
        term = sanitize_search_term(search)
        if term:
            pattern = f"%{escape_like_pattern(term)}%"
            query = query.where(
                or_(
                    LogEntry.message.ilike(pattern, escape="\\"),
                    LogEntry.action.ilike(pattern, escape="\\"),
                )
            )
        limit = max(1, min(limit, Limits.LOGS_MAX_ROWS))
        query = query.order_by(LogEntry.created_at.desc(), LogEntry.id.desc()).limit(limit)
        return list(self._db.scalars(query).all())

    def create(
        self,
        partner_id: int,
        user_id: int | None,
        *,
        section: str,
        level: str,
        message: str,
        details: dict[str, Any] | None = None,
        action: str | None = None,
    ) -> LogEntry:
        """Store a log line reported by the back-office client."""
        if section not in LogSection.ALL:
            raise ValidationError(f"Unknown log section: {section}", section=section)
        if level not in LogLevel.ALL:
            raise ValidationError(f"Unknown log level: {level}", level=level)

        entry = record_log(
            self._db,
            partner_id=partner_id,
            section=section,
            level=level,
            message=message.strip(),
            details=details,
            action=action,
            user_id=user_id,
        )
        safe_commit(self._db)
        self._db.refresh(entry)
        return entry

    @staticmethod
    def to_export_row(entry: LogEntry) -> dict[str, Any]:
        return {
            "id": entry.id,
            "created_at": entry.created_at,
            "section": entry.section,
            "level": entry.level,
            "action": entry.action,
            "message": entry.message,
            "user_id": entry.user_id,
            "details": entry.details,
        }
