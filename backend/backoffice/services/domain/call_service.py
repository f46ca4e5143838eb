"""
Call center: Binotel webhooks and call history queries.

Webhooks carry no authentication; the partner is found by the Binotel
company id stored in partner settings. Unknown companies are acknowledged
and ignored.
"""

from __future__ import annotations

import math
import statistics
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import Branch, CallRecord, Client, PartnerSettings, as_utc, utcnow
from backoffice.routers.schemas import WaitStats
from backoffice.services.domain.log_service import record_log_detached
from backoffice.services.integrations import CompletedCall, IncomingCall, payload_company_id
from shared.config.constants import Limits, LogSection
from shared.config.logging import integrations_logger as logger, mask_phone
from shared.infrastructure.db import safe_commit
from shared.utils.validators import normalize_phone


def percentile(values: list[int], pct: float) -> float:
    """Nearest-rank percentile of an unsorted list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100 * len(ordered)))
    return float(ordered[rank - 1])


class CallService:
    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def resolve_partner(self, company_id: str | None) -> int | None:
        if not company_id:
            return None
        return self._db.scalar(
            select(PartnerSettings.partner_id).where(PartnerSettings.binotel_company_id == str(company_id))
        )

    def find_branch(self, partner_id: int, *numbers: str | None) -> Branch | None:
        wanted = {normalize_phone(n) for n in numbers if n}
        wanted.discard("")
        if not wanted:
            return None
        branches = self._db.scalars(
            select(Branch).where(Branch.partner_id == partner_id, Branch.phone.is_not(None)).order_by(Branch.id)
        ).all()
        for branch in branches:
            if normalize_phone(branch.phone) in wanted:
                return branch
        return None

    def find_client(self, partner_id: int, phone: str | None) -> Client | None:
        normalized = normalize_phone(phone)
        if not normalized:
            return None
        clients = self._db.scalars(select(Client).where(Client.partner_id == partner_id).order_by(Client.id)).all()
        for client in clients:
            if normalize_phone(client.phone) == normalized:
                return client
        for client in clients:
            if any(normalize_phone(p) == normalized for p in client.additional_phones or []):
                return client
        return None

    # =========================================================================
    # Webhooks
    # =========================================================================

    def handle_incoming(self, payload: dict[str, Any]) -> CallRecord | None:
        call = IncomingCall.from_payload(payload)
        partner_id = self.resolve_partner(call.company_id)
        if partner_id is None:
            logger.info("Binotel call for unknown company ignored", company_id=call.company_id)
            return None

        external = normalize_phone(call.external_number) or None
        branch = self.find_branch(partner_id, call.pbx_number, call.internal_number)
        client = self.find_client(partner_id, external)
        record = CallRecord(
            partner_id=partner_id,
            company_id=call.company_id,
            branch_id=branch.id if branch else None,
            client_id=client.id if client else None,
            call_type=call.call_type,
            is_outgoing=call.is_outgoing,
            external_number=external,
            internal_number=call.internal_number or None,
            pbx_number=call.pbx_number or None,
            call_status="ringing",
            started_at=utcnow(),
            raw=call.raw,
        )
        self._db.add(record)
        safe_commit(self._db)
        self._db.refresh(record)
        logger.info(
            "Binotel incoming call",
            partner_id=partner_id,
            call_id=record.id,
            branch_id=record.branch_id,
            caller=mask_phone(external),
        )
        return record

    def _find_open_call(self, partner_id: int, call: CompletedCall, external: str | None, now: datetime):
        if call.general_call_id:
            record = self._db.scalar(
                select(CallRecord)
                .where(
                    CallRecord.partner_id == partner_id,
                    CallRecord.general_call_id == call.general_call_id,
                )
                .order_by(CallRecord.id.desc())
                .limit(1)
            )
            if record is not None:
                return record
        if not external:
            return None
        since = now - timedelta(minutes=Limits.CALL_MATCH_WINDOW_MINUTES)
        return self._db.scalar(
            select(CallRecord)
            .where(
                CallRecord.partner_id == partner_id,
                CallRecord.external_number == external,
                CallRecord.completed_at.is_(None),
                CallRecord.started_at >= since,
            )
            .order_by(CallRecord.started_at.desc(), CallRecord.id.desc())
            .limit(1)
        )

    def handle_completed(self, payload: dict[str, Any], *, now: datetime | None = None) -> CallRecord | None:
        call = CompletedCall.from_payload(payload)
        partner_id = self.resolve_partner(call.company_id)
        if partner_id is None:
            logger.info("Binotel completed call for unknown company ignored", company_id=call.company_id)
            return None

        now = now or utcnow()
        external = normalize_phone(call.external_number) or None
        record = self._find_open_call(partner_id, call, external, now)
        if record is None:
            record = CallRecord(partner_id=partner_id, started_at=call.started_at or now)
            self._db.add(record)

        branch = self.find_branch(partner_id, call.pbx_number, call.internal_number)
        client = self.find_client(partner_id, external)

        record.general_call_id = call.general_call_id or record.general_call_id
        record.company_id = call.company_id
        if branch is not None:
            record.branch_id = branch.id
        if client is not None:
            record.client_id = client.id
        record.call_type = call.call_type
        record.is_outgoing = call.is_outgoing
        record.external_number = external or record.external_number
        record.internal_number = call.internal_number or record.internal_number
        record.pbx_number = call.pbx_number or record.pbx_number
        record.call_status = call.disposition
        record.waitsec = call.waitsec
        record.billsec = call.billsec
        record.duration_seconds = call.waitsec + call.billsec
        record.is_missed = call.is_missed
        record.is_lost = call.is_missed
        record.employee_name = call.employee_name
        record.employee_email = call.employee_email
        if call.started_at is not None:
            record.started_at = call.started_at
        record.answered_at = call.answered_at
        record.completed_at = now
        record.raw = call.raw

        if not call.is_missed and external:
            # A later answered or outgoing call resolves earlier missed ones
            for missed in self._db.scalars(
                select(CallRecord).where(
                    CallRecord.partner_id == partner_id,
                    CallRecord.external_number == external,
                    CallRecord.is_lost.is_(True),
                )
            ).all():
                missed.is_lost = False

        safe_commit(self._db)
        self._db.refresh(record)
        logger.info(
            "Binotel completed call",
            partner_id=partner_id,
            call_id=record.id,
            disposition=call.disposition,
            missed=call.is_missed,
        )
        return record

    def handle_webhook(self, event: str, payload: dict[str, Any]) -> CallRecord | None:
        """
        Run the incoming or completed handler. Failures are logged and
        swallowed: Binotel retries anything that is not a success answer.
        """
        handler = self.handle_incoming if event == "incoming" else self.handle_completed
        try:
            return handler(payload)
        except Exception as e:
            self._db.rollback()
            company_id = payload_company_id(payload)
            logger.error("Binotel webhook failed", event=event, company_id=company_id, error=str(e), exc_info=True)
            try:
                partner_id = self.resolve_partner(company_id)
            except SQLAlchemyError:
                partner_id = None
            if partner_id is not None:
                record_log_detached(
                    partner_id=partner_id,
                    section=LogSection.CALLS,
                    message=f"Binotel {event} webhook failed",
                    action=f"binotel_{event}",
                    details={"error": str(e)},
                )
            return None

    # =========================================================================
    # Queries
    # =========================================================================

    def _scoped(self, partner_id: int, allowed_branches: list[int] | None):
        query = select(CallRecord).where(CallRecord.partner_id == partner_id)
        if allowed_branches is not None:
            query = query.where(CallRecord.branch_id.in_(allowed_branches))
        return query

    def list_calls(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None = None,
        branch_id: int | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        missed_only: bool = False,
        phone: str | None = None,
        limit: int = Limits.CALLS_MAX_ROWS,
    ) -> list[CallRecord]:
        query = self._scoped(partner_id, allowed_branches)
        if branch_id is not None:
            query = query.where(CallRecord.branch_id == branch_id)
        if date_from:
            query = query.where(CallRecord.started_at >= date_from)
        if date_to:
            query = query.where(CallRecord.started_at <= date_to)
        if missed_only:
            query = query.where(CallRecord.is_missed.is_(True))
        if phone:
            query = query.where(CallRecord.external_number == normalize_phone(phone))
        limit = max(1, min(limit, Limits.CALLS_MAX_ROWS))
        query = query.order_by(CallRecord.started_at.desc(), CallRecord.id.desc()).limit(limit)
        return list(self._db.scalars(query).all())

    def lost_calls(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None = None,
        since: datetime | None = None,
    ) -> list[CallRecord]:
        """Missed incoming calls nobody has called back or answered since."""
        query = self._scoped(partner_id, allowed_branches).where(
            CallRecord.is_missed.is_(True),
            CallRecord.is_outgoing.is_(False),
        )
        if since:
            query = query.where(CallRecord.started_at >= since)
        missed = self._db.scalars(query.order_by(CallRecord.started_at.desc(), CallRecord.id.desc())).all()
        if not missed:
            return []

        numbers = {c.external_number for c in missed if c.external_number}
        resolved_at: dict[str, datetime] = {}
        if numbers:
            followups = self._db.scalars(
                select(CallRecord).where(
                    CallRecord.partner_id == partner_id,
                    CallRecord.external_number.in_(numbers),
                    CallRecord.is_missed.is_(False),
                    CallRecord.completed_at.is_not(None),
                    or_(
                        CallRecord.is_outgoing.is_(True),
                        CallRecord.answered_at.is_not(None),
                        CallRecord.billsec > 0,
                    ),
                )
            ).all()
            for c in followups:
                started = as_utc(c.started_at)
                if started is None:
                    continue
                last = resolved_at.get(c.external_number)
                if last is None or started > last:
                    resolved_at[c.external_number] = started

        lost = []
        seen: set[str] = set()
        for c in missed:
            number = c.external_number
            resolved = resolved_at.get(number) if number else None
            started = as_utc(c.started_at)
            if resolved is not None and (started is None or resolved >= started):
                continue
            # One row per number: the latest missed call
            if number:
                if number in seen:
                    continue
                seen.add(number)
            lost.append(c)
        return lost[: Limits.CALLS_MAX_ROWS]

    def wait_stats(
        self,
        partner_id: int,
        *,
        allowed_branches: list[int] | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[WaitStats]:
        query = self._scoped(partner_id, allowed_branches).where(
            CallRecord.is_outgoing.is_(False),
            CallRecord.waitsec.is_not(None),
        )
        if date_from:
            query = query.where(CallRecord.started_at >= date_from)
        if date_to:
            query = query.where(CallRecord.started_at <= date_to)

        waits: dict[int | None, list[int]] = {}
        for c in self._db.scalars(query).all():
            waits.setdefault(c.branch_id, []).append(c.waitsec)

        return [
            WaitStats(
                branch_id=branch_id,
                calls=len(values),
                avg_wait=round(sum(values) / len(values), 1),
                median_wait=float(statistics.median(values)),
                p90_wait=percentile(values, 90),
            )
            for branch_id, values in sorted(waits.items(), key=lambda kv: (kv[0] is None, kv[0] or 0))
        ]
