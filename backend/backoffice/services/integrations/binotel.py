"""
Binotel webhook payload parsing.

Binotel posts either JSON or form-urlencoded bodies. Form bodies may carry
nested fields as bracketed keys (callDetails[generalCallID]=...) or as a
JSON string in callDetails; both become nested dicts here.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl

from shared.config.logging import integrations_logger as logger

MISSED_DISPOSITIONS = ("NOANSWER", "BUSY", "FAILED")

_BRACKETS = re.compile(r"\[([^\]]*)\]")


def parse_body(body: bytes, content_type: str | None) -> dict[str, Any]:
    text = body.decode("utf-8", errors="replace")
    if content_type and "application/json" in content_type:
        try:
            data = json.loads(text or "{}")
        except ValueError:
            logger.warning("Binotel sent invalid JSON")
            return {"rawBody": text}
        return data if isinstance(data, dict) else {"rawBody": data}
    return parse_form(text)


def parse_form(text: str) -> dict[str, Any]:
    """a=1&b[c]=2&b[d][e]=3 -> {"a": "1", "b": {"c": "2", "d": {"e": "3"}}}"""
    result: dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        head = key.split("[", 1)[0]
        parts = [head] + _BRACKETS.findall(key[len(head):])
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
    return result


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class IncomingCall:
    company_id: str
    call_type: int
    external_number: str
    internal_number: str
    pbx_number: str
    request_type: str
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_outgoing(self) -> bool:
        return self.call_type == 1

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "IncomingCall":
        return cls(
            company_id=str(_pick(payload, "companyID", "companyid", default="")),
            call_type=_to_int(_pick(payload, "callType", "calltype", default=0)),
            external_number=str(_pick(payload, "externalNumber", "externalnumber", default="")),
            internal_number=str(_pick(payload, "internalNumber", "internalnumber", default="")),
            pbx_number=str(_pick(payload, "pbxNumber", "pbxnumber", default="")),
            request_type=str(_pick(payload, "requestType", default="")),
            raw=payload,
        )


@dataclass
class CompletedCall:
    general_call_id: str | None
    company_id: str
    call_type: int
    external_number: str
    internal_number: str
    pbx_number: str
    disposition: str
    waitsec: int
    billsec: int
    started_at: datetime | None
    employee_name: str | None
    employee_email: str | None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_outgoing(self) -> bool:
        return self.call_type == 1

    @property
    def is_missed(self) -> bool:
        """An incoming call nobody talked on."""
        if self.call_type != 0:
            return False
        return self.disposition in MISSED_DISPOSITIONS or self.billsec == 0

    @property
    def answered_at(self) -> datetime | None:
        if self.disposition == "ANSWER" and self.billsec > 0:
            return self.started_at
        return None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CompletedCall":
        details: Any = payload.get("callDetails") or payload
        if isinstance(details, str):
            try:
                details = json.loads(details)
            except ValueError:
                logger.warning("Binotel callDetails is not valid JSON")
                details = payload
        if not isinstance(details, dict):
            details = payload

        employee = _pick(details, "employeeData", "employeedata", default={}) or {}
        pbx_data = _pick(details, "pbxNumberData", "pbxnumberdata", default={}) or {}
        if not isinstance(employee, dict):
            employee = {}
        if not isinstance(pbx_data, dict):
            pbx_data = {}

        started_at = None
        start_time = _pick(details, "startTime", "starttime")
        if start_time is not None:
            ts = _to_int(start_time, default=-1)
            if ts >= 0:
                try:
                    started_at = datetime.fromtimestamp(ts, tz=timezone.utc)
                except (ValueError, OverflowError, OSError):
                    logger.warning("Binotel startTime out of range", start_time=start_time)

        general_call_id = _pick(details, "generalCallID", "generalcallid")
        return cls(
            general_call_id=str(general_call_id) if general_call_id is not None else None,
            company_id=str(
                _pick(details, "companyID", "companyid", default=None)
                or _pick(payload, "companyID", "companyid", default="")
            ),
            call_type=_to_int(_pick(details, "callType", "calltype", default=0)),
            external_number=str(_pick(details, "externalNumber", "externalnumber", default="")),
            internal_number=str(_pick(details, "internalNumber", "internalnumber", default="")),
            pbx_number=str(pbx_data.get("number") or _pick(details, "pbxNumber", default="")),
            disposition=str(_pick(details, "disposition", default="UNKNOWN")),
            waitsec=_to_int(_pick(details, "waitsec", default=0)),
            billsec=_to_int(_pick(details, "billsec", default=0)),
            started_at=started_at,
            employee_name=employee.get("name") or None,
            employee_email=employee.get("email") or None,
            raw=payload,
        )


def payload_company_id(payload: dict[str, Any]) -> str | None:
    """companyID from the top level or from callDetails, if present."""
    details = payload.get("callDetails")
    if isinstance(details, str):
        try:
            details = json.loads(details)
        except ValueError:
            details = None
    if isinstance(details, dict):
        company = _pick(details, "companyID", "companyid")
        if company is not None:
            return str(company)
    company = _pick(payload, "companyID", "companyid")
    return str(company) if company is not None else None
