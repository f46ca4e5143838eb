"""
Change event schema.

Published after a committed mutation so that open back-office screens can
refresh without polling.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

# Event types
ENTITY_CREATED = "ENTITY_CREATED"
ENTITY_UPDATED = "ENTITY_UPDATED"
ENTITY_DELETED = "ENTITY_DELETED"

EVENT_TYPES = frozenset({ENTITY_CREATED, ENTITY_UPDATED, ENTITY_DELETED})

# Entities whose changes are broadcast
CHANGE_ENTITIES = frozenset({
    "order",
    "shift",
    "courier",
    "executor",
    "branch",
    "call",
})

# Upper bound for a published payload, in bytes
MAX_EVENT_SIZE = 64 * 1024


@dataclass
class ChangeEvent:
    type: str
    entity: str
    entity_id: int
    partner_id: int
    branch_id: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str | None = None

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.type}")
        if self.entity not in CHANGE_ENTITIES:
            raise ValueError(f"Unknown change entity: {self.entity}")
        if not isinstance(self.partner_id, int) or self.partner_id <= 0:
            raise ValueError("Event partner_id must be a positive integer")
        if self.data is not None and not isinstance(self.data, dict):
            raise ValueError("Event data must be a dict or None")

    def to_json(self) -> str:
        payload = asdict(self)
        payload["data"] = payload["data"] or {}
        payload["timestamp"] = payload["timestamp"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(payload, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeEvent":
        return cls(**json.loads(json_str))
