"""
Change notifications over Redis pub/sub.

- redis_pool.py: pooled async client
- channels.py: channel naming
- event_schema.py: ChangeEvent dataclass and event types
- publisher.py: publish_change / queue_change
"""

from .channels import channel_partner_changes
from .event_schema import (
    CHANGE_ENTITIES,
    ENTITY_CREATED,
    ENTITY_DELETED,
    ENTITY_UPDATED,
    ChangeEvent,
)
from .publisher import publish_change, queue_change
from .redis_pool import close_redis_pool, get_redis_pool, redis_health

__all__ = [
    "channel_partner_changes",
    "CHANGE_ENTITIES",
    "ENTITY_CREATED",
    "ENTITY_DELETED",
    "ENTITY_UPDATED",
    "ChangeEvent",
    "publish_change",
    "queue_change",
    "close_redis_pool",
    "get_redis_pool",
    "redis_health",
]
