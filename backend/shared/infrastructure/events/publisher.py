"""
Change event publishing.

Routes call queue_change() with their BackgroundTasks after a successful
commit. Publishing failures are logged and never reach the client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from shared.config.logging import get_logger
from shared.config.settings import settings
from .channels import channel_partner_changes
from .event_schema import MAX_EVENT_SIZE, ChangeEvent
from .redis_pool import get_redis_pool

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

logger = get_logger(__name__)


async def publish_change(event: ChangeEvent) -> int:
    """
    Publish a change event to the partner channel.

    Returns the number of subscribers that received it (0 when disabled or
    on failure).
    """
    if not settings.events_enabled:
        return 0

    event_json = event.to_json()
    if len(event_json.encode("utf-8")) > MAX_EVENT_SIZE:
        logger.warning(
            "Change event too large, dropping data",
            entity=event.entity,
            entity_id=event.entity_id,
        )
        event.data = {}
        event_json = event.to_json()

    channel = channel_partner_changes(event.partner_id)
    try:
        redis_client = await get_redis_pool()
        receivers = await redis_client.publish(channel, event_json)
        logger.debug(
            "Change event published",
            channel=channel,
            event_type=event.type,
            entity=event.entity,
            entity_id=event.entity_id,
        )
        return receivers
    except Exception as e:
        logger.error(
            "Failed to publish change event",
            channel=channel,
            entity=event.entity,
            entity_id=event.entity_id,
            error=str(e),
        )
        return 0


def queue_change(
    background_tasks: "BackgroundTasks | None",
    event_type: str,
    entity: str,
    entity_id: int,
    partner_id: int,
    branch_id: int | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """
    Schedule a change notification on the request's background tasks.

    Without a BackgroundTasks object (CLI, jobs) nothing is published.
    """
    if background_tasks is None or not settings.events_enabled:
        return
    event = ChangeEvent(
        type=event_type,
        entity=entity,
        entity_id=entity_id,
        partner_id=partner_id,
        branch_id=branch_id,
        data=data or {},
    )
    background_tasks.add_task(publish_change, event)
