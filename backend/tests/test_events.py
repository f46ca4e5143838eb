"""
Tests for change events: channel naming, payloads and publishing.
"""

import asyncio
import json

import pytest
from fastapi import BackgroundTasks

from shared.config.settings import settings
from shared.infrastructure.events import (
    ENTITY_CREATED,
    ENTITY_UPDATED,
    ChangeEvent,
    channel_partner_changes,
    publish_change,
    queue_change,
)
from shared.infrastructure.events import publisher


class FakeRedis:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    async def publish(self, channel, message):
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, json.loads(message)))
        return 1


@pytest.fixture
def fake_redis(monkeypatch):
    redis_client = FakeRedis()

    async def pool():
        return redis_client

    monkeypatch.setattr(settings, "events_enabled", True)
    monkeypatch.setattr(publisher, "get_redis_pool", pool)
    return redis_client


class TestChannels:
    """Redis channel names."""

    def test_partner_channel(self):
        assert channel_partner_changes(7) == "partner:7:changes"

    @pytest.mark.parametrize("bad", [0, -1, "7", None])
    def test_invalid_partner_id(self, bad):
        with pytest.raises(ValueError):
            channel_partner_changes(bad)


class TestChangeEvent:
    """ChangeEvent validation and JSON form."""

    def test_json_round_trip(self):
        event = ChangeEvent(type=ENTITY_CREATED, entity="order", entity_id=5, partner_id=1, branch_id=2)
        payload = json.loads(event.to_json())
        assert payload["type"] == "ENTITY_CREATED"
        assert payload["data"] == {}
        assert payload["timestamp"]
        assert ChangeEvent.from_json(event.to_json()).entity_id == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"type": "ENTITY_EXPLODED", "entity": "order"},
            {"type": ENTITY_CREATED, "entity": "pizza"},
            {"type": ENTITY_CREATED, "entity": "order", "partner_id": 0},
        ],
    )
    def test_invalid_events(self, kwargs):
        with pytest.raises(ValueError):
            ChangeEvent(**{"entity_id": 1, "partner_id": 1, **kwargs})


class TestPublishing:
    """publish_change and queue_change."""

    def test_publish(self, fake_redis):
        event = ChangeEvent(type=ENTITY_UPDATED, entity="shift", entity_id=3, partner_id=4, data={"status": "open"})
        assert asyncio.run(publish_change(event)) == 1
        channel, payload = fake_redis.published[0]
        assert channel == "partner:4:changes"
        assert payload["data"] == {"status": "open"}

    def test_oversized_data_dropped(self, fake_redis):
        event = ChangeEvent(type=ENTITY_UPDATED, entity="order", entity_id=1, partner_id=1, data={"x": "a" * 70_000})
        asyncio.run(publish_change(event))
        assert fake_redis.published[0][1]["data"] == {}

    def test_failure_is_swallowed(self, fake_redis):
        fake_redis.fail = True
        event = ChangeEvent(type=ENTITY_UPDATED, entity="order", entity_id=1, partner_id=1)
        assert asyncio.run(publish_change(event)) == 0

    def test_disabled_publishes_nothing(self):
        event = ChangeEvent(type=ENTITY_UPDATED, entity="order", entity_id=1, partner_id=1)
        assert asyncio.run(publish_change(event)) == 0

    def test_queue_change_adds_task(self, fake_redis):
        tasks = BackgroundTasks()
        queue_change(tasks, ENTITY_CREATED, "courier", 9, 1, data={"name": "Petro"})
        assert len(tasks.tasks) == 1

    def test_queue_change_without_tasks(self, fake_redis):
        queue_change(None, ENTITY_CREATED, "courier", 9, 1)

    def test_order_mutation_publishes(self, client, owner_headers, create_order, fake_redis):
        order = create_order()
        entities = [(payload["entity"], payload["type"]) for _, payload in fake_redis.published]
        assert ("order", "ENTITY_CREATED") in entities
        assert fake_redis.published[-1][1]["entity_id"] == order["id"]
