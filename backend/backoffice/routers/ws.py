"""
Realtime change feed.

One Redis subscription per socket on the partner's change channel; events
outside the user's branch scope are dropped. The client may send "ping"
and gets "pong" back.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from shared.config.logging import get_logger
from shared.infrastructure.events import channel_partner_changes, get_redis_pool
from shared.security.access import can_access_branch
from shared.security.auth import verify_jwt

logger = get_logger(__name__)

router = APIRouter(tags=["ws"])

# Clients only send heartbeats
MAX_MESSAGE_SIZE = 1024


def event_visible(event: dict[str, Any], ctx: dict[str, Any]) -> bool:
    if event.get("partner_id") != ctx.get("partner_id"):
        return False
    return can_access_branch(ctx, event.get("branch_id"))


async def _forward(websocket: WebSocket, pubsub: Any, ctx: dict[str, Any]) -> None:
    async for msg in pubsub.listen():
        if msg is None or msg.get("type") != "message":
            continue
        try:
            event = json.loads(msg["data"])
        except (TypeError, ValueError) as e:
            logger.warning("Failed to parse change event", error=str(e))
            continue
        if not isinstance(event, dict) or not event_visible(event, ctx):
            continue
        await websocket.send_json(event)


async def _receive(websocket: WebSocket) -> None:
    while True:
        data = await websocket.receive_text()
        if len(data) > MAX_MESSAGE_SIZE:
            await websocket.close(code=1009, reason="Message too large")
            return
        if data == "ping":
            await websocket.send_text("pong")


@router.websocket("/ws/changes")
async def changes_ws(websocket: WebSocket, token: str = Query(...)) -> None:
    try:
        ctx = verify_jwt(token)
    except HTTPException as e:
        await websocket.close(code=4001, reason=str(e.detail))
        return

    partner_id = int(ctx["partner_id"])
    channel = channel_partner_changes(partner_id)
    try:
        redis_client = await get_redis_pool()
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(channel)
    except Exception as e:
        logger.error("Change feed unavailable", partner_id=partner_id, error=str(e))
        await websocket.close(code=1011, reason="Change feed unavailable")
        return

    await websocket.accept()
    logger.info("Change feed connected", partner_id=partner_id, user_id=ctx.get("sub"))
    forwarder = asyncio.create_task(_forward(websocket, pubsub, ctx))
    receiver = asyncio.create_task(_receive(websocket))
    try:
        done, _ = await asyncio.wait({forwarder, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if forwarder in done:
            error = forwarder.exception()
            logger.error(
                "Change feed forwarder stopped",
                partner_id=partner_id,
                error=str(error) if error else "subscription ended",
            )
            try:
                await websocket.close(code=1011, reason="Change feed unavailable")
            except (RuntimeError, WebSocketDisconnect):
                pass
        else:
            error = receiver.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning("Change feed receive failed", partner_id=partner_id, error=str(error))
    finally:
        for task in (forwarder, receiver):
            task.cancel()
        await asyncio.gather(forwarder, receiver, return_exceptions=True)
        try:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
        except Exception as e:
            logger.warning("Change feed unsubscribe failed", partner_id=partner_id, error=str(e))
        logger.info("Change feed disconnected", partner_id=partner_id, user_id=ctx.get("sub"))
