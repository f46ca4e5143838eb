"""
Telegram Bot API client (webhook registration).
"""

from __future__ import annotations

from typing import Any

import httpx

from shared.config.logging import integrations_logger as logger
from shared.config.logging import mask_token
from shared.config.settings import settings
from shared.utils.exceptions import ExternalServiceError, ValidationError

SERVICE_NAME = "Telegram"


def _method_url(bot_token: str, method: str) -> str:
    return f"{settings.telegram_api_base.rstrip('/')}/bot{bot_token}/{method}"


def webhook_url(path: str) -> str:
    """Public URL Telegram should call for the given API path."""
    return f"{settings.public_base_url.rstrip('/')}/{path.lstrip('/')}"


async def set_webhook(
    bot_token: str | None,
    url: str,
    *,
    allowed_updates: list[str] | None = None,
) -> dict[str, Any]:
    """
    Point a bot at our webhook and return Telegram's webhook info.

    Raises:
        ValidationError: If no bot token is configured.
        ExternalServiceError: If Telegram is unreachable or rejects the call.
    """
    token = (bot_token or "").strip()
    if not token:
        raise ValidationError("Telegram bot token is not configured", field="telegram_bot_token")

    body: dict[str, Any] = {"url": url}
    if allowed_updates is not None:
        body["allowed_updates"] = allowed_updates

    try:
        async with httpx.AsyncClient(timeout=settings.telegram_api_timeout) as client:
            response = await client.post(_method_url(token, "setWebhook"), json=body)
            data = response.json()
            if response.status_code != 200 or not data.get("ok"):
                logger.error(
                    "Telegram setWebhook failed",
                    bot=mask_token(token),
                    status_code=response.status_code,
                    description=data.get("description"),
                )
                raise ExternalServiceError(SERVICE_NAME, reason=data.get("description") or "setWebhook failed")

            info_response = await client.get(_method_url(token, "getWebhookInfo"))
            info = info_response.json().get("result") or {}
    except httpx.HTTPError as e:
        logger.error("Telegram request failed", bot=mask_token(token), error=str(e))
        raise ExternalServiceError(SERVICE_NAME, is_unavailable=True)
    except ValueError as e:
        logger.error("Telegram returned invalid JSON", bot=mask_token(token), error=str(e))
        raise ExternalServiceError(SERVICE_NAME, reason="invalid response")

    logger.info("Telegram webhook configured", bot=mask_token(token), url=url)
    return info
