"""
Outbound and inbound integrations: Poster POS, Telegram Bot API, Binotel
telephony webhooks and transliteration for courier cabinets.
"""

from .binotel import CompletedCall, IncomingCall, parse_body, payload_company_id
from .poster import PosterClient, build_photo_url, extract_price
from .telegram import set_webhook, webhook_url
from .transliteration import cabinet_slug, transliterate

__all__ = [
    "CompletedCall",
    "IncomingCall",
    "parse_body",
    "payload_company_id",
    "PosterClient",
    "build_photo_url",
    "extract_price",
    "set_webhook",
    "webhook_url",
    "cabinet_slug",
    "transliterate",
]
