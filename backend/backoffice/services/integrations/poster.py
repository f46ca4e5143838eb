"""
Poster POS REST API client and payload helpers.

Poster prices are in minor units (kopecks); a product's price is taken from
the first spot with a positive price, then from the first entry of its price
map. Photo paths are absolutized against the account's joinposter.com host.
"""

from __future__ import annotations

from typing import Any

import httpx

from shared.config.logging import integrations_logger as logger
from shared.config.settings import settings
from shared.utils.exceptions import ExternalServiceError, ValidationError

SERVICE_NAME = "Poster"


def account_host(account: str) -> str:
    return f"https://{account}.joinposter.com"


def extract_price(product: dict[str, Any]) -> float:
    for spot in product.get("spots") or []:
        price = _to_number(spot.get("price"))
        if price > 0:
            return price / 100

    price = product.get("price")
    if isinstance(price, dict):
        if price:
            first = _to_number(next(iter(price.values())))
            if first > 0:
                return first / 100
    elif price is not None:
        value = _to_number(price)
        if value:
            return value / 100

    logger.warning(
        "Could not extract Poster product price",
        product_id=product.get("product_id"),
        product_name=product.get("product_name"),
    )
    return 0.0


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def build_photo_url(photo: str | None, photo_origin: str | None, account: str) -> str | None:
    raw = photo_origin or photo
    if not raw:
        return None
    if raw.startswith(("http://", "https://")):
        return raw
    if raw.startswith("/"):
        return f"{account_host(account)}{raw}"
    return f"{account_host(account)}/{raw}"


class PosterClient:
    """
    Thin async wrapper over the Poster API (menu and spots).

    Usage:
        async with PosterClient(account, token) as poster:
            products = await poster.get_products()
    """

    def __init__(self, account: str | None, token: str | None, *, timeout: float | None = None):
        if not account or not token:
            raise ValidationError("Poster API credentials are not configured", field="poster_account")
        self.account = account.strip()
        self._token = token.strip()
        self._client = httpx.AsyncClient(
            base_url=f"{account_host(self.account)}/api",
            timeout=timeout or settings.poster_api_timeout,
        )

    async def __aenter__(self) -> "PosterClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(f"/{method}", params={"token": self._token})
        except httpx.HTTPError as e:
            logger.error("Poster request failed", method=method, account=self.account, error=str(e))
            raise ExternalServiceError(SERVICE_NAME, is_unavailable=True)

        if response.status_code != 200:
            logger.error(
                "Poster API error",
                method=method,
                account=self.account,
                status_code=response.status_code,
            )
            raise ExternalServiceError(SERVICE_NAME, reason=f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise ExternalServiceError(SERVICE_NAME, reason="invalid response")

        result = data.get("response") if isinstance(data, dict) else None
        if not isinstance(result, list):
            logger.error("Unexpected Poster payload", method=method, account=self.account)
            raise ExternalServiceError(SERVICE_NAME, reason="invalid response")
        return result

    async def get_categories(self) -> list[dict[str, Any]]:
        return await self._call("menu.getCategories")

    async def get_products(self) -> list[dict[str, Any]]:
        return await self._call("menu.getProducts")

    async def get_spots(self) -> list[dict[str, Any]]:
        return await self._call("spots.getSpots")
