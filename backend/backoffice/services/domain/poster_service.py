"""
Poster POS menu sync.

Categories, products, modifiers and product-modifier links are upserted by
their Poster ids. Categories, products and modifiers missing from Poster are
deactivated; stale product-modifier links are removed.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.models import (
    MenuCategory,
    MenuModifier,
    MenuProduct,
    PartnerSettings,
    ProductModifier,
)
from backoffice.routers.schemas import PosterSpot, PosterSyncOutput, PosterSyncStats, PosterTestOutput
from backoffice.services.domain.log_service import record_log
from backoffice.services.integrations import PosterClient, build_photo_url, extract_price
from shared.config.constants import LogSection
from shared.config.logging import integrations_logger as logger
from shared.infrastructure.db import safe_commit


def _int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class PosterService:
    def __init__(self, db: Session):
        self._db = db

    def _client(self, partner_id: int) -> PosterClient:
        row = self._db.scalar(select(PartnerSettings).where(PartnerSettings.partner_id == partner_id))
        return PosterClient(
            row.poster_account if row else None,
            row.poster_api_token if row else None,
        )

    async def test_connection(self, partner_id: int) -> PosterTestOutput:
        async with self._client(partner_id) as poster:
            categories = await poster.get_categories()
            products = await poster.get_products()
        return PosterTestOutput(success=True, categories=len(categories), products=len(products))

    async def spots(self, partner_id: int) -> list[PosterSpot]:
        async with self._client(partner_id) as poster:
            spots = await poster.get_spots()
        result = []
        for spot in spots:
            spot_id = _int(spot.get("spot_id"))
            if spot_id is None:
                continue
            result.append(
                PosterSpot(
                    spot_id=spot_id,
                    name=spot.get("spot_name") or spot.get("name"),
                    address=spot.get("spot_adress") or spot.get("address"),
                )
            )
        return result

    async def sync(self, partner_id: int, user_id: int | None = None) -> PosterSyncOutput:
        client = self._client(partner_id)
        async with client as poster:
            categories = await poster.get_categories()
            products = await poster.get_products()

        stats = self.apply_menu(partner_id, client.account, categories, products)
        record_log(
            self._db,
            partner_id=partner_id,
            section=LogSection.POSTER,
            message="Poster menu synchronized",
            action="sync",
            user_id=user_id,
            details=stats.model_dump(),
        )
        safe_commit(self._db)
        logger.info("Poster sync completed", partner_id=partner_id, **stats.model_dump())
        return PosterSyncOutput(success=True, stats=stats)

    def apply_menu(
        self,
        partner_id: int,
        account: str,
        categories: list[dict[str, Any]],
        products: list[dict[str, Any]],
    ) -> PosterSyncStats:
        """Write a fetched Poster menu into the local mirror. Does not commit."""
        category_rows = self._sync_categories(partner_id, categories)
        self._db.flush()

        seen_products: set[int] = set()
        modifications: dict[int, dict[str, Any]] = {}
        links: list[tuple[int, int, dict[str, Any], int]] = []
        existing_products = {
            p.poster_product_id: p
            for p in self._db.scalars(select(MenuProduct).where(MenuProduct.partner_id == partner_id)).all()
        }

        for prod in products:
            poster_id = _int(prod.get("product_id"))
            if poster_id is None:
                continue
            seen_products.add(poster_id)
            row = existing_products.get(poster_id)
            if row is None:
                row = MenuProduct(partner_id=partner_id, poster_product_id=poster_id)
                self._db.add(row)
                existing_products[poster_id] = row
            category = category_rows.get(_int(prod.get("menu_category_id")))
            row.name = prod.get("product_name") or f"Product {poster_id}"
            row.category_id = category.id if category else None
            row.price = extract_price(prod)
            row.photo_url = build_photo_url(prod.get("photo"), prod.get("photo_origin"), account)
            row.is_active = str(prod.get("hidden", "0")) != "1"

            sort_order = 0
            for group in prod.get("group_modifications") or []:
                for mod in group.get("modifications") or []:
                    mod_id = _int(mod.get("dish_modification_id"))
                    if mod_id is None:
                        continue
                    modifications[mod_id] = {**mod, "_group_name": group.get("name")}
                    links.append((poster_id, mod_id, group, sort_order))
                    sort_order += 1

        for poster_id, row in existing_products.items():
            if poster_id not in seen_products:
                row.is_active = False

        modifier_rows = self._sync_modifiers(partner_id, modifications)
        self._db.flush()
        link_count = self._sync_links(partner_id, existing_products, modifier_rows, links)

        return PosterSyncStats(
            categories=len(category_rows),
            products=len(seen_products),
            modifiers=len(modifications),
            productModifiers=link_count,
        )

    def _sync_categories(self, partner_id: int, categories: list[dict[str, Any]]) -> dict[int, MenuCategory]:
        existing = {
            c.poster_category_id: c
            for c in self._db.scalars(select(MenuCategory).where(MenuCategory.partner_id == partner_id)).all()
        }
        synced: dict[int, MenuCategory] = {}
        for cat in categories:
            poster_id = _int(cat.get("category_id"))
            if poster_id is None:
                continue
            row = existing.get(poster_id)
            if row is None:
                row = MenuCategory(partner_id=partner_id, poster_category_id=poster_id)
                self._db.add(row)
            row.name = cat.get("category_name") or f"Category {poster_id}"
            row.parent_poster_category_id = _int(cat.get("parent_category")) or None
            row.sort_order = _int(cat.get("sort_order")) or 0
            row.is_active = True
            synced[poster_id] = row

        for poster_id, row in existing.items():
            if poster_id not in synced:
                row.is_active = False
        return synced

    def _sync_modifiers(self, partner_id: int, modifications: dict[int, dict[str, Any]]) -> dict[int, MenuModifier]:
        existing = {
            m.poster_modifier_id: m
            for m in self._db.scalars(select(MenuModifier).where(MenuModifier.partner_id == partner_id)).all()
        }
        for mod_id, mod in modifications.items():
            row = existing.get(mod_id)
            if row is None:
                row = MenuModifier(partner_id=partner_id, poster_modifier_id=mod_id)
                self._db.add(row)
                existing[mod_id] = row
            row.name = mod.get("name") or f"Modifier {mod_id}"
            row.price = _float(mod.get("price"))
            row.group_name = mod.get("_group_name")
            row.is_active = True

        for mod_id, row in existing.items():
            if mod_id not in modifications:
                row.is_active = False
        return existing

    def _sync_links(
        self,
        partner_id: int,
        products: dict[int, MenuProduct],
        modifiers: dict[int, MenuModifier],
        links: list[tuple[int, int, dict[str, Any], int]],
    ) -> int:
        existing = {
            (link.product_id, link.modifier_id): link
            for link in self._db.scalars(
                select(ProductModifier).where(ProductModifier.partner_id == partner_id)
            ).all()
        }
        kept: set[tuple[int, int]] = set()
        for product_poster_id, mod_poster_id, group, sort_order in links:
            product = products.get(product_poster_id)
            modifier = modifiers.get(mod_poster_id)
            if product is None or modifier is None:
                continue
            key = (product.id, modifier.id)
            if key in kept:
                continue
            link = existing.get(key)
            if link is None:
                link = ProductModifier(partner_id=partner_id, product_id=product.id, modifier_id=modifier.id)
                self._db.add(link)
            min_amount = _int(group.get("num_min")) or 0
            link.is_required = min_amount > 0
            link.min_amount = min_amount
            link.max_amount = _int(group.get("num_max")) or 0
            link.sort_order = sort_order
            kept.add(key)

        for key, link in existing.items():
            if key not in kept:
                self._db.delete(link)
        return len(kept)
