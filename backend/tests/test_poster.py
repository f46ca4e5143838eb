"""
Tests for the Poster POS integration: client helpers, menu sync and spots.
"""

import httpx
import pytest
from sqlalchemy import select

from backoffice.models import LogEntry, MenuCategory, MenuModifier, MenuProduct, ProductModifier
from backoffice.services.domain import PosterService
from backoffice.services.integrations import build_photo_url, extract_price

POSTER_API = "https://acct.joinposter.com/api"

CATEGORIES = [
    {"category_id": "1", "category_name": "Pizza", "sort_order": "2"},
    {"category_id": "2", "category_name": "Drinks", "parent_category": "1"},
]

PRODUCTS = [
    {
        "product_id": "10",
        "product_name": "Margherita",
        "menu_category_id": "1",
        "spots": [{"spot_id": "1", "price": "0"}, {"spot_id": "2", "price": "15000"}],
        "photo": "/upload/pizza.jpg",
        "group_modifications": [
            {
                "name": "Extras",
                "num_min": "1",
                "num_max": "3",
                "modifications": [
                    {"dish_modification_id": "100", "name": "Cheese", "price": "20"},
                    {"dish_modification_id": "101", "name": "Olives", "price": "15"},
                ],
            }
        ],
    },
    {"product_id": "11", "product_name": "Cola", "menu_category_id": "2", "price": {"1": "4500"}, "hidden": "1"},
]


def _mock_menu(http_routes, categories=CATEGORIES, products=PRODUCTS):
    http_routes.add("GET", f"{POSTER_API}/menu.getCategories", httpx.Response(200, json={"response": categories}))
    http_routes.add("GET", f"{POSTER_API}/menu.getProducts", httpx.Response(200, json={"response": products}))


@pytest.fixture
def poster_partner(db_session, seed_partner):
    seed_partner.settings.poster_account = "acct"
    seed_partner.settings.poster_api_token = "tok"
    db_session.commit()
    return seed_partner


class TestPayloadHelpers:
    """Price and photo extraction."""

    @pytest.mark.parametrize(
        ("product", "expected"),
        [
            ({"spots": [{"price": "0"}, {"price": "12550"}]}, 125.5),
            ({"price": {"3": "9900"}}, 99.0),
            ({"price": "5000"}, 50.0),
            ({"product_id": 1}, 0.0),
        ],
    )
    def test_extract_price(self, product, expected):
        assert extract_price(product) == expected

    def test_photo_urls(self):
        assert build_photo_url("/upload/a.jpg", None, "acct") == "https://acct.joinposter.com/upload/a.jpg"
        assert build_photo_url("upload/a.jpg", None, "acct") == "https://acct.joinposter.com/upload/a.jpg"
        assert build_photo_url("x.jpg", "https://cdn.example/o.jpg", "acct") == "https://cdn.example/o.jpg"
        assert build_photo_url(None, None, "acct") is None


class TestMenuSync:
    """POST /api/integrations/poster/sync"""

    def test_sync_writes_menu(self, http_routes, client, owner_headers, poster_partner, db_session):
        _mock_menu(http_routes)
        response = client.post("/api/integrations/poster/sync", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "stats": {"categories": 2, "products": 2, "modifiers": 2, "productModifiers": 2},
        }

        pizza = db_session.scalar(select(MenuProduct).where(MenuProduct.poster_product_id == 10))
        assert pizza.price == 150
        assert pizza.photo_url == "https://acct.joinposter.com/upload/pizza.jpg"
        assert pizza.is_active is True
        cola = db_session.scalar(select(MenuProduct).where(MenuProduct.poster_product_id == 11))
        assert cola.price == 45
        assert cola.is_active is False

        drinks = db_session.scalar(select(MenuCategory).where(MenuCategory.poster_category_id == 2))
        assert drinks.parent_poster_category_id == 1
        links = db_session.scalars(select(ProductModifier).order_by(ProductModifier.sort_order)).all()
        assert [link.is_required for link in links] == [True, True]
        assert links[0].max_amount == 3

        assert db_session.scalar(select(LogEntry).where(LogEntry.section == "poster")) is not None

    def test_apply_menu_deactivates_missing(self, db_session, seed_partner):
        service = PosterService(db_session)
        service.apply_menu(seed_partner.id, "acct", CATEGORIES, PRODUCTS)
        db_session.commit()

        stats = service.apply_menu(
            seed_partner.id,
            "acct",
            CATEGORIES[:1],
            [{**PRODUCTS[0], "group_modifications": []}],
        )
        db_session.commit()

        assert stats.products == 1
        assert stats.productModifiers == 0
        drinks = db_session.scalar(select(MenuCategory).where(MenuCategory.poster_category_id == 2))
        assert drinks.is_active is False
        cola = db_session.scalar(select(MenuProduct).where(MenuProduct.poster_product_id == 11))
        assert cola.is_active is False
        assert all(not m.is_active for m in db_session.scalars(select(MenuModifier)).all())
        assert db_session.scalars(select(ProductModifier)).all() == []

    def test_resync_updates_in_place(self, db_session, seed_partner):
        service = PosterService(db_session)
        service.apply_menu(seed_partner.id, "acct", CATEGORIES, PRODUCTS)
        db_session.commit()
        renamed = [{**PRODUCTS[0], "product_name": "Margherita XL"}, PRODUCTS[1]]
        service.apply_menu(seed_partner.id, "acct", CATEGORIES, renamed)
        db_session.commit()

        products = db_session.scalars(select(MenuProduct).order_by(MenuProduct.poster_product_id)).all()
        assert [p.name for p in products] == ["Margherita XL", "Cola"]

    def test_missing_credentials(self, client, owner_headers):
        response = client.post("/api/integrations/poster/sync", headers=owner_headers)
        assert response.status_code == 400

    def test_poster_error_status(self, http_routes, client, owner_headers, poster_partner):
        http_routes.add("GET", f"{POSTER_API}/menu.getCategories", httpx.Response(500))
        response = client.post("/api/integrations/poster/sync", headers=owner_headers)
        assert response.status_code == 502

    def test_poster_unreachable(self, http_routes, client, owner_headers, poster_partner):
        http_routes.add("GET", f"{POSTER_API}/menu.getCategories", error=httpx.ConnectError("down"))
        response = client.post("/api/integrations/poster/test", headers=owner_headers)
        assert response.status_code == 503


class TestPosterConnection:
    """Connection test and spot listing."""

    def test_connection(self, http_routes, client, owner_headers, poster_partner):
        _mock_menu(http_routes)
        response = client.post("/api/integrations/poster/test", headers=owner_headers)
        assert response.json() == {"success": True, "categories": 2, "products": 2}

    def test_spots(self, http_routes, client, owner_headers, poster_partner):
        http_routes.add(
            "GET",
            f"{POSTER_API}/spots.getSpots",
            httpx.Response(
                200,
                json={"response": [{"spot_id": "1", "spot_name": "Center", "spot_adress": "Main St 1"}, {"name": "?"}]},
            ),
        )
        spots = client.get("/api/integrations/poster/spots", headers=owner_headers).json()
        assert spots == [{"spot_id": 1, "name": "Center", "address": "Main St 1"}]
