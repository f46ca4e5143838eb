"""
Tests for partner settings and the order number sequence.
"""

from backoffice.services.domain import SettingsService


class TestSettingsEndpoints:
    """GET/PATCH /api/settings"""

    def test_get_settings(self, client, owner_headers, seed_partner):
        response = client.get("/api/settings", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["partner"]["url_suffix"] == "test-pizza"
        assert data["settings"]["next_order_number"] == 100
        assert data["settings"]["currency_code"] == "UAH"

    def test_patch_splits_partner_and_settings_fields(self, client, owner_headers):
        response = client.patch(
            "/api/settings",
            headers=owner_headers,
            json={"name": "Pizza Plus", "order_completion_norm_minutes": 45, "history_retention_days": 30},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["partner"]["name"] == "Pizza Plus"
        assert data["settings"]["order_completion_norm_minutes"] == 45
        assert data["settings"]["history_retention_days"] == 30

    def test_blank_name_rejected(self, client, owner_headers):
        response = client.patch("/api/settings", headers=owner_headers, json={"name": "   "})
        assert response.status_code == 400

    def test_same_token_for_both_courier_bots_rejected(self, client, owner_headers):
        response = client.patch(
            "/api/settings",
            headers=owner_headers,
            json={"courier_bot_token": "123:abc", "external_courier_bot_token": "123:abc"},
        )
        assert response.status_code == 400

    def test_courier_bot_token_used_by_branch_conflicts(self, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "555:branch"
        db_session.commit()
        response = client.patch(
            "/api/settings",
            headers=owner_headers,
            json={"courier_bot_token": "555:branch"},
        )
        assert response.status_code == 409

    def test_settings_needs_section(self, client, make_staff):
        from tests.conftest import headers_for

        user = make_staff(sections=["orders"])
        response = client.patch("/api/settings", headers=headers_for(user), json={"name": "Hacked"})
        assert response.status_code == 403


class TestOrderNumbers:
    """The per-partner order number sequence."""

    def test_take_order_number_advances(self, db_session, seed_partner):
        service = SettingsService(db_session)
        assert service.take_order_number(seed_partner.id) == 100
        assert service.take_order_number(seed_partner.id) == 101

    def test_missing_settings_row_is_created(self, db_session, other_partner):
        from backoffice.models import PartnerSettings

        db_session.delete(other_partner.settings)
        db_session.commit()
        assert db_session.query(PartnerSettings).filter_by(partner_id=other_partner.id).count() == 0

        assert SettingsService(db_session).take_order_number(other_partner.id) == 1

    def test_next_order_number_endpoint(self, client, owner_headers):
        first = client.post("/api/settings/next-order-number", headers=owner_headers)
        second = client.post("/api/settings/next-order-number", headers=owner_headers)
        assert first.status_code == 200
        assert first.json()["order_number"] == 100
        assert second.json()["order_number"] == 101
