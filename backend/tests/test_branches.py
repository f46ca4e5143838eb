"""
Tests for branch management and bot webhook registration.
"""

import httpx
from sqlalchemy import select

from backoffice.models import Courier, LogEntry, Shift, utcnow

TELEGRAM = "https://api.telegram.org"


class TestBranchEndpoints:
    """Branch CRUD operations."""

    def test_list_branches(self, client, owner_headers, seed_branch):
        response = client.get("/api/branches", headers=owner_headers)
        assert response.status_code == 200
        assert [b["name"] for b in response.json()] == ["Center"]

    def test_list_branches_unauthenticated(self, client):
        assert client.get("/api/branches").status_code == 401

    def test_get_branch_not_found(self, client, owner_headers):
        assert client.get("/api/branches/99999", headers=owner_headers).status_code == 404

    def test_get_foreign_branch_is_404(self, client, owner_headers, other_partner):
        foreign_id = other_partner.branches[0].id
        assert client.get(f"/api/branches/{foreign_id}", headers=owner_headers).status_code == 404

    def test_create_branch_trims_blanks(self, client, owner_headers):
        response = client.post(
            "/api/branches",
            headers=owner_headers,
            json={"name": "North", "telegram_bot_token": "   ", "address": " Lesi 3 "},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["telegram_bot_token"] is None
        assert data["address"] == "Lesi 3"
        assert data["status"] == "active"

    def test_create_branch_requires_name(self, client, owner_headers):
        response = client.post("/api/branches", headers=owner_headers, json={"name": "  "})
        assert response.status_code == 400

    def test_update_branch(self, client, owner_headers, seed_branch):
        response = client.patch(
            f"/api/branches/{seed_branch.id}",
            headers=owner_headers,
            json={"name": "Center Updated", "status": "inactive"},
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Center Updated"
        assert response.json()["status"] == "inactive"

    def test_staff_cannot_touch_other_branch(self, client, make_staff, seed_branch, second_branch):
        from tests.conftest import headers_for

        user = make_staff(sections=["branches"], branch_ids=[second_branch.id])
        response = client.patch(
            f"/api/branches/{seed_branch.id}",
            headers=headers_for(user),
            json={"name": "Mine now"},
        )
        assert response.status_code == 403

    def test_delete_branch_detaches_couriers(self, client, owner_headers, seed_branch, db_session):
        courier = Courier(partner_id=seed_branch.partner_id, branch_id=seed_branch.id, name="Petro")
        db_session.add(courier)
        db_session.commit()

        response = client.delete(f"/api/branches/{seed_branch.id}", headers=owner_headers)
        assert response.status_code == 204

        db_session.expire_all()
        assert db_session.get(Courier, courier.id).branch_id is None

    def test_delete_branch_with_history_conflicts(self, client, owner_headers, seed_branch, db_session):
        db_session.add(
            Shift(partner_id=seed_branch.partner_id, branch_id=seed_branch.id, status="closed", opened_at=utcnow())
        )
        db_session.commit()
        response = client.delete(f"/api/branches/{seed_branch.id}", headers=owner_headers)
        assert response.status_code == 409


class TestBotTokens:
    """A bot token belongs to one bot within a partner."""

    def test_token_taken_by_branch(self, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "111:AAA"
        db_session.commit()
        response = client.post(
            "/api/branches",
            headers=owner_headers,
            json={"name": "Dup", "telegram_bot_token": "111:AAA"},
        )
        assert response.status_code == 409
        assert "branch bot" in response.json()["detail"]

    def test_token_taken_by_executor(self, client, owner_headers, seed_branch):
        client.post(
            "/api/executors",
            headers=owner_headers,
            json={"name": "Glovo", "telegram_bot_token": "222:BBB"},
        )
        response = client.patch(
            f"/api/branches/{seed_branch.id}",
            headers=owner_headers,
            json={"telegram_bot_token": "222:BBB"},
        )
        assert response.status_code == 409

    def test_saving_own_token_again_is_fine(self, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "333:CCC"
        db_session.commit()
        response = client.patch(
            f"/api/branches/{seed_branch.id}",
            headers=owner_headers,
            json={"telegram_bot_token": "333:CCC"},
        )
        assert response.status_code == 200

    def test_same_token_in_other_partner_is_fine(self, client, owner_headers, other_partner, db_session):
        other_partner.branches[0].telegram_bot_token = "444:DDD"
        db_session.commit()
        response = client.post(
            "/api/branches",
            headers=owner_headers,
            json={"name": "Twin", "telegram_bot_token": "444:DDD"},
        )
        assert response.status_code == 201


class TestBranchWebhook:
    """POST /api/branches/{id}/telegram-webhook"""

    def test_register_webhook(self, http_routes, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "777:XYZ"
        db_session.commit()

        set_route = http_routes.add(
            "POST", f"{TELEGRAM}/bot777:XYZ/setWebhook", httpx.Response(200, json={"ok": True, "result": True})
        )
        http_routes.add(
            "GET",
            f"{TELEGRAM}/bot777:XYZ/getWebhookInfo",
            httpx.Response(200, json={"ok": True, "result": {"url": "x", "pending_update_count": 0}}),
        )

        response = client.post(f"/api/branches/{seed_branch.id}/telegram-webhook", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["webhook_url"].endswith("/api/integrations/telegram/branch-bot")
        assert data["webhook_info"]["pending_update_count"] == 0
        assert len(set_route["calls"]) == 1

    def test_register_webhook_without_token(self, client, owner_headers, seed_branch):
        response = client.post(f"/api/branches/{seed_branch.id}/telegram-webhook", headers=owner_headers)
        assert response.status_code == 400

    def test_telegram_rejects_token(self, http_routes, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "888:BAD"
        db_session.commit()
        http_routes.add(
            "POST", f"{TELEGRAM}/bot888:BAD/setWebhook", httpx.Response(401, json={"ok": False, "description": "Unauthorized"})
        )
        response = client.post(f"/api/branches/{seed_branch.id}/telegram-webhook", headers=owner_headers)
        assert response.status_code == 502

        entry = db_session.scalar(select(LogEntry).where(LogEntry.section == "system"))
        assert entry is not None
        assert entry.level == "error"

    def test_telegram_unreachable(self, http_routes, client, owner_headers, seed_branch, db_session):
        seed_branch.telegram_bot_token = "999:NET"
        db_session.commit()
        http_routes.add("POST", f"{TELEGRAM}/bot999:NET/setWebhook", error=httpx.ConnectError("down"))
        response = client.post(f"/api/branches/{seed_branch.id}/telegram-webhook", headers=owner_headers)
        assert response.status_code == 503
