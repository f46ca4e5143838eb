"""
Tests for positions and staff management.
"""

from tests.conftest import STAFF_PASSWORD


class TestPositions:
    """CRUD on /api/positions"""

    def test_create_position(self, client, owner_headers, seed_branch):
        response = client.post(
            "/api/positions",
            headers=owner_headers,
            json={
                "name": "Operator",
                "sections": ["orders", "history", "orders"],
                "branch_ids": [seed_branch.id],
                "can_skip_order_status": True,
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["sections"] == ["history", "orders"]
        assert data["branch_ids"] == [seed_branch.id]
        assert data["can_skip_order_status"] is True
        assert data["staff_count"] == 0

    def test_unknown_section_rejected(self, client, owner_headers):
        response = client.post(
            "/api/positions",
            headers=owner_headers,
            json={"name": "Pilot", "sections": ["cockpit"]},
        )
        assert response.status_code == 400
        assert "cockpit" in response.json()["detail"]

    def test_foreign_branch_rejected(self, client, owner_headers, other_partner, db_session):
        foreign_branch_id = other_partner.branches[0].id
        response = client.post(
            "/api/positions",
            headers=owner_headers,
            json={"name": "Spy", "branch_ids": [foreign_branch_id]},
        )
        assert response.status_code == 400

    def test_duplicate_name_rejected(self, client, owner_headers):
        client.post("/api/positions", headers=owner_headers, json={"name": "Cook"})
        response = client.post("/api/positions", headers=owner_headers, json={"name": "cook"})
        assert response.status_code == 400

    def test_update_replaces_sections(self, client, owner_headers):
        created = client.post(
            "/api/positions",
            headers=owner_headers,
            json={"name": "Manager", "sections": ["orders", "history"]},
        ).json()
        response = client.patch(
            f"/api/positions/{created['id']}",
            headers=owner_headers,
            json={"sections": ["orders", "logs"]},
        )
        assert response.status_code == 200
        assert response.json()["sections"] == ["logs", "orders"]

    def test_delete_position_in_use_conflicts(self, client, owner_headers, make_staff):
        user = make_staff(sections=["orders"])
        response = client.delete(f"/api/positions/{user.position_id}", headers=owner_headers)
        assert response.status_code == 409

    def test_delete_unused_position(self, client, owner_headers):
        created = client.post("/api/positions", headers=owner_headers, json={"name": "Temp"}).json()
        response = client.delete(f"/api/positions/{created['id']}", headers=owner_headers)
        assert response.status_code == 204
        assert client.get(f"/api/positions/{created['id']}", headers=owner_headers).status_code == 404


class TestStaff:
    """Staff lifecycle: create, update, fire, restore."""

    def _create(self, client, headers, **overrides):
        body = {"login": "maria", "password": "secret-123", "name": "Maria"}
        body.update(overrides)
        return client.post("/api/staff", headers=headers, json=body)

    def test_create_staff_and_login(self, client, owner_headers):
        response = self._create(client, owner_headers)
        assert response.status_code == 201
        assert response.json()["role"] == "STAFF"
        assert "password" not in response.json()

        login = client.post(
            "/api/auth/login",
            json={"partner_suffix": "test-pizza", "login": "maria", "password": "secret-123"},
        )
        assert login.status_code == 200

    def test_login_unique_within_partner(self, client, owner_headers):
        self._create(client, owner_headers)
        response = self._create(client, owner_headers, login="MARIA")
        assert response.status_code == 400

    def test_short_password_rejected(self, client, owner_headers):
        response = self._create(client, owner_headers, password="123")
        assert response.status_code == 400

    def test_foreign_position_rejected(self, client, owner_headers, other_partner, db_session):
        from backoffice.models import Position

        position = Position(partner_id=other_partner.id, name="Foreign")
        db_session.add(position)
        db_session.commit()
        response = self._create(client, owner_headers, position_id=position.id)
        assert response.status_code == 400

    def test_owner_cannot_be_edited(self, client, owner_headers, seed_owner):
        response = client.patch(f"/api/staff/{seed_owner.id}", headers=owner_headers, json={"name": "X"})
        assert response.status_code == 403

    def test_owner_cannot_be_fired(self, client, owner_headers, seed_owner):
        response = client.post(f"/api/staff/{seed_owner.id}/fire", headers=owner_headers, json={})
        assert response.status_code == 403

    def test_fire_and_restore(self, client, owner_headers, make_staff):
        user = make_staff(sections=["orders"])

        fired = client.post(
            f"/api/staff/{user.id}/fire",
            headers=owner_headers,
            json={"reason": "  left the city "},
        )
        assert fired.status_code == 200
        assert fired.json()["active"] is False
        assert fired.json()["fired_reason"] == "left the city"

        login = client.post(
            "/api/auth/login",
            json={"partner_suffix": "test-pizza", "login": user.login, "password": STAFF_PASSWORD},
        )
        assert login.status_code == 403

        again = client.post(f"/api/staff/{user.id}/fire", headers=owner_headers, json={})
        assert again.status_code == 400

        restored = client.post(f"/api/staff/{user.id}/restore", headers=owner_headers)
        assert restored.status_code == 200
        assert restored.json()["active"] is True
        assert restored.json()["fired_at"] is None

    def test_list_excludes_fired_on_request(self, client, owner_headers, make_staff):
        user = make_staff(sections=["orders"])
        client.post(f"/api/staff/{user.id}/fire", headers=owner_headers, json={})

        everyone = client.get("/api/staff", headers=owner_headers).json()
        active = client.get("/api/staff?include_fired=false", headers=owner_headers).json()
        assert user.id in [s["id"] for s in everyone]
        assert user.id not in [s["id"] for s in active]

    def test_staff_cannot_be_deleted(self, client, owner_headers, make_staff):
        user = make_staff(sections=["orders"])
        response = client.delete(f"/api/staff/{user.id}", headers=owner_headers)
        assert response.status_code == 405
