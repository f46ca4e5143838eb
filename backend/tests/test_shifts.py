"""
Tests for branch shifts: opening, closing, archiving and stats.
"""

from backoffice.models import Order
from tests.conftest import headers_for


class TestShiftLifecycle:
    """Open and close shifts."""

    def test_open_shift(self, client, owner_headers, seed_branch, seed_owner):
        response = client.post("/api/shifts", headers=owner_headers, json={"branch_id": seed_branch.id})
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "open"
        assert data["opened_by"] == seed_owner.id

    def test_second_open_shift_conflicts(self, client, owner_headers, seed_branch, open_shift):
        response = client.post("/api/shifts", headers=owner_headers, json={"branch_id": seed_branch.id})
        assert response.status_code == 409

    def test_open_shift_foreign_branch(self, client, owner_headers, other_partner):
        response = client.post(
            "/api/shifts",
            headers=owner_headers,
            json={"branch_id": other_partner.branches[0].id},
        )
        assert response.status_code == 404

    def test_open_shift_outside_scope(self, client, make_staff, seed_branch, second_branch):
        user = make_staff(sections=["open_shifts"], branch_ids=[second_branch.id])
        response = client.post("/api/shifts", headers=headers_for(user), json={"branch_id": seed_branch.id})
        assert response.status_code == 403

    def test_close_archives_completed_orders_only(self, client, owner_headers, open_shift, create_order, db_session):
        done = create_order()
        client.post(f"/api/orders/{done['id']}/status", headers=owner_headers, json={"status": "completed"})
        pending = create_order()

        response = client.post(f"/api/shifts/{open_shift.id}/close", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "closed"
        assert data["total_orders_count"] == 2
        assert data["completed_orders_count"] == 1

        db_session.expire_all()
        assert db_session.get(Order, done["id"]).archived_at is not None
        assert db_session.get(Order, pending["id"]).archived_at is None

        board = client.get("/api/orders", headers=owner_headers).json()
        assert [o["id"] for o in board] == [pending["id"]]

    def test_archived_order_is_read_only(self, client, owner_headers, open_shift, create_order):
        order = create_order()
        client.post(f"/api/orders/{order['id']}/status", headers=owner_headers, json={"status": "completed"})
        client.post(f"/api/shifts/{open_shift.id}/close", headers=owner_headers)

        response = client.patch(f"/api/orders/{order['id']}", headers=owner_headers, json={"comment": "late"})
        assert response.status_code == 400

    def test_close_twice(self, client, owner_headers, open_shift):
        client.post(f"/api/shifts/{open_shift.id}/close", headers=owner_headers)
        response = client.post(f"/api/shifts/{open_shift.id}/close", headers=owner_headers)
        assert response.status_code == 400

    def test_reopen_after_close(self, client, owner_headers, seed_branch, open_shift):
        client.post(f"/api/shifts/{open_shift.id}/close", headers=owner_headers)
        response = client.post("/api/shifts", headers=owner_headers, json={"branch_id": seed_branch.id})
        assert response.status_code == 201

    def test_list_open_shifts(self, client, owner_headers, open_shift):
        response = client.get("/api/shifts?status=open", headers=owner_headers)
        assert [s["id"] for s in response.json()] == [open_shift.id]


class TestShiftStats:
    """GET /api/shifts/{id}/stats"""

    def test_stats(self, client, owner_headers, open_shift, create_order):
        delivery = create_order()
        pickup = create_order(delivery_type="pickup")
        create_order()
        for order in (delivery, pickup):
            client.post(f"/api/orders/{order['id']}/status", headers=owner_headers, json={"status": "completed"})

        stats = client.get(f"/api/shifts/{open_shift.id}/stats", headers=owner_headers).json()
        assert stats["total_orders"] == 3
        assert stats["completed_orders"] == 2
        assert stats["delivery_orders"] == 1
        assert stats["pickup_orders"] == 1
        assert stats["revenue"] == 650
        assert stats["delivery_revenue"] == 50
        assert stats["duration_minutes"] >= 0
