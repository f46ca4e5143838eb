"""
Tests for order history, export, retention cleanup and the dashboard.
"""

import csv
import io
from datetime import timedelta

from sqlalchemy import select

from backoffice.models import Executor, LogEntry, Order, OrderItem, PartnerSettings, utcnow
from backoffice.services.domain import HistoryService
from tests.conftest import headers_for


def _complete(client, headers, order):
    response = client.post(f"/api/orders/{order['id']}/status", headers=headers, json={"status": "completed"})
    assert response.status_code == 200
    return response.json()


def _archived_order(db_session, partner, branch, number, days_ago):
    stamp = utcnow() - timedelta(days=days_ago)
    order = Order(
        partner_id=partner.id,
        branch_id=branch.id,
        order_number=number,
        status="completed",
        total_amount=100,
        completed_at=stamp,
        archived_at=stamp,
        items=[OrderItem(product_name="Tea", quantity=1, base_price=100, total_price=100)],
    )
    db_session.add(order)
    db_session.commit()
    return order


class TestHistoryList:
    """GET /api/history"""

    def test_only_completed_orders(self, client, owner_headers, create_order):
        done = _complete(client, owner_headers, create_order())
        create_order()

        data = client.get("/api/history", headers=owner_headers).json()
        assert [row["id"] for row in data["orders"]] == [done["id"]]
        assert data["truncated"] is False
        row = data["orders"][0]
        assert row["branch_name"] == "Center"
        assert row["delivery_price"] == 50

    def test_totals(self, client, owner_headers, create_order):
        _complete(client, owner_headers, create_order())
        _complete(client, owner_headers, create_order(delivery_type="pickup"))

        totals = client.get("/api/history", headers=owner_headers).json()["totals"]
        assert totals["total_amount"] == 650
        assert totals["total_delivery"] == 50
        assert totals["delivery_count"] == 1
        assert totals["delivery_amount"] == 350
        assert totals["pickup_count"] == 1
        assert totals["pickup_amount"] == 300

    def test_delivery_type_filter(self, client, owner_headers, create_order):
        _complete(client, owner_headers, create_order())
        pickup = _complete(client, owner_headers, create_order(delivery_type="pickup"))

        data = client.get("/api/history?delivery_type=pickup", headers=owner_headers).json()
        assert [row["id"] for row in data["orders"]] == [pickup["id"]]

    def test_sort_ascending(self, client, owner_headers, create_order):
        first = _complete(client, owner_headers, create_order())
        second = _complete(client, owner_headers, create_order())

        data = client.get("/api/history?sort_by=order_number&sort_dir=asc", headers=owner_headers).json()
        assert [row["id"] for row in data["orders"]] == [first["id"], second["id"]]

    def test_unknown_sort_field(self, client, owner_headers):
        response = client.get("/api/history?sort_by=phone", headers=owner_headers)
        assert response.status_code == 400

    def test_limit_marks_truncation(self, client, owner_headers, create_order):
        for _ in range(3):
            _complete(client, owner_headers, create_order())
        data = client.get("/api/history?limit=2", headers=owner_headers).json()
        assert len(data["orders"]) == 2
        assert data["truncated"] is True

    def test_includes_archived_orders(self, client, owner_headers, db_session, seed_partner, seed_branch):
        old = _archived_order(db_session, seed_partner, seed_branch, 7, days_ago=3)
        data = client.get("/api/history", headers=owner_headers).json()
        assert [row["id"] for row in data["orders"]] == [old.id]
        assert data["orders"][0]["archived_at"] is not None

    def test_foreign_branch_filter_forbidden(self, client, make_staff, seed_branch, second_branch):
        user = make_staff(sections=["history"], branch_ids=[second_branch.id])
        response = client.get(f"/api/history?branch_ids={seed_branch.id}", headers=headers_for(user))
        assert response.status_code == 403

    def test_requires_history_section(self, client, make_staff):
        user = make_staff(sections=["orders"])
        assert client.get("/api/history", headers=headers_for(user)).status_code == 403


class TestHistoryExport:
    """GET /api/history/export"""

    def test_csv_export(self, client, owner_headers, create_order):
        done = _complete(client, owner_headers, create_order())

        response = client.get("/api/history/export?format=csv", headers=owner_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "order-history.csv" in response.headers["content-disposition"]

        rows = list(csv.DictReader(io.StringIO(response.text.lstrip("\ufeff"))))
        assert len(rows) == 1
        assert rows[0]["order_number"] == str(done["order_number"])
        assert rows[0]["branch_name"] == "Center"

    def test_json_export(self, client, owner_headers, create_order):
        _complete(client, owner_headers, create_order())
        response = client.get("/api/history/export?format=json", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()[0]["total_amount"] == 350

    def test_unknown_format(self, client, owner_headers):
        response = client.get("/api/history/export?format=xml", headers=owner_headers)
        assert response.status_code == 422


class TestHistoryCleanup:
    """Retention cleanup of archived orders."""

    def test_owner_cleanup(self, client, owner_headers, db_session, seed_partner, seed_branch):
        old = _archived_order(db_session, seed_partner, seed_branch, 1, days_ago=40)
        fresh = _archived_order(db_session, seed_partner, seed_branch, 2, days_ago=5)

        response = client.post("/api/history/cleanup", headers=owner_headers, json={"retention_days": 30})
        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] == 1
        assert data["retention_days"] == 30

        db_session.expire_all()
        assert db_session.get(Order, old.id) is None
        assert db_session.get(Order, fresh.id) is not None
        entry = db_session.scalar(select(LogEntry).where(LogEntry.section == "history_cleanup"))
        assert entry.details["deleted"] == 1

    def test_partner_retention_is_the_fallback(self, client, owner_headers, db_session, seed_partner, seed_branch):
        seed_partner.settings.history_retention_days = 10
        db_session.commit()
        _archived_order(db_session, seed_partner, seed_branch, 1, days_ago=12)

        data = client.post("/api/history/cleanup", headers=owner_headers, json={}).json()
        assert data["retention_days"] == 10
        assert data["deleted"] == 1

    def test_default_retention(self, client, owner_headers, db_session, seed_partner, seed_branch):
        _archived_order(db_session, seed_partner, seed_branch, 1, days_ago=60)
        data = client.post("/api/history/cleanup", headers=owner_headers, json={}).json()
        assert data["retention_days"] == 90
        assert data["deleted"] == 0

    def test_unarchived_orders_survive(self, client, owner_headers, create_order, db_session):
        order = _complete(client, owner_headers, create_order())
        stored = db_session.get(Order, order["id"])
        stored.completed_at = utcnow() - timedelta(days=400)
        db_session.commit()

        data = client.post("/api/history/cleanup", headers=owner_headers, json={"retention_days": 1}).json()
        assert data["deleted"] == 0

    def test_zero_retention_rejected(self, client, owner_headers):
        response = client.post("/api/history/cleanup", headers=owner_headers, json={"retention_days": 0})
        assert response.status_code == 422

    def test_cleanup_all_honours_auto_flag(self, db_session, seed_partner, seed_branch, other_partner):
        seed_partner.settings.history_auto_cleanup_enabled = True
        seed_partner.settings.history_retention_days = 30
        db_session.commit()
        _archived_order(db_session, seed_partner, seed_branch, 1, days_ago=31)
        _archived_order(db_session, other_partner, other_partner.branches[0], 1, days_ago=365)

        result = HistoryService(db_session).cleanup_all()
        assert result == {seed_partner.id: 1}
        remaining = db_session.scalars(select(Order.partner_id)).all()
        assert remaining == [other_partner.id]

    def test_cleanup_all_with_no_partners_enabled(self, db_session, seed_partner):
        settings_row = db_session.scalar(select(PartnerSettings).where(PartnerSettings.partner_id == seed_partner.id))
        assert settings_row.history_auto_cleanup_enabled is False
        assert HistoryService(db_session).cleanup_all() == {}


class TestDashboard:
    """GET /api/reports/dashboard"""

    def test_buckets(self, client, owner_headers, create_order, seed_partner, db_session):
        executor = Executor(partner_id=seed_partner.id, name="Bolt")
        db_session.add(executor)
        db_session.commit()

        performer = create_order()
        client.post(
            f"/api/orders/{performer['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "performer", "executor_id": executor.id},
        )
        _complete(client, owner_headers, performer)
        _complete(client, owner_headers, create_order())
        _complete(client, owner_headers, create_order(delivery_type="pickup"))

        report = client.get("/api/reports/dashboard", headers=owner_headers).json()
        assert report["totals"]["total_amount"] == 1000
        assert len(report["by_branch"]) == 1
        assert report["by_branch"][0]["name"] == "Center"
        assert report["by_branch"][0]["orders"] == 3

        by_name = {bucket["name"]: bucket for bucket in report["by_executor"]}
        assert set(by_name) == {"Bolt", "Unassigned"}
        assert by_name["Bolt"]["id"] == executor.id
        assert by_name["Bolt"]["orders"] == 1
        assert by_name["Unassigned"]["orders"] == 1

    def test_date_window(self, client, owner_headers, create_order):
        _complete(client, owner_headers, create_order())
        future = (utcnow() + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")
        report = client.get(f"/api/reports/dashboard?date_from={future}", headers=owner_headers).json()
        assert report["totals"]["total_amount"] == 0
        assert report["by_branch"] == []
