"""
Tests for the order board: intake, status workflow, payment and assignment.
"""

from sqlalchemy import select

from backoffice.models import Courier, CourierDeliveryZone, Executor, LogEntry, PerformerDeliveryZone
from tests.conftest import headers_for

SQUARE = [
    {"lat": 50.40, "lng": 30.40},
    {"lat": 50.40, "lng": 30.60},
    {"lat": 50.50, "lng": 30.60},
    {"lat": 50.50, "lng": 30.40},
]


def _status(client, headers, order_id, status):
    return client.post(f"/api/orders/{order_id}/status", headers=headers, json={"status": status})


class TestOrderIntake:
    """POST /api/orders"""

    def test_create_order(self, client, create_order, open_shift, db_session):
        order = create_order()
        assert order["order_number"] == 100
        assert order["status"] == "in_progress"
        assert order["payment_status"] == "unpaid"
        assert order["shift_id"] == open_shift.id
        assert order["phone"] == "380501234567"
        # 2 x 150 + 50 delivery
        assert order["total_amount"] == 350
        assert order["items"][0]["total_price"] == 300

        entry = db_session.scalar(select(LogEntry).where(LogEntry.section == "orders", LogEntry.action == "create"))
        assert entry.details["order_number"] == 100

    def test_numbers_are_sequential(self, create_order):
        assert create_order()["order_number"] == 100
        assert create_order()["order_number"] == 101

    def test_modifier_prices_count_per_unit(self, create_order):
        order = create_order(
            delivery_price_uah=None,
            items=[
                {
                    "product_name": "Burger",
                    "quantity": 2,
                    "base_price": 100,
                    "modifiers": [{"name": "Cheese", "price": 20, "quantity": 2}],
                }
            ],
        )
        # (100 + 20 * 2) * 2
        assert order["items"][0]["total_price"] == 280
        assert order["total_amount"] == 280

    def test_pickup_has_no_delivery_price(self, create_order, seed_branch):
        order = create_order(delivery_type="pickup", address_line=None)
        assert order["delivery_price_uah"] is None
        assert order["total_amount"] == 300
        assert order["address_line"] == seed_branch.address

    def test_pickup_minimum(self, client, owner_headers, seed_branch, seed_partner, open_shift, db_session):
        seed_partner.settings.min_pickup_order_amount = 500
        db_session.commit()
        response = client.post(
            "/api/orders",
            headers=owner_headers,
            json={
                "branch_id": seed_branch.id,
                "delivery_type": "pickup",
                "items": [{"product_name": "Tea", "base_price": 40}],
            },
        )
        assert response.status_code == 400

    def test_closed_branch_rejects_orders(self, client, owner_headers, second_branch):
        response = client.post(
            "/api/orders",
            headers=owner_headers,
            json={"branch_id": second_branch.id, "items": [{"product_name": "Tea", "base_price": 40}]},
        )
        assert response.status_code == 400
        assert "closed" in response.json()["detail"]

    def test_blank_item_name_rejected(self, client, owner_headers, seed_branch, open_shift):
        response = client.post(
            "/api/orders",
            headers=owner_headers,
            json={"branch_id": seed_branch.id, "items": [{"product_name": "  ", "base_price": 40}]},
        )
        assert response.status_code == 400

    def test_courier_zone_prices_delivery(self, create_order, seed_partner, db_session):
        zone = CourierDeliveryZone(
            partner_id=seed_partner.id,
            name="City",
            price_uah=70,
            courier_payment=45,
            free_delivery_threshold=1000,
            polygons=[SQUARE],
        )
        db_session.add(zone)
        db_session.commit()

        order = create_order(delivery_price_uah=None, latitude=50.45, longitude=30.5)
        assert order["courier_zone_id"] == zone.id
        assert order["delivery_price_uah"] == 70
        assert order["total_amount"] == 370

        big = create_order(
            delivery_price_uah=None,
            latitude=50.45,
            longitude=30.5,
            items=[{"product_name": "Party set", "base_price": 1000}],
        )
        assert big["delivery_price_uah"] == 0
        assert big["total_amount"] == 1000

    def test_zone_minimum_order(
        self, client, owner_headers, create_order, seed_branch, seed_partner, open_shift, db_session
    ):
        db_session.add(
            CourierDeliveryZone(
                partner_id=seed_partner.id,
                name="Suburbs",
                price_uah=70,
                courier_payment=45,
                min_order_amount=500,
                polygons=[SQUARE],
            )
        )
        db_session.commit()
        small = {
            "branch_id": seed_branch.id,
            "delivery_type": "delivery",
            "latitude": 50.45,
            "longitude": 30.5,
            "items": [{"product_name": "Tea", "base_price": 40}],
        }

        response = client.post("/api/orders", headers=owner_headers, json=small)
        assert response.status_code == 400
        assert "500" in response.json()["detail"]

        response = client.post("/api/orders", headers=owner_headers, json={**small, "delivery_price_uah": 30})
        assert response.status_code == 400

        order = create_order(delivery_price_uah=None, latitude=50.45, longitude=30.5)
        assert order["delivery_price_uah"] == 70
        response = client.patch(
            f"/api/orders/{order['id']}",
            headers=owner_headers,
            json={"items": [{"product_name": "Tea", "base_price": 40}]},
        )
        assert response.status_code == 400

        pickup = client.post("/api/orders", headers=owner_headers, json={**small, "delivery_type": "pickup"})
        assert pickup.status_code == 201

    def test_staff_outside_branch_cannot_create(self, client, make_staff, seed_branch, second_branch, open_shift):
        user = make_staff(sections=["orders"], branch_ids=[second_branch.id])
        response = client.post(
            "/api/orders",
            headers=headers_for(user),
            json={"branch_id": seed_branch.id, "items": [{"product_name": "Tea", "base_price": 40}]},
        )
        assert response.status_code == 403


class TestOrderBoard:
    """Listing, reading and editing active orders."""

    def test_list_active(self, client, owner_headers, create_order):
        order = create_order()
        listed = client.get("/api/orders", headers=owner_headers).json()
        assert [o["id"] for o in listed] == [order["id"]]

    def test_list_filtered_by_status(self, client, owner_headers, create_order):
        order = create_order()
        _status(client, owner_headers, order["id"], "en_route")
        create_order()
        listed = client.get("/api/orders?status=en_route", headers=owner_headers).json()
        assert [o["id"] for o in listed] == [order["id"]]

    def test_staff_sees_only_own_branches(self, client, make_staff, create_order, second_branch):
        order = create_order()
        user = make_staff(sections=["orders"], branch_ids=[second_branch.id])
        assert client.get("/api/orders", headers=headers_for(user)).json() == []
        assert client.get(f"/api/orders/{order['id']}", headers=headers_for(user)).status_code == 403

    def test_update_recomputes_total(self, client, owner_headers, create_order):
        order = create_order()
        response = client.patch(
            f"/api/orders/{order['id']}",
            headers=owner_headers,
            json={"items": [{"product_name": "Pepperoni", "quantity": 1, "base_price": 200}], "comment": "Ring twice"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_amount"] == 250
        assert data["comment"] == "Ring twice"
        assert [i["product_name"] for i in data["items"]] == ["Pepperoni"]

    def test_switch_to_pickup_drops_delivery(self, client, owner_headers, create_order):
        order = create_order()
        data = client.patch(
            f"/api/orders/{order['id']}",
            headers=owner_headers,
            json={"delivery_type": "pickup"},
        ).json()
        assert data["delivery_price_uah"] is None
        assert data["total_amount"] == 300


class TestOrderStatus:
    """Status workflow and permission flags."""

    def test_owner_walks_the_flow(self, client, owner_headers, create_order):
        order = create_order()
        en_route = _status(client, owner_headers, order["id"], "en_route").json()
        assert en_route["en_route_at"] is not None
        completed = _status(client, owner_headers, order["id"], "completed").json()
        assert completed["status"] == "completed"
        assert completed["completed_at"] is not None

    def test_same_status_is_noop(self, client, owner_headers, create_order):
        order = create_order()
        response = _status(client, owner_headers, order["id"], "in_progress")
        assert response.status_code == 200

    def test_unknown_status_rejected(self, client, owner_headers, create_order):
        order = create_order()
        assert _status(client, owner_headers, order["id"], "lost").status_code == 422

    def test_skip_needs_flag(self, client, make_staff, create_order):
        order = create_order()
        plain = make_staff(sections=["orders"])
        skipper = make_staff(sections=["orders"], can_skip_order_status=True)

        assert _status(client, headers_for(plain), order["id"], "completed").status_code == 403
        assert _status(client, headers_for(skipper), order["id"], "completed").status_code == 200

    def test_pickup_completes_without_flag(self, client, make_staff, create_order):
        order = create_order(delivery_type="pickup")
        plain = make_staff(sections=["orders"])
        response = _status(client, headers_for(plain), order["id"], "completed")
        assert response.status_code == 200
        assert response.json()["en_route_at"] is None

    def test_revert_needs_flag(self, client, owner_headers, make_staff, create_order):
        order = create_order()
        _status(client, owner_headers, order["id"], "en_route")
        plain = make_staff(sections=["orders"])
        reverter = make_staff(sections=["orders"], can_revert_order_status=True)

        assert _status(client, headers_for(plain), order["id"], "in_progress").status_code == 403
        reverted = _status(client, headers_for(reverter), order["id"], "in_progress")
        assert reverted.status_code == 200
        assert reverted.json()["en_route_at"] is None

    def test_unpaid_cashless_cannot_complete(self, client, owner_headers, create_order, cashless_method):
        order = create_order(payment_method_id=cashless_method.id)
        _status(client, owner_headers, order["id"], "en_route")
        assert _status(client, owner_headers, order["id"], "completed").status_code == 400

        paid = client.post(f"/api/orders/{order['id']}/toggle-payment", headers=owner_headers).json()
        assert paid["payment_status"] == "paid"
        assert _status(client, owner_headers, order["id"], "completed").status_code == 200

    def test_unpaid_cash_can_complete(self, client, owner_headers, create_order, cash_method):
        order = create_order(payment_method_id=cash_method.id)
        _status(client, owner_headers, order["id"], "en_route")
        assert _status(client, owner_headers, order["id"], "completed").status_code == 200

    def test_toggle_payment_twice(self, client, owner_headers, create_order):
        order = create_order()
        client.post(f"/api/orders/{order['id']}/toggle-payment", headers=owner_headers)
        again = client.post(f"/api/orders/{order['id']}/toggle-payment", headers=owner_headers).json()
        assert again["payment_status"] == "unpaid"


class TestAssignment:
    """POST /api/orders/{id}/assign-executor"""

    def test_assign_own_courier(self, client, owner_headers, create_order, seed_partner, db_session):
        zone = CourierDeliveryZone(partner_id=seed_partner.id, name="City", price_uah=70, courier_payment=45, polygons=[SQUARE])
        courier = Courier(partner_id=seed_partner.id, name="Petro")
        db_session.add_all([zone, courier])
        db_session.commit()

        order = create_order(delivery_price_uah=None, latitude=50.45, longitude=30.5)
        response = client.post(
            f"/api/orders/{order['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "courier", "courier_id": courier.id},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["executor_type"] == "courier"
        assert data["courier_id"] == courier.id
        assert data["courier_payment_amount"] == 45

    def test_inactive_courier_rejected(self, client, owner_headers, create_order, seed_partner, db_session):
        courier = Courier(partner_id=seed_partner.id, name="Resting", is_active=False)
        db_session.add(courier)
        db_session.commit()
        order = create_order()
        response = client.post(
            f"/api/orders/{order['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "courier", "courier_id": courier.id},
        )
        assert response.status_code == 400

    def test_assign_performer_with_zone(self, client, owner_headers, create_order, seed_partner, db_session):
        executor = Executor(
            partner_id=seed_partner.id,
            name="Bolt",
            km_calculation_enabled=True,
            price_per_km=10,
            km_graduation_meters=1000,
            delivery_payer_default="client",
        )
        db_session.add(executor)
        db_session.flush()
        zone = PerformerDeliveryZone(
            partner_id=seed_partner.id,
            executor_id=executor.id,
            name="Center",
            price_uah=90,
            courier_payment=60,
            polygons=[SQUARE],
        )
        db_session.add(zone)
        db_session.commit()

        order = create_order()
        response = client.post(
            f"/api/orders/{order['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "performer", "executor_id": executor.id, "zone_id": zone.id, "distance_km": 2.4},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["executor_type"] == "performer"
        assert data["delivery_payer"] == "client"
        assert data["delivery_price_uah"] == 90
        # 60 + round(2.0 km * 10)
        assert data["courier_payment_amount"] == 80
        assert data["total_amount"] == 390

    def test_assignment_keeps_bad_weather_flag(self, client, owner_headers, create_order, seed_partner, db_session):
        executor = Executor(partner_id=seed_partner.id, name="Glovo", bad_weather_surcharge_percent=20)
        db_session.add(executor)
        db_session.flush()
        zone = PerformerDeliveryZone(
            partner_id=seed_partner.id,
            executor_id=executor.id,
            name="Center",
            price_uah=100,
            courier_payment=50,
            polygons=[SQUARE],
        )
        db_session.add(zone)
        db_session.commit()

        order = create_order()
        patched = client.patch(f"/api/orders/{order['id']}", headers=owner_headers, json={"bad_weather": True})
        assert patched.json()["bad_weather"] is True

        response = client.post(
            f"/api/orders/{order['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "performer", "executor_id": executor.id, "zone_id": zone.id},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["bad_weather"] is True
        assert data["delivery_price_uah"] == 120
        assert data["courier_payment_amount"] == 60

    def test_pickup_cannot_be_assigned(self, client, owner_headers, create_order):
        order = create_order(delivery_type="pickup")
        response = client.post(
            f"/api/orders/{order['id']}/assign-executor",
            headers=owner_headers,
            json={"executor_type": "courier", "courier_id": 1},
        )
        assert response.status_code == 400

    def test_completion_stamps_courier_payment(self, client, owner_headers, create_order, seed_partner, db_session):
        zone = CourierDeliveryZone(partner_id=seed_partner.id, name="City", price_uah=70, courier_payment=45, polygons=[SQUARE])
        db_session.add(zone)
        db_session.commit()
        order = create_order(delivery_price_uah=None, latitude=50.45, longitude=30.5)
        _status(client, owner_headers, order["id"], "en_route")
        completed = _status(client, owner_headers, order["id"], "completed").json()
        assert completed["courier_payment_amount"] == 45


class TestOrderDelete:
    """DELETE /api/orders/{id}"""

    def test_delete_needs_flag(self, client, make_staff, create_order):
        order = create_order()
        plain = make_staff(sections=["orders"])
        deleter = make_staff(sections=["orders"], can_delete_orders=True)

        assert client.delete(f"/api/orders/{order['id']}", headers=headers_for(plain)).status_code == 403
        assert client.delete(f"/api/orders/{order['id']}", headers=headers_for(deleter)).status_code == 204
        assert client.get("/api/orders", headers=headers_for(deleter)).json() == []
