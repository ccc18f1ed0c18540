"""Tests for placing, tracking and managing orders."""

from conftest import order_payload


def _track(client, order_id):
    response = client.get(f"/api/orders/{order_id}/track")
    assert response.status_code == 200
    return response.json()


class TestPlaceOrder:
    def test_totals_computed_server_side(self, client):
        response = client.post("/api/orders", json=order_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        order = data["order"]
        assert order["status"] == "pending"
        assert order["total"] == 60.0
        assert order["orderNumber"].startswith("ORD-")
        assert order["estimatedTime"] == "30-45 min"

        full = client.get(f"/api/orders/{order['id']}").json()
        assert full["subtotal"] == 55.0
        assert full["deliveryFee"] == 5.0
        assert full["totalAmount"] == 60.0
        assert full["paymentStatus"] == "pending"
        assert full["paymentMethod"] == "cash"
        assert full["items"][0] == {"name": "Margherita", "quantity": 2, "price": 20.0}
        assert full["nextStatus"] == "confirmed"
        assert full["nextStatusLabel"] == "Confirm order"
        assert full["canCancel"] is True

    def test_exactly_one_pending_tracking_entry(self, client, place_order):
        order = place_order()
        tracked = _track(client, order["id"])
        assert len(tracked["tracking"]) == 1
        entry = tracked["tracking"][0]
        assert entry["status"] == "pending"
        assert entry["createdByType"] == "system"
        assert tracked["progress"] == 25

    def test_restaurant_fee_used_when_not_given(self, client, catalog):
        payload = order_payload(restaurantId=catalog["pizza"]["id"])
        del payload["deliveryFee"]
        response = client.post("/api/orders", json=payload)
        assert response.status_code == 201
        assert response.json()["order"]["total"] == 62.0

    def test_default_fee_without_restaurant(self, client):
        payload = order_payload()
        del payload["deliveryFee"]
        response = client.post("/api/orders", json=payload)
        assert response.json()["order"]["total"] == 60.0

    def test_unknown_restaurant(self, client):
        response = client.post("/api/orders", json=order_payload(restaurantId="nope"))
        assert response.status_code == 404

    def test_empty_items_rejected(self, client):
        response = client.post("/api/orders", json=order_payload(items=[]))
        assert response.status_code == 422

    def test_missing_customer_name_rejected(self, client):
        payload = order_payload()
        del payload["customerName"]
        response = client.post("/api/orders", json=payload)
        assert response.status_code == 422

    def test_snake_case_input_accepted(self, client):
        payload = {
            "customer_name": "Omar",
            "customer_phone": "0559999999",
            "delivery_address": "5 Harbour Lane",
            "items": [{"name": "Tea", "quantity": 1, "price": 2}],
            "delivery_fee": 1,
        }
        response = client.post("/api/orders", json=payload)
        assert response.status_code == 201
        assert response.json()["order"]["total"] == 3.0

    def test_restaurant_and_admin_notified(self, client, catalog, admin_headers):
        client.post("/api/orders", json=order_payload(restaurantId=catalog["pizza"]["id"]))
        restaurant_notes = client.get(
            "/api/notifications",
            params={"recipientType": "restaurant", "recipientId": catalog["pizza"]["id"]},
        ).json()
        assert len(restaurant_notes) == 1
        assert restaurant_notes[0]["type"] == "new_order"
        assert client.get("/api/notifications", params={"recipientType": "admin"}).json()


class TestTracking:
    def test_lifecycle_example(self, client, admin_headers, place_order):
        order = place_order()

        for status in ("confirmed", "preparing"):
            response = client.put(
                f"/api/orders/{order['id']}",
                json={"status": status},
                headers=admin_headers,
            )
            assert response.status_code == 200
            assert response.json()["status"] == status

        tracked = _track(client, order["id"])
        assert [e["status"] for e in tracked["tracking"]] == ["preparing", "confirmed", "pending"]
        assert tracked["order"]["status"] == "preparing"
        assert tracked["progress"] == 60
        assert tracked["tracking"][0]["createdByType"] == "admin"

    def test_unknown_order_is_404(self, client):
        assert client.get("/api/orders/does-not-exist/track").status_code == 404
        assert client.get("/api/orders/does-not-exist").status_code == 404

    def test_customer_orders_by_phone(self, client, place_order):
        place_order()
        place_order()
        place_order(customerPhone="0000000000")
        orders = client.get("/api/orders/customer/0551234567").json()
        assert len(orders) == 2
        assert orders[0]["createdAt"] >= orders[1]["createdAt"]


class TestStatusChanges:
    def test_skipping_a_state_conflicts(self, client, admin_headers, place_order):
        order = place_order()
        response = client.put(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "preparing"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert len(_track(client, order["id"])["tracking"]) == 1

    def test_terminal_state_never_reverts(self, client, admin_headers, place_order, advance):
        order = place_order()
        advance(order["id"], "confirmed", "preparing", "on_way", "delivered")

        for status in ("on_way", "pending", "cancelled"):
            response = client.put(
                f"/api/admin/orders/{order['id']}/status",
                json={"status": status},
                headers=admin_headers,
            )
            assert response.status_code == 409
        assert _track(client, order["id"])["progress"] == 100

    def test_same_status_is_noop(self, client, admin_headers, place_order, advance):
        order = place_order()
        advance(order["id"], "confirmed", "confirmed")
        assert len(_track(client, order["id"])["tracking"]) == 2

    def test_unknown_status_is_422(self, client, admin_headers, place_order):
        order = place_order()
        response = client.put(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "shipped"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_unknown_order_is_404(self, client, admin_headers):
        response = client.put(
            "/api/admin/orders/missing/status",
            json={"status": "confirmed"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_generic_update_writes_fields_with_status(self, client, admin_headers, place_order):
        order = place_order()
        response = client.put(
            f"/api/orders/{order['id']}",
            json={"status": "confirmed", "notes": "Leave at door"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["notes"] == "Leave at door"
        assert data["status"] == "confirmed"

    def test_generic_update_rejected_transition_keeps_fields(self, client, admin_headers, place_order):
        order = place_order()
        response = client.put(
            f"/api/orders/{order['id']}",
            json={"status": "delivered", "notes": "changed"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert client.get(f"/api/orders/{order['id']}").json()["notes"] is None

    def test_update_requires_admin(self, client, place_order):
        order = place_order()
        response = client.put(f"/api/orders/{order['id']}", json={"status": "confirmed"})
        assert response.status_code == 401

    def test_customer_notified_of_status_change(self, client, place_order, advance):
        order = place_order()
        advance(order["id"], "confirmed")
        notes = client.get(
            "/api/notifications",
            params={"recipientType": "customer", "recipientId": "0551234567"},
        ).json()
        assert notes[0]["message"] == "Order confirmed by the restaurant"


class TestCancel:
    def test_cancel_pending(self, client, place_order):
        order = place_order()
        response = client.patch(f"/api/orders/{order['id']}/cancel", json={"reason": "Changed my mind"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["canCancel"] is False

        tracked = _track(client, order["id"])
        assert tracked["progress"] == 0
        assert tracked["tracking"][0]["createdByType"] == "customer"
        assert "Changed my mind" in tracked["tracking"][0]["message"]

    def test_cancel_without_body(self, client, place_order):
        order = place_order()
        response = client.patch(f"/api/orders/{order['id']}/cancel")
        assert response.status_code == 200

    def test_cannot_cancel_confirmed(self, client, place_order, advance):
        order = place_order()
        advance(order["id"], "confirmed")
        response = client.patch(f"/api/orders/{order['id']}/cancel")
        assert response.status_code == 409

    def test_cancelled_order_stays_cancelled(self, client, admin_headers, place_order):
        order = place_order()
        client.patch(f"/api/orders/{order['id']}/cancel")
        response = client.put(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "confirmed"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_cancel_unknown(self, client):
        assert client.patch("/api/orders/missing/cancel").status_code == 404


class TestListingAndAssignment:
    def test_list_filters_by_status(self, client, admin_headers, place_order, advance):
        first = place_order()
        place_order()
        advance(first["id"], "confirmed")

        confirmed = client.get("/api/orders", params={"status": "confirmed"}, headers=admin_headers).json()
        assert [o["id"] for o in confirmed] == [first["id"]]

        both = client.get("/api/orders", params={"status": "pending,confirmed"}, headers=admin_headers).json()
        assert len(both) == 2

        bad = client.get("/api/orders", params={"status": "nope"}, headers=admin_headers)
        assert bad.status_code == 422

    def test_list_requires_admin(self, client):
        assert client.get("/api/orders").status_code == 401

    def test_admin_pagination_and_search(self, client, admin_headers, place_order):
        for _ in range(3):
            place_order()
        place_order(customerName="Unique Person")

        page = client.get("/api/admin/orders", params={"page": 1, "limit": 2}, headers=admin_headers).json()
        assert page["total"] == 4
        assert page["totalPages"] == 2
        assert len(page["orders"]) == 2

        found = client.get("/api/admin/orders", params={"search": "unique"}, headers=admin_headers).json()
        assert found["total"] == 1

    def test_assign_driver_once(self, client, admin_headers, place_order, driver, other_driver):
        order = place_order()

        response = client.put(
            f"/api/orders/{order['id']}/assign-driver",
            json={"driverId": driver["driver"]["id"]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["driverId"] == driver["driver"]["id"]
        assert response.json()["driverEarnings"] == 10.0

        again = client.put(
            f"/api/orders/{order['id']}/assign-driver",
            json={"driverId": other_driver["driver"]["id"]},
            headers=admin_headers,
        )
        assert again.status_code == 409

    def test_assign_unknown_driver(self, client, admin_headers, place_order):
        order = place_order()
        response = client.put(
            f"/api/orders/{order['id']}/assign-driver",
            json={"driverId": "ghost"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_generic_update_cannot_steal_accepted_order(
        self, client, admin_headers, place_order, advance, driver, other_driver
    ):
        order = place_order()
        advance(order["id"], "confirmed")
        client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])

        response = client.put(
            f"/api/orders/{order['id']}",
            json={"driverId": other_driver["driver"]["id"]},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert client.get(f"/api/orders/{order['id']}").json()["driverId"] == driver["driver"]["id"]

    def test_generic_update_assigns_unassigned_order(self, client, admin_headers, place_order, driver):
        order = place_order()
        response = client.put(
            f"/api/orders/{order['id']}",
            json={"driverId": driver["driver"]["id"], "notes": "Ring twice"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["driverId"] == driver["driver"]["id"]
        assert data["driverEarnings"] == 10.0
        assert data["notes"] == "Ring twice"

    def test_generic_update_bad_transition_does_not_assign(self, client, admin_headers, place_order, driver):
        order = place_order()
        response = client.put(
            f"/api/orders/{order['id']}",
            json={"driverId": driver["driver"]["id"], "status": "delivered"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert client.get(f"/api/orders/{order['id']}").json()["driverId"] is None
