"""Tests for driver login and the driver console."""

from conftest import bearer


def _confirmed_order(place_order, advance):
    order = place_order()
    advance(order["id"], "confirmed")
    return order


class TestDriverLogin:
    def test_wrong_password(self, client, driver):
        response = client.post("/api/driver/login", json={"phone": "0500000001", "password": "nope"})
        assert response.status_code == 401

    def test_unknown_phone(self, client):
        response = client.post("/api/driver/login", json={"phone": "0599999999", "password": "driver123"})
        assert response.status_code == 401

    def test_missing_fields(self, client):
        assert client.post("/api/driver/login", json={"phone": "0500000001"}).status_code == 400

    def test_login_response_hides_password(self, client, driver):
        response = client.post("/api/driver/login", json={"phone": "0500000001", "password": "driver123"})
        user = response.json()["user"]
        assert user["name"] == "Ahmed"
        assert "passwordHash" not in user
        assert "password" not in user

    def test_logout_ends_session(self, client, driver):
        assert client.post("/api/driver/logout", headers=driver["headers"]).status_code == 200
        assert client.get("/api/driver/dashboard", headers=driver["headers"]).status_code == 401

    def test_driver_token_rejected_on_admin_routes(self, client, driver):
        assert client.get("/api/admin/dashboard", headers=driver["headers"]).status_code == 403

    def test_admin_token_rejected_on_driver_routes(self, client, admin_headers):
        assert client.get("/api/driver/dashboard", headers=admin_headers).status_code == 403

    def test_garbage_token(self, client):
        assert client.get("/api/driver/orders", headers=bearer("garbage")).status_code == 401


class TestAvailableOrders:
    def test_only_unassigned_confirmed_orders(self, client, driver, place_order, advance):
        pending = place_order()
        confirmed = _confirmed_order(place_order, advance)

        available = client.get("/api/driver/available-orders", headers=driver["headers"]).json()
        ids = [o["id"] for o in available]
        assert confirmed["id"] in ids
        assert pending["id"] not in ids

    def test_empty_while_unavailable(self, client, driver, place_order, advance):
        _confirmed_order(place_order, advance)
        response = client.put(
            "/api/driver/availability",
            json={"isAvailable": False},
            headers=driver["headers"],
        )
        assert response.status_code == 200
        assert response.json()["isAvailable"] is False

        assert client.get("/api/driver/available-orders", headers=driver["headers"]).json() == []


class TestAccept:
    def test_accept_assigns_and_marks_busy(self, client, driver, place_order, advance):
        order = _confirmed_order(place_order, advance)

        response = client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        assert response.status_code == 200
        assert response.json()["driverId"] == driver["driver"]["id"]
        assert response.json()["status"] == "confirmed"

        dashboard = client.get("/api/driver/dashboard", headers=driver["headers"]).json()
        assert dashboard["driver"]["isAvailable"] is False
        assert [o["id"] for o in dashboard["currentOrders"]] == [order["id"]]
        assert dashboard["availableOrders"] == []

    def test_second_driver_loses_race(self, client, driver, other_driver, place_order, advance):
        order = _confirmed_order(place_order, advance)

        first = client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        second = client.post(f"/api/driver/orders/{order['id']}/accept", headers=other_driver["headers"])
        assert first.status_code == 200
        assert second.status_code == 409

        stored = client.get(f"/api/orders/{order['id']}").json()
        assert stored["driverId"] == driver["driver"]["id"]

    def test_accept_again_is_idempotent(self, client, driver, place_order, advance):
        order = _confirmed_order(place_order, advance)
        client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        again = client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        assert again.status_code == 200

    def test_pending_order_cannot_be_accepted(self, client, driver, place_order):
        order = place_order()
        response = client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        assert response.status_code == 409

    def test_unknown_order(self, client, driver):
        response = client.post("/api/driver/orders/missing/accept", headers=driver["headers"])
        assert response.status_code == 404


class TestDelivery:
    def _accepted(self, client, driver, place_order, advance):
        order = _confirmed_order(place_order, advance)
        client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        advance(order["id"], "preparing")
        return order

    def _set(self, client, headers, order_id, status):
        return client.put(
            f"/api/driver/orders/{order_id}/status",
            json={"status": status},
            headers=headers,
        )

    def test_full_delivery_credits_driver(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)

        assert self._set(client, driver["headers"], order["id"], "on_way").status_code == 200
        delivered = self._set(client, driver["headers"], order["id"], "delivered")
        assert delivered.status_code == 200
        assert delivered.json()["status"] == "delivered"

        dashboard = client.get("/api/driver/dashboard", headers=driver["headers"]).json()
        assert dashboard["driver"]["isAvailable"] is True
        assert dashboard["stats"]["balance"] == 10.0
        assert dashboard["stats"]["completedToday"] == 1
        assert dashboard["currentOrders"] == []

        tracking = client.get(f"/api/orders/{order['id']}/track").json()["tracking"]
        assert tracking[0]["createdByType"] == "driver"
        assert tracking[0]["createdBy"] == driver["driver"]["id"]

    def test_stats(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        self._set(client, driver["headers"], order["id"], "on_way")
        self._set(client, driver["headers"], order["id"], "delivered")

        stats = client.get("/api/driver/stats", params={"period": "week"}, headers=driver["headers"]).json()
        assert stats["period"] == "week"
        assert stats["totalOrders"] == 1
        assert stats["completedOrders"] == 1
        assert stats["totalEarnings"] == 10.0
        assert stats["successRate"] == 100.0

    def test_invalid_stats_period(self, client, driver):
        response = client.get("/api/driver/stats", params={"period": "decade"}, headers=driver["headers"])
        assert response.status_code == 400

    def test_cannot_skip_preparing(self, client, driver, place_order, advance):
        order = _confirmed_order(place_order, advance)
        client.post(f"/api/driver/orders/{order['id']}/accept", headers=driver["headers"])
        assert self._set(client, driver["headers"], order["id"], "on_way").status_code == 409

    def test_cannot_deliver_before_on_way(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        assert self._set(client, driver["headers"], order["id"], "delivered").status_code == 409

        dashboard = client.get("/api/driver/dashboard", headers=driver["headers"]).json()
        assert dashboard["stats"]["balance"] == 0.0

    def test_other_drivers_order_forbidden(self, client, driver, other_driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        response = self._set(client, other_driver["headers"], order["id"], "on_way")
        assert response.status_code == 403

    def test_driver_cannot_confirm_or_cancel(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        for status in ("confirmed", "cancelled"):
            assert self._set(client, driver["headers"], order["id"], status).status_code == 403

    def test_my_orders_filter(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        mine = client.get("/api/driver/orders", params={"status": "preparing"}, headers=driver["headers"]).json()
        assert [o["id"] for o in mine] == [order["id"]]
        none = client.get("/api/driver/orders", params={"status": "delivered"}, headers=driver["headers"]).json()
        assert none == []

    def test_admin_delivery_credits_driver(self, client, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        advance(order["id"], "on_way", "delivered")

        dashboard = client.get("/api/driver/dashboard", headers=driver["headers"]).json()
        assert dashboard["driver"]["isAvailable"] is True
        assert dashboard["stats"]["balance"] == 10.0
        assert dashboard["currentOrders"] == []

    def test_generic_update_delivery_credits_driver(self, client, admin_headers, driver, place_order, advance):
        order = self._accepted(client, driver, place_order, advance)
        advance(order["id"], "on_way")

        response = client.put(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)
        assert response.status_code == 200

        dashboard = client.get("/api/driver/dashboard", headers=driver["headers"]).json()
        assert dashboard["stats"]["balance"] == 10.0
        assert dashboard["driver"]["isAvailable"] is True
