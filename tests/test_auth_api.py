"""Tests for admin sessions, admin accounts, business hours and driver management."""

from datetime import timedelta

from sqlalchemy import update

from conftest import bearer, run_db, settings
from food_delivery.models import AuthSession, utcnow


def _login(client, **body):
    return client.post("/api/admin/login", json=body)


class TestAdminLogin:
    def test_login_by_email(self, client):
        response = _login(client, email=settings.default_admin_email, password=settings.default_admin_password)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["email"] == settings.default_admin_email
        assert "passwordHash" not in data["user"]

    def test_login_by_username(self, client):
        response = _login(client, username="admin", password=settings.default_admin_password)
        assert response.status_code == 200

    def test_email_is_case_insensitive(self, client):
        response = _login(client, email=settings.default_admin_email.upper(), password=settings.default_admin_password)
        assert response.status_code == 200

    def test_wrong_password(self, client):
        assert _login(client, email=settings.default_admin_email, password="wrong").status_code == 401

    def test_missing_fields(self, client):
        assert _login(client, email=settings.default_admin_email).status_code == 400
        assert _login(client, password="x").status_code == 400

    def test_tokens_are_unique(self, client):
        body = {"email": settings.default_admin_email, "password": settings.default_admin_password}
        assert _login(client, **body).json()["token"] != _login(client, **body).json()["token"]


class TestSessions:
    def test_verify(self, client, admin_headers):
        response = client.get("/api/admin/verify", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["userType"] == "admin"

    def test_missing_or_malformed_header(self, client):
        assert client.get("/api/admin/verify").status_code == 401
        assert client.get("/api/admin/verify", headers={"Authorization": "Token abc"}).status_code == 401
        assert client.get("/api/admin/verify", headers=bearer("not-a-session")).status_code == 401

    def test_logout_invalidates_token(self, client, admin_headers):
        assert client.post("/api/admin/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/admin/verify", headers=admin_headers).status_code == 401

    def test_expired_session_rejected_and_removed(self, client, admin_headers):
        async def expire(session):
            await session.execute(update(AuthSession).values(expires_at=utcnow() - timedelta(minutes=1)))
            await session.commit()

        async def count(session):
            result = await session.execute(AuthSession.__table__.select())
            return len(result.all())

        run_db(expire)
        assert client.get("/api/admin/verify", headers=admin_headers).status_code == 401
        assert run_db(count) == 0


class TestProfile:
    def test_update_profile(self, client, admin_headers):
        response = client.put(
            "/api/admin/profile",
            json={"name": "Head Admin", "email": "boss@fooddelivery.local", "phone": "0501111111"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Head Admin"

        profile = client.get("/api/admin/profile", headers=admin_headers).json()
        assert profile["email"] == "boss@fooddelivery.local"
        assert profile["phone"] == "0501111111"

        relogin = _login(client, email="boss@fooddelivery.local", password=settings.default_admin_password)
        assert relogin.status_code == 200

    def test_name_and_email_required(self, client, admin_headers):
        response = client.put("/api/admin/profile", json={"name": "Only Name"}, headers=admin_headers)
        assert response.status_code == 400

    def test_email_must_be_unique(self, client, admin_headers):
        from food_delivery.auth import hash_password
        from food_delivery.storage import Storage

        async def add_admin(session):
            await Storage(session).create_admin({
                "name": "Second",
                "email": "second@fooddelivery.local",
                "password_hash": hash_password("second123"),
            })

        run_db(add_admin)
        response = client.put(
            "/api/admin/profile",
            json={"name": "Administrator", "email": "second@fooddelivery.local"},
            headers=admin_headers,
        )
        assert response.status_code == 400


class TestChangePassword:
    def test_change_password(self, client, admin_headers):
        response = client.put(
            "/api/admin/change-password",
            json={"currentPassword": settings.default_admin_password, "newPassword": "n3w-secret"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        assert _login(client, email=settings.default_admin_email, password="n3w-secret").status_code == 200
        assert _login(
            client, email=settings.default_admin_email, password=settings.default_admin_password
        ).status_code == 401

    def test_wrong_current_password(self, client, admin_headers):
        response = client.put(
            "/api/admin/change-password",
            json={"currentPassword": "nope", "newPassword": "n3w-secret"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_new_password_too_short(self, client, admin_headers):
        response = client.put(
            "/api/admin/change-password",
            json={"currentPassword": settings.default_admin_password, "newPassword": "abc"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_fields_required(self, client, admin_headers):
        assert client.put("/api/admin/change-password", json={}, headers=admin_headers).status_code == 400


class TestDriverManagement:
    def test_listing_never_exposes_passwords(self, client, admin_headers, driver):
        drivers = client.get("/api/admin/drivers", headers=admin_headers).json()
        assert len(drivers) == 1
        assert "passwordHash" not in drivers[0]
        assert "password" not in drivers[0]

    def test_duplicate_phone(self, client, admin_headers, driver):
        response = client.post(
            "/api/admin/drivers",
            json={"name": "Copy", "phone": "0500000001", "password": "driver123"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_update_to_taken_phone(self, client, admin_headers, driver, other_driver):
        response = client.put(
            f"/api/admin/drivers/{other_driver['driver']['id']}",
            json={"phone": "0500000001"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_password_reset(self, client, admin_headers, driver):
        client.put(
            f"/api/admin/drivers/{driver['driver']['id']}",
            json={"password": "fresh-pass"},
            headers=admin_headers,
        )
        login = client.post("/api/driver/login", json={"phone": "0500000001", "password": "fresh-pass"})
        assert login.status_code == 200

    def test_deactivated_driver_locked_out(self, client, admin_headers, driver):
        response = client.delete(f"/api/admin/drivers/{driver['driver']['id']}", headers=admin_headers)
        assert response.status_code == 200

        assert client.get("/api/driver/dashboard", headers=driver["headers"]).status_code == 401
        login = client.post("/api/driver/login", json={"phone": "0500000001", "password": "driver123"})
        assert login.status_code == 401

        drivers = client.get("/api/admin/drivers", headers=admin_headers).json()
        assert drivers[0]["isActive"] is False

    def test_unknown_driver(self, client, admin_headers):
        assert client.delete("/api/admin/drivers/missing", headers=admin_headers).status_code == 404
        assert client.get("/api/admin/drivers/missing/stats", headers=admin_headers).status_code == 404

    def test_driver_stats_for_admin(self, client, admin_headers, driver):
        stats = client.get(f"/api/admin/drivers/{driver['driver']['id']}/stats", headers=admin_headers).json()
        assert stats["driverId"] == driver["driver"]["id"]
        assert stats["totalOrders"] == 0
        assert stats["successRate"] == 0


class TestDashboard:
    def test_dashboard_counts(self, client, admin_headers, catalog, driver, place_order, advance):
        first = place_order()
        place_order()
        advance(first["id"], "confirmed", "preparing", "on_way", "delivered")

        data = client.get("/api/admin/dashboard", headers=admin_headers).json()
        stats = data["stats"]
        assert stats["totalOrders"] == 2
        assert stats["todayOrders"] == 2
        assert stats["pendingOrders"] == 1
        assert stats["totalRestaurants"] == 2
        assert stats["totalDrivers"] == 1
        assert stats["totalRevenue"] == 60.0
        assert len(data["recentOrders"]) == 2


class TestBusinessHours:
    def test_update_and_read(self, client, admin_headers):
        response = client.put(
            "/api/admin/business-hours",
            json={"openingTime": "09:00", "closingTime": "23:30", "storeStatus": "open"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"openingTime": "09:00", "closingTime": "23:30", "storeStatus": "open"}

        client.put("/api/admin/business-hours", json={"storeStatus": "closed"}, headers=admin_headers)
        hours = client.get("/api/admin/business-hours", headers=admin_headers).json()
        assert hours["storeStatus"] == "closed"
        assert hours["openingTime"] == "09:00"

        setting = client.get("/api/ui-settings/closing_time").json()
        assert setting["value"] == "23:30"
        assert setting["category"] == "business_hours"

    def test_nothing_to_update(self, client, admin_headers):
        assert client.put("/api/admin/business-hours", json={}, headers=admin_headers).status_code == 400

    def test_invalid_values(self, client, admin_headers):
        for body in ({"openingTime": "25:00"}, {"closingTime": "9am"}, {"storeStatus": "maybe"}):
            assert client.put("/api/admin/business-hours", json=body, headers=admin_headers).status_code == 400
        assert client.get("/api/admin/business-hours", headers=admin_headers).json()["storeStatus"] is None

    def test_needs_admin(self, client):
        assert client.put("/api/admin/business-hours", json={"storeStatus": "open"}).status_code == 401


class TestAdminUsers:
    def _create(self, client, admin_headers, email="staff@fooddelivery.local"):
        response = client.post(
            "/api/admin/users",
            json={"name": "Staff", "email": email, "password": "staff123"},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    def _staff_headers(self, client, email="staff@fooddelivery.local"):
        token = _login(client, email=email, password="staff123").json()["token"]
        return bearer(token)

    def test_list_newest_first(self, client, admin_headers):
        self._create(client, admin_headers)
        users = client.get("/api/admin/users", headers=admin_headers).json()
        assert [u["email"] for u in users] == ["staff@fooddelivery.local", settings.default_admin_email]
        assert all("passwordHash" not in u for u in users)

    def test_duplicate_email(self, client, admin_headers):
        response = client.post(
            "/api/admin/users",
            json={"name": "Copy", "email": settings.default_admin_email, "password": "copy1234"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_update(self, client, admin_headers):
        staff = self._create(client, admin_headers)
        response = client.patch(
            f"/api/admin/users/{staff['id']}",
            json={"name": "Night Shift", "phone": "0502222222"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Night Shift"
        assert response.json()["phone"] == "0502222222"

    def test_update_to_taken_email(self, client, admin_headers):
        staff = self._create(client, admin_headers)
        response = client.patch(
            f"/api/admin/users/{staff['id']}",
            json={"email": settings.default_admin_email},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_deactivation_ends_sessions(self, client, admin_headers):
        staff = self._create(client, admin_headers)
        staff_headers = self._staff_headers(client)
        assert client.get("/api/admin/verify", headers=staff_headers).status_code == 200

        response = client.patch(
            f"/api/admin/users/{staff['id']}",
            json={"isActive": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["isActive"] is False
        assert client.get("/api/admin/verify", headers=staff_headers).status_code == 401

    def test_cannot_deactivate_or_delete_self(self, client, admin_headers):
        me = client.get("/api/admin/profile", headers=admin_headers).json()
        response = client.patch(f"/api/admin/users/{me['id']}", json={"isActive": False}, headers=admin_headers)
        assert response.status_code == 400
        assert client.delete(f"/api/admin/users/{me['id']}", headers=admin_headers).status_code == 400
        assert client.get("/api/admin/verify", headers=admin_headers).status_code == 200

    def test_delete(self, client, admin_headers):
        staff = self._create(client, admin_headers)
        staff_headers = self._staff_headers(client)

        assert client.delete(f"/api/admin/users/{staff['id']}", headers=admin_headers).status_code == 200
        assert client.get("/api/admin/verify", headers=staff_headers).status_code == 401
        assert len(client.get("/api/admin/users", headers=admin_headers).json()) == 1
        assert client.delete(f"/api/admin/users/{staff['id']}", headers=admin_headers).status_code == 404

    def test_unknown_user(self, client, admin_headers):
        response = client.patch("/api/admin/users/missing", json={"name": "X"}, headers=admin_headers)
        assert response.status_code == 404
