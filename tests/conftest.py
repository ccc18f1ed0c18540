"""Pytest fixtures for food_delivery tests."""

import asyncio
import os
import tempfile

# Configure before anything imports food_delivery settings
_DB_DIR = tempfile.mkdtemp(prefix="food_delivery_tests_")
DB_PATH = os.path.join(_DB_DIR, "test.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"
os.environ["CELERY_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MOCK_NOTIFICATION_FAILURE_RATE"] = "0"

import pytest
from fastapi.testclient import TestClient

from food_delivery.core.config import get_settings
from food_delivery.database import async_session_maker
from food_delivery.main import app

settings = get_settings()


def run_db(fn):
    """Run ``fn(session)`` against the test database outside the app."""
    async def runner():
        async with async_session_maker() as session:
            return await fn(session)

    return asyncio.run(runner())


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def order_payload(**overrides) -> dict:
    payload = {
        "customerName": "Sara Ali",
        "customerPhone": "0551234567",
        "deliveryAddress": "12 Palm Street",
        "items": [
            {"name": "Margherita", "quantity": 2, "price": 20},
            {"name": "Garlic Bread", "quantity": 1, "price": 15},
        ],
        "deliveryFee": 5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client():
    """Test client on a fresh database; startup creates the default admin."""
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    response = client.post(
        "/api/admin/login",
        json={"email": settings.default_admin_email, "password": settings.default_admin_password},
    )
    assert response.status_code == 200
    return bearer(response.json()["token"])


@pytest.fixture
def catalog(client, admin_headers):
    """One category, two restaurants and a small menu."""
    category = client.post(
        "/api/admin/categories",
        json={"name": "Restaurants", "icon": "fas fa-utensils"},
        headers=admin_headers,
    ).json()

    pizza = client.post(
        "/api/admin/restaurants",
        json={
            "name": "Pizza Place",
            "description": "Wood fired pizza",
            "image": "https://example.com/pizza.jpg",
            "deliveryTime": "30-45 min",
            "deliveryFee": 7,
            "rating": "4.2",
            "categoryId": category["id"],
            "latitude": 15.3694,
            "longitude": 44.1910,
            "address": "1 Market Square",
            "isFeatured": True,
        },
        headers=admin_headers,
    ).json()

    sweets = client.post(
        "/api/admin/restaurants",
        json={
            "name": "Damascus Sweets",
            "description": "Baklava and kunafa",
            "image": "https://example.com/sweets.jpg",
            "deliveryTime": "20-30 min",
            "deliveryFee": 3,
            "rating": "4.8",
            "categoryId": category["id"],
            "latitude": 15.5000,
            "longitude": 44.3000,
            "isNew": True,
        },
        headers=admin_headers,
    ).json()

    margherita = client.post(
        "/api/admin/menu-items",
        json={
            "name": "Margherita",
            "price": 20,
            "image": "https://example.com/m.jpg",
            "category": "Pizza",
            "restaurantId": pizza["id"],
        },
        headers=admin_headers,
    ).json()

    return {"category": category, "pizza": pizza, "sweets": sweets, "margherita": margherita}


def _create_driver(client, admin_headers, name: str, phone: str) -> dict:
    driver = client.post(
        "/api/admin/drivers",
        json={"name": name, "phone": phone, "password": "driver123"},
        headers=admin_headers,
    )
    assert driver.status_code == 201
    login = client.post("/api/driver/login", json={"phone": phone, "password": "driver123"})
    assert login.status_code == 200
    return {"driver": driver.json(), "headers": bearer(login.json()["token"])}


@pytest.fixture
def driver(client, admin_headers):
    return _create_driver(client, admin_headers, "Ahmed", "0500000001")


@pytest.fixture
def other_driver(client, admin_headers):
    return _create_driver(client, admin_headers, "Omar", "0500000002")


@pytest.fixture
def place_order(client):
    """Place an order and return the created summary."""
    def _place(**overrides) -> dict:
        response = client.post("/api/orders", json=order_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["order"]

    return _place


@pytest.fixture
def advance(client, admin_headers):
    """Move an order forward through the admin status endpoint."""
    def _advance(order_id: str, *statuses: str) -> None:
        for status in statuses:
            response = client.put(
                f"/api/admin/orders/{order_id}/status",
                json={"status": status},
                headers=admin_headers,
            )
            assert response.status_code == 200, response.text

    return _advance
