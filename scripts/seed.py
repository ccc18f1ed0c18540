"""
Database Seeding Script

Creates the tables and fills an empty database with a sample catalog,
two drivers, UI settings and a special offer. Does nothing when
categories already exist.

Run from project root: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from food_delivery.auth import ensure_default_admin, hash_password
from food_delivery.core.config import setup_logging
from food_delivery.database import async_session_maker, engine, init_db
from food_delivery.models import utcnow
from food_delivery.storage import Storage

logger = setup_logging()

CATEGORIES = [
    {"name": "Restaurants", "icon": "fas fa-utensils", "sort_order": 0},
    {"name": "Cafes", "icon": "fas fa-coffee", "sort_order": 1},
    {"name": "Desserts", "icon": "fas fa-candy-cane", "sort_order": 2},
    {"name": "Supermarkets", "icon": "fas fa-shopping-cart", "sort_order": 3},
    {"name": "Pharmacies", "icon": "fas fa-pills", "sort_order": 4},
]

# category index, restaurant fields, menu items
RESTAURANTS = [
    (0, {
        "name": "Old Town Grill",
        "description": "Charcoal grills and traditional home cooking",
        "image": "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=800&h=400",
        "rating": "4.8",
        "review_count": 4891,
        "delivery_time": "40-60 min",
        "minimum_order": 25.0,
        "delivery_fee": 5.0,
        "address": "14 Market Square",
        "latitude": 15.3694,
        "longitude": 44.1910,
        "is_featured": True,
    }, [
        {"name": "Mixed Grill Platter", "price": 55.0, "category": "Grills",
         "description": "Lamb, chicken and kofta with flatbread"},
        {"name": "Chicken Mandi", "price": 45.0, "category": "Rice",
         "description": "Slow-cooked chicken over spiced rice"},
    ]),
    (2, {
        "name": "Damascus Sweets",
        "description": "Levantine pastries and desserts",
        "image": "https://images.unsplash.com/photo-1558618666-fcd25c85cd64?w=800&h=400",
        "rating": "4.6",
        "review_count": 2341,
        "delivery_time": "30-45 min",
        "minimum_order": 15.0,
        "delivery_fee": 3.0,
        "address": "7 Garden Road",
        "latitude": 15.3522,
        "longitude": 44.2075,
        "is_new": True,
    }, [
        {"name": "Kunafa", "price": 45.0, "original_price": 50.0, "category": "Oriental Sweets",
         "description": "Cheese kunafa with syrup", "is_special_offer": True},
        {"name": "Pistachio Baklava", "price": 35.0, "category": "Oriental Sweets",
         "description": "Layered pastry filled with pistachio"},
    ]),
    (1, {
        "name": "Corner Cafe",
        "description": "Coffee, tea and light bites",
        "image": "https://images.unsplash.com/photo-1442512595331-e89e73853f31?w=800&h=400",
        "rating": "4.5",
        "review_count": 1876,
        "delivery_time": "20-30 min",
        "minimum_order": 10.0,
        "delivery_fee": 4.0,
        "address": "2 Station Street",
        "latitude": 15.3801,
        "longitude": 44.1795,
    }, [
        {"name": "Cardamom Coffee", "price": 8.0, "category": "Hot Drinks"},
        {"name": "Cheese Sandwich", "price": 12.0, "category": "Snacks"},
    ]),
]

DRIVERS = [
    {"name": "Ahmed Driver", "phone": "0500000001", "password": "driver123"},
    {"name": "Omar Driver", "phone": "0500000002", "password": "driver123"},
]

UI_SETTINGS = [
    ("show_categories", "true", "navigation", "Show restaurant categories on the home page"),
    ("show_search_bar", "true", "navigation", "Show the search bar on the home page"),
    ("show_special_offers", "true", "navigation", "Show special offers and discounts"),
    ("show_orders_page", "true", "navigation", "Show the orders page in navigation"),
    ("show_track_orders_page", "true", "navigation", "Show the order tracking page in navigation"),
    ("app_name", "Food Delivery", "app", "Application name"),
    ("delivery_fee_default", "5", "app", "Default delivery fee"),
    ("minimum_order_default", "25", "app", "Default minimum order"),
    ("opening_time", "08:00", "store", "Store opening time"),
    ("closing_time", "23:00", "store", "Store closing time"),
]

PLACEHOLDER_IMAGE = "https://images.unsplash.com/photo-1565299624946-b28f40a0ca4b?w=200&h=200"


async def seed() -> None:
    await init_db()

    async with async_session_maker() as session:
        storage = Storage(session)
        await ensure_default_admin(storage)

        if await storage.get_categories(include_inactive=True):
            logger.info("✓ Database already seeded, skipping...")
            return

        logger.info("🌱 Seeding categories...")
        categories = [await storage.create_category(values) for values in CATEGORIES]

        logger.info("🏪 Seeding restaurants and menus...")
        for category_index, values, items in RESTAURANTS:
            restaurant = await storage.create_restaurant({
                **values,
                "category_id": categories[category_index].id,
            })
            for item in items:
                await storage.create_menu_item({
                    "image": PLACEHOLDER_IMAGE,
                    **item,
                    "restaurant_id": restaurant.id,
                })
            logger.info(f"  ✓ {restaurant.name} ({len(items)} items)")

        logger.info("🛵 Seeding drivers...")
        for driver in DRIVERS:
            await storage.create_driver({
                "name": driver["name"],
                "phone": driver["phone"],
                "password_hash": hash_password(driver["password"]),
            })
            logger.info(f"  ✓ {driver['name']} / {driver['phone']}")

        logger.info("⚙️ Seeding UI settings...")
        for key, value, category, description in UI_SETTINGS:
            await storage.upsert_ui_setting(key, value, category=category, description=description)

        await storage.create_special_offer({
            "title": "20% off your first order",
            "description": "Discount on orders above 50",
            "image": PLACEHOLDER_IMAGE,
            "discount_percent": 20,
            "minimum_order": 50.0,
            "valid_until": utcnow() + timedelta(days=30),
        })

    logger.info("✅ Seeding complete")


async def main() -> None:
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
