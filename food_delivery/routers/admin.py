"""
Admin Endpoints

Dashboard, catalog management, order management, drivers, special offers,
business hours, admin accounts and the admin's own profile. Every route
needs an admin session.
"""

import logging
import math
import re
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from food_delivery import events
from food_delivery.auth import get_storage, hash_password, require_admin, verify_password
from food_delivery.models import AdminUser, CreatorType, OrderStatus, utcnow
from food_delivery.routers.common import camelize, changes, dump, workflow_http_error
from food_delivery.schemas import (
    AdminResponse,
    AdminUserCreate,
    AdminUserUpdate,
    BusinessHoursUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ChangePasswordRequest,
    DriverCreate,
    DriverResponse,
    DriverUpdate,
    ErrorResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    OrderPageResponse,
    OrderResponse,
    OrderStatusUpdate,
    ProfileUpdate,
    RestaurantCreate,
    RestaurantResponse,
    RestaurantUpdate,
    SpecialOfferCreate,
    SpecialOfferResponse,
)
from food_delivery.storage import Storage
from food_delivery.workflow import WorkflowError, apply_transition

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard")
async def dashboard(storage: Storage = Depends(get_storage)) -> dict[str, Any]:
    """Aggregated dashboard statistics and the ten most recent orders."""
    day_start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    stats = await storage.get_dashboard_stats(day_start)
    recent = await storage.get_orders(limit=10)

    return {
        "stats": camelize(stats),
        "recentOrders": [dump(OrderResponse.model_validate(o)) for o in recent],
    }


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(storage: Storage = Depends(get_storage)):
    return await storage.get_categories(include_inactive=True)


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(data: CategoryCreate, storage: Storage = Depends(get_storage)):
    category = await storage.create_category(data.model_dump())
    logger.info(f"Category created: {category.name}")
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    storage: Storage = Depends(get_storage),
):
    category = await storage.update_category(category_id, changes(data))
    if category is None:
        raise _not_found("Category")
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(category_id: str, storage: Storage = Depends(get_storage)):
    if not await storage.delete_category(category_id):
        raise _not_found("Category")
    return MessageResponse(message="Category deleted")


# =============================================================================
# RESTAURANTS
# =============================================================================

@router.get("/restaurants", response_model=List[RestaurantResponse])
async def list_restaurants(storage: Storage = Depends(get_storage)):
    rows = await storage.get_restaurants(include_inactive=True)
    return [restaurant for restaurant, _ in rows]


@router.post("/restaurants", response_model=RestaurantResponse, status_code=201)
async def create_restaurant(data: RestaurantCreate, storage: Storage = Depends(get_storage)):
    if data.category_id and await storage.get_category(data.category_id) is None:
        raise HTTPException(status_code=400, detail="Unknown categoryId")
    restaurant = await storage.create_restaurant(data.model_dump())
    logger.info(f"Restaurant created: {restaurant.name}")
    return restaurant


@router.put("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
async def update_restaurant(
    restaurant_id: str,
    data: RestaurantUpdate,
    storage: Storage = Depends(get_storage),
):
    values = changes(data)
    if values.get("category_id") and await storage.get_category(values["category_id"]) is None:
        raise HTTPException(status_code=400, detail="Unknown categoryId")
    restaurant = await storage.update_restaurant(restaurant_id, values)
    if restaurant is None:
        raise _not_found("Restaurant")
    return restaurant


@router.delete("/restaurants/{restaurant_id}", response_model=MessageResponse)
async def delete_restaurant(restaurant_id: str, storage: Storage = Depends(get_storage)):
    if not await storage.delete_restaurant(restaurant_id):
        raise _not_found("Restaurant")
    return MessageResponse(message="Restaurant deleted")


# =============================================================================
# MENU ITEMS
# =============================================================================

@router.get("/menu-items", response_model=List[MenuItemResponse])
async def list_menu_items(
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_menu_items(restaurant_id=restaurant_id, available_only=False)


@router.post("/menu-items", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(data: MenuItemCreate, storage: Storage = Depends(get_storage)):
    if data.restaurant_id and await storage.get_restaurant(data.restaurant_id) is None:
        raise HTTPException(status_code=400, detail="Unknown restaurantId")
    return await storage.create_menu_item(data.model_dump())


@router.put("/menu-items/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: str,
    data: MenuItemUpdate,
    storage: Storage = Depends(get_storage),
):
    item = await storage.update_menu_item(item_id, changes(data))
    if item is None:
        raise _not_found("Menu item")
    return item


@router.delete("/menu-items/{item_id}", response_model=MessageResponse)
async def delete_menu_item(item_id: str, storage: Storage = Depends(get_storage)):
    if not await storage.delete_menu_item(item_id):
        raise _not_found("Menu item")
    return MessageResponse(message="Menu item deleted")


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderPageResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    search: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
) -> OrderPageResponse:
    """Paginated orders, newest first."""
    orders, total = await storage.get_orders_page(page=page, limit=limit, status=status, search=search)

    return OrderPageResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.put(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={409: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    try:
        order = await apply_transition(
            storage.session,
            order_id,
            data.status,
            actor_id=admin.id,
            actor_type=CreatorType.ADMIN,
            message=data.message,
        )
    except WorkflowError as e:
        raise workflow_http_error(e)

    await events.order_status_changed(storage, order)
    return order


# =============================================================================
# DRIVERS
# =============================================================================

@router.get("/drivers", response_model=List[DriverResponse])
async def list_drivers(storage: Storage = Depends(get_storage)):
    return await storage.get_drivers()


@router.post("/drivers", response_model=DriverResponse, status_code=201)
async def create_driver(data: DriverCreate, storage: Storage = Depends(get_storage)):
    if await storage.get_driver_by_phone(data.phone) is not None:
        raise HTTPException(status_code=400, detail="A driver with this phone already exists")

    values = data.model_dump(exclude={"password"})
    values["password_hash"] = hash_password(data.password)
    driver = await storage.create_driver(values)
    logger.info(f"Driver created: {driver.name} ({driver.phone})")
    return driver


@router.put("/drivers/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: str,
    data: DriverUpdate,
    storage: Storage = Depends(get_storage),
):
    values = changes(data, "password")
    if data.password:
        values["password_hash"] = hash_password(data.password)

    if values.get("phone"):
        existing = await storage.get_driver_by_phone(values["phone"])
        if existing is not None and existing.id != driver_id:
            raise HTTPException(status_code=400, detail="A driver with this phone already exists")

    driver = await storage.update_driver(driver_id, values)
    if driver is None:
        raise _not_found("Driver")
    return driver


@router.delete("/drivers/{driver_id}", response_model=MessageResponse)
async def delete_driver(driver_id: str, storage: Storage = Depends(get_storage)):
    """Deactivate a driver. Their delivered orders keep pointing at them."""
    if not await storage.delete_driver(driver_id):
        raise _not_found("Driver")
    return MessageResponse(message="Driver deactivated")


@router.get("/drivers/{driver_id}/stats")
async def driver_stats(
    driver_id: str,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
) -> dict[str, Any]:
    driver = await storage.get_driver(driver_id)
    if driver is None:
        raise _not_found("Driver")

    stats = await storage.get_driver_stats(driver_id, start=start_date, end=end_date)
    return {
        "driverId": driver.id,
        **camelize(stats),
        "balance": round(driver.earnings, 2),
    }


# =============================================================================
# SPECIAL OFFERS
# =============================================================================

@router.get("/special-offers", response_model=List[SpecialOfferResponse])
async def list_special_offers(storage: Storage = Depends(get_storage)):
    return await storage.get_special_offers()


@router.post("/special-offers", response_model=SpecialOfferResponse, status_code=201)
async def create_special_offer(data: SpecialOfferCreate, storage: Storage = Depends(get_storage)):
    if data.discount_percent is None and data.discount_amount is None:
        raise HTTPException(status_code=400, detail="discountPercent or discountAmount is required")
    offer = await storage.create_special_offer(data.model_dump())
    logger.info(f"Special offer created: {offer.title}")
    return offer


@router.delete("/special-offers/{offer_id}", response_model=MessageResponse)
async def delete_special_offer(offer_id: str, storage: Storage = Depends(get_storage)):
    if not await storage.delete_special_offer(offer_id):
        raise _not_found("Special offer")
    return MessageResponse(message="Special offer deleted")


# =============================================================================
# BUSINESS HOURS
# =============================================================================

BUSINESS_HOURS_KEYS = ("opening_time", "closing_time", "store_status")
STORE_STATUSES = ("open", "closed")
_CLOCK = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


async def _business_hours(storage: Storage) -> dict[str, Optional[str]]:
    hours = {}
    for key in BUSINESS_HOURS_KEYS:
        setting = await storage.get_ui_setting(key)
        hours[key] = setting.value if setting else None
    return camelize(hours)


@router.get("/business-hours")
async def get_business_hours(storage: Storage = Depends(get_storage)) -> dict[str, Optional[str]]:
    return await _business_hours(storage)


@router.put("/business-hours")
async def update_business_hours(
    data: BusinessHoursUpdate,
    storage: Storage = Depends(get_storage),
) -> dict[str, Optional[str]]:
    """Store opening and closing time and the open/closed switch as UI settings."""
    values = {key: value.strip() for key, value in changes(data).items() if value is not None}
    if not values:
        raise HTTPException(status_code=400, detail="openingTime, closingTime or storeStatus is required")

    for key in ("opening_time", "closing_time"):
        if key in values and not _CLOCK.match(values[key]):
            raise HTTPException(status_code=400, detail=f"{key} must be HH:MM")
    if "store_status" in values and values["store_status"] not in STORE_STATUSES:
        raise HTTPException(status_code=400, detail=f"storeStatus must be one of {list(STORE_STATUSES)}")

    for key, value in values.items():
        await storage.upsert_ui_setting(key, value, category="business_hours")
    logger.info(f"Business hours updated: {values}")
    return await _business_hours(storage)


# =============================================================================
# ADMIN USERS
# =============================================================================

@router.get("/users", response_model=List[AdminResponse])
async def list_admin_users(storage: Storage = Depends(get_storage)):
    return await storage.get_admins()


@router.post("/users", response_model=AdminResponse, status_code=201)
async def create_admin_user(data: AdminUserCreate, storage: Storage = Depends(get_storage)):
    if await storage.get_admin_by_email(data.email) is not None:
        raise HTTPException(status_code=400, detail="Email is already in use")

    values = data.model_dump(exclude={"password"})
    values["email"] = data.email.strip()
    values["password_hash"] = hash_password(data.password)
    admin = await storage.create_admin(values)
    logger.info(f"Admin user created: {admin.email}")
    return admin


@router.patch("/users/{user_id}", response_model=AdminResponse)
async def update_admin_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Edit another admin. Deactivating one ends their sessions."""
    values = {key: value for key, value in changes(data).items() if value is not None or key == "phone"}
    if user_id == admin.id and values.get("is_active") is False:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    if values.get("email"):
        values["email"] = values["email"].strip()
        existing = await storage.get_admin_by_email(values["email"])
        if existing is not None and existing.id != user_id:
            raise HTTPException(status_code=400, detail="Email is already in use")

    user = await storage.update_admin(user_id, values)
    if user is None:
        raise _not_found("Admin user")
    if not user.is_active:
        await storage.end_sessions(user.id)
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_admin_user(
    user_id: str,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> MessageResponse:
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    if not await storage.delete_admin(user_id):
        raise _not_found("Admin user")
    logger.info(f"Admin user {user_id} deleted by {admin.email}")
    return MessageResponse(message="Admin user deleted")


# =============================================================================
# PROFILE
# =============================================================================

@router.get("/profile", response_model=AdminResponse)
async def get_profile(admin: AdminUser = Depends(require_admin)):
    return admin


@router.put("/profile", response_model=AdminResponse)
async def update_profile(
    data: ProfileUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    name = (data.name or "").strip()
    email = (data.email or "").strip()
    if not name or not email:
        raise HTTPException(status_code=400, detail="Name and email are required")

    existing = await storage.get_admin_by_email(email)
    if existing is not None and existing.id != admin.id:
        raise HTTPException(status_code=400, detail="Email is already in use")

    values: dict[str, Any] = {"name": name, "email": email}
    if data.username is not None:
        values["username"] = data.username.strip() or None
    if data.phone is not None:
        values["phone"] = data.phone.strip() or None

    return await storage.update_admin(admin.id, values)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> MessageResponse:
    if not data.current_password or not data.new_password:
        raise HTTPException(status_code=400, detail="Current and new password are required")
    if len(data.new_password) < 6:
        raise HTTPException(status_code=400, detail="New password must be at least 6 characters")
    if not verify_password(data.current_password, admin.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    await storage.update_admin(admin.id, {"password_hash": hash_password(data.new_password)})
    logger.info(f"Admin {admin.email} changed their password")
    return MessageResponse(message="Password updated")
