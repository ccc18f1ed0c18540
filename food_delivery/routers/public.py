"""
Public Catalog Endpoints

Categories, restaurants and their menus, special offers, UI settings and
notifications. Reads are public; writes need an admin session.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from food_delivery.auth import get_storage, require_admin
from food_delivery.models import AdminUser
from food_delivery.routers.common import changes
from food_delivery.schemas import (
    CategoryResponse,
    MenuItemResponse,
    NotificationResponse,
    RestaurantResponse,
    SpecialOfferResponse,
    SpecialOfferUpdate,
    UiSettingResponse,
    UiSettingUpdate,
)
from food_delivery.storage import RESTAURANT_SORTS, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Catalog"])


# =============================================================================
# CATEGORIES & RESTAURANTS
# =============================================================================

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(storage: Storage = Depends(get_storage)):
    """Active categories, by sort order then name."""
    return await storage.get_categories()


@router.get("/restaurants", response_model=List[RestaurantResponse])
async def list_restaurants(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    search: Optional[str] = Query(None),
    is_open: Optional[bool] = Query(None, alias="isOpen"),
    is_featured: Optional[bool] = Query(None, alias="isFeatured"),
    is_new: Optional[bool] = Query(None, alias="isNew"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, description="Radius in km"),
    storage: Storage = Depends(get_storage),
) -> List[RestaurantResponse]:
    """
    List active restaurants.

    With ``lat`` and ``lon`` each restaurant carries its distance in km;
    ``radius`` then drops those further away.
    """
    if sort_by is not None and sort_by not in RESTAURANT_SORTS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid sortBy. Options: {list(RESTAURANT_SORTS)}"
        )

    rows = await storage.get_restaurants(
        category_id=category_id,
        search=search,
        is_open=is_open,
        is_featured=is_featured,
        is_new=is_new,
        sort_by=sort_by,
        latitude=lat,
        longitude=lon,
        radius_km=radius,
    )

    return [
        RestaurantResponse.model_validate(restaurant).model_copy(update={"distance": distance})
        for restaurant, distance in rows
    ]


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant(restaurant_id: str, storage: Storage = Depends(get_storage)):
    restaurant = await storage.get_restaurant(restaurant_id)
    if restaurant is None or not restaurant.is_active:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


@router.get("/restaurants/{restaurant_id}/menu", response_model=List[MenuItemResponse])
async def get_restaurant_menu(restaurant_id: str, storage: Storage = Depends(get_storage)):
    """Available menu items of a restaurant."""
    restaurant = await storage.get_restaurant(restaurant_id)
    if restaurant is None or not restaurant.is_active:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return await storage.get_menu_items(restaurant_id=restaurant_id)


# =============================================================================
# SPECIAL OFFERS
# =============================================================================

@router.get("/special-offers", response_model=List[SpecialOfferResponse])
async def list_special_offers(
    active: bool = Query(True, description="Only offers that are on and unexpired"),
    storage: Storage = Depends(get_storage),
):
    if active:
        return await storage.get_active_special_offers()
    return await storage.get_special_offers()


@router.put("/special-offers/{offer_id}", response_model=SpecialOfferResponse)
async def update_special_offer(
    offer_id: str,
    data: SpecialOfferUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    offer = await storage.update_special_offer(offer_id, changes(data))
    if offer is None:
        raise HTTPException(status_code=404, detail="Special offer not found")
    logger.info(f"Special offer {offer.title} updated by {admin.email}")
    return offer


# =============================================================================
# UI SETTINGS
# =============================================================================

@router.get("/ui-settings", response_model=List[UiSettingResponse], tags=["UI Settings"])
async def list_ui_settings(storage: Storage = Depends(get_storage)):
    return await storage.get_ui_settings()


@router.get("/ui-settings/{key}", response_model=UiSettingResponse, tags=["UI Settings"])
async def get_ui_setting(key: str, storage: Storage = Depends(get_storage)):
    setting = await storage.get_ui_setting(key)
    if setting is None:
        raise HTTPException(status_code=404, detail=f"Setting '{key}' not found")
    return setting


@router.put("/ui-settings/{key}", response_model=UiSettingResponse, tags=["UI Settings"])
async def put_ui_setting(
    key: str,
    data: UiSettingUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Create or update a setting."""
    if data.value is None:
        raise HTTPException(status_code=400, detail="value is required")

    setting = await storage.upsert_ui_setting(
        key,
        data.value,
        category=data.category,
        description=data.description,
    )
    logger.info(f"UI setting '{key}' set by {admin.email}")
    return setting


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@router.get("/notifications", response_model=List[NotificationResponse], tags=["Notifications"])
async def list_notifications(
    recipient_type: Optional[str] = Query(None, alias="recipientType"),
    recipient_id: Optional[str] = Query(None, alias="recipientId"),
    unread: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_notifications(
        recipient_type=recipient_type,
        recipient_id=recipient_id,
        unread_only=unread,
        limit=limit,
    )


@router.put(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    tags=["Notifications"],
)
async def mark_notification_read(notification_id: str, storage: Storage = Depends(get_storage)):
    notification = await storage.mark_notification_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
