"""
Search Endpoint

Substring search across restaurants, categories and menu items.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from food_delivery.auth import get_storage
from food_delivery.routers.common import dump
from food_delivery.schemas import CategoryResponse, MenuItemResponse, RestaurantResponse
from food_delivery.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Search"])

SEARCH_TYPES = ("all", "restaurants", "categories", "menu-items")


@router.get("/search")
async def search(
    q: Optional[str] = Query(None, description="Search term"),
    type: str = Query("all", description="all | restaurants | categories | menu-items"),
    storage: Storage = Depends(get_storage),
) -> dict[str, Any]:
    """
    Search the catalog.

    The response only holds the keys of the searched types, plus ``total``.
    """
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query 'q' is required")
    if type not in SEARCH_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid type. Options: {list(SEARCH_TYPES)}")

    term = q.strip()
    results: dict[str, Any] = {}
    total = 0

    if type in ("all", "restaurants"):
        restaurants = await storage.search_restaurants(term)
        results["restaurants"] = [dump(RestaurantResponse.model_validate(r)) for r in restaurants]
        total += len(restaurants)

    if type in ("all", "categories"):
        categories = await storage.search_categories(term)
        results["categories"] = [dump(CategoryResponse.model_validate(c)) for c in categories]
        total += len(categories)

    if type in ("all", "menu-items"):
        items = await storage.search_menu_items(term)
        results["menuItems"] = [dump(MenuItemResponse.model_validate(i)) for i in items]
        total += len(items)

    results["total"] = total
    logger.debug(f"Search '{term}' ({type}): {total} results")
    return results
