"""
Driver Console Endpoints

Everything here acts on the driver behind the session token; a driver id
in a request body is never trusted.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from food_delivery import events
from food_delivery.auth import get_storage, require_driver
from food_delivery.core.config import get_settings
from food_delivery.models import CreatorType, Driver, OrderStatus, utcnow
from food_delivery.routers.common import camelize, dump, parse_statuses, workflow_http_error
from food_delivery.schemas import (
    AvailabilityUpdate,
    DriverResponse,
    ErrorResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from food_delivery.storage import Storage
from food_delivery.workflow import WorkflowError, apply_transition

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/driver", tags=["Driver"])

ACCEPTABLE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.PREPARING)
ACTIVE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.ON_WAY)

# Statuses a driver may move their own order into
DRIVER_TARGETS = (OrderStatus.ON_WAY, OrderStatus.DELIVERED)

STATS_PERIODS = ("today", "week", "month")


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """Start of the reporting window for /stats."""
    now = now or utcnow()
    if period == "week":
        return _start_of_day(now) - timedelta(days=6)
    if period == "month":
        return _start_of_day(now).replace(day=1)
    return _start_of_day(now)


async def _available_for(driver: Driver, storage: Storage) -> list:
    if not driver.is_available:
        return []
    return await storage.get_available_orders(limit=10)


# =============================================================================
# OVERVIEW
# =============================================================================

@router.get("/dashboard")
async def dashboard(
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
) -> dict[str, Any]:
    overall = await storage.get_driver_stats(driver.id)
    today = await storage.get_driver_stats(driver.id, start=period_start("today"))

    current = await storage.get_orders(statuses=ACTIVE_STATUSES, driver_id=driver.id)
    available = await _available_for(driver, storage)

    return {
        "driver": dump(DriverResponse.model_validate(driver)),
        "stats": {
            "todayOrders": today["total_orders"],
            "completedToday": today["completed_orders"],
            "todayEarnings": today["total_earnings"],
            "totalOrders": overall["total_orders"],
            "totalEarnings": overall["total_earnings"],
            "balance": round(driver.earnings, 2),
        },
        "availableOrders": [dump(OrderResponse.model_validate(o)) for o in available],
        "currentOrders": [dump(OrderResponse.model_validate(o)) for o in current],
    }


@router.get("/orders", response_model=List[OrderResponse])
async def my_orders(
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_orders(statuses=parse_statuses(status), driver_id=driver.id)


@router.get("/available-orders", response_model=List[OrderResponse])
async def available_orders(
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
):
    """Confirmed orders nobody has taken; empty while the driver is unavailable."""
    return await _available_for(driver, storage)


@router.get("/stats")
async def stats(
    period: str = Query("today"),
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
) -> dict[str, Any]:
    if period not in STATS_PERIODS:
        raise HTTPException(status_code=400, detail=f"Invalid period. Options: {list(STATS_PERIODS)}")

    start = period_start(period)
    result = await storage.get_driver_stats(driver.id, start=start)

    return {
        "period": period,
        "since": start.isoformat(),
        **camelize(result),
        "balance": round(driver.earnings, 2),
    }


# =============================================================================
# ORDER ACTIONS
# =============================================================================

@router.post(
    "/orders/{order_id}/accept",
    response_model=OrderResponse,
    responses={409: {"model": ErrorResponse}},
)
async def accept_order(
    order_id: str,
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
):
    """Take a confirmed or preparing order that has no driver yet."""
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    if order.driver_id == driver.id:
        return order

    accepted = await storage.assign_driver(
        order_id,
        driver.id,
        statuses=ACCEPTABLE_STATUSES,
        driver_earnings=settings.driver_fee_per_order,
    )
    if not accepted:
        raise HTTPException(status_code=409, detail="Order is no longer available")

    await storage.update_driver(driver.id, {"is_available": False})
    order = await storage.refresh(order)

    logger.info(f"Driver {driver.name} accepted order {order.order_number}")
    await events.driver_assigned(storage, order)
    return order


@router.put(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
):
    """
    Move one of the driver's own orders out for delivery or to delivered.

    Delivering pays the order's driver earnings out to the driver and
    makes them available again.
    """
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    if order.driver_id != driver.id:
        raise HTTPException(status_code=403, detail="Order is not assigned to you")
    if data.status not in DRIVER_TARGETS:
        raise HTTPException(
            status_code=403,
            detail=f"Drivers may only set: {[s.value for s in DRIVER_TARGETS]}"
        )

    try:
        order = await apply_transition(
            storage.session,
            order_id,
            data.status,
            actor_id=driver.id,
            actor_type=CreatorType.DRIVER,
            message=data.message,
        )
    except WorkflowError as e:
        raise workflow_http_error(e)

    await events.order_status_changed(storage, order)
    return order


@router.put("/availability", response_model=DriverResponse)
async def set_availability(
    data: AvailabilityUpdate,
    driver: Driver = Depends(require_driver),
    storage: Storage = Depends(get_storage),
):
    driver = await storage.update_driver(driver.id, {"is_available": data.is_available})
    logger.info(f"Driver {driver.name} is now {'available' if driver.is_available else 'unavailable'}")
    return driver
