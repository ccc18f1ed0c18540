"""
Order Endpoints

Placing orders, reading them back, tracking, and the status changes an
admin or customer can make. Every status change goes through
food_delivery.workflow.apply_transition.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from food_delivery import events
from food_delivery.auth import get_storage, require_admin
from food_delivery.core.config import get_settings
from food_delivery.models import AdminUser, CreatorType, Order, OrderStatus
from food_delivery.routers.common import changes, parse_statuses, workflow_http_error
from food_delivery.schemas import (
    AssignDriverRequest,
    ErrorResponse,
    OrderCancelRequest,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    OrderSummary,
    OrderTrackResponse,
    OrderTrackingResponse,
    OrderUpdate,
)
from food_delivery.storage import Storage
from food_delivery.workflow import (
    TERMINAL_STATUSES,
    InvalidTransitionError,
    WorkflowError,
    apply_transition,
    is_allowed,
    place_order,
    progress_percent,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/orders", tags=["Orders"])


# =============================================================================
# PLACING ORDERS
# =============================================================================

@router.post(
    "",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}},
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    storage: Storage = Depends(get_storage),
) -> OrderCreateResponse:
    """
    Place a new order.

    Totals are computed here from the submitted lines. The delivery fee
    comes from the request, else the restaurant, else the configured
    default. The order and its first tracking entry are written together.
    """
    logger.info(f"Creating order for: {order_data.customer_name}")

    delivery_fee = order_data.delivery_fee
    if order_data.restaurant_id:
        restaurant = await storage.get_restaurant(order_data.restaurant_id)
        if restaurant is None or not restaurant.is_active:
            raise HTTPException(status_code=404, detail="Restaurant not found")
        if delivery_fee is None:
            delivery_fee = restaurant.delivery_fee
    if delivery_fee is None:
        delivery_fee = settings.default_delivery_fee

    order, _ = await place_order(
        storage.session,
        customer_name=order_data.customer_name,
        customer_phone=order_data.customer_phone,
        customer_email=order_data.customer_email,
        delivery_address=order_data.delivery_address,
        latitude=order_data.customer_location_lat,
        longitude=order_data.customer_location_lng,
        notes=order_data.notes,
        items=order_data.items,
        delivery_fee=delivery_fee,
        payment_method=order_data.payment_method,
        restaurant_id=order_data.restaurant_id,
        estimated_time=settings.estimated_delivery_time,
    )
    await storage.commit()

    logger.info(f"Order {order.order_number} created successfully")

    await events.order_placed(storage, order)

    return OrderCreateResponse(
        success=True,
        order=OrderSummary(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            estimated_time=order.estimated_time,
            total=order.total_amount,
        ),
    )


# =============================================================================
# READING ORDERS
# =============================================================================

@router.get("", response_model=List[OrderResponse], summary="List Orders")
async def list_orders(
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    driver_id: Optional[str] = Query(None, alias="driverId"),
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """All orders, newest first, optionally filtered."""
    return await storage.get_orders(
        statuses=parse_statuses(status),
        driver_id=driver_id,
        restaurant_id=restaurant_id,
        limit=limit,
    )


@router.get("/customer/{phone}", response_model=List[OrderResponse])
async def list_customer_orders(phone: str, storage: Storage = Depends(get_storage)):
    return await storage.get_orders_by_phone(phone)


@router.get("/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(order_id: str, storage: Storage = Depends(get_storage)):
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order


@router.get("/{order_id}/track", response_model=OrderTrackResponse, responses={404: {"model": ErrorResponse}})
async def track_order(order_id: str, storage: Storage = Depends(get_storage)) -> OrderTrackResponse:
    """Order, its tracking history newest first, and the progress value."""
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    tracking = await storage.get_order_tracking(order_id)

    return OrderTrackResponse(
        order=OrderResponse.model_validate(order),
        tracking=[OrderTrackingResponse.model_validate(entry) for entry in tracking],
        progress=progress_percent(order.status),
    )


# =============================================================================
# CHANGING ORDERS
# =============================================================================

async def _assign(storage: Storage, order: Order, driver_id: str, admin: AdminUser) -> Order:
    """Hand an unassigned, still open order to a driver; 409 if it already has one."""
    driver = await storage.get_driver(driver_id)
    if driver is None or not driver.is_active:
        raise HTTPException(status_code=404, detail="Driver not found")

    open_statuses = [s for s in OrderStatus if s not in TERMINAL_STATUSES]
    assigned = await storage.assign_driver(
        order.id,
        driver.id,
        statuses=open_statuses,
        driver_earnings=settings.driver_fee_per_order,
    )
    if not assigned:
        raise HTTPException(status_code=409, detail="Order already has a driver or is closed")

    order = await storage.refresh(order)
    logger.info(f"Order {order.order_number} assigned to {driver.name} by {admin.email}")

    await events.driver_assigned(storage, order)
    return order


@router.put("/{order_id}", response_model=OrderResponse, responses={409: {"model": ErrorResponse}})
async def update_order(
    order_id: str,
    data: OrderUpdate,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """
    Edit an order. Plain fields and a status change are written together;
    the status must be reachable from the current one. A new driverId goes
    through the same guarded assignment as /assign-driver.
    """
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    fields = changes(data, "status", "message", "driver_id")
    changing_status = data.status is not None and data.status != order.status
    if changing_status and not is_allowed(order.status, data.status):
        raise workflow_http_error(InvalidTransitionError(order.status, data.status))

    if data.driver_id and data.driver_id != order.driver_id:
        order = await _assign(storage, order, data.driver_id, admin)

    if not changing_status:
        if fields:
            order = await storage.update_order(order_id, fields)
        return order

    try:
        order = await apply_transition(
            storage.session,
            order_id,
            data.status,
            actor_id=admin.id,
            actor_type=CreatorType.ADMIN,
            message=data.message,
            extra_values=fields,
        )
    except WorkflowError as e:
        raise workflow_http_error(e)

    await events.order_status_changed(storage, order)
    return order


@router.patch("/{order_id}/cancel", response_model=OrderResponse, responses={409: {"model": ErrorResponse}})
async def cancel_order(
    order_id: str,
    data: Optional[OrderCancelRequest] = None,
    storage: Storage = Depends(get_storage),
):
    """Cancel an order that has not been confirmed yet."""
    reason = data.reason if data else None
    message = f"Order cancelled: {reason}" if reason else None

    try:
        order = await apply_transition(
            storage.session,
            order_id,
            OrderStatus.CANCELLED,
            actor_id="customer",
            actor_type=CreatorType.CUSTOMER,
            message=message,
        )
    except WorkflowError as e:
        raise workflow_http_error(e)

    logger.info(f"Order {order.order_number} cancelled by customer")
    await events.order_status_changed(storage, order)
    return order


@router.put(
    "/{order_id}/assign-driver",
    response_model=OrderResponse,
    responses={409: {"model": ErrorResponse}},
)
async def assign_driver(
    order_id: str,
    data: AssignDriverRequest,
    admin: AdminUser = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Give an unassigned, still open order to a driver."""
    order = await storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return await _assign(storage, order, data.driver_id, admin)
