"""
Order Lifecycle Workflow

Single source of truth for how an order moves through its states:

    pending → confirmed → preparing → on_way → delivered
       │
       └────→ cancelled

Every status change goes through apply_transition(), which validates the
move against the transition table, updates the order only if nobody else
changed it in the meantime, and appends the tracking entry in the same
transaction.
"""

import json
import logging
import secrets
import time
from typing import Any, Optional, Union

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.models import (
    CreatorType,
    Driver,
    Order,
    OrderStatus,
    OrderTracking,
    PaymentMethod,
    utcnow,
)

logger = logging.getLogger(__name__)

StatusLike = Union[OrderStatus, str, None]


# =============================================================================
# TRANSITION TABLES
# =============================================================================

FORWARD_TRANSITIONS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.ON_WAY,
    OrderStatus.ON_WAY: OrderStatus.DELIVERED,
}

CANCELLABLE_FROM = frozenset({OrderStatus.PENDING})

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

NEXT_STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Confirm order",
    OrderStatus.CONFIRMED: "Start preparing",
    OrderStatus.PREPARING: "Send out for delivery",
    OrderStatus.ON_WAY: "Mark delivered",
}

STATUS_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Order received and awaiting review",
    OrderStatus.CONFIRMED: "Order confirmed by the restaurant",
    OrderStatus.PREPARING: "Your order is being prepared",
    OrderStatus.ON_WAY: "Your order is on the way",
    OrderStatus.DELIVERED: "Order delivered successfully",
    OrderStatus.CANCELLED: "Order cancelled",
}

PROGRESS_PERCENT: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 25,
    OrderStatus.CONFIRMED: 40,
    OrderStatus.PREPARING: 60,
    OrderStatus.ON_WAY: 80,
    OrderStatus.DELIVERED: 100,
    OrderStatus.CANCELLED: 0,
}


# =============================================================================
# ERRORS
# =============================================================================

class WorkflowError(Exception):
    """Base class for order lifecycle failures."""


class OrderNotFoundError(WorkflowError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidTransitionError(WorkflowError):
    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move order from '{current.value}' to '{target.value}'"
        )


class ConcurrentUpdateError(WorkflowError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} was modified by another request")


# =============================================================================
# PURE HELPERS
# =============================================================================

def coerce_status(value: StatusLike) -> Optional[OrderStatus]:
    """
    Normalize a stored or submitted status value.

    A missing status counts as pending; an unrecognized string
    yields None.
    """
    if value is None:
        return OrderStatus.PENDING
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def next_status(current: StatusLike) -> Optional[OrderStatus]:
    """Return the single forward status after ``current``, if any."""
    status = coerce_status(current)
    if status is None:
        return None
    return FORWARD_TRANSITIONS.get(status)


def next_status_label(current: StatusLike) -> Optional[str]:
    """Label of the button that performs the forward transition."""
    status = coerce_status(current)
    if status is None:
        return None
    return NEXT_STATUS_LABELS.get(status)


def can_cancel(current: StatusLike) -> bool:
    return coerce_status(current) in CANCELLABLE_FROM


def is_allowed(current: StatusLike, target: StatusLike) -> bool:
    """Whether ``target`` is reachable from ``current`` in one step."""
    target_status = coerce_status(target)
    if target_status is None:
        return False
    if target_status == OrderStatus.CANCELLED:
        return can_cancel(current)
    return next_status(current) == target_status


def progress_percent(status: StatusLike) -> int:
    """Progress bar value shown while tracking an order."""
    resolved = coerce_status(status)
    if resolved is None:
        return 0
    return PROGRESS_PERCENT[resolved]


def status_message(status: OrderStatus) -> str:
    return STATUS_MESSAGES.get(status, "Order status updated")


# =============================================================================
# ORDER CREATION
# =============================================================================

def calculate_order_totals(items: list, delivery_fee: float) -> dict[str, float]:
    """Calculate order subtotal and total from line items."""
    subtotal = round(sum(item.price * item.quantity for item in items), 2)
    delivery_fee = round(delivery_fee, 2)

    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "total_amount": round(subtotal + delivery_fee, 2),
    }


def generate_order_number() -> str:
    """Human-facing order reference, e.g. ORD-1718000000000-3F9A."""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


async def place_order(
    session: AsyncSession,
    *,
    customer_name: str,
    customer_phone: str,
    delivery_address: str,
    items: list,
    delivery_fee: float,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    customer_email: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    notes: Optional[str] = None,
    restaurant_id: Optional[str] = None,
    estimated_time: Optional[str] = None,
) -> tuple[Order, OrderTracking]:
    """
    Insert a new pending order together with its first tracking entry.

    Both rows are flushed in the caller's transaction; the caller commits.
    """
    totals = calculate_order_totals(items, delivery_fee)

    items_json = json.dumps([
        {"name": item.name, "quantity": item.quantity, "price": item.price}
        for item in items
    ])

    order = Order(
        order_number=generate_order_number(),
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_email=customer_email,
        delivery_address=delivery_address,
        customer_location_lat=latitude,
        customer_location_lng=longitude,
        notes=notes,
        items=items_json,
        subtotal=totals["subtotal"],
        delivery_fee=totals["delivery_fee"],
        total_amount=totals["total_amount"],
        payment_method=payment_method,
        payment_status="pending",
        status=OrderStatus.PENDING,
        estimated_time=estimated_time,
        restaurant_id=restaurant_id,
    )
    session.add(order)
    await session.flush()

    tracking = OrderTracking(
        order_id=order.id,
        status=OrderStatus.PENDING,
        message=status_message(OrderStatus.PENDING),
        created_by="system",
        created_by_type=CreatorType.SYSTEM,
    )
    session.add(tracking)
    await session.flush()

    logger.info(f"Order {order.order_number} placed ({totals['total_amount']:.2f})")
    return order, tracking


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

async def _credit_driver(session: AsyncSession, driver_id: str, amount: float) -> None:
    """Pay a delivery out to its driver and free them for new orders."""
    await session.execute(
        update(Driver)
        .where(Driver.id == driver_id)
        .values(earnings=Driver.earnings + amount, is_available=True)
        .execution_options(synchronize_session=False)
    )
    logger.info(f"Driver {driver_id} credited {amount:.2f}")


async def apply_transition(
    session: AsyncSession,
    order_id: str,
    target: Union[OrderStatus, str],
    *,
    actor_id: str = "system",
    actor_type: CreatorType = CreatorType.SYSTEM,
    message: Optional[str] = None,
    extra_values: Optional[dict[str, Any]] = None,
) -> Order:
    """
    Move an order to ``target`` and record the change.

    The status write is conditional on the status read here, so two
    concurrent transitions of the same order cannot both succeed. Moving
    to the status the order already has is a no-op.

    Args:
        session: Open database session
        order_id: Order to transition
        target: Requested status
        actor_id: Identifier of whoever requested the change
        actor_type: Kind of actor, stored on the tracking entry
        message: Tracking message (defaults to the per-status text)
        extra_values: Additional order columns written with the status

    Raises:
        OrderNotFoundError: No order with that id
        InvalidTransitionError: Target not reachable from current status
        ConcurrentUpdateError: Order changed since it was read
    """
    target_status = OrderStatus(target)

    order = await session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    current = order.status
    if current == target_status:
        logger.debug(f"Order {order.order_number} already {current.value}")
        return order

    if not is_allowed(current, target_status):
        raise InvalidTransitionError(current, target_status)

    values = {"status": target_status, "updated_at": utcnow()}
    if extra_values:
        values.update(extra_values)

    result = await session.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == current)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise ConcurrentUpdateError(order_id)

    session.add(OrderTracking(
        order_id=order_id,
        status=target_status,
        message=message or status_message(target_status),
        created_by=actor_id,
        created_by_type=actor_type,
    ))

    if target_status == OrderStatus.DELIVERED and order.driver_id:
        await _credit_driver(session, order.driver_id, order.driver_earnings or 0.0)

    await session.commit()

    await session.refresh(order)

    logger.info(
        f"Order {order.order_number}: {current.value} → {target_status.value} "
        f"by {actor_type.value}:{actor_id}"
    )
    return order
