"""
Order Events

Side effects of placing an order and of status changes: notification rows
for the dashboards and the queued customer SMS/email. Runs after the
order transaction committed; a broker outage is logged and never fails
the request.
"""

import asyncio
import logging

from food_delivery.core.config import get_settings
from food_delivery.models import Order
from food_delivery.storage import Storage
from food_delivery.workflow import status_message

logger = logging.getLogger(__name__)
settings = get_settings()


def build_status_payload(order: Order) -> dict:
    """JSON-safe task payload for send_order_status_notification."""
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_email": order.customer_email,
        "status": order.status.value,
        "status_message": status_message(order.status),
        "total_amount": order.total_amount,
    }


async def queue_customer_notification(order: Order) -> bool:
    """Put the customer notification on the Celery queue."""
    if not settings.celery_enabled:
        logger.debug(f"Celery disabled, skipping notification for {order.order_number}")
        return False

    # Imported here so the API can start without the worker module loaded
    from food_delivery.tasks import send_order_status_notification

    try:
        await asyncio.to_thread(send_order_status_notification.delay, build_status_payload(order))
    except Exception as e:
        logger.error(f"Could not queue notification for {order.order_number}: {e}")
        return False
    return True


async def order_placed(storage: Storage, order: Order) -> None:
    """Tell the restaurant and the admins about a new order."""
    if order.restaurant_id:
        await storage.create_notification(
            type="new_order",
            title="New order",
            message=f"Order {order.order_number} for {order.total_amount:.2f} is waiting for confirmation",
            recipient_type="restaurant",
            recipient_id=order.restaurant_id,
            order_id=order.id,
        )
    await storage.create_notification(
        type="new_order",
        title="New order",
        message=f"Order {order.order_number} placed by {order.customer_name}",
        recipient_type="admin",
        order_id=order.id,
    )
    await queue_customer_notification(order)


async def order_status_changed(storage: Storage, order: Order) -> None:
    """Record the change for the customer and the driver, then queue outbound messages."""
    message = status_message(order.status)

    await storage.create_notification(
        type="order_status",
        title=f"Order {order.order_number}",
        message=message,
        recipient_type="customer",
        recipient_id=order.customer_phone,
        order_id=order.id,
    )

    if order.driver_id:
        await storage.create_notification(
            type="order_status",
            title=f"Order {order.order_number}",
            message=message,
            recipient_type="driver",
            recipient_id=order.driver_id,
            order_id=order.id,
        )

    await queue_customer_notification(order)


async def driver_assigned(storage: Storage, order: Order) -> None:
    await storage.create_notification(
        type="driver_assigned",
        title="New delivery",
        message=f"Order {order.order_number} to {order.delivery_address} was assigned to you",
        recipient_type="driver",
        recipient_id=order.driver_id,
        order_id=order.id,
    )
