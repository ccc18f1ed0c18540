"""
Celery Tasks
Outbound customer notifications, processed out of band by the worker.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone

from food_delivery.celery_worker import celery_app
from food_delivery.services.notifications import (
    OrderStatusMessage,
    get_notification_service,
)

logger = logging.getLogger(__name__)


class NotificationDeliveryError(Exception):
    """Every channel failed; raised so Celery retries the task."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationDeliveryError,),
    retry_backoff=True
)
def send_order_status_notification(self, payload: dict) -> dict:
    """
    Send the customer an SMS (and email when known) about a status change.

    Args:
        payload: Serialized OrderStatusMessage fields

    Returns:
        dict: Result of the delivery attempt
    """
    task_id = self.request.id
    update = OrderStatusMessage.from_payload(payload)

    logger.info(f"📨 Task {task_id}: Notifying {update.order_number} ({update.status})")
    start_time = time.time()

    service = get_notification_service()
    result = asyncio.run(service.send_order_status_update(update))

    elapsed = round(time.time() - start_time, 3)

    if not result.success:
        logger.warning(
            f"⚠️ Task {task_id}: {update.order_number} not delivered after {elapsed}s - "
            f"{result.error_message}"
        )
        raise NotificationDeliveryError(result.error_message or "Notification failed")

    logger.info(f"✅ Task {task_id}: {update.order_number} notified in {elapsed}s")

    return {
        'success': True,
        'order_id': update.order_id,
        'status': update.status,
        'message_id': result.message_id,
        'provider': result.provider,
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
