"""
Mock Notification Service

Simulates SMS and Email sending for development.
No actual messages are sent - just logged.
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from food_delivery.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    OrderStatusMessage,
)
from food_delivery.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(self, failure_rate: float = 0.05, simulate_latency: bool = True):
        self.failure_rate = failure_rate
        self.simulate_latency = simulate_latency
        self.sent: list[NotificationResult] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.simulate_latency:
            await asyncio.sleep(random.uniform(0.1, 0.3))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Simulate sending SMS."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock SMS failed (simulated) to {to_phone}")
            return NotificationResult(
                success=False,
                error_message="Simulated SMS failure",
                provider="mock"
            )

        message_id = f"sms_mock_{uuid.uuid4().hex[:12]}"
        logger.info(f"Mock SMS sent to {to_phone}: {message[:50]}... (ID: {message_id})")

        result = NotificationResult(success=True, message_id=message_id, provider="mock")
        self.sent.append(result)
        return result

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Simulate sending email."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock email failed (simulated) to {to_email}")
            return NotificationResult(
                success=False,
                error_message="Simulated email failure",
                provider="mock"
            )

        message_id = f"email_mock_{uuid.uuid4().hex[:12]}"
        logger.info(f"Mock email sent to {to_email}: {subject} (ID: {message_id})")

        result = NotificationResult(success=True, message_id=message_id, provider="mock")
        self.sent.append(result)
        return result

    async def send_order_status_update(
        self,
        update: OrderStatusMessage,
    ) -> NotificationResult:
        message = update.sms_text(settings.app_name)

        sms_result = await self.send_sms(update.customer_phone, message)

        email_result = None
        if update.customer_email:
            email_result = await self.send_email(
                to_email=update.customer_email,
                subject=f"Order {update.order_number} - {update.status_message}",
                body_html=f"<h1>{update.status_message}</h1><p>{message}</p>",
                body_text=message
            )

        return NotificationResult(
            success=sms_result.success or bool(email_result and email_result.success),
            message_id=sms_result.message_id,
            error_message=sms_result.error_message,
            provider="mock"
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
