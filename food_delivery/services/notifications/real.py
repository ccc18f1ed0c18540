"""
Real Notification Service

Staging/production implementation using:
- Twilio for SMS
- SendGrid for Email
"""

import asyncio
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioException

from food_delivery.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    OrderStatusMessage,
)
from food_delivery.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class RealNotificationService(BaseNotificationService):
    """Notification service backed by Twilio and SendGrid."""

    def __init__(self):
        # Initialize Twilio
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token
            )
            self.twilio_from_number = settings.twilio_phone_number
        else:
            self.twilio_client = None
            logger.warning("Twilio credentials not configured")

        # Initialize SendGrid
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
            self.sendgrid_from_email = settings.sendgrid_from_email
        else:
            self.sendgrid_client = None
            logger.warning("SendGrid credentials not configured")

        logger.info("RealNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "real"

    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send SMS via Twilio."""
        if not self.twilio_client:
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio"
            )

        try:
            # The Twilio client is blocking
            result = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=self.twilio_from_number,
                to=to_phone
            )

            logger.info(f"SMS sent to {to_phone}: {result.sid}")

            return NotificationResult(
                success=True,
                message_id=result.sid,
                provider="twilio"
            )

        except TwilioException as e:
            logger.error(f"Twilio error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio"
            )

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send email via SendGrid."""
        if not self.sendgrid_client:
            return NotificationResult(
                success=False,
                error_message="SendGrid not configured",
                provider="sendgrid"
            )

        try:
            message = Mail(
                from_email=self.sendgrid_from_email,
                to_emails=to_email,
                subject=subject,
                html_content=body_html,
                plain_text_content=body_text
            )

            response = await asyncio.to_thread(self.sendgrid_client.send, message)

            logger.info(f"Email sent to {to_email}: {response.status_code}")

            return NotificationResult(
                success=response.status_code in [200, 201, 202],
                message_id=response.headers.get('X-Message-Id'),
                provider="sendgrid"
            )

        except Exception as e:
            logger.error(f"SendGrid error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="sendgrid"
            )

    async def send_order_status_update(
        self,
        update: OrderStatusMessage,
    ) -> NotificationResult:
        """Send the status change via SMS, and email when an address is known."""
        message = update.sms_text(settings.app_name)

        sms_result = await self.send_sms(update.customer_phone, message)

        email_result = None
        if update.customer_email:
            email_html = f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #ff4757;">{update.status_message}</h1>
                <p>Hi {update.customer_name},</p>
                <p>Your order <strong>{update.order_number}</strong> is now
                   <strong>{update.status.replace('_', ' ')}</strong>.</p>
                <div style="background: #f8f9fa; padding: 15px; border-radius: 8px; margin: 20px 0;">
                    <p>Total: <strong>{update.total_amount:.2f}</strong></p>
                </div>
                <p>Thank you for ordering with {settings.app_name}!</p>
            </div>
            """
            email_result = await self.send_email(
                to_email=update.customer_email,
                subject=f"Order {update.order_number} - {update.status_message}",
                body_html=email_html,
                body_text=message
            )

        return NotificationResult(
            success=sms_result.success or bool(email_result and email_result.success),
            message_id=sms_result.message_id,
            error_message=sms_result.error_message,
            provider="real"
        )

    async def health_check(self) -> bool:
        """At least one outbound channel is configured."""
        return self.twilio_client is not None or self.sendgrid_client is not None
