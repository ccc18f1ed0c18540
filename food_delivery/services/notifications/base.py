"""
Notification Service Abstract Base Class

Defines the interface for sending SMS and email to customers when their
order changes status. Mock (development) and Real (staging/production)
implementations share it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class OrderStatusMessage:
    """Everything needed to tell a customer about a status change."""
    order_id: str
    order_number: str
    customer_name: str
    customer_phone: str
    status: str
    status_message: str
    total_amount: float
    customer_email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "OrderStatusMessage":
        return cls(
            order_id=payload["order_id"],
            order_number=payload["order_number"],
            customer_name=payload["customer_name"],
            customer_phone=payload["customer_phone"],
            status=payload["status"],
            status_message=payload["status_message"],
            total_amount=float(payload.get("total_amount") or 0.0),
            customer_email=payload.get("customer_email"),
        )

    def sms_text(self, app_name: str) -> str:
        return (
            f"Hi {self.customer_name}! Order {self.order_number}: "
            f"{self.status_message}.\n"
            f"Total: {self.total_amount:.2f}\n"
            f"- {app_name}"
        )


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def send_order_status_update(
        self,
        update: OrderStatusMessage,
    ) -> NotificationResult:
        """Tell the customer their order moved to a new status."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
