"""
SQLAlchemy Database Models

Catalog (categories, restaurants, menu items, offers), orders with their
append-only tracking log, drivers, admin accounts, sessions, UI settings
and notifications.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column, String, Float, DateTime, Text, Enum, Boolean, Integer, ForeignKey,
)

from food_delivery.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    """Order lifecycle states. Transitions live in food_delivery.workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    ON_WAY = "on_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    PREPAID = "prepaid"


class CreatorType(str, enum.Enum):
    """Who appended a tracking entry."""
    SYSTEM = "system"
    ADMIN = "admin"
    DRIVER = "driver"
    CUSTOMER = "customer"


class SubjectType(str, enum.Enum):
    """Principal kinds that can hold a session."""
    ADMIN = "admin"
    DRIVER = "driver"


# =============================================================================
# CATALOG
# =============================================================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    icon = Column(String(100), nullable=False)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Category {self.name}>"


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(Text, nullable=False)
    rating = Column(String(10), default="0.0")
    review_count = Column(Integer, default=0)
    delivery_time = Column(String(50), nullable=False)
    is_open = Column(Boolean, default=True, nullable=False)
    minimum_order = Column(Float, default=0.0)
    delivery_fee = Column(Float, default=0.0)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)

    # =========================================================================
    # OPENING HOURS
    # =========================================================================
    opening_time = Column(String(50), default="08:00")
    closing_time = Column(String(50), default="23:00")
    working_days = Column(String(50), default="0,1,2,3,4,5,6")
    is_temporarily_closed = Column(Boolean, default=False)
    temporary_close_reason = Column(Text, nullable=True)

    # =========================================================================
    # LOCATION & LISTING FLAGS
    # =========================================================================
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(Text, nullable=True)
    is_featured = Column(Boolean, default=False)
    is_new = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Restaurant {self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    original_price = Column(Float, nullable=True)
    image = Column(Text, nullable=False)
    category = Column(String(100), nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    is_special_offer = Column(Boolean, default=False, nullable=False)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=True, index=True)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class SpecialOffer(Base):
    """A percentage or fixed-amount discount with optional expiry."""
    __tablename__ = "special_offers"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(Text, nullable=False)
    discount_percent = Column(Integer, nullable=True)
    discount_amount = Column(Float, nullable=True)
    minimum_order = Column(Float, default=0.0)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<SpecialOffer {self.title}>"


# =============================================================================
# PEOPLE
# =============================================================================

class Driver(Base):
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    current_location = Column(String(200), nullable=True)
    earnings = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Driver {self.name} ({self.phone})>"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    username = Column(String(50), unique=True, nullable=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(Text, nullable=False)
    user_type = Column(String(50), default="admin", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AdminUser {self.email}>"


class AuthSession(Base):
    """Server-side session issued at login and removed at logout or expiry."""
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    token = Column(String(128), nullable=False, unique=True, index=True)
    subject_id = Column(String(36), nullable=False, index=True)
    subject_type = Column(
        Enum(SubjectType, native_enum=False, values_callable=_values, length=20),
        nullable=False,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Customer order.

    Status moves only through food_delivery.workflow.apply_transition,
    which also appends the matching OrderTracking row.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(50), nullable=False, unique=True, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_email = Column(String(100), nullable=True)

    # =========================================================================
    # DELIVERY ADDRESS
    # =========================================================================
    delivery_address = Column(Text, nullable=False)
    customer_location_lat = Column(Float, nullable=True)
    customer_location_lng = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(Text, nullable=False)  # JSON string of ordered items

    # =========================================================================
    # PRICING & PAYMENT
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, native_enum=False, values_callable=_values, length=20),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    payment_status = Column(String(20), default="pending", nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, native_enum=False, values_callable=_values, length=20),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    estimated_time = Column(String(50), nullable=True)

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=True, index=True)
    driver_id = Column(String(36), ForeignKey("drivers.id"), nullable=True, index=True)
    driver_earnings = Column(Float, default=0.0, nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Order {self.order_number} - {self.customer_name} - {self.status.value}>"


class OrderTracking(Base):
    """Append-only status history of an order."""
    __tablename__ = "order_tracking"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, native_enum=False, values_callable=_values, length=20),
        nullable=False,
    )
    message = Column(Text, nullable=False)
    created_by = Column(String(36), nullable=False)
    created_by_type = Column(
        Enum(CreatorType, native_enum=False, values_callable=_values, length=20),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<OrderTracking {self.order_id} -> {self.status.value}>"


# =============================================================================
# SETTINGS & NOTIFICATIONS
# =============================================================================

class UiSetting(Base):
    __tablename__ = "system_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=False)
    category = Column(String(100), default="general")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    recipient_type = Column(String(50), nullable=False, index=True)
    recipient_id = Column(String(100), nullable=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
