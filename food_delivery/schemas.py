"""
Pydantic Schemas for Request/Response Validation

Field names are snake_case in Python and camelCase on the wire
(``customerName``, ``orderNumber``, ...). Both spellings are accepted
on input.
"""

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from food_delivery.models import CreatorType, OrderStatus, PaymentMethod
from food_delivery import workflow


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ORDER REQUESTS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line of an order."""
    name: str = Field(..., min_length=1, max_length=200, examples=["Margherita"])
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    price: float = Field(..., ge=0, examples=[20.0])


class OrderCreate(CamelModel):
    """Request schema for placing a new order."""

    # Customer Info
    customer_name: str = Field(..., min_length=1, max_length=100, examples=["Sara Ali"])
    customer_phone: str = Field(..., min_length=3, max_length=20, examples=["0551234567"])
    customer_email: Optional[str] = Field(None, max_length=100)

    # Delivery
    delivery_address: str = Field(..., min_length=1, examples=["12 Palm Street"])
    customer_location_lat: Optional[float] = Field(None, ge=-90, le=90)
    customer_location_lng: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = Field(None, max_length=500)

    # Items & payment
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH
    delivery_fee: Optional[float] = Field(None, ge=0)
    restaurant_id: Optional[str] = None

    @field_validator("customer_email")
    @classmethod
    def blank_email_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class OrderUpdate(CamelModel):
    """Admin edit of an order. A status change runs through the workflow."""
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, min_length=3, max_length=20)
    customer_email: Optional[str] = None
    delivery_address: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None
    estimated_time: Optional[str] = None
    payment_status: Optional[str] = None
    driver_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    message: Optional[str] = None


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    message: Optional[str] = None


class OrderCancelRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignDriverRequest(CamelModel):
    driver_id: str


# =============================================================================
# ORDER RESPONSES
# =============================================================================

class OrderItemResponse(CamelModel):
    name: str
    quantity: int
    price: float


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: str
    order_number: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    delivery_address: str
    customer_location_lat: Optional[float] = None
    customer_location_lng: Optional[float] = None
    notes: Optional[str] = None
    items: List[OrderItemResponse]
    subtotal: float
    delivery_fee: float
    total_amount: float
    payment_method: PaymentMethod
    payment_status: str
    status: OrderStatus
    estimated_time: Optional[str] = None
    restaurant_id: Optional[str] = None
    driver_id: Optional[str] = None
    driver_earnings: float
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v

    @computed_field(alias="nextStatus")
    @property
    def next_status(self) -> Optional[OrderStatus]:
        return workflow.next_status(self.status)

    @computed_field(alias="nextStatusLabel")
    @property
    def next_status_label(self) -> Optional[str]:
        return workflow.next_status_label(self.status)

    @computed_field(alias="canCancel")
    @property
    def can_cancel(self) -> bool:
        return workflow.can_cancel(self.status)


class OrderSummary(CamelModel):
    id: str
    order_number: str
    status: OrderStatus
    estimated_time: Optional[str] = None
    total: float


class OrderCreateResponse(CamelModel):
    """Response after successfully placing an order."""
    success: bool = True
    order: OrderSummary


class OrderTrackingResponse(CamelModel):
    id: str
    order_id: str
    status: OrderStatus
    message: str
    created_by: str
    created_by_type: CreatorType
    created_at: datetime


class OrderTrackResponse(CamelModel):
    order: OrderResponse
    tracking: List[OrderTrackingResponse]
    progress: int


class OrderPageResponse(CamelModel):
    orders: List[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int


# =============================================================================
# CATALOG
# =============================================================================

class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=100)
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    icon: Optional[str] = Field(None, min_length=1, max_length=100)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(CamelModel):
    id: str
    name: str
    icon: str
    sort_order: Optional[int] = 0
    is_active: bool


class RestaurantCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    image: str = Field(..., min_length=1)
    rating: str = "0.0"
    review_count: int = 0
    delivery_time: str = Field(..., min_length=1, examples=["30-45 min"])
    is_open: bool = True
    minimum_order: float = Field(0.0, ge=0)
    delivery_fee: float = Field(0.0, ge=0)
    category_id: Optional[str] = None
    opening_time: str = "08:00"
    closing_time: str = "23:00"
    working_days: str = "0,1,2,3,4,5,6"
    is_temporarily_closed: bool = False
    temporary_close_reason: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    is_featured: bool = False
    is_new: bool = False
    is_active: bool = True


class RestaurantUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    image: Optional[str] = None
    rating: Optional[str] = None
    review_count: Optional[int] = None
    delivery_time: Optional[str] = None
    is_open: Optional[bool] = None
    minimum_order: Optional[float] = Field(None, ge=0)
    delivery_fee: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    working_days: Optional[str] = None
    is_temporarily_closed: Optional[bool] = None
    temporary_close_reason: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    is_featured: Optional[bool] = None
    is_new: Optional[bool] = None
    is_active: Optional[bool] = None


class RestaurantResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    image: str
    rating: Optional[str] = None
    review_count: Optional[int] = 0
    delivery_time: str
    is_open: bool
    minimum_order: Optional[float] = 0.0
    delivery_fee: Optional[float] = 0.0
    category_id: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    working_days: Optional[str] = None
    is_temporarily_closed: Optional[bool] = False
    temporary_close_reason: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    is_featured: Optional[bool] = False
    is_new: Optional[bool] = False
    is_active: bool
    distance: Optional[float] = None


class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    image: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    is_available: bool = True
    is_special_offer: bool = False
    restaurant_id: Optional[str] = None


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    is_available: Optional[bool] = None
    is_special_offer: Optional[bool] = None
    restaurant_id: Optional[str] = None


class MenuItemResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    image: str
    category: str
    is_available: bool
    is_special_offer: bool
    restaurant_id: Optional[str] = None


# =============================================================================
# SPECIAL OFFERS
# =============================================================================

class SpecialOfferCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    discount_percent: Optional[int] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    minimum_order: float = Field(0.0, ge=0)
    valid_until: Optional[datetime] = None
    is_active: bool = True


class SpecialOfferUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    image: Optional[str] = None
    discount_percent: Optional[int] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    minimum_order: Optional[float] = Field(None, ge=0)
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class SpecialOfferResponse(CamelModel):
    id: str
    title: str
    description: str
    image: str
    discount_percent: Optional[int] = None
    discount_amount: Optional[float] = None
    minimum_order: Optional[float] = 0.0
    valid_until: Optional[datetime] = None
    is_active: bool
    created_at: datetime


# =============================================================================
# UI SETTINGS & NOTIFICATIONS
# =============================================================================

class UiSettingUpdate(CamelModel):
    value: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None


class UiSettingResponse(CamelModel):
    key: str
    value: str
    category: Optional[str] = None
    description: Optional[str] = None
    is_active: bool


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    recipient_type: str
    recipient_id: Optional[str] = None
    order_id: Optional[str] = None
    is_read: bool
    created_at: datetime


# =============================================================================
# PEOPLE
# =============================================================================

class DriverCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=20)
    password: str = Field(..., min_length=6)
    is_available: bool = True
    is_active: bool = True
    current_location: Optional[str] = None


class DriverUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=3, max_length=20)
    password: Optional[str] = Field(None, min_length=6)
    is_available: Optional[bool] = None
    is_active: Optional[bool] = None
    current_location: Optional[str] = None


class DriverResponse(CamelModel):
    """Driver as exposed over the API; the password hash never leaves."""
    id: str
    name: str
    phone: str
    is_available: bool
    is_active: bool
    current_location: Optional[str] = None
    earnings: float
    created_at: datetime


class AvailabilityUpdate(CamelModel):
    is_available: bool


class AdminResponse(CamelModel):
    id: str
    name: str
    username: Optional[str] = None
    email: str
    phone: Optional[str] = None
    user_type: str
    is_active: bool


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AdminUserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    username: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)


class AdminUserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None


class BusinessHoursUpdate(CamelModel):
    """Opening hours as HH:MM and the store switch, open or closed."""
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    store_status: Optional[str] = None


# =============================================================================
# AUTHENTICATION
# =============================================================================

class AdminLoginRequest(CamelModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class DriverLoginRequest(CamelModel):
    phone: Optional[str] = None
    password: Optional[str] = None


class AdminLoginResponse(CamelModel):
    success: bool = True
    token: str
    user: AdminResponse


class DriverLoginResponse(CamelModel):
    success: bool = True
    token: str
    user: DriverResponse


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ErrorResponse(CamelModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    timestamp: datetime
