"""Booking Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CartPlan(BaseModel):
    """Subscription plan chosen for a cart line."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="Subscription plan ID")


class CartItem(BaseModel):
    """A single cart line as sent by the checkout page.

    Accepts the checkout's camelCase field names as well as snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    product_id: UUID = Field(alias="id", description="Product UUID")
    quantity: int = Field(default=1, description="Quantity ordered")
    plan: CartPlan | None = Field(default=None, description="Subscription plan, required for subscription products")
    total_price: Decimal = Field(alias="totalPrice", description="Line total charged at checkout")
    start_date: date | None = Field(default=None, alias="startDate", description="Requested first delivery date")
    frequency: str | list[str] | None = Field(
        default=None,
        description="Delivery weekdays: 'mon-fri', 'mon-sat', 'mon-sun' or a list of day keys",
    )


class Cart(BaseModel):
    """Cart split by meal."""

    lunch: list[CartItem] = Field(default_factory=list, description="Lunch items")
    dinner: list[CartItem] = Field(default_factory=list, description="Dinner items")

    @property
    def is_empty(self) -> bool:
        return not self.lunch and not self.dinner


class BookingCreate(BaseModel):
    """Schema for creating a booking via POST /bookings."""

    model_config = ConfigDict(populate_by_name=True)

    cart: Cart = Field(description="Cart contents")
    cart_total: Decimal = Field(alias="cartTotal", description="Cart total shown at checkout")
    address_id: UUID = Field(alias="addressId", description="Delivery address UUID")
    payment_method: str = Field(alias="paymentMethod", description="'cod' or 'online'")
    notes: str | None = Field(default=None, max_length=1000, description="Order notes")


class BookingCreatedResponse(BaseModel):
    """Schema for booking creation response."""

    booking_id: UUID = Field(description="Created booking UUID")
    payment_method: str = Field(description="Payment method")
    payment_status: str = Field(description="Payment status after creation")
    payment_session_id: str | None = Field(default=None, description="Gateway session for online payments")
    cashfree_order_id: str | None = Field(default=None, description="Gateway order ID for online payments")
    deliveries_created: int = Field(default=0, description="Deliveries scheduled by this request")
    message: str = Field(description="Status message")


class DeliveryResponse(BaseModel):
    """Schema for a delivery row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Delivery unique identifier")
    booking_item_id: UUID = Field(description="Owning booking item")
    delivery_date: date = Field(description="Delivery date")
    delivery_slot: str = Field(description="Delivery slot")
    status: str = Field(description="Delivery status")
    meal_type: str | None = Field(default=None, description="Meal type")
    delivery_address: dict[str, Any] = Field(description="Address snapshot taken at fulfilment")
    assigned_to: UUID | None = Field(default=None, description="Assigned staff user")
    driver_notes: str | None = Field(default=None, description="Driver notes")
    delivered_at: datetime | None = Field(default=None, description="Delivery timestamp")


class BookingItemResponse(BaseModel):
    """Schema for a booking item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Booking item unique identifier")
    product_id: UUID = Field(description="Product UUID")
    product_name: str | None = Field(default=None, description="Product name")
    subscription_plan_id: int | None = Field(default=None, description="Subscription plan ID")
    plan_name: str | None = Field(default=None, description="Subscription plan name")
    quantity: int = Field(description="Quantity")
    price_per_unit: Decimal = Field(description="Unit price")
    total_price: Decimal = Field(description="Line total")
    meal_type: str = Field(description="Meal type")
    start_date: date | None = Field(default=None, description="Requested first delivery date")
    delivery_days: str | None = Field(default=None, description="Delivery weekdays")


class BookingSummary(BaseModel):
    """Schema for a booking in list responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Booking unique identifier")
    address_id: UUID = Field(description="Address UUID")
    total_amount: Decimal = Field(description="Total amount")
    payment_method: str = Field(description="Payment method")
    payment_status: str = Field(description="Payment status")
    cashfree_order_id: str | None = Field(default=None, description="Gateway order ID")
    notes: str | None = Field(default=None, description="Order notes")
    created_at: datetime = Field(description="Creation timestamp")


class BookingResponse(BookingSummary):
    """Schema for a booking with its items and deliveries."""

    items: list[BookingItemResponse] = Field(default_factory=list, description="Booking items")
    deliveries: list[DeliveryResponse] = Field(default_factory=list, description="Deliveries, ascending by date")


class BookingListResponse(BaseModel):
    """Schema for booking list API responses."""

    items: list[BookingSummary] = Field(description="Bookings, newest first")


class StaffBookingSummary(BookingSummary):
    """Booking row on the staff order list, with the customer's contact."""

    customer_name: str = Field(description="Customer name")
    customer_email: str = Field(description="Customer email")


class Pagination(BaseModel):
    current_page: int = Field(description="1-based page number")
    total_pages: int = Field(description="Number of pages for the filter")
    total_items: int = Field(description="Bookings matching the filter")
    items_per_page: int = Field(description="Page size")


class StaffBookingListResponse(BaseModel):
    """Page of bookings across all customers, newest first."""

    data: list[StaffBookingSummary] = Field(description="Bookings on this page")
    pagination: Pagination
