"""User dashboard Pydantic schemas."""

from datetime import date
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

CacheSource = Literal["cache", "database"]


class NextDelivery(BaseModel):
    """The user's next scheduled meal."""

    model_config = ConfigDict(from_attributes=True)

    delivery_id: UUID = Field(description="Delivery UUID")
    delivery_date: date = Field(description="Delivery date")
    delivery_slot: str = Field(description="Delivery slot")
    status: str = Field(description="Delivery status")
    meal_type: str | None = Field(default=None, description="Meal type")
    product_name: str = Field(description="Product name")


class NextDeliveryResponse(BaseModel):
    """Response for GET /user-dashboard/next-delivery."""

    data: NextDelivery | None = Field(default=None, description="Next delivery, or null when none is scheduled")
    source: CacheSource = Field(description="Whether the view came from the cache or the database")


class SubscriptionSummary(BaseModel):
    """One subscription item with its remaining meal balance."""

    model_config = ConfigDict(from_attributes=True)

    booking_item_id: UUID = Field(description="Booking item UUID")
    booking_id: UUID = Field(description="Booking UUID")
    product_name: str = Field(description="Product name")
    plan_name: str | None = Field(default=None, description="Subscription plan name")
    meal_type: str | None = Field(default=None, description="Meal type")
    delivery_days: str | None = Field(default=None, description="Delivery weekdays")
    delivery_address: dict[str, Any] | None = Field(default=None, description="Address snapshot")
    remaining_meals: int = Field(description="Scheduled deliveries not yet made")
    total_meals: int = Field(description="Deliveries created for the item")
    start_date: date | None = Field(default=None, description="First delivery date")
    end_date: date | None = Field(default=None, description="Last delivery date")


class SubscriptionListResponse(BaseModel):
    """Response for GET /user-dashboard/subscriptions."""

    data: list[SubscriptionSummary] = Field(default_factory=list, description="Active subscriptions")
    source: CacheSource = Field(description="Whether the view came from the cache or the database")


class SkipResponse(BaseModel):
    """Response for a skipped delivery."""

    delivery_id: UUID = Field(description="Delivery UUID")
    status: str = Field(description="New delivery status")
    message: str = Field(description="Status message")
