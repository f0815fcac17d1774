"""Subscription plan schemas for staff catalog operations."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PlanResponse(BaseModel):
    """A subscription plan as staff see it."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Plan identifier")
    plan_name: str = Field(description="Plan name")
    price: Decimal = Field(description="Plan price")
    duration_days: int = Field(description="Plan length in days")
    meals_per_day: int = Field(description="Meals delivered per day")
    is_active: bool = Field(description="Whether new bookings may choose the plan")
