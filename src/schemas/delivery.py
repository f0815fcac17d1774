"""Delivery action and staff view Pydantic schemas."""

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# Events a staff member may apply to a delivery
StaffDeliveryEvent = Literal["dispatch", "deliver", "cancel"]


class DeliveryStatusUpdate(BaseModel):
    """Request body for PATCH /admin/deliveries/{id}/status."""

    event: StaffDeliveryEvent = Field(description="Transition to apply")
    driver_notes: str | None = Field(default=None, max_length=1000, description="Optional driver notes")


class DeliveryAssign(BaseModel):
    """Request body for PATCH /admin/deliveries/{id}/assign."""

    staff_user_id: UUID = Field(description="Staff user to assign")


class DispatchRow(BaseModel):
    """One line of the dispatch sheet."""

    model_config = ConfigDict(from_attributes=True)

    delivery_id: UUID = Field(description="Delivery UUID")
    delivery_date: dt.date = Field(description="Delivery date")
    delivery_slot: str = Field(description="Delivery slot")
    status: str = Field(description="Delivery status")
    meal_type: str | None = Field(default=None, description="Meal type")
    quantity: int = Field(description="Meals to hand over")
    product_name: str = Field(description="Product name")
    customer_name: str = Field(description="Account holder name")
    delivery_name: str | None = Field(default=None, description="Recipient name from the address snapshot")
    customer_phone: str | None = Field(default=None, description="Recipient phone from the address snapshot")
    address_line_1: str | None = Field(default=None, description="Address line 1")
    address_line_2: str | None = Field(default=None, description="Address line 2")
    city: str | None = Field(default=None, description="City")
    state: str | None = Field(default=None, description="State")
    pincode: str | None = Field(default=None, description="Pincode")
    landmark: str | None = Field(default=None, description="Landmark")
    address_type: str | None = Field(default=None, description="Address type")
    booking_notes: str | None = Field(default=None, description="Order notes")
    assigned_to: UUID | None = Field(default=None, description="Assigned staff user")


class DispatchSheetResponse(BaseModel):
    """Response for GET /admin/dispatch-sheet."""

    date: dt.date = Field(description="Sheet date")
    slot: str = Field(description="Slot filter, or 'all'")
    data: list[DispatchRow] = Field(default_factory=list, description="Deliveries ordered by slot and pincode")


class KitchenPrepLine(BaseModel):
    """Meals of one product to cook for one meal."""

    product_name: str = Field(description="Product name")
    meal_type: str | None = Field(default=None, description="Meal type")
    total_quantity: int = Field(description="Meals to prepare")


class KitchenPrepResponse(BaseModel):
    """Response for GET /admin/kitchen-prep."""

    date: dt.date = Field(description="Prep date")
    lunch: list[KitchenPrepLine] = Field(default_factory=list, description="Lunch lines")
    dinner: list[KitchenPrepLine] = Field(default_factory=list, description="Dinner lines")
