"""Delivery model: the unit the fulfillment engine produces."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, case
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql.elements import ColumnElement

from src.models.base import Base, JSONType
from src.models.booking import BookingItem


class DeliveryStatus(str, Enum):
    """Delivery status values matching delivery_status_enum."""

    SCHEDULED = "scheduled"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class DeliverySlot(str, Enum):
    """Delivery slot values matching delivery_slot_enum."""

    ASAP = "asap"
    MORNING_9_12 = "morning_9_12"
    AFTERNOON_12_3 = "afternoon_12_3"
    EVENING_4_7 = "evening_4_7"
    LUNCH = "lunch"
    DINNER = "dinner"


# Position of each slot within a day, in declaration order (asap first, dinner last)
SLOT_ORDER: dict[str, int] = {slot.value: position for position, slot in enumerate(DeliverySlot)}


class Delivery(Base):
    """Delivery table row representation.

    delivery_address is a snapshot copied when the row is created and never
    re-resolved from the addresses table.
    """

    __tablename__ = "deliveries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    booking_item_id: Mapped[UUID] = mapped_column(ForeignKey("booking_items.id", ondelete="CASCADE"), index=True)
    delivery_date: Mapped[date] = mapped_column(Date)
    delivery_slot: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=DeliveryStatus.SCHEDULED.value)
    delivery_address: Mapped[dict[str, Any]] = mapped_column(JSONType)
    meal_type: Mapped[str | None] = mapped_column(String(50))
    assigned_to: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    driver_notes: Mapped[str | None] = mapped_column(Text)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    booking_item: Mapped[BookingItem] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "booking_item_id",
            "delivery_date",
            "meal_type",
            name="uq_delivery_item_date_meal",
        ),
        Index("idx_deliveries_date_slot", "delivery_date", "delivery_slot"),
        Index("idx_deliveries_status", "status"),
    )


def slot_position() -> ColumnElement[int]:
    """SQL expression ordering delivery_slot by SLOT_ORDER instead of alphabetically."""
    return case(SLOT_ORDER, value=Delivery.delivery_slot, else_=len(SLOT_ORDER))
