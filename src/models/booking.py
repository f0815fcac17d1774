"""Booking and booking item models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, utcnow


class PaymentMethod(str, Enum):
    """How the customer pays for a booking."""

    ONLINE = "online"
    COD = "cod"


class PaymentStatus(str, Enum):
    """Payment status values matching payment_status_enum."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class MealType(str, Enum):
    """Meal a cart line is booked for."""

    LUNCH = "lunch"
    DINNER = "dinner"


class Booking(Base):
    """Booking table row representation.

    One purchase transaction. Bookings are an append-only ledger: rows are
    never deleted, and payment_status only moves pending -> completed.
    """

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    address_id: Mapped[UUID] = mapped_column(ForeignKey("addresses.id"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    payment_method: Mapped[str] = mapped_column(String(20))
    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value, index=True)
    cashfree_order_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(128))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["BookingItem"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BookingItem.position",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_booking_user_idempotency_key"),
    )


class BookingItem(Base):
    """Booking item table row representation.

    One cart line. Besides price data it keeps the fulfilment inputs
    (meal type, requested start date, weekday mask) so the webhook path can
    expand deliveries long after the cart is gone.
    """

    __tablename__ = "booking_items"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"))
    subscription_plan_id: Mapped[int | None] = mapped_column(ForeignKey("subscription_plans.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    meal_type: Mapped[str] = mapped_column(String(20), default=MealType.LUNCH.value)
    start_date: Mapped[date | None] = mapped_column(Date)
    delivery_days: Mapped[str | None] = mapped_column(String(40))

    booking: Mapped[Booking] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_booking_items_quantity_positive"),
    )
