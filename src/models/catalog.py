"""Catalog models: products and subscription plans."""

from decimal import Decimal
from typing import Literal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base

# Booking type values matching booking_type_enum
BookingType = Literal["one-time", "subscription"]


class Product(Base):
    """Product table row representation."""

    __tablename__ = "products"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255))
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    booking_type: Mapped[str] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def is_subscription(self) -> bool:
        return self.booking_type == "subscription"


class SubscriptionPlan(Base):
    """Subscription plan table row representation.

    Plans are configuration: once a booking item references a plan it must
    keep resolving, so retirement is done with is_active rather than DELETE.
    """

    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[UUID] = mapped_column(ForeignKey("products.id"), index=True)
    plan_name: Mapped[str] = mapped_column(String(100))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    duration_days: Mapped[int] = mapped_column(Integer)
    meals_per_day: Mapped[int] = mapped_column(Integer, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
