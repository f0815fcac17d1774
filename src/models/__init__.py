"""Database models."""

from src.models.base import Base
from src.models.booking import Booking, BookingItem, MealType, PaymentMethod, PaymentStatus
from src.models.catalog import Product, SubscriptionPlan
from src.models.delivery import Delivery, DeliverySlot, DeliveryStatus
from src.models.user import Address, User

__all__ = [
    "Base",
    "User",
    "Address",
    "Product",
    "SubscriptionPlan",
    "Booking",
    "BookingItem",
    "Delivery",
    "PaymentMethod",
    "PaymentStatus",
    "MealType",
    "DeliveryStatus",
    "DeliverySlot",
]
