"""Booking read operations."""

import logging
import math
from uuid import UUID

from sqlalchemy import func, select

from src.api.middleware.error_handler import NotFoundError
from src.core.database import SessionFactory
from src.models.booking import Booking, BookingItem, PaymentMethod, PaymentStatus
from src.models.catalog import Product, SubscriptionPlan
from src.models.delivery import Delivery, slot_position
from src.models.user import User
from src.schemas.booking import (
    BookingItemResponse,
    BookingListResponse,
    BookingResponse,
    BookingSummary,
    DeliveryResponse,
    Pagination,
    StaffBookingListResponse,
    StaffBookingSummary,
)

logger = logging.getLogger(__name__)

# Order history page size
MAX_BOOKINGS = 50
DEFAULT_STAFF_PAGE_SIZE = 10


class BookingService:
    """Reads bookings for their owner, and across all customers for staff."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    async def list_bookings(self, user_id: UUID) -> BookingListResponse:
        """List the user's bookings, newest first."""
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
            .limit(MAX_BOOKINGS)
        )
        with self.session_factory() as session:
            bookings = session.scalars(stmt).all()
            return BookingListResponse(
                items=[BookingSummary.model_validate(booking) for booking in bookings]
            )

    async def get_booking(self, user_id: UUID, booking_id: UUID) -> BookingResponse:
        """Get one of the user's bookings with its items and deliveries.

        Raises:
            NotFoundError: If the booking does not exist or belongs to
                another user.
        """
        with self.session_factory() as session:
            booking = session.scalars(
                select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
            ).first()
            if booking is None:
                raise NotFoundError("Booking not found")

            item_rows = session.execute(
                select(BookingItem, Product.name, SubscriptionPlan.plan_name)
                .join(Product, BookingItem.product_id == Product.id)
                .outerjoin(SubscriptionPlan, BookingItem.subscription_plan_id == SubscriptionPlan.id)
                .where(BookingItem.booking_id == booking_id)
                .order_by(BookingItem.position)
            ).all()
            items = [
                BookingItemResponse.model_validate(item).model_copy(
                    update={"product_name": product_name, "plan_name": plan_name}
                )
                for item, product_name, plan_name in item_rows
            ]

            deliveries = session.scalars(
                select(Delivery)
                .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
                .where(BookingItem.booking_id == booking_id)
                .order_by(Delivery.delivery_date.asc(), slot_position())
            ).all()

            summary = BookingSummary.model_validate(booking)
            return BookingResponse(
                **summary.model_dump(),
                items=items,
                deliveries=[DeliveryResponse.model_validate(delivery) for delivery in deliveries],
            )

    async def search_bookings(
        self,
        payment_status: PaymentStatus | None = None,
        payment_method: PaymentMethod | None = None,
        page: int = 1,
        limit: int = DEFAULT_STAFF_PAGE_SIZE,
    ) -> StaffBookingListResponse:
        """Page through every customer's bookings for staff, newest first.

        Filtering by payment_status=pending surfaces online orders whose
        gateway webhook never arrived, so staff can reconcile them by hand.
        """
        conditions = []
        if payment_status is not None:
            conditions.append(Booking.payment_status == PaymentStatus(payment_status).value)
        if payment_method is not None:
            conditions.append(Booking.payment_method == PaymentMethod(payment_method).value)

        stmt = (
            select(Booking, User.name, User.email)
            .join(User, Booking.user_id == User.id)
            .where(*conditions)
            .order_by(Booking.created_at.desc(), Booking.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        count_stmt = select(func.count(Booking.id)).where(*conditions)

        with self.session_factory() as session:
            total = session.scalar(count_stmt) or 0
            rows = [
                StaffBookingSummary(
                    **BookingSummary.model_validate(booking).model_dump(),
                    customer_name=name,
                    customer_email=email,
                )
                for booking, name, email in session.execute(stmt)
            ]

        return StaffBookingListResponse(
            data=rows,
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit),
                total_items=total,
                items_per_page=limit,
            ),
        )
