"""Delivery actions: user skip, staff status updates, assignment and kitchen views."""

import logging
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.core.database import SessionFactory, transaction_scope
from src.models.base import utcnow
from src.models.booking import Booking, BookingItem, MealType
from src.models.catalog import Product
from src.models.delivery import SLOT_ORDER, Delivery, DeliverySlot, DeliveryStatus
from src.models.user import STAFF_ROLES, User
from src.schemas.delivery import DispatchRow, DispatchSheetResponse, KitchenPrepLine, KitchenPrepResponse
from src.services.cache_invalidator import CacheInvalidator
from src.services.status_transitions import (
    TERMINAL_DELIVERY_STATUSES,
    DeliveryEvent,
    transition_delivery,
)

logger = logging.getLogger(__name__)


class DeliveryService:
    """Mutations and staff views over delivery rows."""

    def __init__(
        self,
        session_factory: SessionFactory,
        cache_invalidator: CacheInvalidator,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session_factory = session_factory
        self.cache_invalidator = cache_invalidator
        self.today = today

    def _apply_transition(
        self,
        session: Session,
        delivery: Delivery,
        event: DeliveryEvent,
        **values: Any,
    ) -> DeliveryStatus:
        """Move a delivery along the transition table with a guarded UPDATE."""
        current = delivery.status
        next_status = transition_delivery(current, event)
        result = session.execute(
            update(Delivery)
            .where(Delivery.id == delivery.id, Delivery.status == current)
            .values(status=next_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidTransitionError(f"Delivery {delivery.id} was updated concurrently")
        session.refresh(delivery)
        return next_status

    async def skip(self, user_id: UUID, delivery_id: UUID) -> Delivery:
        """Skip one of the user's upcoming scheduled deliveries.

        Args:
            user_id: Owner of the booking.
            delivery_id: Delivery to skip.

        Returns:
            Delivery: The skipped delivery.

        Raises:
            NotFoundError: If the delivery does not exist or belongs to
                another user.
            ValidationError: If the delivery date has passed.
            InvalidTransitionError: If the delivery is no longer scheduled.
        """
        with transaction_scope(self.session_factory) as session:
            delivery = session.scalars(
                select(Delivery)
                .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
                .join(Booking, BookingItem.booking_id == Booking.id)
                .where(Delivery.id == delivery_id, Booking.user_id == user_id)
            ).first()
            if delivery is None:
                raise NotFoundError("Meal not found or already processed.")
            if delivery.delivery_date < self.today():
                raise ValidationError("Past deliveries cannot be skipped")

            self._apply_transition(session, delivery, DeliveryEvent.SKIP)

        logger.info("User %s skipped delivery %s", user_id, delivery_id)
        self.cache_invalidator.invalidate_user(user_id)
        return delivery

    async def update_status(
        self,
        delivery_id: UUID,
        event: DeliveryEvent | str,
        driver_notes: str | None = None,
    ) -> Delivery:
        """Apply a staff status event (dispatch, deliver, cancel).

        Delivering stamps delivered_at. The owner's dashboard cache is purged
        after commit.

        Raises:
            NotFoundError: If the delivery does not exist.
            InvalidTransitionError: If the event is not allowed from the
                delivery's current status.
        """
        event = DeliveryEvent(event)
        with transaction_scope(self.session_factory) as session:
            row = session.execute(
                select(Delivery, Booking.user_id)
                .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
                .join(Booking, BookingItem.booking_id == Booking.id)
                .where(Delivery.id == delivery_id)
            ).first()
            if row is None:
                raise NotFoundError(f"Delivery {delivery_id} not found")
            delivery, owner_id = row

            values: dict[str, Any] = {}
            if event is DeliveryEvent.DELIVER:
                values["delivered_at"] = utcnow()
            if driver_notes is not None:
                values["driver_notes"] = driver_notes
            next_status = self._apply_transition(session, delivery, event, **values)

        logger.info("Delivery %s moved to %s", delivery_id, next_status.value)
        self.cache_invalidator.invalidate_user(owner_id)
        return delivery

    async def assign(self, delivery_id: UUID, staff_user_id: UUID) -> Delivery:
        """Assign a delivery to a staff member.

        Raises:
            NotFoundError: If the delivery or the user does not exist.
            ValidationError: If the user is not staff or admin.
            InvalidTransitionError: If the delivery is already finished.
        """
        with transaction_scope(self.session_factory) as session:
            staff = session.get(User, staff_user_id)
            if staff is None:
                raise NotFoundError(f"User {staff_user_id} not found")
            if staff.role not in STAFF_ROLES:
                raise ValidationError(f"User {staff_user_id} is not a staff member")

            delivery = session.get(Delivery, delivery_id)
            if delivery is None:
                raise NotFoundError(f"Delivery {delivery_id} not found")
            if DeliveryStatus(delivery.status) in TERMINAL_DELIVERY_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot assign a delivery that is already {delivery.status}"
                )

            delivery.assigned_to = staff.id

        logger.info("Delivery %s assigned to %s", delivery_id, staff_user_id)
        return delivery

    async def dispatch_sheet(
        self,
        target_date: date | None = None,
        slot: str | None = None,
    ) -> DispatchSheetResponse:
        """List scheduled deliveries for a day, ordered for route planning.

        Address fields come from each delivery's snapshot, not the live
        address book.
        """
        target_date = target_date or self.today()
        stmt = (
            select(
                Delivery,
                BookingItem.quantity,
                Product.name.label("product_name"),
                User.name.label("customer_name"),
                Booking.notes,
            )
            .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
            .join(Product, BookingItem.product_id == Product.id)
            .join(Booking, BookingItem.booking_id == Booking.id)
            .join(User, Booking.user_id == User.id)
            .where(
                Delivery.delivery_date == target_date,
                Delivery.status == DeliveryStatus.SCHEDULED.value,
            )
        )
        if slot:
            try:
                slot = DeliverySlot(slot).value
            except ValueError as e:
                raise ValidationError(f"Unknown delivery slot: {slot}") from e
            stmt = stmt.where(Delivery.delivery_slot == slot)

        with self.session_factory() as session:
            results = session.execute(stmt).all()

        rows = []
        for delivery, quantity, product_name, customer_name, notes in results:
            snapshot = delivery.delivery_address or {}
            rows.append(
                DispatchRow(
                    delivery_id=delivery.id,
                    delivery_date=delivery.delivery_date,
                    delivery_slot=delivery.delivery_slot,
                    status=delivery.status,
                    meal_type=delivery.meal_type,
                    quantity=quantity,
                    product_name=product_name,
                    customer_name=customer_name,
                    delivery_name=snapshot.get("full_name"),
                    customer_phone=snapshot.get("phone"),
                    address_line_1=snapshot.get("address_line_1"),
                    address_line_2=snapshot.get("address_line_2"),
                    city=snapshot.get("city"),
                    state=snapshot.get("state"),
                    pincode=snapshot.get("pincode"),
                    landmark=snapshot.get("landmark"),
                    address_type=snapshot.get("type"),
                    booking_notes=notes,
                    assigned_to=delivery.assigned_to,
                )
            )
        rows.sort(
            key=lambda row: (
                SLOT_ORDER.get(row.delivery_slot, len(SLOT_ORDER)),
                row.pincode or "",
                row.customer_name,
            )
        )

        return DispatchSheetResponse(date=target_date, slot=slot or "all", data=rows)

    async def kitchen_prep(self, target_date: date | None = None) -> KitchenPrepResponse:
        """Total meals to cook per product and meal; defaults to tomorrow."""
        target_date = target_date or self.today() + timedelta(days=1)
        stmt = (
            select(
                Product.name,
                Delivery.meal_type,
                func.sum(BookingItem.quantity),
            )
            .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
            .join(Product, BookingItem.product_id == Product.id)
            .where(
                Delivery.delivery_date == target_date,
                Delivery.status == DeliveryStatus.SCHEDULED.value,
            )
            .group_by(Product.name, Delivery.meal_type)
            .order_by(Delivery.meal_type, Product.name)
        )
        with self.session_factory() as session:
            lines = [
                KitchenPrepLine(product_name=name, meal_type=meal_type, total_quantity=total or 0)
                for name, meal_type, total in session.execute(stmt)
            ]

        return KitchenPrepResponse(
            date=target_date,
            lunch=[line for line in lines if line.meal_type == MealType.LUNCH.value],
            dinner=[line for line in lines if line.meal_type == MealType.DINNER.value],
        )
