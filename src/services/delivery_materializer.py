"""Persists delivery rows for a sequenced set of dates."""

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from src.models.booking import BookingItem
from src.models.delivery import SLOT_ORDER, Delivery, DeliverySlot, DeliveryStatus

logger = logging.getLogger(__name__)

# (slot, meal_type) pair for one delivery on a given day
MealSlot = tuple[DeliverySlot | str, str | None]


class DeliveryMaterializer:
    """Inserts the scheduled deliveries of one booking item."""

    def materialize(
        self,
        session: Session,
        item: BookingItem,
        dates: Iterable[date],
        meals: Sequence[MealSlot],
        address_snapshot: dict[str, Any],
    ) -> list[Delivery]:
        """Add one delivery per date and meal, then flush.

        Rows are built day by day, each day's meals in slot order, so
        the item's deliveries are added in ascending date order. Runs inside
        the caller's transaction; a failure here rolls back the whole
        booking with it.

        Args:
            session: Session of the enclosing transaction.
            item: Booking item the deliveries belong to.
            dates: Delivery dates.
            meals: Slot and meal tag of each delivery within a day.
            address_snapshot: Frozen address copied onto every row.

        Returns:
            list[Delivery]: The new rows.
        """
        day_meals = sorted(
            ((DeliverySlot(slot).value, meal_type) for slot, meal_type in meals),
            key=lambda meal: SLOT_ORDER[meal[0]],
        )
        deliveries = [
            Delivery(
                booking_item_id=item.id,
                delivery_date=delivery_date,
                delivery_slot=slot_value,
                status=DeliveryStatus.SCHEDULED.value,
                delivery_address=dict(address_snapshot),
                meal_type=meal_type,
            )
            for delivery_date in sorted(dates)
            for slot_value, meal_type in day_meals
        ]
        session.add_all(deliveries)
        session.flush()

        logger.debug(
            "Materialized %d deliveries (%d per day) for booking item %s",
            len(deliveries),
            len(day_meals),
            item.id,
        )
        return deliveries
