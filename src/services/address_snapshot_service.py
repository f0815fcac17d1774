"""Address snapshot resolution for delivery rows."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import NotFoundError
from src.models.booking import Booking
from src.models.user import Address

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS: tuple[str, ...] = (
    "id",
    "user_id",
    "type",
    "is_default",
    "full_name",
    "phone",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "pincode",
    "landmark",
    "created_at",
    "updated_at",
)


def _to_json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def serialize_address(address: Address) -> dict[str, Any]:
    """Serialize an address row to a JSON-compatible dict."""
    return {field: _to_json_value(getattr(address, field)) for field in SNAPSHOT_FIELDS}


class AddressSnapshotService:
    """Freezes a booking's address for attachment to its deliveries."""

    def resolve(self, session: Session, booking_id: UUID) -> dict[str, Any]:
        """Fetch the booking's address and return it as a snapshot.

        Args:
            session: Session of the enclosing transaction.
            booking_id: The booking's UUID.

        Returns:
            dict: JSON-compatible copy of the address row.

        Raises:
            NotFoundError: If the booking or its address no longer exists.
        """
        stmt = (
            select(Address)
            .join(Booking, Booking.address_id == Address.id)
            .where(Booking.id == booking_id)
        )
        address = session.scalars(stmt).first()
        if address is None:
            logger.error("No address found for booking %s", booking_id)
            raise NotFoundError(f"Delivery address for booking {booking_id} not found")

        return serialize_address(address)
