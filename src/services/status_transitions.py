"""Legal status transitions for bookings and deliveries.

Every payment or delivery status change goes through one of the functions
below. Call sites still guard their UPDATE with the expected current status so
concurrent writers cannot both apply the same transition.
"""

from enum import Enum

from src.api.middleware.error_handler import InvalidTransitionError
from src.models.booking import PaymentStatus
from src.models.delivery import DeliveryStatus


class PaymentEvent(str, Enum):
    """Events that move a booking's payment status."""

    COD_PLACED = "cod_placed"
    PAYMENT_SUCCEEDED = "payment_succeeded"


class DeliveryEvent(str, Enum):
    """Events that move a delivery's status."""

    DISPATCH = "dispatch"
    DELIVER = "deliver"
    CANCEL = "cancel"
    SKIP = "skip"


PAYMENT_TRANSITIONS: dict[tuple[PaymentStatus, PaymentEvent], PaymentStatus] = {
    (PaymentStatus.PENDING, PaymentEvent.COD_PLACED): PaymentStatus.COMPLETED,
    (PaymentStatus.PENDING, PaymentEvent.PAYMENT_SUCCEEDED): PaymentStatus.COMPLETED,
}

DELIVERY_TRANSITIONS: dict[tuple[DeliveryStatus, DeliveryEvent], DeliveryStatus] = {
    (DeliveryStatus.SCHEDULED, DeliveryEvent.DISPATCH): DeliveryStatus.OUT_FOR_DELIVERY,
    (DeliveryStatus.SCHEDULED, DeliveryEvent.CANCEL): DeliveryStatus.CANCELLED,
    (DeliveryStatus.SCHEDULED, DeliveryEvent.SKIP): DeliveryStatus.SKIPPED,
    (DeliveryStatus.OUT_FOR_DELIVERY, DeliveryEvent.DELIVER): DeliveryStatus.DELIVERED,
    (DeliveryStatus.OUT_FOR_DELIVERY, DeliveryEvent.CANCEL): DeliveryStatus.CANCELLED,
}

TERMINAL_DELIVERY_STATUSES = frozenset(
    {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED, DeliveryStatus.SKIPPED}
)


def transition_payment(current: PaymentStatus | str, event: PaymentEvent | str) -> PaymentStatus:
    """Return the payment status reached by applying event to current.

    Raises:
        InvalidTransitionError: If the transition is not in the table.
    """
    try:
        key = (PaymentStatus(current), PaymentEvent(event))
    except ValueError as e:
        raise InvalidTransitionError(f"Unknown payment status or event: {current!s}/{event!s}") from e

    next_status = PAYMENT_TRANSITIONS.get(key)
    if next_status is None:
        raise InvalidTransitionError(
            f"Cannot apply '{key[1].value}' to a booking with payment status '{key[0].value}'"
        )
    return next_status


def transition_delivery(current: DeliveryStatus | str, event: DeliveryEvent | str) -> DeliveryStatus:
    """Return the delivery status reached by applying event to current.

    Raises:
        InvalidTransitionError: If the transition is not in the table.
    """
    try:
        key = (DeliveryStatus(current), DeliveryEvent(event))
    except ValueError as e:
        raise InvalidTransitionError(f"Unknown delivery status or event: {current!s}/{event!s}") from e

    next_status = DELIVERY_TRANSITIONS.get(key)
    if next_status is None:
        raise InvalidTransitionError(
            f"Cannot apply '{key[1].value}' to a delivery with status '{key[0].value}'"
        )
    return next_status
