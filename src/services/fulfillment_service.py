"""Booking creation and payment confirmation: the fulfilment pipeline.

Both payment paths end in the same expansion routine. Cash-on-delivery
bookings expand inside the creation request; online bookings expand when the
gateway webhook confirms payment.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.core.cashfree import CustomerDetails, GatewayOrder, build_order_id
from src.core.config import Settings, get_settings
from src.core.database import SessionFactory, transaction_scope
from src.models.base import utcnow
from src.models.booking import Booking, BookingItem, MealType, PaymentMethod, PaymentStatus
from src.models.catalog import Product, SubscriptionPlan
from src.models.delivery import DeliverySlot
from src.models.user import Address
from src.schemas.auth import UserContext
from src.schemas.booking import BookingCreate, CartItem
from src.services.address_snapshot_service import AddressSnapshotService
from src.services.cache_invalidator import CacheInvalidator
from src.services.delivery_materializer import DeliveryMaterializer
from src.services.delivery_sequencer import (
    DeliveryFrequency,
    first_deliverable_date,
    sequence_delivery_dates,
    target_delivery_count,
)
from src.services.plan_resolver import PlanResolver
from src.services.status_transitions import PaymentEvent, transition_payment

logger = logging.getLogger(__name__)

# Allowed gap between the cart total and the sum of its lines
TOTAL_TOLERANCE = Decimal("0.01")

MEAL_ROTATION: tuple[str, ...] = (MealType.LUNCH.value, MealType.DINNER.value)


class PaymentGateway(Protocol):
    """What the orchestrator needs from a payment gateway client."""

    def create_order(
        self,
        *,
        order_id: str,
        amount: Decimal,
        customer: CustomerDetails,
        return_url: str,
    ) -> GatewayOrder: ...


class WebhookOutcome(str, Enum):
    """Result of confirming an online payment."""

    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class BookingCreated:
    """Result of a create_booking call."""

    booking_id: UUID
    payment_method: str
    payment_status: str
    payment_session_id: str | None = None
    cashfree_order_id: str | None = None
    deliveries_created: int = 0
    replayed: bool = False

    @property
    def message(self) -> str:
        if self.replayed:
            return "Booking already placed."
        if self.payment_method == PaymentMethod.ONLINE.value:
            return "Booking created. Redirecting to payment."
        return "Booking placed successfully!"


@dataclass
class _PricedLine:
    meal_type: str
    cart_item: CartItem
    frequency: DeliveryFrequency | None
    plan_id: int | None = None
    unit_price: Decimal = Decimal("0")


def meal_rotation(first_meal: str | None, meals_per_day: int) -> list[str]:
    """Meal types to schedule per day, starting with the item's own meal."""
    if meals_per_day > len(MEAL_ROTATION):
        logger.warning(
            "Plan has %d meals per day; only %d meal types exist",
            meals_per_day,
            len(MEAL_ROTATION),
        )
    start = MEAL_ROTATION.index(first_meal) if first_meal in MEAL_ROTATION else 0
    count = max(1, min(meals_per_day, len(MEAL_ROTATION)))
    return [MEAL_ROTATION[(start + offset) % len(MEAL_ROTATION)] for offset in range(count)]


class FulfillmentService:
    """Creates bookings and turns paid bookings into scheduled deliveries.

    All resource handles are injected: the session factory and cache client
    come from the application lifespan, and ``today`` is a clock callable so
    date generation is deterministic under test.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        cache_invalidator: CacheInvalidator,
        gateway: PaymentGateway,
        today: Callable[[], date] = date.today,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.cache_invalidator = cache_invalidator
        self.gateway = gateway
        self.today = today
        self.settings = settings or get_settings()
        self.plan_resolver = PlanResolver()
        self.snapshot_service = AddressSnapshotService()
        self.materializer = DeliveryMaterializer()

    async def create_booking(
        self,
        user: UserContext,
        request: BookingCreate,
        idempotency_key: str | None = None,
    ) -> BookingCreated:
        """Create a booking from a checkout cart.

        Cash on delivery: the booking, its items and every delivery are
        written in one transaction and the booking is completed immediately.
        Online: the booking and items are written, a gateway order is
        created, and the transaction commits only once the gateway returns a
        payment session. Deliveries follow on the webhook.

        Args:
            user: Authenticated customer.
            request: Cart, totals, address and payment method.
            idempotency_key: Optional client key; a repeat returns the
                booking created by the first request.

        Returns:
            BookingCreated: Booking id, payment state and session id.

        Raises:
            ValidationError: If the cart is malformed or totals disagree.
            NotFoundError: If the address, a product or a plan is missing.
            GatewayError: If the gateway call fails (nothing is persisted).
            TransactionError: If the database fails (nothing is persisted).
        """
        payment_method = self._validate_payment_method(request.payment_method)
        lines = self._validate_cart(request)

        with transaction_scope(self.session_factory) as session:
            if idempotency_key:
                existing = session.scalars(
                    select(Booking).where(
                        Booking.user_id == user.user_id,
                        Booking.idempotency_key == idempotency_key,
                    )
                ).first()
                if existing is not None:
                    logger.info(
                        "Idempotent replay of booking %s for user %s",
                        existing.id,
                        user.user_id,
                    )
                    return self._replay(existing, user)

            address = session.get(Address, request.address_id)
            if address is None or address.user_id != user.user_id:
                raise NotFoundError("Address not found")

            self._price_lines(session, lines)

            booking = Booking(
                id=uuid4(),
                user_id=user.user_id,
                address_id=address.id,
                total_amount=request.cart_total,
                payment_method=payment_method.value,
                payment_status=PaymentStatus.PENDING.value,
                idempotency_key=idempotency_key,
                notes=request.notes,
            )
            booking.items = [
                BookingItem(
                    id=uuid4(),
                    position=position,
                    product_id=line.cart_item.product_id,
                    subscription_plan_id=line.plan_id,
                    quantity=line.cart_item.quantity,
                    price_per_unit=line.unit_price,
                    total_price=line.cart_item.total_price,
                    meal_type=line.meal_type,
                    start_date=line.cart_item.start_date,
                    delivery_days=line.frequency.to_mask() if line.frequency else None,
                )
                for position, line in enumerate(lines)
            ]
            session.add(booking)
            session.flush()

            if payment_method is PaymentMethod.COD:
                created = self._expand_booking(session, booking)
                booking.payment_status = transition_payment(
                    booking.payment_status, PaymentEvent.COD_PLACED
                ).value
                result = BookingCreated(
                    booking_id=booking.id,
                    payment_method=booking.payment_method,
                    payment_status=booking.payment_status,
                    deliveries_created=created,
                )
            else:
                booking.cashfree_order_id = build_order_id(booking.id)
                session.flush()
                gateway_order = self._create_gateway_order(booking, user)
                result = BookingCreated(
                    booking_id=booking.id,
                    payment_method=booking.payment_method,
                    payment_status=booking.payment_status,
                    payment_session_id=gateway_order.payment_session_id,
                    cashfree_order_id=booking.cashfree_order_id,
                )

        logger.info(
            "Booking %s created for user %s (%s, %d items, %d deliveries)",
            result.booking_id,
            user.user_id,
            result.payment_method,
            len(lines),
            result.deliveries_created,
        )
        if result.deliveries_created:
            self.cache_invalidator.invalidate_user(user.user_id)
        return result

    async def confirm_online_payment(self, order_id: str) -> WebhookOutcome:
        """Complete an online booking and schedule its deliveries.

        The pending -> completed update is guarded on the current status, so
        a repeated or concurrent webhook for the same order matches zero rows
        and is reported as already processed without touching deliveries.

        Args:
            order_id: Gateway order id (BOOKING_<booking id>).

        Returns:
            WebhookOutcome: PROCESSED, or ALREADY_PROCESSED for duplicates,
                non-pending and unknown orders.

        Raises:
            NotFoundError: If the booking's address or a plan has vanished.
            TransactionError: If the database fails (nothing is persisted).
        """
        with transaction_scope(self.session_factory) as session:
            booking_id = session.scalar(
                select(Booking.id).where(Booking.cashfree_order_id == order_id)
            )
            if booking_id is None:
                logger.warning("Webhook received for unknown order: %s", order_id)
                session.rollback()
                return WebhookOutcome.ALREADY_PROCESSED

            next_status = transition_payment(PaymentStatus.PENDING, PaymentEvent.PAYMENT_SUCCEEDED)
            updated = session.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.payment_status == PaymentStatus.PENDING.value,
                )
                .values(payment_status=next_status.value, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount == 0:
                logger.warning("Webhook received for non-pending order: %s", order_id)
                session.rollback()
                return WebhookOutcome.ALREADY_PROCESSED

            booking = session.get(Booking, booking_id, populate_existing=True)
            created = self._expand_booking(session, booking)
            user_id = booking.user_id

        logger.info(
            "Processed payment webhook for booking %s (%d deliveries)",
            booking_id,
            created,
        )
        self.cache_invalidator.invalidate_user(user_id)
        return WebhookOutcome.PROCESSED

    def _expand_booking(self, session: Session, booking: Booking) -> int:
        """Materialize deliveries for every item of a booking.

        Shared by both payment paths; runs in the caller's transaction.

        Returns:
            int: Number of delivery rows created.
        """
        snapshot = self.snapshot_service.resolve(session, booking.id)
        today = self.today()
        created = 0
        for item in booking.items:
            created += self._expand_item(session, item, snapshot, today)
        return created

    def _expand_item(
        self,
        session: Session,
        item: BookingItem,
        snapshot: dict[str, Any],
        today: date,
    ) -> int:
        if item.subscription_plan_id is None:
            # One-time meal: a single delivery, quantity stays on the item
            delivery_date = first_deliverable_date(item.start_date, today)
            rows = self.materializer.materialize(
                session, item, [delivery_date], [(DeliverySlot.ASAP, item.meal_type)], snapshot
            )
            return len(rows)

        terms = self.plan_resolver.resolve(session, item.subscription_plan_id)
        if terms.is_trial:
            frequency = DeliveryFrequency.every_day()
        else:
            frequency = DeliveryFrequency.parse(item.delivery_days)

        sequence = sequence_delivery_dates(
            item.start_date,
            terms.duration_days,
            frequency,
            today=today,
            target_count=target_delivery_count(terms.duration_days, frequency),
            ceiling_buffer_days=self.settings.sequencer_ceiling_buffer_days,
        )
        if sequence.is_short:
            logger.warning(
                "Booking item %s (plan %s) scheduled %d of %d deliveries",
                item.id,
                terms.plan_name,
                len(sequence),
                sequence.requested,
            )

        meals = [
            (DeliverySlot(meal_type), meal_type)
            for meal_type in meal_rotation(item.meal_type, terms.meals_per_day)
        ]
        rows = self.materializer.materialize(session, item, sequence.dates, meals, snapshot)
        return len(rows)

    def _create_gateway_order(self, booking: Booking, user: UserContext) -> GatewayOrder:
        customer = CustomerDetails(
            customer_id=str(user.user_id),
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone,
        )
        return self.gateway.create_order(
            order_id=booking.cashfree_order_id,
            amount=booking.total_amount,
            customer=customer,
            return_url=f"{self.settings.payment_return_url}?booking_id={booking.id}",
        )

    def _replay(self, booking: Booking, user: UserContext) -> BookingCreated:
        payment_session_id = None
        if (
            booking.payment_method == PaymentMethod.ONLINE.value
            and booking.payment_status == PaymentStatus.PENDING.value
            and booking.cashfree_order_id
        ):
            payment_session_id = self._create_gateway_order(booking, user).payment_session_id

        return BookingCreated(
            booking_id=booking.id,
            payment_method=booking.payment_method,
            payment_status=booking.payment_status,
            payment_session_id=payment_session_id,
            cashfree_order_id=booking.cashfree_order_id,
            replayed=True,
        )

    def _validate_payment_method(self, value: str) -> PaymentMethod:
        try:
            return PaymentMethod(value.strip().lower())
        except ValueError as e:
            raise ValidationError(f"Unknown payment method: {value}") from e

    def _validate_cart(self, request: BookingCreate) -> list[_PricedLine]:
        """Check cart shape and totals before touching the database."""
        if request.cart.is_empty:
            raise ValidationError("Cart is empty")
        if request.cart_total <= 0:
            raise ValidationError("Cart total must be positive")

        lines: list[_PricedLine] = []
        for meal_type, items in (
            (MealType.LUNCH.value, request.cart.lunch),
            (MealType.DINNER.value, request.cart.dinner),
        ):
            for cart_item in items:
                if cart_item.quantity < 1:
                    raise ValidationError(f"Quantity for product {cart_item.product_id} must be at least 1")
                if cart_item.total_price <= 0:
                    raise ValidationError(f"Total price for product {cart_item.product_id} must be positive")
                frequency = None
                if cart_item.plan is not None and cart_item.frequency is not None:
                    frequency = DeliveryFrequency.parse(cart_item.frequency)
                lines.append(_PricedLine(meal_type=meal_type, cart_item=cart_item, frequency=frequency))

        line_total = sum((line.cart_item.total_price for line in lines), Decimal("0"))
        if abs(line_total - request.cart_total) > TOTAL_TOLERANCE:
            raise ValidationError(
                f"Cart total {request.cart_total} does not match item totals {line_total}"
            )
        return lines

    def _price_lines(self, session: Session, lines: list[_PricedLine]) -> None:
        """Resolve products and plans and fill in catalog unit prices."""
        for line in lines:
            cart_item = line.cart_item
            product = session.get(Product, cart_item.product_id)
            if product is None:
                raise NotFoundError(f"Product {cart_item.product_id} not found")
            if not product.is_active:
                raise ValidationError(f"Product {product.name} is not available")

            if cart_item.plan is None:
                if product.is_subscription:
                    raise ValidationError(f"Product {product.name} requires a subscription plan")
                line.unit_price = product.base_price
                continue

            plan = session.get(SubscriptionPlan, cart_item.plan.id)
            if plan is None or plan.product_id != product.id:
                raise NotFoundError(f"Subscription plan {cart_item.plan.id} not found")
            if not plan.is_active:
                raise ValidationError(f"Subscription plan {plan.plan_name} is no longer available")
            line.plan_id = plan.id
            line.unit_price = plan.price
