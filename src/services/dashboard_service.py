"""User dashboard views backed by the shared Redis cache."""

import logging
from collections.abc import Callable
from datetime import date
from typing import Any
from uuid import UUID

from pydantic import TypeAdapter
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from src.core.config import Settings, get_settings
from src.core.database import SessionFactory
from src.models.booking import Booking, BookingItem, PaymentStatus
from src.models.catalog import Product, SubscriptionPlan
from src.models.delivery import Delivery, DeliveryStatus, slot_position
from src.schemas.dashboard import (
    NextDelivery,
    NextDeliveryResponse,
    SubscriptionListResponse,
    SubscriptionSummary,
)
from src.services.cache_invalidator import next_delivery_key, subscriptions_key

logger = logging.getLogger(__name__)

_next_delivery_adapter = TypeAdapter(NextDelivery | None)
_subscriptions_adapter = TypeAdapter(list[SubscriptionSummary])


class DashboardService:
    """Read side of the user dashboard.

    Views are cached per user and purged by the CacheInvalidator whenever a
    delivery changes. Cache failures fall back to the database.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        cache: Redis,
        today: Callable[[], date] = date.today,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.today = today
        self.settings = settings or get_settings()

    def _cache_get(self, key: str) -> str | None:
        try:
            return self.cache.get(key)
        except RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, str(e))
            return None

    def _cache_set(self, key: str, ttl: int, payload: str) -> None:
        try:
            self.cache.setex(key, ttl, payload)
        except RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, str(e))

    async def get_next_delivery(self, user_id: UUID) -> NextDeliveryResponse:
        """Get the user's earliest scheduled delivery from today on."""
        key = next_delivery_key(user_id)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return NextDeliveryResponse(
                data=_next_delivery_adapter.validate_json(cached),
                source="cache",
            )

        stmt = (
            select(
                Delivery.id.label("delivery_id"),
                Delivery.delivery_date,
                Delivery.delivery_slot,
                Delivery.status,
                Delivery.meal_type,
                Product.name.label("product_name"),
            )
            .join(BookingItem, Delivery.booking_item_id == BookingItem.id)
            .join(Booking, BookingItem.booking_id == Booking.id)
            .join(Product, BookingItem.product_id == Product.id)
            .where(
                Booking.user_id == user_id,
                Delivery.status == DeliveryStatus.SCHEDULED.value,
                Delivery.delivery_date >= self.today(),
            )
            .order_by(Delivery.delivery_date.asc(), slot_position())
            .limit(1)
        )
        with self.session_factory() as session:
            row = session.execute(stmt).mappings().first()

        data = NextDelivery.model_validate(dict(row)) if row is not None else None
        self._cache_set(
            key,
            self.settings.cache_next_delivery_ttl,
            _next_delivery_adapter.dump_json(data).decode("utf-8"),
        )
        return NextDeliveryResponse(data=data, source="database")

    async def get_subscriptions(self, user_id: UUID) -> SubscriptionListResponse:
        """Get the user's paid subscription items that still have meals to come."""
        key = subscriptions_key(user_id)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return SubscriptionListResponse(
                data=_subscriptions_adapter.validate_json(cached),
                source="cache",
            )

        data = self._load_subscriptions(user_id)
        self._cache_set(
            key,
            self.settings.cache_subscriptions_ttl,
            _subscriptions_adapter.dump_json(data).decode("utf-8"),
        )
        return SubscriptionListResponse(data=data, source="database")

    def _load_subscriptions(self, user_id: UUID) -> list[SubscriptionSummary]:
        today = self.today()
        remaining = func.sum(
            case(
                (
                    and_(
                        Delivery.status == DeliveryStatus.SCHEDULED.value,
                        Delivery.delivery_date >= today,
                    ),
                    1,
                ),
                else_=0,
            )
        )
        start_date = func.min(Delivery.delivery_date)
        stmt = (
            select(
                BookingItem.id.label("booking_item_id"),
                BookingItem.booking_id,
                Product.name.label("product_name"),
                SubscriptionPlan.plan_name,
                BookingItem.meal_type,
                BookingItem.delivery_days,
                remaining.label("remaining_meals"),
                func.count(Delivery.id).label("total_meals"),
                start_date.label("start_date"),
                func.max(Delivery.delivery_date).label("end_date"),
            )
            .join(Booking, BookingItem.booking_id == Booking.id)
            .join(Product, BookingItem.product_id == Product.id)
            .outerjoin(SubscriptionPlan, BookingItem.subscription_plan_id == SubscriptionPlan.id)
            .join(Delivery, Delivery.booking_item_id == BookingItem.id)
            .where(
                Booking.user_id == user_id,
                Booking.payment_status == PaymentStatus.COMPLETED.value,
                BookingItem.subscription_plan_id.is_not(None),
            )
            .group_by(
                BookingItem.id,
                BookingItem.booking_id,
                Product.name,
                SubscriptionPlan.plan_name,
                BookingItem.meal_type,
                BookingItem.delivery_days,
            )
            .order_by(start_date.desc())
        )

        with self.session_factory() as session:
            rows = [dict(row) for row in session.execute(stmt).mappings() if row["remaining_meals"]]
            addresses = self._first_snapshots(session, [row["booking_item_id"] for row in rows])

        return [
            SubscriptionSummary.model_validate(
                {**row, "delivery_address": addresses.get(row["booking_item_id"])}
            )
            for row in rows
        ]

    def _first_snapshots(self, session: Session, item_ids: list[UUID]) -> dict[UUID, dict[str, Any]]:
        """Address snapshot of each item's earliest delivery."""
        if not item_ids:
            return {}
        stmt = (
            select(Delivery.booking_item_id, Delivery.delivery_address)
            .where(Delivery.booking_item_id.in_(item_ids))
            .order_by(Delivery.delivery_date.asc())
        )
        snapshots: dict[UUID, dict[str, Any]] = {}
        for item_id, snapshot in session.execute(stmt):
            if item_id not in snapshots:
                snapshots[item_id] = snapshot
        return snapshots
