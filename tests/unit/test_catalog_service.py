"""Unit tests for CatalogService."""

from typing import Any

import pytest

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.models import SubscriptionPlan
from src.schemas.booking import BookingCreate
from src.services.catalog_service import CatalogService
from src.services.fulfillment_service import FulfillmentService


@pytest.fixture
def catalog_service(session_factory: Any) -> CatalogService:
    return CatalogService(session_factory)


class TestRetirePlan:
    """Tests for CatalogService.retire_plan."""

    @pytest.mark.asyncio
    async def test_marks_plan_inactive_and_keeps_row(
        self,
        catalog_service: CatalogService,
        session_factory: Any,
        seed: Any,
        row_count: Any,
    ) -> None:
        """Test that retiring a plan flags it inactive instead of deleting it."""
        plans_before = row_count(SubscriptionPlan)

        plan = await catalog_service.retire_plan(seed.weekly_plan.id)

        assert plan.is_active is False
        assert row_count(SubscriptionPlan) == plans_before
        with session_factory() as session:
            assert session.get(SubscriptionPlan, seed.weekly_plan.id).is_active is False

    @pytest.mark.asyncio
    async def test_retiring_twice_is_harmless(self, catalog_service: CatalogService, seed: Any) -> None:
        """Test that an already retired plan stays retired."""
        plan = await catalog_service.retire_plan(seed.retired_plan.id)

        assert plan.is_active is False
        assert plan.plan_name == "Quarterly"

    @pytest.mark.asyncio
    async def test_unknown_plan_is_not_found(self, catalog_service: CatalogService, seed: Any) -> None:
        """Test that retiring a missing plan raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await catalog_service.retire_plan(99999)

    @pytest.mark.asyncio
    async def test_referenced_plan_is_retired_and_blocks_new_bookings(
        self,
        catalog_service: CatalogService,
        fulfillment_service: FulfillmentService,
        seed: Any,
        weekly_booking_request: BookingCreate,
    ) -> None:
        """Test that a plan in use can be retired and is then refused at checkout."""
        await fulfillment_service.create_booking(seed.customer_context, weekly_booking_request)

        await catalog_service.retire_plan(seed.weekly_plan.id)

        with pytest.raises(ValidationError, match="no longer available"):
            await fulfillment_service.create_booking(seed.customer_context, weekly_booking_request)
