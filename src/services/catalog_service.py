"""Staff operations on the subscription plan catalog."""

import logging

from sqlalchemy import func, select

from src.api.middleware.error_handler import NotFoundError
from src.core.database import SessionFactory, transaction_scope
from src.models.booking import BookingItem
from src.models.catalog import SubscriptionPlan
from src.schemas.catalog import PlanResponse

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for retiring subscription plans."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    async def retire_plan(self, plan_id: int) -> PlanResponse:
        """Withdraw a plan from sale without deleting it.

        The row stays so that booking items already referencing it keep
        resolving their duration and meals per day. Retiring an already
        retired plan is a no-op.

        Raises:
            NotFoundError: If the plan does not exist.
        """
        with transaction_scope(self.session_factory) as session:
            plan = session.get(SubscriptionPlan, plan_id)
            if plan is None:
                raise NotFoundError("Subscription plan not found.")

            references = session.scalar(
                select(func.count(BookingItem.id)).where(BookingItem.subscription_plan_id == plan_id)
            )
            if plan.is_active:
                plan.is_active = False
                logger.info(
                    "Retired subscription plan %s (%s), referenced by %d booking items",
                    plan.id,
                    plan.plan_name,
                    references or 0,
                )
            return PlanResponse.model_validate(plan)
