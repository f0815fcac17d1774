"""Subscription plan resolution."""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from src.api.middleware.error_handler import NotFoundError
from src.models.catalog import SubscriptionPlan

TRIAL_PLAN_NAME = "trial"


@dataclass(frozen=True)
class PlanTerms:
    """What a subscription plan buys."""

    plan_id: int
    plan_name: str
    duration_days: int
    meals_per_day: int
    is_active: bool

    @property
    def is_trial(self) -> bool:
        """Trial plans deliver on consecutive days regardless of frequency."""
        return self.plan_name.strip().lower() == TRIAL_PLAN_NAME


class PlanResolver:
    """Resolves plan identifiers to duration and meals per day."""

    def resolve(self, session: Session, plan_id: int) -> PlanTerms:
        """Resolve a plan, including retired (inactive) plans.

        Args:
            session: Session of the enclosing transaction.
            plan_id: Subscription plan identifier.

        Returns:
            PlanTerms: Duration and meals per day for the plan.

        Raises:
            NotFoundError: If no plan row exists for plan_id.
        """
        plan = session.get(SubscriptionPlan, plan_id)
        if plan is None:
            raise NotFoundError(f"Subscription plan {plan_id} not found")

        return PlanTerms(
            plan_id=plan.id,
            plan_name=plan.plan_name,
            duration_days=plan.duration_days,
            meals_per_day=plan.meals_per_day or 1,
            is_active=bool(plan.is_active),
        )
