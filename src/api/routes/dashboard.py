"""User dashboard API routes."""

from uuid import UUID

from fastapi import APIRouter

from src.api.deps import CurrentUser, DashboardServiceDep, DeliveryServiceDep
from src.schemas.dashboard import NextDeliveryResponse, SkipResponse, SubscriptionListResponse

router = APIRouter(prefix="/user-dashboard", tags=["user-dashboard"])


@router.get(
    "/next-delivery",
    response_model=NextDeliveryResponse,
    summary="Next delivery",
    description="The user's next scheduled meal. Served from the shared cache when warm.",
)
async def get_next_delivery(user: CurrentUser, service: DashboardServiceDep) -> NextDeliveryResponse:
    """Get the current user's next scheduled delivery."""
    return await service.get_next_delivery(user.user_id)


@router.get(
    "/subscriptions",
    response_model=SubscriptionListResponse,
    summary="Active subscriptions",
    description="Paid subscription items with their remaining meal balance.",
)
async def get_subscriptions(user: CurrentUser, service: DashboardServiceDep) -> SubscriptionListResponse:
    """Get the current user's active subscriptions."""
    return await service.get_subscriptions(user.user_id)


@router.put(
    "/skip/{delivery_id}",
    response_model=SkipResponse,
    responses={
        404: {"description": "Delivery not found"},
        409: {"description": "Delivery is no longer scheduled"},
        422: {"description": "Delivery date has passed"},
    },
    summary="Skip a meal",
    description="Skip one upcoming scheduled delivery.",
)
async def skip_delivery(delivery_id: UUID, user: CurrentUser, service: DeliveryServiceDep) -> SkipResponse:
    """Skip one of the current user's deliveries."""
    delivery = await service.skip(user.user_id, delivery_id)
    return SkipResponse(
        delivery_id=delivery.id,
        status=delivery.status,
        message="Meal skipped successfully.",
    )
