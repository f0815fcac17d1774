"""Staff and admin routes: orders, plans and delivery operations."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query

from src.api.deps import BookingServiceDep, CatalogServiceDep, DeliveryServiceDep, StaffUser
from src.models.booking import PaymentMethod, PaymentStatus
from src.schemas.booking import DeliveryResponse, StaffBookingListResponse
from src.schemas.catalog import PlanResponse
from src.schemas.delivery import (
    DeliveryAssign,
    DeliveryStatusUpdate,
    DispatchSheetResponse,
    KitchenPrepResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/dispatch-sheet",
    response_model=DispatchSheetResponse,
    summary="Dispatch sheet",
    description="Scheduled deliveries for a day, ordered by slot and pincode.",
)
async def get_dispatch_sheet(
    _: StaffUser,
    service: DeliveryServiceDep,
    target_date: date | None = Query(default=None, alias="date", description="Sheet date, defaults to today"),
    slot: str | None = Query(default=None, description="Delivery slot filter"),
) -> DispatchSheetResponse:
    """Get the dispatch sheet for a day."""
    return await service.dispatch_sheet(target_date, slot)


@router.get(
    "/kitchen-prep",
    response_model=KitchenPrepResponse,
    summary="Kitchen prep",
    description="Meals to cook per product and meal, defaults to tomorrow.",
)
async def get_kitchen_prep(
    _: StaffUser,
    service: DeliveryServiceDep,
    target_date: date | None = Query(default=None, alias="date", description="Prep date, defaults to tomorrow"),
) -> KitchenPrepResponse:
    """Get kitchen prep totals for a day."""
    return await service.kitchen_prep(target_date)


@router.patch(
    "/deliveries/{delivery_id}/status",
    response_model=DeliveryResponse,
    responses={
        404: {"description": "Delivery not found"},
        409: {"description": "Transition not allowed"},
    },
    summary="Update delivery status",
    description="Dispatch, deliver or cancel a delivery.",
)
async def update_delivery_status(
    delivery_id: UUID,
    data: DeliveryStatusUpdate,
    _: StaffUser,
    service: DeliveryServiceDep,
) -> DeliveryResponse:
    """Apply a status event to a delivery."""
    delivery = await service.update_status(delivery_id, data.event, data.driver_notes)
    return DeliveryResponse.model_validate(delivery)


@router.patch(
    "/deliveries/{delivery_id}/assign",
    response_model=DeliveryResponse,
    responses={
        404: {"description": "Delivery or user not found"},
        409: {"description": "Delivery already finished"},
        422: {"description": "User is not staff"},
    },
    summary="Assign delivery",
    description="Assign a delivery to a staff member.",
)
async def assign_delivery(
    delivery_id: UUID,
    data: DeliveryAssign,
    _: StaffUser,
    service: DeliveryServiceDep,
) -> DeliveryResponse:
    """Assign a delivery to a staff member."""
    delivery = await service.assign(delivery_id, data.staff_user_id)
    return DeliveryResponse.model_validate(delivery)


@router.get(
    "/bookings",
    response_model=StaffBookingListResponse,
    summary="List all bookings",
    description="Bookings across all customers, newest first. Filter by payment_status=pending to reconcile.",
)
async def list_all_bookings(
    _: StaffUser,
    service: BookingServiceDep,
    payment_status: PaymentStatus | None = Query(default=None, alias="status", description="Payment status filter"),
    payment_method: PaymentMethod | None = Query(default=None, alias="method", description="Payment method filter"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Page size"),
) -> StaffBookingListResponse:
    """Page through bookings for staff."""
    return await service.search_bookings(payment_status, payment_method, page, limit)


@router.delete(
    "/plans/{plan_id}",
    response_model=PlanResponse,
    responses={404: {"description": "Plan not found"}},
    summary="Retire subscription plan",
    description="Marks the plan inactive. Plan rows are never deleted; existing bookings keep resolving them.",
)
async def retire_plan(
    plan_id: int,
    _: StaffUser,
    service: CatalogServiceDep,
) -> PlanResponse:
    """Retire a subscription plan."""
    return await service.retire_plan(plan_id)
