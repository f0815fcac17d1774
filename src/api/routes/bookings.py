"""Booking API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, status

from src.api.deps import BookingServiceDep, CurrentUser, FulfillmentServiceDep
from src.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingListResponse,
    BookingResponse,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Address, product or plan not found"},
        422: {"description": "Malformed cart or mismatched totals"},
        502: {"description": "Payment gateway error"},
    },
    summary="Create booking",
    description=(
        "Place an order from the checkout cart. Cash-on-delivery orders are "
        "completed and scheduled immediately; online orders return a payment "
        "session and are scheduled when the payment webhook arrives."
    ),
)
async def create_booking(
    data: BookingCreate,
    user: CurrentUser,
    service: FulfillmentServiceDep,
    idempotency_key: Annotated[str | None, Header(max_length=128)] = None,
) -> BookingCreatedResponse:
    """Create a booking for the authenticated user.

    Args:
        data: Cart, totals, address and payment method.
        user: The authenticated user context.
        service: Fulfillment service.
        idempotency_key: Optional Idempotency-Key header.

    Returns:
        BookingCreatedResponse: Booking id and payment session.
    """
    result = await service.create_booking(user, data, idempotency_key=idempotency_key)
    return BookingCreatedResponse(
        booking_id=result.booking_id,
        payment_method=result.payment_method,
        payment_status=result.payment_status,
        payment_session_id=result.payment_session_id,
        cashfree_order_id=result.cashfree_order_id,
        deliveries_created=result.deliveries_created,
        message=result.message,
    )


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List my bookings",
    description="List the authenticated user's bookings, newest first.",
)
async def list_bookings(user: CurrentUser, service: BookingServiceDep) -> BookingListResponse:
    """List the current user's bookings."""
    return await service.list_bookings(user.user_id)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
    summary="Get booking",
    description="Get a booking with its items and deliveries (ascending by date).",
)
async def get_booking(booking_id: UUID, user: CurrentUser, service: BookingServiceDep) -> BookingResponse:
    """Get one of the current user's bookings."""
    return await service.get_booking(user.user_id, booking_id)
