"""Request dependencies: caller identity, shared resources and services."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from redis import Redis

from src.api.middleware.auth import AuthError, decode_jwt
from src.api.middleware.error_handler import AuthorizationError
from src.core.cashfree import CashfreeClient
from src.core.database import SessionFactory
from src.models.user import STAFF_ROLES
from src.schemas.auth import UserContext
from src.services.booking_service import BookingService
from src.services.cache_invalidator import CacheInvalidator
from src.services.catalog_service import CatalogService
from src.services.dashboard_service import DashboardService
from src.services.delivery_service import DeliveryService
from src.services.fulfillment_service import FulfillmentService


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Resolve the caller from a ``Bearer <jwt>`` Authorization header.

    Raises:
        HTTPException: 401 if the header is missing or malformed, or the
            token fails verification.
    """
    if not authorization:
        raise _unauthorized("Authorization header required")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    try:
        return decode_jwt(token).to_user_context()
    except AuthError as e:
        raise _unauthorized(e.message) from e


async def get_staff_user(
    user: Annotated[UserContext, Depends(get_current_user)],
) -> UserContext:
    """Require an authenticated staff or admin user.

    Raises:
        AuthorizationError: 403 if the user's role is not staff or admin.
    """
    if user.role not in STAFF_ROLES:
        raise AuthorizationError("Staff access required")
    return user


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
StaffUser = Annotated[UserContext, Depends(get_staff_user)]


# Resource handles created in the application lifespan


def get_session_factory(request: Request) -> SessionFactory:
    """Session factory stored on app.state at startup."""
    return request.app.state.session_factory


def get_redis(request: Request) -> Redis:
    """Redis client stored on app.state at startup."""
    return request.app.state.redis


def get_payment_gateway(request: Request) -> CashfreeClient:
    """Payment gateway client stored on app.state at startup."""
    return request.app.state.payment_gateway


SessionFactoryDep = Annotated[SessionFactory, Depends(get_session_factory)]
RedisDep = Annotated[Redis, Depends(get_redis)]
GatewayDep = Annotated[CashfreeClient, Depends(get_payment_gateway)]


# Service factories


def get_cache_invalidator(redis: RedisDep) -> CacheInvalidator:
    return CacheInvalidator(redis)


def get_fulfillment_service(
    session_factory: SessionFactoryDep,
    cache_invalidator: Annotated[CacheInvalidator, Depends(get_cache_invalidator)],
    gateway: GatewayDep,
) -> FulfillmentService:
    return FulfillmentService(session_factory, cache_invalidator, gateway)


def get_booking_service(session_factory: SessionFactoryDep) -> BookingService:
    return BookingService(session_factory)


def get_catalog_service(session_factory: SessionFactoryDep) -> CatalogService:
    return CatalogService(session_factory)


def get_dashboard_service(session_factory: SessionFactoryDep, redis: RedisDep) -> DashboardService:
    return DashboardService(session_factory, redis)


def get_delivery_service(
    session_factory: SessionFactoryDep,
    cache_invalidator: Annotated[CacheInvalidator, Depends(get_cache_invalidator)],
) -> DeliveryService:
    return DeliveryService(session_factory, cache_invalidator)


FulfillmentServiceDep = Annotated[FulfillmentService, Depends(get_fulfillment_service)]
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
