"""HomelyKhana backend: FastAPI application factory and process entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.routes import admin, bookings, dashboard, health, payments
from src.core.cashfree import CashfreeClient
from src.core.config import Settings, get_settings
from src.core.database import create_db_engine, create_session_factory
from src.core.redis import close_redis_client, create_redis_client
from src.models import Base

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_V1_ROUTERS = (bookings.router, payments.router, dashboard.router, admin.router)


def _open_resources(app: FastAPI, settings: Settings) -> None:
    engine = create_db_engine(settings)
    if engine.dialect.name == "sqlite":
        # No migrations for local sqlite runs
        Base.metadata.create_all(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info("Database pool ready (dialect=%s, size=%d)", engine.dialect.name, settings.db_pool_size)

    app.state.redis = create_redis_client(settings)
    logger.info("Redis client ready")

    gateway = CashfreeClient(settings)
    if not gateway.is_configured:
        logger.warning("Cashfree credentials not set; online payments will fail")
    app.state.payment_gateway = gateway
    logger.info("Cashfree client ready (%s)", settings.cashfree_environment)


def _close_resources(app: FastAPI) -> None:
    app.state.payment_gateway.close()
    close_redis_client(app.state.redis)
    app.state.engine.dispose()
    logger.info("Gateway, cache and database connections released")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Hold the database pool, Redis client and Cashfree client on app.state
    for the lifetime of the process."""
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)
    _open_resources(app, settings)
    try:
        yield
    finally:
        _close_resources(app)
        logger.info("Stopped %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Health probes live at the root; everything else is under /api/v1.
    The error handler is added before the latency logger so that the
    logger sees the rendered error status.
    """
    settings = get_settings()
    show_docs = settings.debug

    app = FastAPI(
        title="HomelyKhana API",
        description="Meal subscription booking and delivery fulfilment backend",
        version="0.1.0",
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    app.include_router(health.router)

    api_v1 = APIRouter(prefix="/api/v1")
    for router in API_V1_ROUTERS:
        api_v1.include_router(router)
    app.include_router(api_v1)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("src.main:app", host=settings.host, port=settings.port, reload=settings.debug)
