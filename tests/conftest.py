"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Generator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import Engine, create_engine, func, select
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CASHFREE_CLIENT_ID", "test-client-id")
os.environ.setdefault("CASHFREE_CLIENT_SECRET", "test-client-secret")

from src.core.cashfree import CashfreeClient, GatewayOrder  # noqa: E402
from src.core.config import get_settings  # noqa: E402
from src.core.database import SessionFactory, create_session_factory  # noqa: E402
from src.models import Address, Base, Product, SubscriptionPlan, User  # noqa: E402
from src.schemas.auth import UserContext  # noqa: E402
from src.schemas.booking import BookingCreate  # noqa: E402
from src.services.cache_invalidator import CacheInvalidator  # noqa: E402
from src.services.dashboard_service import DashboardService  # noqa: E402
from src.services.delivery_service import DeliveryService  # noqa: E402
from src.services.fulfillment_service import FulfillmentService  # noqa: E402

# Fixed "today" for date-dependent tests (a Sunday)
TODAY = date(2025, 6, 1)

TEST_JWT_SECRET = os.environ["JWT_SECRET"]


def fixed_today() -> date:
    return TODAY


@dataclass
class SeedData:
    """Rows created by the seed fixture."""

    customer: User
    other_customer: User
    staff: User
    address: Address
    other_address: Address
    thali: Product
    meal_plan_product: Product
    inactive_product: Product
    monthly_plan: SubscriptionPlan
    weekly_plan: SubscriptionPlan
    trial_plan: SubscriptionPlan
    duo_plan: SubscriptionPlan
    retired_plan: SubscriptionPlan

    @property
    def customer_context(self) -> UserContext:
        return UserContext(
            user_id=self.customer.id,
            name=self.customer.name,
            email=self.customer.email,
            phone=self.customer.phone,
            role=self.customer.role,
        )


def create_test_token(
    user_id: UUID | str,
    role: str = "customer",
    name: str = "Asha Rao",
    email: str = "asha@example.com",
    phone: str = "9876543210",
    exp_offset: int = 3600,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """Create a signed access token like the auth service issues."""
    now = int(time.time())
    payload = {
        "userId": str(user_id),
        "name": name,
        "email": email,
        "phone": phone,
        "role": role,
        "iat": now,
        "exp": now + exp_offset,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: UUID | str, role: str = "customer") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_test_token(user_id, role=role)}"}


def count_rows(session_factory: SessionFactory, model: Any) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(model))


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Provide an in-memory SQLite engine with the schema created."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> SessionFactory:
    return create_session_factory(engine)


@pytest.fixture
def mock_redis() -> MagicMock:
    """Provide a mocked Redis client with an empty cache."""
    client = MagicMock()
    client.get.return_value = None
    return client


@pytest.fixture
def cache_invalidator(mock_redis: MagicMock) -> CacheInvalidator:
    return CacheInvalidator(mock_redis)


@pytest.fixture
def mock_gateway(test_settings: Any) -> MagicMock:
    """Provide a mocked payment gateway that verifies signatures for real."""
    gateway = MagicMock(spec=CashfreeClient)
    gateway.create_order.return_value = GatewayOrder(
        order_id="BOOKING_test",
        payment_session_id="session_test_123",
        order_status="ACTIVE",
    )
    real_client = CashfreeClient(test_settings, http_client=MagicMock())
    gateway.verify_webhook_signature.side_effect = real_client.verify_webhook_signature
    return gateway


@pytest.fixture
def seed(session_factory: SessionFactory) -> SeedData:
    """Create users, addresses and the meal catalog."""
    customer = User(id=uuid4(), name="Asha Rao", email="asha@example.com", phone="9876543210", role="customer")
    other_customer = User(id=uuid4(), name="Vikram Shah", email="vikram@example.com", phone="9123456780", role="customer")
    staff = User(id=uuid4(), name="Ravi Kumar", email="ravi@example.com", phone="9000000001", role="staff")

    address = Address(
        id=uuid4(),
        user_id=customer.id,
        type="home",
        is_default=True,
        full_name="Asha Rao",
        phone="9876543210",
        address_line_1="12 MG Road",
        address_line_2="Flat 4B",
        city="Bengaluru",
        state="Karnataka",
        pincode="560001",
        landmark="Near Metro",
    )
    other_address = Address(
        id=uuid4(),
        user_id=other_customer.id,
        type="work",
        is_default=True,
        full_name="Vikram Shah",
        phone="9123456780",
        address_line_1="88 Residency Road",
        city="Bengaluru",
        state="Karnataka",
        pincode="560025",
    )

    thali = Product(id=uuid4(), name="Veg Thali", base_price=Decimal("120.00"), booking_type="one-time")
    meal_plan_product = Product(
        id=uuid4(), name="Daily Meal Plan", base_price=Decimal("100.00"), booking_type="subscription"
    )
    inactive_product = Product(
        id=uuid4(), name="Festival Special", base_price=Decimal("250.00"), booking_type="one-time", is_active=False
    )

    with session_factory() as session:
        session.add_all([customer, other_customer, staff, address, other_address])
        session.add_all([thali, meal_plan_product, inactive_product])
        session.flush()

        monthly_plan = SubscriptionPlan(
            product_id=meal_plan_product.id, plan_name="Monthly", price=Decimal("3000.00"), duration_days=30
        )
        weekly_plan = SubscriptionPlan(
            product_id=meal_plan_product.id, plan_name="Weekly", price=Decimal("800.00"), duration_days=7
        )
        trial_plan = SubscriptionPlan(
            product_id=meal_plan_product.id, plan_name="Trial", price=Decimal("300.00"), duration_days=3
        )
        duo_plan = SubscriptionPlan(
            product_id=meal_plan_product.id,
            plan_name="Weekly Duo",
            price=Decimal("1500.00"),
            duration_days=7,
            meals_per_day=2,
        )
        retired_plan = SubscriptionPlan(
            product_id=meal_plan_product.id,
            plan_name="Quarterly",
            price=Decimal("8000.00"),
            duration_days=90,
            is_active=False,
        )
        session.add_all([monthly_plan, weekly_plan, trial_plan, duo_plan, retired_plan])
        session.commit()

    return SeedData(
        customer=customer,
        other_customer=other_customer,
        staff=staff,
        address=address,
        other_address=other_address,
        thali=thali,
        meal_plan_product=meal_plan_product,
        inactive_product=inactive_product,
        monthly_plan=monthly_plan,
        weekly_plan=weekly_plan,
        trial_plan=trial_plan,
        duo_plan=duo_plan,
        retired_plan=retired_plan,
    )


@pytest.fixture
def fulfillment_service(
    session_factory: SessionFactory,
    cache_invalidator: CacheInvalidator,
    mock_gateway: MagicMock,
    test_settings: Any,
) -> FulfillmentService:
    return FulfillmentService(
        session_factory,
        cache_invalidator,
        mock_gateway,
        today=fixed_today,
        settings=test_settings,
    )


@pytest.fixture
def delivery_service(session_factory: SessionFactory, cache_invalidator: CacheInvalidator) -> DeliveryService:
    return DeliveryService(session_factory, cache_invalidator, today=fixed_today)


@pytest.fixture
def dashboard_service(
    session_factory: SessionFactory,
    mock_redis: MagicMock,
    test_settings: Any,
) -> DashboardService:
    return DashboardService(session_factory, mock_redis, today=fixed_today, settings=test_settings)


@pytest.fixture
def client(
    engine: Engine,
    session_factory: SessionFactory,
    mock_redis: MagicMock,
    mock_gateway: MagicMock,
    fulfillment_service: FulfillmentService,
    delivery_service: DeliveryService,
    dashboard_service: DashboardService,
) -> Generator[TestClient, None, None]:
    """Provide a test client wired to the test database, cache and gateway.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api import deps
    from src.main import app

    app.dependency_overrides[deps.get_fulfillment_service] = lambda: fulfillment_service
    app.dependency_overrides[deps.get_delivery_service] = lambda: delivery_service
    app.dependency_overrides[deps.get_dashboard_service] = lambda: dashboard_service

    with TestClient(app) as test_client:
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.redis = mock_redis
        app.state.payment_gateway = mock_gateway
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def today() -> date:
    """The fixed date services under test treat as today."""
    return TODAY


@pytest.fixture
def make_auth_headers() -> Any:
    """Build Authorization headers for a user id and role."""
    return auth_headers


@pytest.fixture
def row_count(session_factory: SessionFactory) -> Any:
    """Count the rows of a model in the test database."""
    return lambda model: count_rows(session_factory, model)


@pytest.fixture
def weekly_booking_request(seed: SeedData) -> BookingCreate:
    """COD checkout of the 7-day plan, every day, for lunch."""
    return BookingCreate.model_validate(
        {
            "cart": {
                "lunch": [
                    {
                        "id": str(seed.meal_plan_product.id),
                        "quantity": 1,
                        "plan": {"id": seed.weekly_plan.id},
                        "totalPrice": "800.00",
                    }
                ],
                "dinner": [],
            },
            "cartTotal": "800.00",
            "addressId": str(seed.address.id),
            "paymentMethod": "cod",
            "notes": "Ring the bell twice",
        }
    )


@pytest.fixture
def duo_booking_request(seed: SeedData) -> BookingCreate:
    """COD checkout of the two-meals-a-day plan, ordered from the dinner menu."""
    return BookingCreate.model_validate(
        {
            "cart": {
                "lunch": [],
                "dinner": [
                    {
                        "id": str(seed.meal_plan_product.id),
                        "quantity": 1,
                        "plan": {"id": seed.duo_plan.id},
                        "totalPrice": "1500.00",
                    }
                ],
            },
            "cartTotal": "1500.00",
            "addressId": str(seed.address.id),
            "paymentMethod": "cod",
        }
    )
