"""Unit tests for the Cashfree gateway client."""

import base64
import hashlib
import hmac
import json
from collections.abc import Callable, Generator
from decimal import Decimal
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from tenacity import wait_none

from src.api.middleware.error_handler import GatewayError
from src.core.cashfree import CashfreeClient, CustomerDetails, GatewayOrder, build_order_id

CUSTOMER = CustomerDetails(
    customer_id="550e8400-e29b-41d4-a716-446655440000",
    customer_name="Asha Rao",
    customer_email="asha@example.com",
    customer_phone="9876543210",
)


@pytest.fixture(autouse=True)
def no_retry_wait() -> Generator[None, None, None]:
    """Retry immediately so tests do not sleep."""
    with patch.object(CashfreeClient._request.retry, "wait", wait_none()):
        yield


def make_client(test_settings: Any, handler: Callable[[httpx.Request], httpx.Response]) -> CashfreeClient:
    http_client = httpx.Client(
        base_url=test_settings.cashfree_base_url,
        transport=httpx.MockTransport(handler),
    )
    return CashfreeClient(test_settings, http_client=http_client)


def create(client: CashfreeClient) -> GatewayOrder:
    return client.create_order(
        order_id="BOOKING_123",
        amount=Decimal("800.00"),
        customer=CUSTOMER,
        return_url="https://homelykhana.in/booking-status?booking_id=123",
    )


class TestCreateOrder:
    """Tests for CashfreeClient.create_order."""

    def test_returns_payment_session(self, test_settings: Any) -> None:
        """Test that a successful response yields the session id."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"order_id": "BOOKING_123", "payment_session_id": "session_abc", "order_status": "ACTIVE"},
            )

        order = create(make_client(test_settings, handler))

        assert order == GatewayOrder("BOOKING_123", "session_abc", "ACTIVE")
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path.endswith("/orders")
        assert request.headers["x-client-id"] == "test-client-id"
        assert request.headers["x-api-version"] == test_settings.cashfree_api_version
        body = json.loads(request.content)
        assert body["order_amount"] == 800.0
        assert body["order_currency"] == "INR"
        assert body["customer_details"]["customer_phone"] == "9876543210"
        assert body["order_meta"]["return_url"].endswith("booking_id=123")

    def test_conflict_fetches_existing_order(self, test_settings: Any) -> None:
        """Test that a 409 falls back to GET /orders/{id}."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(409, json={"message": "order already exists"})
            assert request.url.path.endswith("/orders/BOOKING_123")
            return httpx.Response(200, json={"order_id": "BOOKING_123", "payment_session_id": "session_old"})

        order = create(make_client(test_settings, handler))

        assert order.payment_session_id == "session_old"

    def test_client_error_raises_gateway_error(self, test_settings: Any) -> None:
        """Test that a 4xx surfaces the gateway's message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "customer_phone is invalid"})

        with pytest.raises(GatewayError) as exc_info:
            create(make_client(test_settings, handler))

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "customer_phone is invalid"

    def test_missing_session_id_raises_gateway_error(self, test_settings: Any) -> None:
        """Test that a 200 without payment_session_id is treated as a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"order_id": "BOOKING_123"})

        with pytest.raises(GatewayError, match="invalid response"):
            create(make_client(test_settings, handler))

    def test_server_errors_are_retried(self, test_settings: Any) -> None:
        """Test that a 5xx is retried and a later success is returned."""
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            if attempts["count"] < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"payment_session_id": "session_retry"})

        order = create(make_client(test_settings, handler))

        assert attempts["count"] == 3
        assert order.payment_session_id == "session_retry"

    def test_transport_failure_after_retries(self, test_settings: Any) -> None:
        """Test that persistent connection errors become GatewayError."""
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError, match="unavailable"):
            create(make_client(test_settings, handler))

        assert attempts["count"] == 3

    def test_unconfigured_client_makes_no_call(self, test_settings: Any) -> None:
        """Test that missing credentials fail fast."""
        settings = test_settings.model_copy(update={"cashfree_client_id": ""})

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(GatewayError, match="not configured"):
            create(make_client(settings, handler))


class TestVerifyWebhookSignature:
    """Tests for CashfreeClient.verify_webhook_signature."""

    def _sign(self, secret: str, timestamp: str, body: bytes) -> str:
        digest = hmac.new(secret.encode(), timestamp.encode() + body, hashlib.sha256).digest()
        return base64.b64encode(digest).decode()

    def test_accepts_valid_signature(self, test_settings: Any) -> None:
        """Test that a correctly signed body passes."""
        client = CashfreeClient(test_settings, http_client=httpx.Client())
        body = b'{"type":"PAYMENT_SUCCESS_WEBHOOK"}'

        client.verify_webhook_signature(body, "1717200000", self._sign("test-client-secret", "1717200000", body))

    def test_rejects_tampered_body(self, test_settings: Any) -> None:
        """Test that a signature over a different body fails."""
        client = CashfreeClient(test_settings, http_client=httpx.Client())
        signature = self._sign("test-client-secret", "1717200000", b"{}")

        with pytest.raises(ValueError, match="Invalid webhook signature"):
            client.verify_webhook_signature(b'{"amount": 1}', "1717200000", signature)

    def test_rejects_missing_headers(self, test_settings: Any) -> None:
        """Test that absent signature headers fail."""
        client = CashfreeClient(test_settings, http_client=httpx.Client())

        with pytest.raises(ValueError, match="Missing"):
            client.verify_webhook_signature(b"{}", None, None)


def test_build_order_id() -> None:
    """Test that order ids route back to the booking."""
    assert build_order_id("abc") == "BOOKING_abc"
