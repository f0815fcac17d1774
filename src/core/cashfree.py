"""Cashfree payment gateway client with retry logic and webhook verification."""

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.api.middleware.error_handler import GatewayError
from src.core.config import Settings

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
MIN_WAIT_SECONDS = 0.5
MAX_WAIT_SECONDS = 4

SLOW_CALL_THRESHOLD_MS = 2000


class GatewayUnavailableError(Exception):
    """Transient gateway failure (5xx); retried before surfacing."""


@dataclass(frozen=True)
class CustomerDetails:
    """Customer block sent with a gateway order."""

    customer_id: str
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None

    def to_payload(self) -> dict[str, str]:
        payload = {"customer_id": self.customer_id}
        if self.customer_name:
            payload["customer_name"] = self.customer_name
        if self.customer_email:
            payload["customer_email"] = self.customer_email
        if self.customer_phone:
            payload["customer_phone"] = self.customer_phone
        return payload


@dataclass(frozen=True)
class GatewayOrder:
    """Order created on the gateway."""

    order_id: str
    payment_session_id: str
    order_status: str | None = None


def build_order_id(booking_id: Any) -> str:
    """Gateway order id for a booking, used to route the webhook back."""
    return f"BOOKING_{booking_id}"


class CashfreeClient:
    """Thin client for the Cashfree PG orders API.

    Construct once at startup and close on shutdown; the underlying
    httpx.Client keeps a connection pool.
    """

    def __init__(self, settings: Settings, http_client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._http = http_client or httpx.Client(
            base_url=settings.cashfree_base_url,
            timeout=settings.cashfree_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.cashfree_client_id and self._settings.cashfree_client_secret)

    def _headers(self) -> dict[str, str]:
        return {
            "x-client-id": self._settings.cashfree_client_id,
            "x-client-secret": self._settings.cashfree_client_secret,
            "x-api-version": self._settings.cashfree_api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, GatewayUnavailableError)),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        reraise=True,
    )
    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> httpx.Response:
        """Send a request, retrying transport errors and 5xx responses."""
        response = self._http.request(method, path, json=json, headers=self._headers())
        if response.status_code >= 500:
            raise GatewayUnavailableError(f"Cashfree returned {response.status_code}")
        return response

    def create_order(
        self,
        *,
        order_id: str,
        amount: Decimal,
        customer: CustomerDetails,
        return_url: str,
    ) -> GatewayOrder:
        """Create a gateway order and return its payment session.

        A 409 means an earlier attempt already created the order (e.g. the
        response was lost and the request retried); the existing order is
        fetched instead.

        Args:
            order_id: Our order id (BOOKING_<booking id>).
            amount: Order amount in rupees.
            customer: Customer block.
            return_url: Where the gateway redirects after payment.

        Returns:
            GatewayOrder: Order with its payment_session_id.

        Raises:
            GatewayError: If the gateway is unconfigured, unreachable, rejects
                the order, or answers without a payment_session_id.
        """
        if not self.is_configured:
            raise GatewayError("Payment gateway is not configured")

        payload = {
            "order_id": order_id,
            "order_amount": float(amount),
            "order_currency": self._settings.order_currency,
            "customer_details": customer.to_payload(),
            "order_meta": {"return_url": return_url},
        }

        start_time = time.perf_counter()
        try:
            response = self._request("POST", "/orders", json=payload)
            if response.status_code == httpx.codes.CONFLICT:
                logger.info("Cashfree order %s already exists, fetching it", order_id)
                response = self._request("GET", f"/orders/{order_id}")
        except (httpx.TransportError, GatewayUnavailableError) as e:
            logger.error(
                "Cashfree order creation failed after %d attempts: %s",
                MAX_RETRIES,
                str(e),
            )
            raise GatewayError("Payment gateway is unavailable") from e
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            if latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning("SLOW Cashfree call: create_order %s took %.2fms", order_id, latency_ms)

        return self._parse_order(order_id, response)

    def _parse_order(self, order_id: str, response: httpx.Response) -> GatewayOrder:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error(
                "Cashfree rejected order %s: %s %s",
                order_id,
                response.status_code,
                message or response.text[:200],
            )
            raise GatewayError(message or "Payment gateway error")

        session_id = body.get("payment_session_id") if isinstance(body, dict) else None
        if not session_id:
            logger.error("Cashfree response for order %s has no payment_session_id", order_id)
            raise GatewayError("Payment gateway returned an invalid response")

        return GatewayOrder(
            order_id=body.get("order_id", order_id),
            payment_session_id=session_id,
            order_status=body.get("order_status"),
        )

    def verify_webhook_signature(self, payload: bytes, timestamp: str | None, signature: str | None) -> None:
        """Verify a webhook's x-webhook-signature header.

        The signature is base64(HMAC-SHA256(client_secret, timestamp + raw body)).

        Raises:
            ValueError: If headers are missing, the secret is unset, or the
                signature does not match.
        """
        secret = self._settings.cashfree_client_secret
        if not secret:
            raise ValueError("Cashfree client secret is not configured")
        if not timestamp or not signature:
            raise ValueError("Missing webhook signature headers")

        message = timestamp.encode("utf-8") + payload
        digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
        expected = base64.b64encode(digest).decode("ascii")

        if not hmac.compare_digest(expected, signature):
            raise ValueError("Invalid webhook signature")

    def close(self) -> None:
        self._http.close()
