"""Integration tests for booking API endpoints."""

from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4

from fastapi.testclient import TestClient

from src.api.middleware.error_handler import GatewayError
from src.models import Booking, Delivery
from src.schemas.booking import BookingCreate


def weekly_cart(seed: Any, payment_method: str = "cod", frequency: Any = None) -> dict[str, Any]:
    line: dict[str, Any] = {
        "id": str(seed.meal_plan_product.id),
        "quantity": 1,
        "plan": {"id": seed.weekly_plan.id},
        "totalPrice": 800,
    }
    if frequency is not None:
        line["frequency"] = frequency
    return {
        "cart": {"lunch": [line], "dinner": []},
        "cartTotal": 800,
        "addressId": str(seed.address.id),
        "paymentMethod": payment_method,
    }


class TestCreateBooking:
    """Tests for POST /api/v1/bookings endpoint."""

    def test_cod_booking_schedules_deliveries(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
        row_count: Any,
    ) -> None:
        """Test that a COD booking is completed and its deliveries created."""
        response = client.post(
            "/api/v1/bookings",
            json=weekly_cart(seed, frequency="mon-fri"),
            headers=make_auth_headers(seed.customer.id),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["payment_method"] == "cod"
        assert data["payment_status"] == "completed"
        assert data["payment_session_id"] is None
        assert data["message"] == "Booking placed successfully!"
        # round(7 / 7 * 5) weekdays starting Monday 2 June
        assert data["deliveries_created"] == 5
        assert row_count(Delivery) == 5

    def test_online_booking_returns_payment_session(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
        row_count: Any,
    ) -> None:
        """Test that an online booking returns the gateway session and waits for payment."""
        response = client.post(
            "/api/v1/bookings",
            json=weekly_cart(seed, payment_method="online"),
            headers=make_auth_headers(seed.customer.id),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["payment_status"] == "pending"
        assert data["payment_session_id"] == "session_test_123"
        assert data["cashfree_order_id"] == f"BOOKING_{data['booking_id']}"
        assert row_count(Delivery) == 0

    def test_gateway_error_returns_502(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
        mock_gateway: MagicMock,
        row_count: Any,
    ) -> None:
        """Test that a gateway failure is reported as 502 and nothing is saved."""
        mock_gateway.create_order.side_effect = GatewayError("Payment gateway is unavailable")

        response = client.post(
            "/api/v1/bookings",
            json=weekly_cart(seed, payment_method="online"),
            headers=make_auth_headers(seed.customer.id),
        )

        assert response.status_code == 502
        assert response.json()["error"] == "gateway_error"
        assert row_count(Booking) == 0

    def test_mismatched_total_returns_422(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
    ) -> None:
        """Test that the server rejects a cart whose total does not add up."""
        payload = weekly_cart(seed)
        payload["cartTotal"] = 10

        response = client.post("/api/v1/bookings", json=payload, headers=make_auth_headers(seed.customer.id))

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_unknown_address_returns_404(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
    ) -> None:
        """Test that a missing address is a 404."""
        payload = weekly_cart(seed)
        payload["addressId"] = str(uuid4())

        response = client.post("/api/v1/bookings", json=payload, headers=make_auth_headers(seed.customer.id))

        assert response.status_code == 404

    def test_idempotency_key_replays_first_booking(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
        row_count: Any,
    ) -> None:
        """Test that a retried request with the same Idempotency-Key is not booked twice."""
        headers = {**make_auth_headers(seed.customer.id), "Idempotency-Key": "checkout-42"}

        first = client.post("/api/v1/bookings", json=weekly_cart(seed), headers=headers)
        second = client.post("/api/v1/bookings", json=weekly_cart(seed), headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["booking_id"] == first.json()["booking_id"]
        assert second.json()["message"] == "Booking already placed."
        assert row_count(Booking) == 1

    def test_requires_authentication(self, client: TestClient, seed: Any) -> None:
        """Test that booking without a token is a 401."""
        response = client.post("/api/v1/bookings", json=weekly_cart(seed))

        assert response.status_code == 401


class TestReadBookings:
    """Tests for GET /api/v1/bookings endpoints."""

    def test_get_booking_with_deliveries(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
    ) -> None:
        """Test that a booking is returned with items and dated deliveries."""
        headers = make_auth_headers(seed.customer.id)
        booking_id = client.post("/api/v1/bookings", json=weekly_cart(seed), headers=headers).json()["booking_id"]

        response = client.get(f"/api/v1/bookings/{booking_id}", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["items"][0]["product_name"] == "Daily Meal Plan"
        assert data["items"][0]["plan_name"] == "Weekly"
        dates = [delivery["delivery_date"] for delivery in data["deliveries"]]
        assert len(dates) == 7
        assert dates == sorted(dates)
        assert dates[0] == "2025-06-02"

    def test_booking_detail_orders_lunch_before_dinner(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
        duo_booking_request: BookingCreate,
    ) -> None:
        """Test that each day's lunch is listed ahead of its dinner."""
        headers = make_auth_headers(seed.customer.id)
        booking_id = client.post(
            "/api/v1/bookings",
            json=duo_booking_request.model_dump(mode="json", by_alias=True),
            headers=headers,
        ).json()["booking_id"]

        deliveries = client.get(f"/api/v1/bookings/{booking_id}", headers=headers).json()["deliveries"]

        assert len(deliveries) == 14
        assert [(d["delivery_date"], d["delivery_slot"]) for d in deliveries[:2]] == [
            ("2025-06-02", "lunch"),
            ("2025-06-02", "dinner"),
        ]

    def test_list_bookings_only_shows_own(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
    ) -> None:
        """Test that users only see their own bookings."""
        client.post("/api/v1/bookings", json=weekly_cart(seed), headers=make_auth_headers(seed.customer.id))

        mine = client.get("/api/v1/bookings", headers=make_auth_headers(seed.customer.id))
        theirs = client.get("/api/v1/bookings", headers=make_auth_headers(seed.other_customer.id))

        assert len(mine.json()["items"]) == 1
        assert theirs.json()["items"] == []

    def test_other_users_booking_is_not_found(
        self,
        client: TestClient,
        seed: Any,
        make_auth_headers: Any,
    ) -> None:
        """Test that reading another user's booking is a 404."""
        booking_id = client.post(
            "/api/v1/bookings", json=weekly_cart(seed), headers=make_auth_headers(seed.customer.id)
        ).json()["booking_id"]

        response = client.get(f"/api/v1/bookings/{booking_id}", headers=make_auth_headers(seed.other_customer.id))

        assert response.status_code == 404
