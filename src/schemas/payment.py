"""Payment gateway webhook Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field

# payment_status value that completes a booking
PAYMENT_SUCCESS = "SUCCESS"


class WebhookOrder(BaseModel):
    """Order block of a payment webhook."""

    model_config = ConfigDict(extra="ignore")

    order_id: str = Field(min_length=1, description="Our order id (BOOKING_<booking id>)")


class WebhookPayment(BaseModel):
    """Payment block of a payment webhook."""

    model_config = ConfigDict(extra="ignore")

    payment_status: str = Field(description="Gateway payment status, e.g. SUCCESS or FAILED")
    cf_payment_id: str | int | None = Field(default=None, description="Gateway payment id")


class WebhookData(BaseModel):
    """Data block of a payment webhook."""

    model_config = ConfigDict(extra="ignore")

    order: WebhookOrder
    payment: WebhookPayment


class PaymentWebhookPayload(BaseModel):
    """Payment webhook body, validated before any field is read."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = Field(default=None, description="Webhook event type")
    data: WebhookData

    @property
    def order_id(self) -> str:
        return self.data.order.order_id

    @property
    def is_success(self) -> bool:
        return self.data.payment.payment_status == PAYMENT_SUCCESS
