"""Payment gateway webhook routes."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import FulfillmentServiceDep, GatewayDep
from src.core.config import get_settings
from src.schemas.payment import PaymentWebhookPayload
from src.services.fulfillment_service import WebhookOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payment"])

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"


@router.post(
    "/webhook",
    response_class=PlainTextResponse,
    responses={
        200: {"description": "Processed, duplicate, or not a successful payment"},
        400: {"description": "Invalid payload or signature"},
        500: {"description": "Processing failed; the gateway should retry"},
    },
    summary="Handle payment webhooks",
    description=(
        "Receives payment notifications from Cashfree. A SUCCESS payment "
        "completes the booking and schedules its deliveries exactly once."
    ),
)
async def payment_webhook(
    request: Request,
    service: FulfillmentServiceDep,
    gateway: GatewayDep,
) -> PlainTextResponse:
    """Handle a payment webhook.

    The body is verified (when enabled) and validated before any field is
    read. Repeated deliveries of the same webhook are acknowledged with
    200 so the gateway stops retrying.

    Args:
        request: FastAPI request object for reading raw body and headers.
        service: Fulfillment service.
        gateway: Gateway client used for signature verification.

    Returns:
        PlainTextResponse: Acknowledgment text.
    """
    payload = await request.body()

    if get_settings().cashfree_verify_webhooks:
        try:
            gateway.verify_webhook_signature(
                payload,
                request.headers.get(TIMESTAMP_HEADER),
                request.headers.get(SIGNATURE_HEADER),
            )
        except ValueError as e:
            logger.error("Invalid webhook signature: %s", str(e))
            return PlainTextResponse("Invalid signature", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        webhook = PaymentWebhookPayload.model_validate_json(payload)
    except PydanticValidationError as e:
        logger.error("Webhook payload error: %s", str(e))
        return PlainTextResponse("Invalid payload", status_code=status.HTTP_400_BAD_REQUEST)

    if not webhook.is_success:
        logger.info(
            "Ignoring webhook for order %s with payment status %s",
            webhook.order_id,
            webhook.data.payment.payment_status,
        )
        return PlainTextResponse("OK (Payment Not Success)")

    try:
        outcome = await service.confirm_online_payment(webhook.order_id)
    except Exception:
        logger.exception("Webhook processing failed for order %s", webhook.order_id)
        return PlainTextResponse(
            "Webhook processing error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if outcome is WebhookOutcome.ALREADY_PROCESSED:
        return PlainTextResponse("OK (Already Processed)")
    return PlainTextResponse("OK")
