"""Application errors and the middleware that renders them as JSON."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Message returned for 5xx errors whose detail must stay server-side
GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class APIError(Exception):
    """Base exception for errors returned to the client.

    Subclasses fix the HTTP status and the error category; callers only
    supply a message and, optionally, per-field details.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = GENERIC_ERROR_MESSAGE
    # Hide the message from clients and log it instead
    internal: bool = False

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(APIError):
    """Resource missing, or owned by another user."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Resource not found"


class ValidationError(APIError):
    """Request is well-formed JSON but violates a business rule."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"
    default_message = "Validation error"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"
    default_message = "Authentication required"


class AuthorizationError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"
    default_message = "Access denied"


class InvalidTransitionError(APIError):
    """A booking or delivery status change the transition table does not allow."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "invalid_transition"
    default_message = "Status transition not allowed"


class GatewayError(APIError):
    """Payment gateway unreachable, or answered with an error.

    Reported as 502 so the checkout can tell a payment problem apart from
    a server fault.
    """

    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "gateway_error"
    default_message = "Payment gateway error"


class TransactionError(APIError):
    """Database failure inside a transaction that has been rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "internal_error"
    default_message = "Database transaction failed"
    internal = True


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Build the JSON body shared by every error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Request ID echoed back for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    response = JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _render_api_error(error: APIError, request_id: str | None) -> JSONResponse:
    if error.internal:
        logger.error(
            "%s: %s\n%s",
            type(error).__name__,
            error.message,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type=error.error_type,
            message=GENERIC_ERROR_MESSAGE,
            status_code=error.status_code,
            request_id=request_id,
        )

    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        "API error: %s - %s",
        error.error_type,
        error.message,
        extra={"request_id": request_id, "status_code": error.status_code},
    )
    return create_error_response(
        error_type=error.error_type,
        message=error.message,
        status_code=error.status_code,
        details=error.details,
        request_id=request_id,
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Catch exceptions escaping the routes and render them as ErrorResponse.

    Application errors keep their status and message, except internal
    ones whose detail is logged and replaced with a generic message.
    Anything else becomes a 500 with the stack trace in the log.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route's response or a formatted error response.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER)

    try:
        return await call_next(request)

    except APIError as e:
        return _render_api_error(e, request_id)

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message=GENERIC_ERROR_MESSAGE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
