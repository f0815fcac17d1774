"""Verification of the access tokens issued by the HomelyKhana auth service."""

from enum import Enum

import jwt

from src.core.config import get_settings
from src.schemas.auth import TokenPayload


class AuthErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """Token rejected; ``code`` tells the caller why."""

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Checked in order, so subclasses of InvalidTokenError come before it
_JWT_FAILURES: tuple[tuple[type[jwt.InvalidTokenError], AuthErrorCode, str], ...] = (
    (jwt.ExpiredSignatureError, AuthErrorCode.TOKEN_EXPIRED, "Token has expired"),
    (jwt.InvalidSignatureError, AuthErrorCode.INVALID_SIGNATURE, "Invalid token signature"),
    (jwt.DecodeError, AuthErrorCode.INVALID_TOKEN, "Invalid token format"),
)


def decode_jwt(token: str) -> TokenPayload:
    """Verify a bearer token and return its claims.

    The user id may arrive as ``userId`` or ``id``; either way it must be
    a UUID.

    Raises:
        AuthError: If the token is expired, forged, malformed or carries
            no usable user id.
    """
    settings = get_settings()

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": True},
        )
    except jwt.InvalidTokenError as e:
        for failure, code, message in _JWT_FAILURES:
            if isinstance(e, failure):
                raise AuthError(message, code) from e
        raise AuthError(f"Token validation failed: {e}", AuthErrorCode.INVALID_TOKEN) from e

    try:
        return TokenPayload.model_validate(claims)
    except ValueError as e:
        raise AuthError("Token has no valid user id claim", AuthErrorCode.INVALID_TOKEN) from e
