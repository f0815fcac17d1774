"""Authentication schemas for JWT tokens and user context."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token.

    This model represents the authenticated user for the current request.
    It is populated by the auth middleware from the validated JWT.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user")
    name: str | None = Field(default=None, description="User's display name")
    email: str | None = Field(default=None, description="User's email address if available")
    phone: str | None = Field(default=None, description="User's phone number if available")
    role: str | None = Field(default=None, description="User's role ('customer', 'staff', 'admin')")


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Tokens are issued by the auth service with either a userId or an id claim
    for the user's UUID.
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    user_id: UUID = Field(alias="userId", description="The user's UUID")
    name: str | None = Field(default=None, description="User's display name")
    email: str | None = Field(default=None, description="User's email address")
    phone: str | None = Field(default=None, description="User's phone number")
    role: str | None = Field(default=None, description="User's role")
    exp: int | None = Field(default=None, description="Expiration timestamp (Unix epoch)")
    iat: int | None = Field(default=None, description="Issued at timestamp (Unix epoch)")

    @model_validator(mode="before")
    @classmethod
    def _accept_id_claim(cls, data: object) -> object:
        if isinstance(data, dict) and "userId" not in data and "user_id" not in data and "id" in data:
            data = {**data, "userId": data["id"]}
        return data

    @property
    def expiration_datetime(self) -> datetime | None:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp) if self.exp is not None else None

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=self.user_id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            role=self.role,
        )
