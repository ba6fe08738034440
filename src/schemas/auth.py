"""Authentication schemas for JWT tokens, user context and account flows."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_PASSWORD_LENGTH = 8


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token.

    This model represents the authenticated user for the current request.
    It is populated by the auth dependency from the validated JWT.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'authenticated')")


class TokenPayload(BaseModel):
    """Claims of a Supabase-issued access token that the backend relies on."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | list[str] | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
        )


class AuthenticatedResponse(BaseModel):
    """Response for the authenticated health check."""

    model_config = ConfigDict(from_attributes=True)

    authenticated: bool = Field(default=True, description="Authentication status")
    user_id: str = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="User email if available")
    role: str | None = Field(default=None, description="User role if available")


# Registration


class SignupRequest(BaseModel):
    """Request schema for user registration."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., description="User's display name", min_length=1, max_length=255)
    email: str = Field(..., description="User's email address", min_length=3, max_length=255)
    password: str = Field(
        ...,
        description="User's password",
        min_length=MIN_PASSWORD_LENGTH,
        max_length=100,
    )
    confirm_password: str = Field(..., description="Password repeated for confirmation")

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        """Reject registrations whose password confirmation differs."""
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SignupResponse(BaseModel):
    """Response schema for user registration."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Newly created user ID")
    email: str = Field(description="User's email address")
    message: str = Field(description="Success message")
    email_sent: bool = Field(description="Whether a verification email was sent")


# Sessions


class LoginRequest(BaseModel):
    """Request schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")


class LoginResponse(BaseModel):
    """Response schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str = Field(description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Refresh token if available")
    user_id: str = Field(description="User ID")
    email: str = Field(description="User's email address")
    expires_in: int = Field(description="Token expiration time in seconds")


class LogoutResponse(BaseModel):
    """Response schema for logout."""

    message: str = Field(description="Status message")


class RefreshTokenRequest(BaseModel):
    """Request schema for refreshing access token."""

    model_config = ConfigDict(from_attributes=True)

    refresh_token: str = Field(..., description="Refresh token")


class RefreshTokenResponse(BaseModel):
    """Response schema for refreshing access token."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str = Field(description="New JWT access token")
    refresh_token: str | None = Field(default=None, description="New refresh token if rotated")
    expires_in: int = Field(description="Token expiration time in seconds")
