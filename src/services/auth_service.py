"""Registration and session business logic backed by Supabase Auth."""

import logging
from enum import Enum
from typing import Any

from src.api.middleware.error_handler import ValidationError
from src.core.config import get_settings
from src.core.supabase import create_auth_client

logger = logging.getLogger(__name__)


class SignupErrorCode(str, Enum):
    """Machine-readable registration failure codes."""

    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    SIGNUP_FAILED = "SIGNUP_FAILED"


SIGNUP_ERROR_MESSAGES = {
    SignupErrorCode.USER_ALREADY_EXISTS: (
        "Email already registered. Please use a different email or login instead."
    ),
    SignupErrorCode.SIGNUP_FAILED: "Registration failed. Please try again.",
}


def _signup_error(code: SignupErrorCode) -> ValidationError:
    return ValidationError(SIGNUP_ERROR_MESSAGES[code], code=code.value)


class AuthService:
    """Service for registering users and managing their sessions."""

    def __init__(self) -> None:
        """Initialize auth service with an isolated Supabase client.

        Sign-in calls store a session on the client, so each service gets
        its own client rather than the shared database singleton.
        """
        self.client = create_auth_client()
        self.settings = get_settings()

    async def signup(self, name: str, email: str, password: str) -> dict[str, Any]:
        """Register a new user with email and password.

        Args:
            name: Display name stored in the user's metadata.
            email: User's email address.
            password: User's password.

        Returns:
            dict: user_id, email, email_sent and a status message.

        Raises:
            ValidationError: USER_ALREADY_EXISTS for a taken email,
                SIGNUP_FAILED for anything else.
        """
        try:
            response = self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {
                        "email_redirect_to": self.settings.auth_redirect_url,
                        "data": {"full_name": name},
                    },
                }
            )
        except Exception as e:
            error_msg = str(e).lower()
            logger.error("Signup failed for %s: %s", email, e)
            if "already registered" in error_msg or "already exists" in error_msg:
                raise _signup_error(SignupErrorCode.USER_ALREADY_EXISTS) from e
            raise _signup_error(SignupErrorCode.SIGNUP_FAILED) from e

        if not response.user:
            logger.error("Signup for %s returned no user", email)
            raise _signup_error(SignupErrorCode.SIGNUP_FAILED)

        user = response.user
        logger.info("User signed up: %s", user.id)

        # No session means the provider is waiting on email confirmation
        email_sent = response.session is None
        return {
            "user_id": str(user.id),
            "email": user.email or email,
            "email_sent": email_sent,
            "message": "Account created successfully! Please log in.",
        }

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in with email and password.

        Args:
            email: User's email address.
            password: User's password.

        Returns:
            dict: Access/refresh tokens, user_id, email and expires_in.

        Raises:
            ValidationError: If the provider rejects the credentials.
        """
        try:
            response = self.client.auth.sign_in_with_password(
                {
                    "email": email,
                    "password": password,
                }
            )
        except Exception as e:
            error_msg = str(e).lower()
            logger.warning("Login failed for %s: %s", email, e)
            if "email not confirmed" in error_msg:
                raise ValidationError("Please verify your email before logging in") from e
            raise ValidationError("Invalid email or password") from e

        if not response.user or not response.session:
            raise ValidationError("Invalid email or password")

        user = response.user
        session = response.session
        logger.info("User logged in: %s", user.id)

        return {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "user_id": str(user.id),
            "email": user.email or email,
            "expires_in": session.expires_in or 3600,
        }

    async def logout(self, access_token: str) -> dict[str, Any]:
        """Revoke the session behind an access token.

        The caller discards its token regardless, so a provider failure is
        logged and still reported as a successful logout.

        Args:
            access_token: The bearer token being signed out.

        Returns:
            dict: Logout status message.
        """
        try:
            self.client.auth.admin.sign_out(access_token)
            logger.info("Session signed out")
        except Exception as e:
            logger.warning("Provider sign-out failed, token left to expire: %s", e)

        return {"message": "Signed out successfully!"}

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new access token.

        Args:
            refresh_token: The refresh token.

        Returns:
            dict: New access token, refresh token, and expiration.

        Raises:
            ValidationError: If the refresh token is invalid or expired.
        """
        try:
            response = self.client.auth.refresh_session(refresh_token)
        except Exception as e:
            logger.warning("Token refresh failed: %s", e)
            raise ValidationError("Invalid or expired refresh token") from e

        if not response.session:
            raise ValidationError("Invalid or expired refresh token")

        session = response.session
        return {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_in": session.expires_in or 3600,
        }
