"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.schemas.auth import UserContext


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_bearer_token(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> str:
    """Extract the raw token from a "Bearer <token>" Authorization header.

    Raises:
        HTTPException: 401 if the header is missing or malformed.
    """
    if not authorization:
        raise _unauthorized("Authentication required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
) -> UserContext:
    """Resolve the bearer token to the authenticated user.

    Every profile operation depends on this, so an unauthenticated request
    is answered with 401 before any store access happens.

    Args:
        token: The raw bearer token.

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is invalid or expired.
    """
    try:
        payload = decode_jwt(token)
        return payload.to_user_context()
    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise _unauthorized("Token has expired") from e
        raise _unauthorized(e.message) from e
    except ValueError as e:
        # sub claim that is not a UUID
        raise _unauthorized("Invalid token subject") from e


# Type aliases for cleaner dependency injection
BearerToken = Annotated[str, Depends(get_bearer_token)]
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
