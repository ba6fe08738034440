"""Registration and session API routes."""

from fastapi import APIRouter, HTTPException, status

from src.api.deps import BearerToken, CurrentUser
from src.api.middleware.error_handler import APIError, ValidationError
from src.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RefreshTokenRequest,
    RefreshTokenResponse,
    SignupRequest,
    SignupResponse,
)
from src.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a user account. Password must be at least 8 characters and match its confirmation.",
)
async def signup(data: SignupRequest) -> SignupResponse:
    """Register a new user with name, email and password.

    Raises:
        APIError: 400 with code USER_ALREADY_EXISTS or SIGNUP_FAILED.
    """
    service = AuthService()

    try:
        result = await service.signup(
            name=data.name,
            email=data.email,
            password=data.password,
        )
    except ValidationError as e:
        raise APIError(
            message=e.message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type=e.error_type,
            code=e.code,
        ) from e

    return SignupResponse(**result)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login user",
    description="Authenticate user with email and password. Returns JWT access token.",
)
async def login(data: LoginRequest) -> LoginResponse:
    """Login user with email and password.

    Raises:
        HTTPException: 401 if the credentials are rejected.
    """
    service = AuthService()

    try:
        result = await service.login(email=data.email, password=data.password)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        ) from e

    return LoginResponse(**result)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Logout user",
    description="Revoke the session behind the bearer token.",
)
async def logout(user: CurrentUser, token: BearerToken) -> LogoutResponse:
    """Sign out the authenticated user's session."""
    result = await AuthService().logout(access_token=token)
    return LogoutResponse(**result)


@router.post(
    "/refresh",
    response_model=RefreshTokenResponse,
    summary="Refresh access token",
    description="Exchange a refresh token for a new access token.",
)
async def refresh_token(data: RefreshTokenRequest) -> RefreshTokenResponse:
    """Refresh access token using refresh token.

    Raises:
        HTTPException: 401 if the refresh token is invalid or expired.
    """
    service = AuthService()

    try:
        result = await service.refresh_token(refresh_token=data.refresh_token)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        ) from e

    return RefreshTokenResponse(**result)


@router.get(
    "/me",
    summary="Get current user",
    description="Get the authenticated user's information from JWT token.",
)
async def get_current_user_info(user: CurrentUser) -> dict[str, str | None]:
    """Return the identity the bearer token resolves to."""
    return {
        "user_id": str(user.user_id),
        "email": user.email,
        "role": user.role,
    }
