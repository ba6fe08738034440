"""Profile API routes."""

from typing import Any

from fastapi import APIRouter, Body, Response, status

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import NotFoundError
from src.schemas.profile import ProfileResponse
from src.services.profile_service import ProfileService
from src.services.profile_validation import validate_profile_payload

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileResponse,
    responses={
        401: {"description": "Authentication required"},
        404: {"description": "No profile exists for this user"},
    },
    summary="Get my profile",
    description="Get the authenticated user's profile.",
)
async def get_my_profile(user: CurrentUser) -> ProfileResponse:
    """Get the current user's profile.

    A user who has never saved a profile gets a 404, not an empty record.

    Raises:
        NotFoundError: 404 if the user has no profile row.
    """
    profile = await ProfileService().get_profile(user.user_id)

    if profile is None:
        raise NotFoundError("Profile not found")

    return ProfileResponse(**profile)


@router.put(
    "",
    response_model=ProfileResponse,
    responses={
        201: {"description": "Profile created", "model": ProfileResponse},
        400: {"description": "Invalid field or identity field present"},
        401: {"description": "Authentication required"},
    },
    summary="Create or update my profile",
    description=(
        "Partial upsert of the authenticated user's profile. Accepts any of "
        "age, dob, contact, address, city, state, country. Returns 201 when "
        "the profile is created and 200 when an existing one is updated."
    ),
)
async def put_my_profile(
    user: CurrentUser,
    response: Response,
    payload: dict[str, Any] = Body(...),
) -> ProfileResponse:
    """Validate the body and upsert the current user's profile.

    The raw body is validated by hand so identity fields and wrongly typed
    values are rejected instead of coerced.

    Raises:
        ProfileValidationError: 400 with the failing rule's code.
    """
    fields = validate_profile_payload(payload)

    profile, created = await ProfileService().upsert_profile(user.user_id, fields)

    if created:
        response.status_code = status.HTTP_201_CREATED

    return ProfileResponse(**profile)
