"""Validation and sanitization of incoming profile payloads."""

import re
from datetime import date
from enum import Enum
from typing import Any, Mapping

from src.api.middleware.error_handler import ProfileValidationError

# Optional "+", first digit 1-9, at most 15 ASCII digits in total
CONTACT_PATTERN = re.compile(r"^\+?[1-9][0-9]{0,14}$")
CONTACT_STRIP_PATTERN = re.compile(r"[\s\-()]")

IDENTITY_FIELDS = ("userId", "user_id")
TEXT_FIELDS = ("address", "city", "state", "country")
PROFILE_FIELDS = ("age", "dob", "contact", *TEXT_FIELDS)

MAX_AGE = 150


class ProfileErrorCode(str, Enum):
    """Machine-readable codes for rejected profile payloads."""

    USER_ID_NOT_ALLOWED = "USER_ID_NOT_ALLOWED"
    INVALID_AGE = "INVALID_AGE"
    INVALID_CONTACT = "INVALID_CONTACT"
    INVALID_DOB = "INVALID_DOB"
    INVALID_FIELD = "INVALID_FIELD"


def _reject(code: ProfileErrorCode, message: str) -> ProfileValidationError:
    return ProfileValidationError(code=code.value, message=message)


def _clean_text(value: str) -> str | None:
    value = value.strip()
    return value or None


def validate_age(value: Any) -> int | None:
    """Return the age as an int, or None to clear it.

    Raises:
        ProfileValidationError: INVALID_AGE for anything other than a
            integer between 0 and MAX_AGE (integral floats are accepted).
    """
    if value is None:
        return None
    # bool is an int subclass but never a valid age
    if isinstance(value, bool):
        raise _reject(ProfileErrorCode.INVALID_AGE, "Age must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= MAX_AGE:
        raise _reject(ProfileErrorCode.INVALID_AGE, "Age must be a positive integer")
    return value


def validate_contact(value: Any) -> str | None:
    """Return the trimmed contact string, or None to clear it.

    The international-number check runs on the value with whitespace,
    hyphens and parentheses removed; the stored value keeps the
    original spacing.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not CONTACT_PATTERN.match(CONTACT_STRIP_PATTERN.sub("", text)):
        raise _reject(ProfileErrorCode.INVALID_CONTACT, "Invalid phone format")
    return text


def validate_dob(value: Any) -> str | None:
    """Return the date of birth as an ISO date string, or None to clear it."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise _reject(ProfileErrorCode.INVALID_DOB, "Date of birth must be a YYYY-MM-DD string")
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError as e:
        raise _reject(ProfileErrorCode.INVALID_DOB, "Date of birth must be a YYYY-MM-DD string") from e


def validate_text(field: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _reject(ProfileErrorCode.INVALID_FIELD, f"{field} must be a string")
    return _clean_text(value)


def validate_profile_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a raw profile payload and return the sanitized fields.

    Only recognized profile fields survive. Fields missing from the payload
    are missing from the result, so callers get partial-update semantics;
    explicit nulls and empty strings are kept as None and clear the column.

    Args:
        payload: Decoded JSON request body.

    Returns:
        dict: Sanitized subset of PROFILE_FIELDS.

    Raises:
        ProfileValidationError: With a ProfileErrorCode describing the
            first rule that failed. An identity field anywhere in the
            payload is rejected before any other check.
    """
    if any(field in payload for field in IDENTITY_FIELDS):
        raise _reject(
            ProfileErrorCode.USER_ID_NOT_ALLOWED,
            "User ID cannot be provided in request body",
        )

    sanitized: dict[str, Any] = {}

    if "age" in payload:
        sanitized["age"] = validate_age(payload["age"])
    if "contact" in payload:
        sanitized["contact"] = validate_contact(payload["contact"])
    if "dob" in payload:
        sanitized["dob"] = validate_dob(payload["dob"])
    for field in TEXT_FIELDS:
        if field in payload:
            sanitized[field] = validate_text(field, payload[field])

    return sanitized
