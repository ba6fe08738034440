"""Profile model type definitions for database operations."""

from typing import TypedDict


class Profile(TypedDict):
    """user_profiles table row representation.

    One row per auth user, keyed by the unique user_id column.
    Values are kept as PostgREST returns them (ISO strings for dates).
    """

    id: str
    user_id: str
    age: int | None
    dob: str | None
    contact: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None
    created_at: str
    updated_at: str


class ProfileFields(TypedDict, total=False):
    """Client-writable profile columns.

    All fields are optional for partial updates; user_id and the
    timestamps are never part of this set.
    """

    age: int | None
    dob: str | None
    contact: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None
