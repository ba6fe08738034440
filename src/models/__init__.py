"""Database model type definitions."""

from src.models.profile import Profile, ProfileFields

__all__ = [
    "Profile",
    "ProfileFields",
]
