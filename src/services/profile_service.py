"""Profile business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError

from src.core.config import get_settings
from src.core.identity_locks import get_identity_locks
from src.core.supabase import get_supabase_client
from src.models.profile import Profile, ProfileFields

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileService:
    """Service for reading and upserting user profiles."""

    def __init__(self) -> None:
        """Initialize profile service with Supabase client."""
        self.client = get_supabase_client()
        self.table = get_settings().profiles_table

    async def get_profile(self, user_id: UUID) -> Profile | None:
        """Get a profile by user ID.

        Args:
            user_id: The auth user ID.

        Returns:
            Profile | None: The profile row or None if the user has none.
        """
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )

        return response.data[0] if response.data else None

    async def upsert_profile(
        self,
        user_id: UUID,
        fields: ProfileFields,
    ) -> tuple[Profile, bool]:
        """Create the user's profile or update it in place.

        The existence check and the write run under a per-user lock. If
        another process inserts first, the unique constraint on user_id
        rejects our insert and the write is retried as an update.

        Args:
            user_id: The auth user ID.
            fields: Sanitized profile fields; omitted keys are left untouched.

        Returns:
            tuple: The stored profile row and True when it was just created.
        """
        async with get_identity_locks().hold(str(user_id)):
            existing = await self.get_profile(user_id)
            if existing:
                return await self._update(user_id, fields), False

            try:
                return await self._insert(user_id, fields), True
            except PostgrestAPIError as e:
                if e.code != UNIQUE_VIOLATION:
                    raise
                logger.info("Profile for user %s created concurrently, updating instead", user_id)
                return await self._update(user_id, fields), False

    async def _insert(self, user_id: UUID, fields: ProfileFields) -> Profile:
        now = _now_iso()
        row: dict[str, Any] = {
            **fields,
            "user_id": str(user_id),
            "created_at": now,
            "updated_at": now,
        }

        response = self.client.table(self.table).insert(row).execute()

        logger.info("Created profile for user %s", user_id)
        return response.data[0]

    async def _update(self, user_id: UUID, fields: ProfileFields) -> Profile:
        changes: dict[str, Any] = {**fields, "updated_at": _now_iso()}

        response = (
            self.client.table(self.table)
            .update(changes)
            .eq("user_id", str(user_id))
            .execute()
        )

        if not response.data:
            # Row vanished between the check and the write
            raise LookupError(f"Profile for user {user_id} disappeared during update")

        logger.info("Updated profile for user %s (%d fields)", user_id, len(fields))
        return response.data[0]
