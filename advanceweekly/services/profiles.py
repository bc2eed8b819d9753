"""User profile store."""

import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select

from advanceweekly.db import SessionFactory, get_session
from advanceweekly.models import ReflectionPreferences, UserProfile

logger = logging.getLogger(__name__)


class UserProfileStore:
    """Read-only access to profiles and their reflection preferences."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def get_user_profile(self, user_id: UUID) -> UserProfile | None:
        async with self._session_factory() as session:
            return await session.get(UserProfile, user_id)

    async def get_reflection_preferences(self, user_id: UUID) -> ReflectionPreferences:
        """Stored preferences, or the defaults when the user has none."""
        profile = await self.get_user_profile(user_id)
        if profile is None:
            return ReflectionPreferences()
        return profile.preferences

    async def list_auto_generate_users(self) -> list[UserProfile]:
        """All profiles whose preferences have automatic generation on.

        Preferences live in a JSON column, so the flag is evaluated here
        rather than in SQL; users without stored preferences get the defaults.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(UserProfile).order_by(UserProfile.created_at))
            profiles = list(result.scalars().all())

        enabled = []
        for profile in profiles:
            try:
                preferences = profile.preferences
            except ValidationError as exc:
                logger.warning("Skipping user %s with invalid reflection preferences: %s", profile.id, exc)
                continue
            if preferences.auto_generate:
                enabled.append(profile)
        return enabled
