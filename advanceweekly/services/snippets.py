"""Weekly snippet persistence."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from advanceweekly.db import SessionFactory, get_session
from advanceweekly.models import WeeklySnippet
from advanceweekly.weeks import IsoWeek, previous_week

logger = logging.getLogger(__name__)


class SnippetService:
    """Read and create one reflection snippet per user and week."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def get_for_week(self, user_id: UUID, week: IsoWeek) -> WeeklySnippet | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WeeklySnippet).where(
                    WeeklySnippet.user_id == user_id,
                    WeeklySnippet.year == week.year,
                    WeeklySnippet.week_number == week.week_number,
                )
            )
            return result.scalar_one_or_none()

    async def get_previous(self, user_id: UUID, week: IsoWeek) -> WeeklySnippet | None:
        """Snippet for the week before ``week``, if the user has one."""
        return await self.get_for_week(user_id, previous_week(week))

    async def create_draft(
        self,
        user_id: UUID,
        week: IsoWeek,
        content: str,
        consolidation_ids: list[str] | None = None,
    ) -> tuple[WeeklySnippet, bool]:
        """Store an automatically generated draft.

        Never overwrites: if a snippet for the week appeared while the draft
        was being generated, that snippet is returned instead.

        Returns:
            Tuple of (snippet, created).
        """
        ai_suggestions: dict[str, Any] = {
            "generated_automatically": True,
            "generated_at": datetime.utcnow().isoformat(),
            "consolidation_ids": consolidation_ids or [],
            "status": "draft",
        }
        snippet = WeeklySnippet(
            user_id=user_id,
            week_number=week.week_number,
            year=week.year,
            start_date=week.start,
            end_date=week.end,
            content=content,
            ai_suggestions=ai_suggestions,
        )
        try:
            async with self._session_factory() as session:
                session.add(snippet)
                await session.flush()
        except IntegrityError:
            existing = await self.get_for_week(user_id, week)
            if existing is None:
                raise
            logger.info("Snippet for user %s week %s already exists; keeping it", user_id, week.key)
            return existing, False

        return snippet, True
