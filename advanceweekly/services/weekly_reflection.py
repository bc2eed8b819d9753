"""Weekly reflection job handler.

Generates a week's reflection draft by:
1. Loading the user's profile
2. Returning the stored snippet if the week already has one
3. Fetching each requested integration's raw data
4. Consolidating each integration's data into a theme tree
5. Drafting the reflection from the consolidations (and last week's snippet)
6. Saving the draft for the user to review
"""

import logging
from datetime import date, datetime
from typing import Any, Callable
from uuid import UUID

import pytz
from sqlmodel import SQLModel

from advanceweekly.config import settings
from advanceweekly.models import IntegrationConsolidation, OperationType
from advanceweekly.services.consolidation import ConsolidationService
from advanceweekly.services.dispatcher import JobContext
from advanceweekly.services.integrations import IntegrationGateway, RawIntegrationData
from advanceweekly.services.profiles import UserProfileStore
from advanceweekly.services.reflection import ReflectionGenerator
from advanceweekly.services.snippets import SnippetService
from advanceweekly.weeks import IsoWeek, week_from_bounds

logger = logging.getLogger(__name__)


class WeeklyReflectionInput(SQLModel):
    """Payload stored in a weekly reflection operation's input_data."""

    user_id: UUID | None = None
    week_start: date | None = None
    week_end: date | None = None
    include_previous_context: bool = True
    include_integrations: list[str] | None = None
    test_mode: bool = False


def _utcnow() -> datetime:
    return datetime.now(pytz.utc)


class WeeklyReflectionHandler:
    """Handler registered for ``weekly_reflection_generation`` operations."""

    operation_type = OperationType.WEEKLY_REFLECTION.value
    estimated_duration = settings.advanceweekly_reflection_estimated_duration

    def __init__(
        self,
        profiles: UserProfileStore,
        snippets: SnippetService,
        gateway: IntegrationGateway,
        consolidation: ConsolidationService,
        generator: ReflectionGenerator,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._profiles = profiles
        self._snippets = snippets
        self._gateway = gateway
        self._consolidation = consolidation
        self._generator = generator
        self._now = now

    async def process(self, input_data: dict[str, Any], context: JobContext) -> dict[str, Any]:
        params = WeeklyReflectionInput.model_validate(input_data)
        # The operation's owner is authoritative over any user_id in the payload
        user_id = context.user_id

        await context.update_progress(5, "Loading user profile")
        profile = await self._profiles.get_user_profile(user_id)
        if profile is None:
            return {"status": "error", "error": "User profile not found"}
        preferences = profile.preferences

        week = self._resolve_week(params, preferences.timezone)

        await context.update_progress(10, "Checking for existing reflection")
        existing = await self._snippets.get_for_week(user_id, week)
        if existing is not None:
            logger.info("User %s already has a reflection for %s", user_id, week.key)
            await context.update_progress(100, "Existing reflection found")
            return self._result(week, existing.content, str(existing.id), existing=True)

        integration_types = list(dict.fromkeys(
            params.include_integrations
            or preferences.include_integrations
            or settings.advanceweekly_default_integrations
        ))

        await context.update_progress(
            20,
            "Using sample integration data" if params.test_mode else "Fetching integration data",
        )
        raw_by_type: dict[str, RawIntegrationData] = {}
        integration_status: dict[str, str] = {}
        for integration_type in integration_types:
            raw = await self._gateway.fetch_weekly_data(
                user_id,
                week.start,
                week.end,
                integration_type,
                test_mode=params.test_mode,
            )
            raw_by_type[integration_type] = raw
            integration_status[integration_type] = "no_data" if raw.is_empty else "ok"
            if raw.is_empty:
                logger.info("No %s data for user %s week %s", integration_type, user_id, week.key)

        await context.update_progress(40, "Consolidating weekly activities")
        consolidations: list[IntegrationConsolidation] = []
        for integration_type, raw in raw_by_type.items():
            consolidated = await self._consolidation.consolidate_weekly_data(
                user_id=user_id,
                integration_type=integration_type,
                raw_data=raw,
                user_profile=profile,
                career_guidelines=profile.career_progression_plan or "",
            )
            record = await self._consolidation.store_consolidation(
                user_id=user_id,
                integration_type=integration_type,
                week=week,
                raw_data=raw,
                consolidated=consolidated,
            )
            consolidations.append(record)

        previous_snippet = None
        if params.include_previous_context:
            await context.update_progress(55, "Retrieving previous context")
            previous_snippet = await self._snippets.get_previous(user_id, week)

        await context.update_progress(70, "Generating reflection")
        content = await self._generator.generate(consolidations, profile, previous_snippet)

        await context.update_progress(90, "Saving reflection draft")
        consolidation_ids = [str(record.id) for record in consolidations]
        snippet, created = await self._snippets.create_draft(
            user_id, week, content, consolidation_ids=consolidation_ids
        )
        await context.update_progress(100, "Reflection draft saved")

        return self._result(
            week,
            snippet.content,
            str(snippet.id),
            existing=not created,
            consolidation_ids=consolidation_ids,
            integrations=integration_status,
        )

    def _resolve_week(self, params: WeeklyReflectionInput, timezone: str) -> IsoWeek:
        today = self._now().astimezone(pytz.timezone(timezone)).date()
        return week_from_bounds(params.week_start, params.week_end, today)

    @staticmethod
    def _result(
        week: IsoWeek,
        content: str,
        reflection_id: str,
        existing: bool = False,
        consolidation_ids: list[str] | None = None,
        integrations: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return {
            "status": "draft",
            "reflection_id": reflection_id,
            "week_number": week.week_number,
            "year": week.year,
            "week_key": week.key,
            "content": content,
            "existing": existing,
            "consolidation_ids": consolidation_ids or [],
            "integrations": integrations or {},
        }
