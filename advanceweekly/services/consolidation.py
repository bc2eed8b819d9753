"""Consolidation engine: distills raw integration data into a theme tree."""

import json
import logging
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import select
from sqlmodel import Field, SQLModel

from advanceweekly.config import settings
from advanceweekly.db import SessionFactory, get_session
from advanceweekly.errors import ConsolidationError, LLMServiceError
from advanceweekly.models import IntegrationConsolidation, ProcessingStatus, Theme, UserProfile
from advanceweekly.services.integrations import GOOGLE_CALENDAR, RawIntegrationData
from advanceweekly.services.llm import LLMService
from advanceweekly.services.theme_parser import parse_themes
from advanceweekly.weeks import IsoWeek

logger = logging.getLogger(__name__)


CALENDAR_CONSOLIDATION_PROMPT = """## CONTEXT
You process one week of a user's calendar data for a career development platform. Your output is a structured, factual summary of the user's own professional contributions that later steps turn into a weekly reflection.

## INPUTS
1. **userName**: {user_name}
2. **userRole**: {user_role}
3. **userLevel**: {user_level}
4. **careerGuidelines**: {career_guidelines}
5. **totalMeetings**: {total_meetings}
6. **calendarEvents**: {calendar_events}
7. **meetingNotes**: {meeting_notes}
8. **weekSummary**: {week_summary}

## INSTRUCTIONS
1. Identify the main projects, initiatives or recurring themes of the week using only the inputs above.
2. For each theme, extract the actions, decisions, deliverables and outcomes found in the inputs.
3. Keep an action only if the user, or a group the user actively took part in, performed it.
4. Rewrite each kept action as a self-contained evidence statement that includes its context.
5. Map each evidence statement to the single most relevant category from the career guidelines.
6. Never mention meetings, people or projects that do not appear in the inputs.
7. If the inputs contain no activity, output exactly one theme named "No recorded activity" with no categories.

## OUTPUT STRUCTURE
Markdown only, strictly in this shape:

### Theme: [theme name]

**Category: [category name]**
* **Evidence:** "[self-contained statement]"
  * **Attribution:** [USER]
* **Evidence:** "[self-contained statement]"
  * **Attribution:** [TEAM]
"""


class ConsolidatedData(SQLModel):
    """Result of one consolidation pass before it is stored."""

    summary: str
    key_insights: list[str] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
    themes: list[Theme] = Field(default_factory=list)
    raw_markdown: str = ""
    prompt: str = ""
    llm_model: str | None = None


def build_calendar_consolidation_prompt(
    raw_data: RawIntegrationData,
    user_profile: UserProfile,
    career_guidelines: str,
) -> str:
    """Render the calendar consolidation prompt from the raw week only."""
    return CALENDAR_CONSOLIDATION_PROMPT.format(
        user_name=user_profile.name or "User",
        user_role=user_profile.job_title or "",
        user_level=user_profile.seniority_level or "",
        career_guidelines=career_guidelines or "(none provided)",
        total_meetings=raw_data.total_meetings,
        calendar_events=json.dumps(raw_data.key_meetings, indent=2, default=str),
        meeting_notes="\n\n---\n\n".join(raw_data.meeting_context) or "(none)",
        week_summary=raw_data.weekly_context_summary or "(none)",
    )


def calculate_meeting_hours(meetings: list[dict[str, Any]]) -> float:
    """Sum the durations of meetings that carry start/end date-times."""
    total = 0.0
    for meeting in meetings:
        start = (meeting.get("start") or {}).get("dateTime")
        end = (meeting.get("end") or {}).get("dateTime")
        if not start or not end:
            continue
        try:
            duration = datetime.fromisoformat(end) - datetime.fromisoformat(start)
        except (TypeError, ValueError):
            continue
        total += duration.total_seconds() / 3600
    return round(total, 2)


def summarize_themes(themes: list[Theme]) -> str:
    names = ", ".join(theme.name for theme in themes)
    evidence_total = sum(theme.evidence_count for theme in themes)
    return (
        f"This week focused on {len(themes)} main theme(s): {names}. "
        f"Generated {evidence_total} evidence statement(s) across performance categories."
    )


def extract_key_insights(themes: list[Theme]) -> list[str]:
    insights = []
    for theme in themes:
        category_names = [category.name for category in theme.categories]
        if category_names:
            insights.append(f"{theme.name}: Active in {', '.join(category_names)}")
    return insights


class ConsolidationService:
    """Turn raw integration data into a stored ``IntegrationConsolidation``."""

    def __init__(
        self,
        llm: LLMService,
        session_factory: SessionFactory = get_session,
    ):
        self._llm = llm
        self._session_factory = session_factory
        self._prompt_builders: dict[str, Callable[[RawIntegrationData, UserProfile, str], str]] = {
            GOOGLE_CALENDAR: build_calendar_consolidation_prompt,
        }

    async def consolidate_weekly_data(
        self,
        user_id: UUID,
        integration_type: str,
        raw_data: RawIntegrationData,
        user_profile: UserProfile,
        career_guidelines: str = "",
    ) -> ConsolidatedData:
        """Run one model pass over a week of raw data.

        Args:
            user_id: Owner of the data.
            integration_type: Which integration produced ``raw_data``.
            raw_data: The week's raw activity; may be empty.
            user_profile: Profile used to personalize the prompt.
            career_guidelines: Career-ladder context for categorization.

        Returns:
            ConsolidatedData with the parsed theme tree and metrics.

        Raises:
            ConsolidationError: If the type is unsupported or the model call fails.
            ParseError: If the model output has no usable theme structure.
        """
        builder = self._prompt_builders.get(integration_type)
        if builder is None:
            raise ConsolidationError(
                f"Consolidation not implemented for integration type: {integration_type}"
            )

        prompt = builder(raw_data, user_profile, career_guidelines)
        try:
            response = await self._llm.request(
                prompt=prompt,
                temperature=settings.advanceweekly_consolidation_temperature,
                max_tokens=settings.advanceweekly_consolidation_max_tokens,
                context={
                    "type": "consolidation",
                    "user_id": str(user_id),
                    "integration_type": integration_type,
                    "career_guidelines": career_guidelines,
                },
            )
        except LLMServiceError as exc:
            raise ConsolidationError(f"{integration_type} consolidation failed: {exc}") from exc

        themes = parse_themes(response.content)
        metrics = {
            "total_meetings": raw_data.total_meetings,
            "meeting_hours": calculate_meeting_hours(raw_data.key_meetings),
            "weekly_themes": len(themes),
            "evidence_count": sum(theme.evidence_count for theme in themes),
        }

        return ConsolidatedData(
            summary=summarize_themes(themes),
            key_insights=extract_key_insights(themes),
            metrics=metrics,
            themes=themes,
            raw_markdown=response.content,
            prompt=prompt,
            llm_model=response.model,
        )

    async def store_consolidation(
        self,
        user_id: UUID,
        integration_type: str,
        week: IsoWeek,
        raw_data: RawIntegrationData,
        consolidated: ConsolidatedData,
    ) -> IntegrationConsolidation:
        """Persist a consolidation, replacing any earlier one for the same week."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(IntegrationConsolidation).where(
                    IntegrationConsolidation.user_id == user_id,
                    IntegrationConsolidation.integration_type == integration_type,
                    IntegrationConsolidation.week_number == week.week_number,
                    IntegrationConsolidation.year == week.year,
                )
            )
            record = result.scalar_one_or_none()
            if record is None:
                record = IntegrationConsolidation(
                    user_id=user_id,
                    integration_type=integration_type,
                    week_number=week.week_number,
                    year=week.year,
                    week_start=week.start,
                    week_end=week.end,
                )

            record.week_start = week.start
            record.week_end = week.end
            record.consolidated_summary = consolidated.summary
            record.key_insights = list(consolidated.key_insights)
            record.metrics = dict(consolidated.metrics)
            record.themes = [theme.model_dump(mode="json") for theme in consolidated.themes]
            record.raw_data = raw_data.model_dump(mode="json")
            record.consolidation_prompt = consolidated.prompt
            record.llm_model = consolidated.llm_model
            record.processing_status = ProcessingStatus.COMPLETED
            record.consolidated_at = datetime.utcnow()

            session.add(record)
            await session.flush()

        logger.info(
            "Stored %s consolidation %s for user %s week %s",
            integration_type,
            record.id,
            user_id,
            week.key,
        )
        return record

    async def get_consolidations_for_week(
        self,
        user_id: UUID,
        week: IsoWeek,
    ) -> list[IntegrationConsolidation]:
        """Completed consolidations for a week, ordered by integration type."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(IntegrationConsolidation)
                .where(
                    IntegrationConsolidation.user_id == user_id,
                    IntegrationConsolidation.week_number == week.week_number,
                    IntegrationConsolidation.year == week.year,
                    IntegrationConsolidation.processing_status == ProcessingStatus.COMPLETED,
                )
                .order_by(IntegrationConsolidation.integration_type)
            )
            return list(result.scalars().all())
