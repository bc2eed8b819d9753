"""Integration gateway: fetches one week of raw activity data per integration."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Protocol
from uuid import UUID

from pydantic import ValidationError
from sqlmodel import Field, SQLModel

from advanceweekly.errors import IntegrationError, IntegrationNotConfiguredError

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR = "google_calendar"


class RawIntegrationData(SQLModel):
    """One week of raw activity as returned by an integration provider."""

    total_meetings: int = Field(default=0, ge=0)
    key_meetings: list[dict[str, Any]] = Field(default_factory=list)
    meeting_context: list[str] = Field(default_factory=list)
    weekly_context_summary: str = ""

    @property
    def is_empty(self) -> bool:
        return self.total_meetings == 0 and not self.key_meetings and not self.meeting_context


class IntegrationProvider(Protocol):
    """Source of raw weekly data for one integration type."""

    async def fetch_weekly_data(
        self,
        user_id: UUID,
        week_start: date,
        week_end: date,
    ) -> RawIntegrationData | dict[str, Any]:
        """Return raw data for the week, or raise on failure."""


class SampleCalendarProvider:
    """Deterministic calendar week used when a job runs in test mode."""

    _MEETINGS = (
        (0, 10, 60, "Sprint Planning", "high", 6),
        (2, 14, 30, "1:1 with Manager", "high", 2),
        (4, 11, 45, "Code Review Session", "medium", 4),
    )

    async def fetch_weekly_data(
        self,
        user_id: UUID,
        week_start: date,
        week_end: date,
    ) -> RawIntegrationData:
        key_meetings = []
        meeting_context = []
        for day_offset, hour, minutes, summary, importance, attendees in self._MEETINGS:
            day = week_start + timedelta(days=day_offset)
            start = datetime.combine(day, time(hour=hour))
            end = start + timedelta(minutes=minutes)
            key_meetings.append({
                "summary": summary,
                "importance": importance,
                "attendees": attendees,
                "start": {"dateTime": start.isoformat()},
                "end": {"dateTime": end.isoformat()},
            })
            meeting_context.append(f"{day.strftime('%A, %b %d')}: {summary} ({attendees} attendees)")

        return RawIntegrationData(
            total_meetings=len(key_meetings),
            key_meetings=key_meetings,
            meeting_context=meeting_context,
            weekly_context_summary="Week focused on sprint planning, manager alignment, and code review activities",
        )


class IntegrationGateway:
    """Route weekly data requests to the provider registered for each type."""

    def __init__(
        self,
        providers: dict[str, IntegrationProvider] | None = None,
        test_providers: dict[str, IntegrationProvider] | None = None,
    ):
        self._providers = dict(providers or {})
        self._test_providers = dict(test_providers or {GOOGLE_CALENDAR: SampleCalendarProvider()})

    def register(self, integration_type: str, provider: IntegrationProvider) -> None:
        self._providers[integration_type] = provider

    @property
    def integration_types(self) -> list[str]:
        return sorted(self._providers)

    async def fetch_weekly_data(
        self,
        user_id: UUID,
        week_start: date,
        week_end: date,
        integration_type: str,
        test_mode: bool = False,
    ) -> RawIntegrationData:
        """Fetch and validate one week of data.

        Provider exceptions propagate unchanged.

        Raises:
            IntegrationNotConfiguredError: If no provider handles the type.
            IntegrationError: If the provider's payload is malformed.
        """
        providers = self._test_providers if test_mode else self._providers
        provider = providers.get(integration_type)
        if provider is None:
            raise IntegrationNotConfiguredError(
                f"No integration provider configured for '{integration_type}'"
            )

        payload = await provider.fetch_weekly_data(user_id, week_start, week_end)
        if isinstance(payload, RawIntegrationData):
            data = payload
        else:
            try:
                data = RawIntegrationData.model_validate(payload)
            except ValidationError as exc:
                raise IntegrationError(
                    f"Malformed {integration_type} data for week {week_start}: {exc}"
                ) from exc

        logger.info(
            "Fetched %s data for user %s week %s: %d meetings",
            integration_type,
            user_id,
            week_start.isoformat(),
            data.total_meetings,
        )
        return data
