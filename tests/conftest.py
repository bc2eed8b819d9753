"""Pytest configuration and fixtures for AdvanceWeekly tests."""

import os
from typing import Any
from uuid import uuid4

# Set test environment variables BEFORE importing advanceweekly modules
# This ensures the Settings singleton loads with test values
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import advanceweekly.models  # noqa: F401
from advanceweekly.db import session_scope
from advanceweekly.errors import LLMServiceError
from advanceweekly.models import UserProfile
from advanceweekly.runtime import build_runtime
from advanceweekly.services.integrations import IntegrationGateway, RawIntegrationData
from advanceweekly.services.llm import LLMResponse, LLMUsage

CONSOLIDATION_MARKDOWN = """### Theme: Platform Reliability

**Category: Technical Excellence**
* **Evidence:** "Walked the team through the incident timeline in Team Standup."
  * **Attribution:** [USER]
* **Evidence:** "Agreed on alert thresholds for the payments service."
  * **Attribution:** [TEAM]
"""

EMPTY_WEEK_MARKDOWN = """### Theme: No recorded activity
"""

REFLECTION_MARKDOWN = """## Done
- Walked the team through the incident timeline in Team Standup

## Next
- Roll out the agreed alert thresholds

## Notes
- Quiet week outside the standup
"""


class FakeLLM:
    """Stand-in for ``LLMService`` that records prompts and returns canned text by call type."""

    model = "fake-model"

    def __init__(
        self,
        consolidation: str = CONSOLIDATION_MARKDOWN,
        reflection: str = REFLECTION_MARKDOWN,
        fail_with: str | None = None,
    ):
        self.responses = {
            "consolidation": consolidation,
            "reflection_from_consolidation": reflection,
        }
        self.fail_with = fail_with
        self.calls: list[dict[str, Any]] = []

    async def request(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        context: dict[str, Any] | None = None,
        system: str | None = None,
    ) -> LLMResponse:
        call_type = (context or {}).get("type", "generic")
        self.calls.append({"type": call_type, "prompt": prompt, "context": context or {}})
        if self.fail_with:
            raise LLMServiceError(self.fail_with)
        return LLMResponse(
            content=self.responses[call_type],
            model=self.model,
            usage=LLMUsage(input_tokens=10, output_tokens=20),
        )

    def calls_of(self, call_type: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["type"] == call_type]


class StaticCalendarProvider:
    """Calendar provider returning a fixed payload."""

    def __init__(self, data: RawIntegrationData | dict | None = None, error: Exception | None = None):
        self.data = data if data is not None else RawIntegrationData()
        self.error = error
        self.calls = 0
        self.requested_weeks: list[tuple] = []

    async def fetch_weekly_data(self, user_id, week_start, week_end):
        self.calls += 1
        self.requested_weeks.append((week_start, week_end))
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine shared by every session in a test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Commit-on-success session scope bound to the test engine."""
    return session_scope(
        async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    )


@pytest.fixture
def test_user_id():
    """Generate a unique user ID for test isolation."""
    return uuid4()


@pytest.fixture
async def user_profile(session_factory, test_user_id) -> UserProfile:
    """Stored profile with Friday 14:00 New York preferences."""
    profile = UserProfile(
        id=test_user_id,
        name="Avery Chen",
        email="avery@example.com",
        job_title="Software Engineer",
        seniority_level="Senior",
        career_progression_plan="Technical Excellence; Collaboration",
        reflection_preferences={
            "auto_generate": True,
            "preferred_day": "friday",
            "preferred_hour": 14,
            "timezone": "America/New_York",
            "include_integrations": ["google_calendar"],
        },
    )
    async with session_factory() as session:
        session.add(profile)
    return profile


@pytest.fixture
def calendar_data() -> RawIntegrationData:
    """One meeting week: a single Team Standup."""
    return RawIntegrationData(
        total_meetings=1,
        key_meetings=[
            {
                "summary": "Team Standup",
                "attendees": 6,
                "start": {"dateTime": "2026-10-05T09:30:00"},
                "end": {"dateTime": "2026-10-05T10:00:00"},
            }
        ],
        meeting_context=["Monday, Oct 05: Team Standup (6 attendees)"],
        weekly_context_summary="Incident follow-up in standup",
    )


@pytest.fixture
def calendar_provider(calendar_data) -> StaticCalendarProvider:
    return StaticCalendarProvider(calendar_data)


@pytest.fixture
def gateway(calendar_provider) -> IntegrationGateway:
    return IntegrationGateway(providers={"google_calendar": calendar_provider})


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def runtime(session_factory, fake_llm, gateway):
    """Service graph wired to the test database, fake model and static calendar."""
    return build_runtime(
        session_factory=session_factory,
        llm=fake_llm,
        gateway=gateway,
        max_concurrency=1,
    )


# Note: Test environment variables are set at module import time (top of file)
# to ensure Settings singleton loads with test values before any app imports.
