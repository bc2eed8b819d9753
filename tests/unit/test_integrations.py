"""Unit tests for the integration gateway and calendar metrics."""

from datetime import date
from uuid import uuid4

import pytest

from advanceweekly.errors import IntegrationError, IntegrationNotConfiguredError
from advanceweekly.services.consolidation import calculate_meeting_hours
from advanceweekly.services.integrations import IntegrationGateway, RawIntegrationData
from tests.conftest import StaticCalendarProvider

WEEK_START = date(2026, 10, 5)
WEEK_END = date(2026, 10, 11)


class TestIntegrationGateway:
    """Tests for IntegrationGateway.fetch_weekly_data."""

    async def test_routes_to_registered_provider(self, calendar_data):
        """Test fetches go to the provider registered for the type."""
        provider = StaticCalendarProvider(calendar_data)
        gateway = IntegrationGateway()
        gateway.register("google_calendar", provider)

        data = await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "google_calendar")

        assert data.total_meetings == 1
        assert provider.calls == 1
        assert gateway.integration_types == ["google_calendar"]

    async def test_unknown_type(self):
        """Test an unregistered integration type is rejected."""
        gateway = IntegrationGateway()

        with pytest.raises(IntegrationNotConfiguredError, match="slack"):
            await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "slack")

    async def test_real_mode_never_falls_back_to_sample_data(self):
        """Test real mode never substitutes sample meetings."""
        gateway = IntegrationGateway()

        with pytest.raises(IntegrationNotConfiguredError):
            await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "google_calendar")

    async def test_test_mode_uses_sample_calendar(self):
        """Test test mode uses the sample calendar."""
        gateway = IntegrationGateway()

        data = await gateway.fetch_weekly_data(
            uuid4(), WEEK_START, WEEK_END, "google_calendar", test_mode=True
        )

        assert data.total_meetings == 3
        assert [m["summary"] for m in data.key_meetings] == [
            "Sprint Planning",
            "1:1 with Manager",
            "Code Review Session",
        ]
        assert data.key_meetings[0]["start"]["dateTime"].startswith("2026-10-05")

    async def test_provider_errors_propagate(self):
        """Test provider errors reach the caller unchanged."""
        gateway = IntegrationGateway(
            providers={"google_calendar": StaticCalendarProvider(error=IntegrationError("token expired"))}
        )

        with pytest.raises(IntegrationError, match="token expired"):
            await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "google_calendar")

    async def test_dict_payload_is_validated(self):
        """Test a plain dict payload is validated into raw data."""
        gateway = IntegrationGateway(
            providers={"google_calendar": StaticCalendarProvider({"total_meetings": 2, "key_meetings": []})}
        )

        data = await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "google_calendar")
        assert data.total_meetings == 2

    async def test_malformed_payload(self):
        """Test a payload of the wrong shape is rejected."""
        gateway = IntegrationGateway(
            providers={"google_calendar": StaticCalendarProvider({"total_meetings": -1})}
        )

        with pytest.raises(IntegrationError, match="Malformed"):
            await gateway.fetch_weekly_data(uuid4(), WEEK_START, WEEK_END, "google_calendar")


def test_empty_data():
    """Test a week with no meetings is empty."""
    assert RawIntegrationData().is_empty
    assert not RawIntegrationData(total_meetings=1).is_empty


def test_meeting_hours():
    """Test meeting hours sum timed events and ignore all-day ones."""
    meetings = [
        {"start": {"dateTime": "2026-10-05T09:00:00"}, "end": {"dateTime": "2026-10-05T10:30:00"}},
        {"start": {"dateTime": "2026-10-06T14:00:00"}, "end": {"dateTime": "2026-10-06T14:30:00"}},
        {"start": {"date": "2026-10-07"}, "end": {"date": "2026-10-08"}},
        {"summary": "No times"},
    ]
    assert calculate_meeting_hours(meetings) == 2.0
