"""User profile model and reflection automation preferences."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import pytz
from pydantic import field_validator
from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from advanceweekly.config import settings


class ReflectionDay(str, Enum):
    """Days a user can pick for automatic generation."""

    MONDAY = "monday"
    FRIDAY = "friday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        """Python weekday number (Monday = 0)."""
        return {"monday": 0, "friday": 4, "sunday": 6}[self.value]


def is_valid_timezone(name: str) -> bool:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


class ReflectionPreferences(SQLModel):
    """When and how a user's weekly reflection is generated automatically."""

    auto_generate: bool = True
    preferred_day: ReflectionDay = Field(
        default_factory=lambda: ReflectionDay(settings.advanceweekly_default_preferred_day)
    )
    preferred_hour: int = Field(
        default_factory=lambda: settings.advanceweekly_default_preferred_hour, ge=0, le=23
    )
    timezone: str = Field(default_factory=lambda: settings.advanceweekly_default_timezone)
    include_integrations: list[str] = Field(
        default_factory=lambda: list(settings.advanceweekly_default_integrations)
    )
    notify_on_generation: bool = False

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        if not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def preferred_time_label(self) -> str:
        return f"{self.preferred_day.value} {self.preferred_hour:02d}:00"


class UserProfile(SQLModel, table=True):
    """Profile fields the reflection pipeline reads."""

    __tablename__ = "user_profiles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str | None = Field(default=None)
    email: str | None = Field(default=None, index=True)
    job_title: str | None = Field(default=None)
    seniority_level: str | None = Field(default=None)
    career_progression_plan: str | None = Field(default=None)

    reflection_preferences: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON)
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def preferences(self) -> ReflectionPreferences:
        """Stored preferences merged over the defaults."""
        return ReflectionPreferences.model_validate(self.reflection_preferences or {})
