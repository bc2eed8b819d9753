"""Data models for AdvanceWeekly."""

from advanceweekly.models.async_operation import (
    AsyncOperation,
    AsyncOperationStatus,
    OperationType,
    TriggerType,
)
from advanceweekly.models.consolidation import (
    Attribution,
    Category,
    Evidence,
    IntegrationConsolidation,
    ProcessingStatus,
    Theme,
)
from advanceweekly.models.user_profile import ReflectionDay, ReflectionPreferences, UserProfile
from advanceweekly.models.weekly_snippet import WeeklySnippet

__all__ = [
    "AsyncOperation",
    "AsyncOperationStatus",
    "OperationType",
    "TriggerType",
    "Attribution",
    "Category",
    "Evidence",
    "IntegrationConsolidation",
    "ProcessingStatus",
    "Theme",
    "ReflectionDay",
    "ReflectionPreferences",
    "UserProfile",
    "WeeklySnippet",
]
