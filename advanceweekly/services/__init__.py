"""Services layer for AdvanceWeekly."""

from advanceweekly.services.consolidation import ConsolidationService
from advanceweekly.services.dispatcher import JobContext, JobDispatcher, JobHandler
from advanceweekly.services.generation import ReflectionGenerationService
from advanceweekly.services.integrations import IntegrationGateway, RawIntegrationData, SampleCalendarProvider
from advanceweekly.services.llm import LLMResponse, LLMService
from advanceweekly.services.operations import OperationStore
from advanceweekly.services.profiles import UserProfileStore
from advanceweekly.services.reflection import ReflectionGenerator
from advanceweekly.services.scheduler import HourlyReflectionScheduler, ScheduleOutcome
from advanceweekly.services.snippets import SnippetService
from advanceweekly.services.weekly_reflection import WeeklyReflectionHandler, WeeklyReflectionInput

__all__ = [
    "ConsolidationService",
    "JobContext",
    "JobDispatcher",
    "JobHandler",
    "ReflectionGenerationService",
    "IntegrationGateway",
    "RawIntegrationData",
    "SampleCalendarProvider",
    "LLMResponse",
    "LLMService",
    "OperationStore",
    "UserProfileStore",
    "ReflectionGenerator",
    "HourlyReflectionScheduler",
    "ScheduleOutcome",
    "SnippetService",
    "WeeklyReflectionHandler",
    "WeeklyReflectionInput",
]
