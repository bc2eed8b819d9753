"""Startup wiring: builds the services and the job handler map once."""

from dataclasses import dataclass

from advanceweekly.db import SessionFactory, get_session
from advanceweekly.services.consolidation import ConsolidationService
from advanceweekly.services.dispatcher import JobDispatcher, JobHandler
from advanceweekly.services.generation import ReflectionGenerationService
from advanceweekly.services.integrations import IntegrationGateway
from advanceweekly.services.llm import LLMService
from advanceweekly.services.operations import OperationStore
from advanceweekly.services.profiles import UserProfileStore
from advanceweekly.services.reflection import ReflectionGenerator
from advanceweekly.services.scheduler import HourlyReflectionScheduler
from advanceweekly.services.snippets import SnippetService
from advanceweekly.services.weekly_reflection import WeeklyReflectionHandler


@dataclass
class Runtime:
    """Everything a process needs to enqueue, run and poll operations."""

    store: OperationStore
    profiles: UserProfileStore
    snippets: SnippetService
    gateway: IntegrationGateway
    llm: LLMService
    consolidation: ConsolidationService
    generator: ReflectionGenerator
    dispatcher: JobDispatcher
    scheduler: HourlyReflectionScheduler
    generation: ReflectionGenerationService


def build_runtime(
    session_factory: SessionFactory = get_session,
    llm: LLMService | None = None,
    gateway: IntegrationGateway | None = None,
    max_concurrency: int | None = None,
) -> Runtime:
    """Construct the service graph.

    The dispatcher receives its complete handler map here; nothing registers
    handlers as an import side effect.
    """
    llm = llm or LLMService()
    gateway = gateway or IntegrationGateway()

    store = OperationStore(session_factory)
    profiles = UserProfileStore(session_factory)
    snippets = SnippetService(session_factory)
    consolidation = ConsolidationService(llm, session_factory)
    generator = ReflectionGenerator(llm)

    weekly_reflection = WeeklyReflectionHandler(
        profiles=profiles,
        snippets=snippets,
        gateway=gateway,
        consolidation=consolidation,
        generator=generator,
    )
    handlers: dict[str, JobHandler] = {
        weekly_reflection.operation_type: weekly_reflection,
    }
    dispatcher = JobDispatcher(store, handlers)

    return Runtime(
        store=store,
        profiles=profiles,
        snippets=snippets,
        gateway=gateway,
        llm=llm,
        consolidation=consolidation,
        generator=generator,
        dispatcher=dispatcher,
        scheduler=HourlyReflectionScheduler(profiles, store, dispatcher, max_concurrency),
        generation=ReflectionGenerationService(store, dispatcher, profiles),
    )


_runtime: Runtime | None = None


def get_runtime() -> Runtime:
    """Process-wide runtime, built on first use."""
    global _runtime
    if _runtime is None:
        _runtime = build_runtime()
    return _runtime
