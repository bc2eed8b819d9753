"""Reflection generator: drafts the weekly narrative from stored consolidations."""

import logging

from advanceweekly.config import settings
from advanceweekly.errors import LLMServiceError, ReflectionGenerationError
from advanceweekly.models import IntegrationConsolidation, UserProfile, WeeklySnippet
from advanceweekly.models.weekly_snippet import REQUIRED_SECTIONS
from advanceweekly.services.llm import LLMService
from advanceweekly.services.theme_parser import strip_code_fence

logger = logging.getLogger(__name__)


REFLECTION_REQUIREMENTS = """REQUIREMENTS:
1. Create a structured reflection with exactly these sections: ## Done, ## Next, ## Notes
2. Under "Done" list 3-5 specific accomplishments taken from the themes above
3. Under "Next" identify 2-3 concrete next steps based on current priorities
4. Under "Notes" include challenges, learnings or important context
5. Write in first person with action verbs
6. Keep continuity with the previous week when it is provided
7. Only use activities that appear above; do not invent meetings, people or projects

FORMAT:
Return markdown text with the three sections and nothing else."""


def build_reflection_prompt(
    consolidations: list[IntegrationConsolidation],
    user_profile: UserProfile,
    previous_snippet: WeeklySnippet | None = None,
) -> str:
    """Assemble the drafting prompt from consolidated themes and prior context."""
    role = f"{user_profile.seniority_level or 'professional'} {user_profile.job_title or 'team member'}"
    lines = [f"Generate a weekly reflection for a {role}.", "", "CONSOLIDATED WEEKLY DATA:"]
    for consolidation in consolidations:
        lines.append(f"[{consolidation.integration_type}] {consolidation.consolidated_summary}")
        total_meetings = (consolidation.metrics or {}).get("total_meetings")
        if total_meetings is not None:
            lines.append(f"Total meetings: {total_meetings}")

    lines.extend(["", "KEY THEMES AND ACTIVITIES:"])
    for consolidation in consolidations:
        for theme in consolidation.theme_tree():
            lines.append(f"\n### {theme.name}")
            for category in theme.categories:
                lines.append(f"**{category.name}:**")
                for evidence in category.evidence:
                    lines.append(f"- {evidence.statement} ({evidence.attribution.value})")

    if previous_snippet is not None:
        excerpt = previous_snippet.content[: settings.advanceweekly_previous_reflection_chars]
        lines.extend(["", "PREVIOUS WEEK'S REFLECTION (for continuity):", excerpt])

    lines.extend(["", REFLECTION_REQUIREMENTS])
    return "\n".join(lines)


def parse_reflection_response(response: str) -> str:
    """Unwrap the model's markdown and check the required sections.

    Raises:
        ReflectionGenerationError: If any required section is missing.
    """
    content = strip_code_fence(response)
    missing = [section for section in REQUIRED_SECTIONS if section not in content]
    if missing:
        raise ReflectionGenerationError(
            f"Generated reflection is missing required section(s): {', '.join(missing)}"
        )
    return content


class ReflectionGenerator:
    """Second model pass: consolidated themes in, reflection markdown out."""

    def __init__(self, llm: LLMService):
        self._llm = llm

    async def generate(
        self,
        consolidations: list[IntegrationConsolidation],
        user_profile: UserProfile,
        previous_snippet: WeeklySnippet | None = None,
    ) -> str:
        """Draft reflection content.

        Raises:
            ReflectionGenerationError: If the model call fails or its output
                lacks the required sections.
        """
        if not consolidations:
            raise ReflectionGenerationError("No consolidations to generate a reflection from")

        prompt = build_reflection_prompt(consolidations, user_profile, previous_snippet)
        try:
            response = await self._llm.request(
                prompt=prompt,
                temperature=settings.advanceweekly_reflection_temperature,
                max_tokens=settings.advanceweekly_reflection_max_tokens,
                context={
                    "type": "reflection_from_consolidation",
                    "user_id": str(user_profile.id),
                    "consolidation_ids": [str(c.id) for c in consolidations],
                },
            )
        except LLMServiceError as exc:
            raise ReflectionGenerationError(f"Reflection generation failed: {exc}") from exc

        return parse_reflection_response(response.content)
