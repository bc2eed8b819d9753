"""Language model request service backed by the Anthropic Messages API."""

import logging
from typing import Any

import anthropic
from anthropic import AsyncAnthropic
from sqlmodel import Field, SQLModel

from advanceweekly.config import settings
from advanceweekly.errors import LLMServiceError

logger = logging.getLogger(__name__)


class LLMUsage(SQLModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMResponse(SQLModel):
    """Text returned by one model request."""

    content: str
    model: str
    usage: LLMUsage = Field(default_factory=LLMUsage)


class LLMService:
    """Send single-prompt requests to the language model.

    Failures are never converted into placeholder text: any SDK error, timeout
    or empty completion raises ``LLMServiceError`` carrying the SDK message.
    """

    def __init__(
        self,
        model: str | None = None,
        timeout_seconds: float | None = None,
        client: AsyncAnthropic | None = None,
    ):
        self._client = client
        self.model = model or settings.advanceweekly_llm_model
        self.timeout_seconds = timeout_seconds or settings.advanceweekly_llm_timeout_seconds

    @property
    def client(self) -> AsyncAnthropic:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                timeout=self.timeout_seconds,
                max_retries=2,
            )
        return self._client

    async def request(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        context: dict[str, Any] | None = None,
        system: str | None = None,
    ) -> LLMResponse:
        """Run one prompt and return the model's text.

        Args:
            prompt: User-turn prompt text.
            temperature: Sampling temperature.
            max_tokens: Completion token cap.
            context: Call-site tags (e.g. ``{"type": "consolidation"}``); used
                for logging only.
            system: Optional system prompt.

        Raises:
            LLMServiceError: On any API error, timeout or empty response.
        """
        context = context or {}
        call_type = context.get("type", "generic")
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as exc:
            raise LLMServiceError(
                f"Language model request timed out after {self.timeout_seconds}s: {exc}"
            ) from exc
        except anthropic.APIError as exc:
            raise LLMServiceError(f"Language model request failed: {exc}") from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise LLMServiceError(f"Language model returned an empty response for {call_type}")

        usage = LLMUsage(
            input_tokens=getattr(response.usage, "input_tokens", 0) or 0,
            output_tokens=getattr(response.usage, "output_tokens", 0) or 0,
        )
        logger.info(
            "LLM %s call completed (model=%s, tokens=%d)",
            call_type,
            response.model,
            usage.tokens,
        )
        return LLMResponse(content=text, model=response.model, usage=usage)
