"""Unit tests for the language model service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from advanceweekly.errors import LLMServiceError
from advanceweekly.services.llm import LLMService


def _message(*texts: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text) for text in texts],
        model="claude-test",
        usage=SimpleNamespace(input_tokens=12, output_tokens=30),
    )


@pytest.fixture
def client():
    client = MagicMock()
    client.messages.create = AsyncMock()
    return client


class TestLLMService:
    """Tests for LLMService.request."""

    async def test_returns_joined_text(self, client):
        """Test text blocks are joined into the response content."""
        client.messages.create.return_value = _message("### Theme: ", "Reliability")
        service = LLMService(model="claude-test", client=client)

        response = await service.request("prompt", temperature=0.3, max_tokens=2000, context={"type": "consolidation"})

        assert response.content == "### Theme: Reliability"
        assert response.model == "claude-test"
        assert response.usage.tokens == 42
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2000
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert "system" not in kwargs

    async def test_system_prompt_is_passed(self, client):
        """Test the system prompt reaches the client."""
        client.messages.create.return_value = _message("ok")
        service = LLMService(client=client)

        await service.request("prompt", system="Be factual.")

        assert client.messages.create.call_args.kwargs["system"] == "Be factual."

    async def test_empty_response_raises(self, client):
        """Test an empty reply is an error."""
        client.messages.create.return_value = _message("   ")
        service = LLMService(client=client)

        with pytest.raises(LLMServiceError, match="empty response"):
            await service.request("prompt", context={"type": "reflection_from_consolidation"})

    async def test_timeout_raises(self, client):
        """Test a client timeout becomes an LLM service error."""
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APITimeoutError(request=request)
        service = LLMService(client=client, timeout_seconds=5)

        with pytest.raises(LLMServiceError, match="timed out after 5"):
            await service.request("prompt")

    async def test_api_error_raises_with_sdk_message(self, client):
        """Test API errors keep the SDK message."""
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APIConnectionError(
            message="Connection refused", request=request
        )
        service = LLMService(client=client)

        with pytest.raises(LLMServiceError, match="Connection refused"):
            await service.request("prompt")
