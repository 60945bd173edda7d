"""
Tests for the AI provider backends.
"""

import json

import httpx
import pytest

from ai_reviewer.ai_providers import (
    AnthropicProvider,
    OpenAICompatibleProvider,
    create_provider,
)
from ai_reviewer.config.settings import ProviderSettings, Settings
from ai_reviewer.models import ReviewContext
from ai_reviewer.prompt_builder import PromptBuilder
from ai_reviewer.utils.exceptions import (
    AIProviderError,
    ConfigurationError,
    EmptyAIResponseError,
    RetryExhaustedError,
)
from ai_reviewer.utils.retry import NO_RETRY_CONFIG

REVIEW_TEXT = (
    "Mostly fine.\n"
    "- **Issue Type**: BUG\n"
    "- **Severity**: HIGH\n"
    "- **Line**: 3\n"
    "- **Description**: Returns too early\n"
)


class RecordingTransport:
    """Builds a MockTransport that records requests and answers with a fixed response."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.requests = []

    def transport(self):
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


def provider_settings(name="openai", **overrides):
    values = {
        "name": name,
        "api_key": "sk-test",
        "base_url": "https://api.example.com/v1",
        "model": "test-model",
        "max_tokens": 2000,
        "temperature": 0.3,
    }
    values.update(overrides)
    return ProviderSettings(**values)


def openai_body(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestOpenAICompatibleProvider:
    """Test cases for the chat completions provider."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        recorder = RecordingTransport(body=openai_body(REVIEW_TEXT))
        provider = OpenAICompatibleProvider(
            provider_settings(),
            prompt_builder=PromptBuilder(system_prompt="SYS", review_prompt="{filename}|{language}|{diff}", criteria={}),
            retry_config=NO_RETRY_CONFIG,
            transport=recorder.transport(),
        )

        await provider.review("a.py", "python", "+x")

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.example.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert recorder.payload == {
            "model": "test-model",
            "messages": [
                {"role": "system", "content": "SYS"},
                {"role": "user", "content": "a.py|python|+x"},
            ],
            "max_tokens": 2000,
            "temperature": 0.3,
        }

    @pytest.mark.asyncio
    async def test_parses_review(self):
        recorder = RecordingTransport(body=openai_body(REVIEW_TEXT))
        provider = OpenAICompatibleProvider(
            provider_settings(), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        result = await provider.review("a.py", "python", "+x", ReviewContext(description="desc"))

        assert result.summary == "Mostly fine."
        assert len(result.issues) == 1
        assert result.issues[0].severity == "HIGH"
        assert result.issues[0].line == 3
        assert result.raw_review == REVIEW_TEXT

    @pytest.mark.asyncio
    async def test_extra_headers_are_sent(self):
        recorder = RecordingTransport(body=openai_body(REVIEW_TEXT))
        settings = provider_settings(
            "openrouter",
            extra_headers={"HTTP-Referer": "https://example.com", "X-Title": "Reviewer"},
        )
        provider = OpenAICompatibleProvider(settings, retry_config=NO_RETRY_CONFIG, transport=recorder.transport())

        await provider.review("a.py", "python", "+x")

        headers = recorder.requests[0].headers
        assert headers["HTTP-Referer"] == "https://example.com"
        assert headers["X-Title"] == "Reviewer"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        openai_body(""),
        openai_body("   \n"),
        openai_body(None),
        {"choices": []},
        {},
    ])
    async def test_empty_content(self, body):
        recorder = RecordingTransport(body=body)
        provider = OpenAICompatibleProvider(
            provider_settings(), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        with pytest.raises(EmptyAIResponseError):
            await provider.review("a.py", "python", "+x")

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        recorder = RecordingTransport(status_code=401, body={"error": {"message": "Invalid API key"}})
        provider = OpenAICompatibleProvider(
            provider_settings(), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        with pytest.raises(AIProviderError) as exc_info:
            await provider.review("a.py", "python", "+x")

        assert exc_info.value.details["status_code"] == 401
        assert "Invalid API key" in str(exc_info.value)
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self):
        recorder = RecordingTransport(status_code=503, body={"error": "overloaded"})
        provider = OpenAICompatibleProvider(
            provider_settings(), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await provider.review("a.py", "python", "+x")

        assert isinstance(exc_info.value.last_error, AIProviderError)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = OpenAICompatibleProvider(
            provider_settings(), retry_config=NO_RETRY_CONFIG, transport=httpx.MockTransport(handler)
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await provider.review("a.py", "python", "+x")

        assert "connection refused" in str(exc_info.value.last_error)


class TestAnthropicProvider:
    """Test cases for the Messages API provider."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        recorder = RecordingTransport(body={"content": [{"type": "text", "text": REVIEW_TEXT}]})
        provider = AnthropicProvider(
            provider_settings("anthropic", base_url="https://api.anthropic.com/v1"),
            prompt_builder=PromptBuilder(system_prompt="SYS", review_prompt="{diff}", criteria={}),
            retry_config=NO_RETRY_CONFIG,
            transport=recorder.transport(),
        )

        result = await provider.review("a.py", "python", "+x")

        request = recorder.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        assert recorder.payload["system"] == "SYS"
        assert recorder.payload["messages"] == [{"role": "user", "content": "+x"}]
        assert recorder.payload["max_tokens"] == 2000
        assert result.issues[0].type == "BUG"

    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        recorder = RecordingTransport(body={"content": [
            {"type": "text", "text": "Part one. "},
            {"type": "tool_use", "id": "x"},
            {"type": "text", "text": "Part two."},
        ]})
        provider = AnthropicProvider(
            provider_settings("anthropic"), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        result = await provider.review("a.py", "python", "+x")

        assert result.raw_review == "Part one. Part two."

    @pytest.mark.asyncio
    async def test_no_text_blocks(self):
        recorder = RecordingTransport(body={"content": []})
        provider = AnthropicProvider(
            provider_settings("anthropic"), retry_config=NO_RETRY_CONFIG, transport=recorder.transport()
        )

        with pytest.raises(EmptyAIResponseError):
            await provider.review("a.py", "python", "+x")


class TestCreateProvider:
    """Test cases for create_provider."""

    @pytest.mark.parametrize("name,key_field,expected", [
        ("openai", "openai_api_key", OpenAICompatibleProvider),
        ("openrouter", "openrouter_api_key", OpenAICompatibleProvider),
        ("deepseek", "deepseek_api_key", OpenAICompatibleProvider),
        ("anthropic", "anthropic_api_key", AnthropicProvider),
    ])
    def test_selects_implementation(self, name, key_field, expected):
        settings = Settings(ai_provider=name, gitlab_token="t", **{key_field: "key"})

        provider = create_provider(settings)

        assert isinstance(provider, expected)
        assert provider.name == name

    def test_azure_uses_endpoint(self):
        settings = Settings(
            ai_provider="azure",
            azure_api_key="key",
            azure_endpoint="https://my.openai.azure.com/openai/",
        )

        provider = create_provider(settings)

        assert provider.endpoint == "https://my.openai.azure.com/openai/chat/completions"

    def test_azure_without_endpoint(self):
        with pytest.raises(ConfigurationError):
            create_provider(Settings(ai_provider="azure", azure_api_key="key"))

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unsupported AI provider"):
            create_provider(Settings(ai_provider="gemini"))

    def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            create_provider(Settings(ai_provider="deepseek", deepseek_api_key=""))

    def test_uses_configured_prompts_and_timeout(self, settings):
        settings.enable_code_style_checks = False
        settings.ai_timeout = 45.0

        provider = create_provider(settings)

        assert provider.timeout == 45.0
        assert "code style and formatting" not in provider.prompt_builder.focus_areas
