"""
Base AI provider.

Every backend shares the same review flow:
    review() -> PromptBuilder.build_messages()
             -> _call_api() with retry    (the only per-backend part)
             -> ReviewResponseParser.parse()

Subclasses implement ``_call_api`` for one request/response shape and
use ``_post`` for the HTTP call so transport and status errors surface
uniformly as AIProviderError.
"""

import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx

from ..config.settings import ProviderSettings
from ..models import ReviewContext, ReviewResult
from ..prompt_builder import PromptBuilder
from ..response_parser import ReviewResponseParser
from ..utils.exceptions import AIProviderError, EmptyAIResponseError
from ..utils.logger import api_logger, get_logger
from ..utils.retry import API_RETRY_CONFIG, RetryConfig, retry_with_backoff

logger = get_logger(__name__)


class AIProvider(ABC):
    """
    Capability interface for a model backend.

    One instance is created at startup for the configured provider and
    reused for every file of a run.
    """

    def __init__(
        self,
        provider_settings: ProviderSettings,
        prompt_builder: Optional[PromptBuilder] = None,
        response_parser: Optional[ReviewResponseParser] = None,
        timeout: float = 120.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the provider.

        Args:
            provider_settings: Key, endpoint, model and sampling parameters
            prompt_builder: Builds the chat messages (defaults to stock prompts)
            response_parser: Parses the model's answer
            timeout: HTTP timeout in seconds
            retry_config: Retry policy for API calls
            transport: Optional httpx transport, mainly for tests
        """
        self.settings = provider_settings
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.response_parser = response_parser or ReviewResponseParser()
        self.timeout = timeout
        self.retry_config = retry_config or API_RETRY_CONFIG
        self.transport = transport

    @property
    def name(self) -> str:
        return self.settings.name

    @property
    def model(self) -> str:
        return self.settings.model

    @asynccontextmanager
    async def get_client(self):
        """Async context manager for HTTP client."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            yield client

    async def review(
        self,
        filename: str,
        language: str,
        diff: str,
        context: Optional[ReviewContext] = None
    ) -> ReviewResult:
        """
        Review one file's diff.

        Returns:
            Parsed summary and issues

        Raises:
            AIProviderError: If the API call fails
            EmptyAIResponseError: If the model returned no content
        """
        messages = self.prompt_builder.build_messages(filename, language, diff, context)
        system_prompt, user_prompt = messages[0]["content"], messages[1]["content"]

        logger.debug(f"Sending code review request for {filename} using {self.name}")

        call_api = retry_with_backoff(self.retry_config)(self._call_api)
        review_text = await call_api(system_prompt, user_prompt)

        if not review_text or not review_text.strip():
            raise EmptyAIResponseError(provider=self.name)

        logger.debug(f"Received AI review for {filename}")
        return self.response_parser.parse(review_text)

    @abstractmethod
    async def _call_api(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """
        Make a single API call and return the review text.

        Returns None when the response carries no content.
        """

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON payload and return the decoded response body."""
        headers = self._headers()
        api_logger.log_request(self.name, "POST", url, model=payload.get("model"))
        start_time = time.time()

        try:
            async with self.get_client() as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            api_logger.log_error(self.name, "POST", url, e)
            raise AIProviderError(f"Request timeout after {self.timeout}s", provider=self.name) from e
        except httpx.HTTPStatusError as e:
            api_logger.log_error(self.name, "POST", url, e, status_code=e.response.status_code)
            raise AIProviderError(
                f"HTTP error: {e.response.status_code} - {self._error_detail(e.response)}",
                provider=self.name,
                status_code=e.response.status_code,
                response_body=e.response.text[:500]
            ) from e
        except httpx.RequestError as e:
            api_logger.log_error(self.name, "POST", url, e)
            raise AIProviderError(f"Request failed: {e}", provider=self.name) from e
        except ValueError as e:
            raise AIProviderError(f"Invalid JSON in response: {e}", provider=self.name) from e

        api_logger.log_response(
            self.name, "POST", url, response.status_code,
            response_time_ms=(time.time() - start_time) * 1000
        )
        return data

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("message", response.text)
        return str(error) if error else response.text
