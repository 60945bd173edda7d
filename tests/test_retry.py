"""
Tests for the retry decorator.
"""

from unittest.mock import AsyncMock, patch

import pytest

from ai_reviewer.utils.exceptions import (
    AIProviderError,
    EmptyAIResponseError,
    GitLabAPIError,
    RetryExhaustedError,
)
from ai_reviewer.utils.retry import RetryConfig, retry_with_backoff

FAST = RetryConfig(max_retries=2, initial_delay=0.5, jitter=False)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("ai_reviewer.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


class TestRetryConfig:
    """Test cases for RetryConfig."""

    @pytest.mark.parametrize("error,expected", [
        (GitLabAPIError("server", status_code=500), True),
        (GitLabAPIError("rate limited", status_code=429), True),
        (GitLabAPIError("no status"), True),
        (GitLabAPIError("not found", status_code=404), False),
        (AIProviderError("unauthorized", status_code=401), False),
        (AIProviderError("bad gateway", status_code=502), True),
        (EmptyAIResponseError(), False),
        (ConnectionError("reset"), True),
        (ValueError("bug"), False),
    ])
    def test_should_retry(self, error, expected):
        assert RetryConfig().should_retry(error) is expected

    def test_delay_is_capped(self):
        config = RetryConfig(initial_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=False)

        assert [config.calculate_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_stays_in_range(self):
        config = RetryConfig(initial_delay=1.0, jitter=True)

        for _ in range(20):
            assert 0.75 <= config.calculate_delay(0) <= 1.25


class TestRetryWithBackoff:
    """Test cases for retry_with_backoff."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, no_sleep):
        func = AsyncMock(side_effect=[GitLabAPIError("502", status_code=502), ConnectionError(), "ok"])
        func.__name__ = "fetch"

        result = await retry_with_backoff(FAST)(func)("a", key="b")

        assert result == "ok"
        assert func.await_count == 3
        func.assert_awaited_with("a", key="b")
        assert [c.args[0] for c in no_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates(self, no_sleep):
        func = AsyncMock(side_effect=GitLabAPIError("not found", status_code=404))
        func.__name__ = "fetch"

        with pytest.raises(GitLabAPIError):
            await retry_with_backoff(FAST)(func)()

        assert func.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exhausted(self):
        error = AIProviderError("overloaded", status_code=503)
        func = AsyncMock(side_effect=error)
        func.__name__ = "call_api"

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_with_backoff(FAST)(func)()

        assert func.await_count == 3
        assert exc_info.value.last_error is error
        assert exc_info.value.__cause__ is error
        assert exc_info.value.details["attempts"] == 2

    @pytest.mark.asyncio
    async def test_config_from_kwargs(self):
        func = AsyncMock(side_effect=ConnectionError("down"))
        func.__name__ = "fetch"

        with pytest.raises(RetryExhaustedError):
            await retry_with_backoff(max_retries=1, jitter=False)(func)()

        assert func.await_count == 2
