"""
Exception hierarchy for the GitLab AI Reviewer.

Every error raised by the reviewer derives from ReviewBotError and carries
a machine-readable ``error_code`` plus a ``details`` dict that ends up in
structured logs. The subclasses follow how a run can fail:

- ConfigurationError: bad settings, raised before any merge request is touched
- GitLabAPIError: a GitLab call failed; fatal for the merge request
- AIProviderError: an AI call failed; recorded against one file only
- RetryExhaustedError: a transient failure outlived every retry
"""

from typing import Any, Dict, Optional


def _compact(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value}


class ReviewBotError(Exception):
    """
    Base exception for the reviewer.

    Attributes:
        message: Human-readable description
        error_code: Stable code for log filtering, defaults to the class name
        details: Structured context (status codes, endpoints, config keys)
        retryable: Whether the retry decorator may try again
    """

    retryable = True

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ReviewBotError):
    """Missing credentials, an unsupported provider or an out-of-range setting."""

    retryable = False

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[str] = None
    ):
        super().__init__(
            message,
            error_code="CONFIG_ERROR",
            details=_compact(config_key=config_key, config_value=config_value),
        )


class AIProviderError(ReviewBotError):
    """
    A call to the AI backend failed.

    Covers transport failures, HTTP error statuses and response bodies that
    are not the JSON envelope the provider promises.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None
    ):
        super().__init__(
            message,
            error_code="AI_PROVIDER_ERROR",
            details=_compact(provider=provider, status_code=status_code, response_body=response_body),
        )
        self.provider = provider
        self.status_code = status_code


class EmptyAIResponseError(AIProviderError):
    """
    The AI backend answered without any review content.

    An empty issue list is a valid review outcome; a response with no
    content at all is a failure of the call itself.
    """

    retryable = False

    def __init__(self, message: str = "No review content received from AI", provider: Optional[str] = None):
        super().__init__(message, provider=provider)
        self.error_code = "EMPTY_AI_RESPONSE"


class GitLabAPIError(ReviewBotError):
    """A GitLab REST call failed (auth, permissions, missing merge request, outage)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None,
        endpoint: Optional[str] = None
    ):
        super().__init__(
            message,
            error_code="GITLAB_API_ERROR",
            details=_compact(status_code=status_code, response_body=response_body, endpoint=endpoint),
        )
        self.status_code = status_code


class RetryExhaustedError(ReviewBotError):
    """Every attempt of a retried call failed; ``last_error`` is the final failure."""

    retryable = False

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        last_error: Optional[Exception] = None
    ):
        details = _compact(attempts=attempts)
        if last_error is not None:
            details["last_error_type"] = type(last_error).__name__
            details["last_error_message"] = str(last_error)
        super().__init__(message, error_code="RETRY_EXHAUSTED_ERROR", details=details)
        self.last_error = last_error
