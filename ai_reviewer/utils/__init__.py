"""
Utilities module for the GitLab AI Reviewer.
"""

from .logger import setup_logging, get_logger, log_context, api_logger, review_logger
from .exceptions import (
    ReviewBotError,
    ConfigurationError,
    AIProviderError,
    EmptyAIResponseError,
    GitLabAPIError,
    RetryExhaustedError
)
from .retry import retry_with_backoff, RetryConfig

__all__ = [
    "setup_logging",
    "get_logger",
    "log_context",
    "api_logger",
    "review_logger",
    "ReviewBotError",
    "ConfigurationError",
    "AIProviderError",
    "EmptyAIResponseError",
    "GitLabAPIError",
    "RetryExhaustedError",
    "retry_with_backoff",
    "RetryConfig"
]
