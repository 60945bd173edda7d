"""
AI provider backends.

``create_provider`` picks the implementation for the configured
provider once at startup.
"""

from typing import Optional

import httpx

from ..config.settings import Settings
from ..prompt_builder import PromptBuilder
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger
from ..utils.retry import RetryConfig
from .anthropic import AnthropicProvider
from .base import AIProvider
from .openai_compatible import OpenAICompatibleProvider

logger = get_logger(__name__)

PROVIDER_CLASSES = {
    "openai": OpenAICompatibleProvider,
    "openrouter": OpenAICompatibleProvider,
    "deepseek": OpenAICompatibleProvider,
    "azure": OpenAICompatibleProvider,
    "anthropic": AnthropicProvider,
}


def create_provider(
    settings: Settings,
    retry_config: Optional[RetryConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> AIProvider:
    """
    Build the AI provider selected by ``settings.ai_provider``.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing
    """
    provider_class = PROVIDER_CLASSES.get(settings.ai_provider)
    if provider_class is None:
        raise ConfigurationError(
            f"Unsupported AI provider: {settings.ai_provider}",
            "AI_PROVIDER",
            settings.ai_provider
        )

    provider_settings = settings.provider_settings()
    if not provider_settings.api_key:
        raise ConfigurationError(f"API key is required for the {settings.ai_provider} provider", "AI_PROVIDER")
    if not provider_settings.base_url:
        raise ConfigurationError(f"Base URL is required for the {settings.ai_provider} provider", "AI_PROVIDER")

    logger.info(f"AI provider initialized: {provider_settings.name} ({provider_settings.model})")

    return provider_class(
        provider_settings,
        prompt_builder=PromptBuilder.from_settings(settings),
        timeout=settings.ai_timeout,
        retry_config=retry_config,
        transport=transport,
    )


__all__ = [
    "AIProvider",
    "OpenAICompatibleProvider",
    "AnthropicProvider",
    "PROVIDER_CLASSES",
    "create_provider",
]
