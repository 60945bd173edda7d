"""
Configuration management for the GitLab AI Reviewer.

Settings are read from environment variables (a local ``.env`` file is
loaded first) into a typed dataclass. Value checks run on construction;
credential checks run in ``validate()`` so that a misconfigured provider
fails before any merge request is touched.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Optional, List, Dict, Any

from dotenv import load_dotenv

from .prompts import SYSTEM_PROMPT, REVIEW_PROMPT_TEMPLATE
from ..utils.exceptions import ConfigurationError


SUPPORTED_PROVIDERS = ("openai", "openrouter", "deepseek", "anthropic", "azure")

DEFAULT_SUPPORTED_LANGUAGES = [
    "javascript", "typescript", "python", "java", "go", "rust", "php", "ruby",
    "csharp", "cpp", "c", "kotlin", "swift", "scala", "dart",
]

DEFAULT_SKIP_FILES = [
    "package-lock.json", "yarn.lock", "*.min.js", "*.bundle.js", "*.map",
    "*.lock", "dist/*", "build/*", "node_modules/*",
]

DEFAULT_BOT_SIGNATURE = "<!-- gitlab-ai-reviewer -->"

# Provider -> (api key field, env var holding the key)
PROVIDER_KEY_FIELDS = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "openrouter": ("openrouter_api_key", "OPENROUTER_API_KEY"),
    "deepseek": ("deepseek_api_key", "DEEPSEEK_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "azure": ("azure_api_key", "AZURE_OPENAI_KEY"),
}


@dataclass(frozen=True)
class ProviderSettings:
    """Connection and sampling parameters for the active AI provider."""
    name: str
    api_key: str
    base_url: str
    model: str
    max_tokens: int
    temperature: float
    extra_headers: Dict[str, str] = field(default_factory=dict)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """
    Application settings loaded from environment variables.

    Per-provider max token and temperature defaults follow each backend;
    AI_MAX_TOKENS / AI_TEMPERATURE override them for every provider.
    """

    # GitLab Configuration
    gitlab_url: str = "https://gitlab.com"
    gitlab_token: str = ""
    project_id: str = ""
    mr_iid: str = ""

    # AI Provider Configuration
    ai_provider: str = "openrouter"
    ai_max_tokens: Optional[int] = None
    ai_temperature: Optional[float] = None

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4"

    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "x-ai/grok-3-beta"
    openrouter_site_url: str = "https://gitlab-ai-reviewer.com"
    openrouter_site_name: str = "GitLab AI Reviewer"

    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-coder"

    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_model: str = "claude-3-sonnet-20240229"

    azure_api_key: str = ""
    azure_endpoint: str = ""
    azure_model: str = "gpt-4"

    # Review Configuration
    max_diff_size: int = 10000
    supported_languages: List[str] = field(default_factory=lambda: list(DEFAULT_SUPPORTED_LANGUAGES))
    skip_files: List[str] = field(default_factory=lambda: list(DEFAULT_SKIP_FILES))
    enable_security_checks: bool = True
    enable_performance_checks: bool = True
    enable_code_style_checks: bool = True
    enable_best_practices_checks: bool = True
    enable_bug_detection: bool = True
    system_prompt: str = SYSTEM_PROMPT
    review_prompt: str = REVIEW_PROMPT_TEMPLATE
    bot_signature: str = DEFAULT_BOT_SIGNATURE

    # Rate Limiting and Timeouts
    api_request_delay: float = 1.0
    request_timeout: float = 30.0
    ai_timeout: float = 120.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "text"
    log_file: Optional[str] = None

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 3000

    def __post_init__(self):
        """Validate value ranges after initialization."""
        self.ai_provider = self.ai_provider.strip().lower()
        self.project_id = str(self.project_id)
        self.mr_iid = str(self.mr_iid)
        self.gitlab_url = self.gitlab_url.rstrip("/")

        if self.max_diff_size < 1:
            raise ConfigurationError("max_diff_size must be positive", "MAX_DIFF_SIZE", str(self.max_diff_size))
        if self.api_request_delay < 0:
            raise ConfigurationError("api_request_delay cannot be negative", "API_REQUEST_DELAY")
        if self.ai_temperature is not None and not 0.0 <= self.ai_temperature <= 2.0:
            raise ConfigurationError("ai_temperature must be between 0.0 and 2.0", "AI_TEMPERATURE")
        if self.ai_max_tokens is not None and self.ai_max_tokens < 1:
            raise ConfigurationError("ai_max_tokens must be positive", "AI_MAX_TOKENS")

    def validate(self) -> None:
        """
        Check credentials and provider selection.

        Raises:
            ConfigurationError: If the GitLab token, the provider or its key is missing
        """
        if not self.gitlab_token:
            raise ConfigurationError("GITLAB_TOKEN environment variable is required", "GITLAB_TOKEN")

        if self.ai_provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported AI provider: {self.ai_provider}",
                "AI_PROVIDER",
                self.ai_provider
            )

        key_field, env_var = PROVIDER_KEY_FIELDS[self.ai_provider]
        if not getattr(self, key_field):
            raise ConfigurationError(
                f"{env_var} is required when using the {self.ai_provider} provider",
                env_var
            )

        if self.ai_provider == "azure" and not self.azure_endpoint:
            raise ConfigurationError(
                "AZURE_OPENAI_ENDPOINT is required when using the azure provider",
                "AZURE_OPENAI_ENDPOINT"
            )

    @property
    def review_criteria(self) -> Dict[str, bool]:
        """Enabled flags keyed like prompts.FOCUS_AREAS."""
        return {
            "security": self.enable_security_checks,
            "performance": self.enable_performance_checks,
            "style": self.enable_code_style_checks,
            "best_practices": self.enable_best_practices_checks,
            "bug_detection": self.enable_bug_detection,
        }

    def provider_settings(self) -> ProviderSettings:
        """
        Resolve the connection parameters of the active provider.

        Raises:
            ConfigurationError: If the provider is not supported
        """
        provider = self.ai_provider
        if provider == "openai":
            base_url, model, max_tokens, temperature = self.openai_base_url, self.openai_model, 2000, 0.3
        elif provider == "openrouter":
            base_url, model, max_tokens, temperature = self.openrouter_base_url, self.openrouter_model, 1500, 0.1
        elif provider == "deepseek":
            base_url, model, max_tokens, temperature = self.deepseek_base_url, self.deepseek_model, 4000, 0.1
        elif provider == "anthropic":
            base_url, model, max_tokens, temperature = self.anthropic_base_url, self.anthropic_model, 2000, 0.3
        elif provider == "azure":
            base_url, model, max_tokens, temperature = self.azure_endpoint, self.azure_model, 2000, 0.3
        else:
            raise ConfigurationError(f"Unsupported AI provider: {provider}", "AI_PROVIDER", provider)

        extra_headers: Dict[str, str] = {}
        if provider == "openrouter":
            extra_headers = {
                "HTTP-Referer": self.openrouter_site_url,
                "X-Title": self.openrouter_site_name,
            }

        key_field, _ = PROVIDER_KEY_FIELDS[provider]
        return ProviderSettings(
            name=provider,
            api_key=getattr(self, key_field),
            base_url=base_url.rstrip("/"),
            model=model,
            max_tokens=self.ai_max_tokens if self.ai_max_tokens is not None else max_tokens,
            temperature=self.ai_temperature if self.ai_temperature is not None else temperature,
            extra_headers=extra_headers,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "Settings":
        """Create Settings instance from environment variables with optional overrides."""
        env_vars: Dict[str, Any] = {}

        env_mapping = {
            "GITLAB_URL": "gitlab_url",
            "GITLAB_TOKEN": "gitlab_token",
            "GITLAB_PROJECT_ID": "project_id",
            "CI_PROJECT_ID": "project_id",
            "CI_MERGE_REQUEST_IID": "mr_iid",
            "AI_PROVIDER": "ai_provider",
            "AI_MAX_TOKENS": "ai_max_tokens",
            "AI_TEMPERATURE": "ai_temperature",
            "OPENAI_API_KEY": "openai_api_key",
            "OPENAI_BASE_URL": "openai_base_url",
            "AI_MODEL": "openai_model",
            "OPENROUTER_API_KEY": "openrouter_api_key",
            "OPENROUTER_BASE_URL": "openrouter_base_url",
            "OPENROUTER_MODEL": "openrouter_model",
            "OPENROUTER_SITE_URL": "openrouter_site_url",
            "OPENROUTER_SITE_NAME": "openrouter_site_name",
            "DEEPSEEK_API_KEY": "deepseek_api_key",
            "DEEPSEEK_BASE_URL": "deepseek_base_url",
            "DEEPSEEK_MODEL": "deepseek_model",
            "ANTHROPIC_API_KEY": "anthropic_api_key",
            "ANTHROPIC_BASE_URL": "anthropic_base_url",
            "ANTHROPIC_MODEL": "anthropic_model",
            "AZURE_OPENAI_KEY": "azure_api_key",
            "AZURE_OPENAI_ENDPOINT": "azure_endpoint",
            "AZURE_MODEL": "azure_model",
            "MAX_DIFF_SIZE": "max_diff_size",
            "REVIEW_LANGUAGES": "supported_languages",
            "SKIP_FILES": "skip_files",
            "ENABLE_SECURITY_CHECKS": "enable_security_checks",
            "ENABLE_PERFORMANCE_CHECKS": "enable_performance_checks",
            "ENABLE_CODE_STYLE_CHECKS": "enable_code_style_checks",
            "ENABLE_BEST_PRACTICES_CHECKS": "enable_best_practices_checks",
            "ENABLE_BUG_DETECTION": "enable_bug_detection",
            "BOT_SIGNATURE": "bot_signature",
            "API_REQUEST_DELAY": "api_request_delay",
            "REQUEST_TIMEOUT": "request_timeout",
            "AI_TIMEOUT": "ai_timeout",
            "LOG_LEVEL": "log_level",
            "LOG_FORMAT": "log_format",
            "LOG_FILE": "log_file",
            "SERVER_HOST": "server_host",
            "PORT": "server_port",
        }

        # CI_PROJECT_ID wins over GITLAB_PROJECT_ID: later keys overwrite earlier ones
        for env_var, field_name in env_mapping.items():
            value = os.environ.get(env_var)
            if value is not None and value != "":
                env_vars[field_name] = value

        bool_fields = {
            "enable_security_checks", "enable_performance_checks", "enable_code_style_checks",
            "enable_best_practices_checks", "enable_bug_detection",
        }
        float_fields = {"ai_temperature", "api_request_delay", "request_timeout", "ai_timeout"}
        int_fields = {"ai_max_tokens", "max_diff_size", "server_port"}
        list_fields = {"supported_languages", "skip_files"}

        for key, value in env_vars.items():
            try:
                if key in bool_fields:
                    # Review criteria are on unless explicitly disabled
                    env_vars[key] = value.strip().lower() != "false"
                elif key in float_fields:
                    env_vars[key] = float(value)
                elif key in int_fields:
                    env_vars[key] = int(value)
                elif key in list_fields:
                    env_vars[key] = _split_list(value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {key}: {value}", key, value) from e

        env_vars.update(kwargs)

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in env_vars.items() if k in known})


def get_settings(validate: bool = True, **overrides: Any) -> Settings:
    """
    Load settings from the environment (and ``.env``).

    Args:
        validate: Whether to run credential and provider checks
        **overrides: Field values taking precedence over the environment

    Raises:
        ConfigurationError: If configuration is invalid
    """
    load_dotenv()
    settings = Settings.from_env(**overrides)
    if validate:
        settings.validate()
    return settings
