"""
Configuration package for the GitLab AI Reviewer.
"""

from .settings import Settings, ProviderSettings, get_settings, SUPPORTED_PROVIDERS
from .prompts import SYSTEM_PROMPT, REVIEW_PROMPT_TEMPLATE, FOCUS_AREAS

__all__ = [
    "Settings",
    "ProviderSettings",
    "get_settings",
    "SUPPORTED_PROVIDERS",
    "SYSTEM_PROMPT",
    "REVIEW_PROMPT_TEMPLATE",
    "FOCUS_AREAS"
]
