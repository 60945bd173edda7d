"""
Eligibility checks for changed files.
"""

import re
from functools import lru_cache
from typing import Iterable, List, Pattern

from .utils.logger import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> Pattern:
    """Translate a ``*``/``?`` glob into a case-insensitive, unanchored regex."""
    translated = "".join(
        ".*" if char == "*" else "." if char == "?" else re.escape(char)
        for char in pattern
    )
    return re.compile(translated, re.IGNORECASE)


def _is_glob(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern


def should_skip(filename: str, skip_patterns: Iterable[str]) -> bool:
    """
    Return True if ``filename`` matches any skip pattern.

    Glob patterns are matched anywhere in the path, ignoring case.
    Literal patterns match the whole path or a suffix of it.
    """
    for pattern in skip_patterns:
        if not pattern:
            continue
        if _is_glob(pattern):
            if _glob_to_regex(pattern).search(filename):
                return True
        elif filename == pattern or filename.endswith(pattern):
            return True
    return False


def is_language_supported(language: str, supported_languages: Iterable[str]) -> bool:
    return language in supported_languages


class FileFilter:
    """Configured skip patterns, language allow-list and diff size limit."""

    def __init__(
        self,
        skip_patterns: List[str],
        supported_languages: List[str],
        max_diff_size: int
    ):
        self.skip_patterns = list(skip_patterns)
        self.supported_languages = list(supported_languages)
        self.max_diff_size = max_diff_size

    @classmethod
    def from_settings(cls, settings) -> "FileFilter":
        return cls(
            skip_patterns=settings.skip_files,
            supported_languages=settings.supported_languages,
            max_diff_size=settings.max_diff_size,
        )

    def should_skip(self, filename: str) -> bool:
        return should_skip(filename, self.skip_patterns)

    def is_language_supported(self, language: str) -> bool:
        return is_language_supported(language, self.supported_languages)

    def is_too_large(self, diff: str) -> bool:
        return len(diff) > self.max_diff_size
