"""
Logging for the GitLab AI Reviewer.

Everything goes through the standard ``logging`` module. ``setup_logging``
installs one console handler (JSON or text) and optionally a JSON file
handler on the root logger. Two filters run on every handler:

- ContextFilter stamps records with the merge request under review
- SensitiveDataFilter masks tokens and API keys before anything is written

Example:
    >>> from ai_reviewer.utils.logger import get_logger, log_context, setup_logging
    >>> setup_logging(level="DEBUG", format_type="json")
    >>> with log_context(project_id="42", mr_iid="7"):
    ...     get_logger(__name__).info("Reviewing file: src/app.py")
"""

import contextvars
import json
import logging
import re
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Pattern, Type, Union


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(Enum):
    JSON = "json"
    TEXT = "text"


RESET_COLOR = "\033[0m"
LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

REDACTED = "***REDACTED***"

SENSITIVE_FIELDS = frozenset({
    "authorization", "token", "password", "secret", "api_key", "x-api-key",
    "access_token", "private_key", "private-token", "gitlab_token",
})

# Attributes every LogRecord has; anything else arrived through ``extra``
RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

TEXT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "ai_reviewer_log_context", default={}
)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """
    Attach values such as project_id and mr_iid to every record logged
    inside the block, including from awaited coroutines of the same task.
    """
    token = _log_context.set({**_log_context.get(), **values})
    try:
        yield
    finally:
        _log_context.reset(token)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in vars(record).items()
        if key not in RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


# ============================================================================
# Redaction
# ============================================================================

class SensitiveDataRedactor:
    """
    Masks credentials in free text and in keyed values.

    A value is masked wholesale when its key looks like a credential
    (``*_token``, ``*_api_key`` or a known header name). Free text is
    scanned for bearer tokens, OpenAI-style keys and key assignments.
    """

    TEXT_PATTERNS: List[Pattern] = [
        re.compile(r"(?i)(bearer\s+)([\w\-.]{8,})"),
        re.compile(r"(?i)(api[_-]?key[\"\s]*[:=][\"\s]*)([\w\-]+)"),
        re.compile(r"(?i)(token[\"\s]*[:=][\"\s]*)([\w\-]{20,})"),
        re.compile(r"(?i)(private-token[\"\s]*[:=][\"\s]*)([\w\-]+)"),
        re.compile(r"(sk-[\w\-]{6})([\w\-]{10,})"),
    ]

    @staticmethod
    def is_sensitive_key(key: str) -> bool:
        name = str(key).lower()
        return name in SENSITIVE_FIELDS or name.endswith(("_token", "_api_key"))

    def redact_string(self, text: str) -> str:
        if not isinstance(text, str):
            return text
        for pattern in self.TEXT_PATTERNS:
            text = pattern.sub(lambda match: match.group(1) + REDACTED, text)
        return text

    def redact_value(self, key: str, value: Any) -> Any:
        if self.is_sensitive_key(key):
            return REDACTED if value else value
        if isinstance(value, dict):
            return self.redact_dict(value)
        if isinstance(value, (list, tuple)):
            return [self.redact_value(key, item) for item in value]
        return self.redact_string(value)

    def redact_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {key: self.redact_value(key, value) for key, value in data.items()}


_redactor = SensitiveDataRedactor()


# ============================================================================
# Formatters and filters
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    One JSON object per line; extra fields are merged into the object.

    Example:
        {"level": "INFO", "logger": "ai_reviewer.reviewer", "message": "Review completed for MR 7",
         "mr_iid": "7", "project_id": "42", "timestamp": "2024-05-01T12:00:00.000000+00:00", ...}
    """

    def __init__(self, ensure_ascii: bool = False, sort_keys: bool = True):
        super().__init__()
        self.ensure_ascii = ensure_ascii
        self.sort_keys = sort_keys

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(_redactor.redact_dict(_extra_fields(record)))
        if record.exc_info:
            entry["exception"] = _redactor.redact_string(self.formatException(record.exc_info))
        return json.dumps(entry, default=str, ensure_ascii=self.ensure_ascii, sort_keys=self.sort_keys)


class TextFormatter(logging.Formatter):
    """
    Single-line human readable output, coloured on a terminal.

    Example:
        [2024-05-01 12:00:00] INFO     ai_reviewer.reviewer:87 - Review completed for MR 7 (project=42, mr=7)
    """

    def __init__(self, use_colors: bool = True, timestamp_format: str = TEXT_TIMESTAMP_FORMAT):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()
        self.timestamp_format = timestamp_format

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime(self.timestamp_format)
        line = f"[{when}] {record.levelname:<8} {record.name}:{record.lineno} - {record.getMessage()}"

        merge_request = [
            f"{label}={value}"
            for label, value in (("project", getattr(record, "project_id", None)),
                                 ("mr", getattr(record, "mr_iid", None)))
            if value
        ]
        if merge_request:
            line += f" ({', '.join(merge_request)})"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        if self.use_colors and record.levelname in LEVEL_COLORS:
            line = LEVEL_COLORS[record.levelname] + line + RESET_COLOR
        return line


class ContextFilter(logging.Filter):
    """Stamps records with the merge request of the current log_context."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for key in ("project_id", "mr_iid"):
            setattr(record, key, context.get(key, getattr(record, key, None)))
        return True


class SensitiveDataFilter(logging.Filter):
    """Masks credentials in the message template and in credential-named extra fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _redactor.redact_string(record.msg)
        for key, value in _extra_fields(record).items():
            if _redactor.is_sensitive_key(key):
                setattr(record, key, _redactor.redact_value(key, value))
        return True


# ============================================================================
# Setup
# ============================================================================

def _validate_choice(value: str, choices: Type[Enum], kind: str, normalize) -> str:
    if not value:
        raise ValueError(f"Log {kind} cannot be empty")
    normalized = normalize(value)
    allowed = sorted(choice.value for choice in choices)
    if normalized not in allowed:
        raise ValueError(f"Invalid log {kind}: {value}. Valid {kind}s: {', '.join(allowed)}")
    return normalized


def validate_log_level(level: str) -> str:
    """
    Normalize a level name to upper case.

    Raises:
        ValueError: If the level is empty or unknown
    """
    return _validate_choice(level, LogLevel, "level", str.upper)


def validate_log_format(format_type: str) -> str:
    """
    Normalize a format name to lower case.

    Raises:
        ValueError: If the format is empty or unknown
    """
    return _validate_choice(format_type, LogFormat, "format", str.lower)


def _attach(
    root: logging.Logger,
    handler: logging.Handler,
    level: int,
    formatter: logging.Formatter,
    filters: List[logging.Filter]
) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for log_filter in filters:
        handler.addFilter(log_filter)
    root.addHandler(handler)


def setup_logging(
    level: Optional[Union[str, LogLevel]] = None,
    format_type: Optional[Union[str, LogFormat]] = None,
    log_file: Optional[str] = None,
    use_colors: Optional[bool] = None,
    sanitize_sensitive_data: bool = True
) -> logging.Logger:
    """
    Configure the root logger for a run.

    Existing root handlers are replaced. An unknown level or format is
    reported on stderr and INFO/text is used instead; a log file that
    cannot be opened is reported and skipped.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
        format_type: 'json' or 'text' for the console (default text)
        log_file: Path of an additional JSON log file
        use_colors: Colour text output; defaults to on when stdout is a TTY
        sanitize_sensitive_data: Mask credentials in every record

    Returns:
        The root logger
    """
    if isinstance(level, LogLevel):
        level = level.value
    if isinstance(format_type, LogFormat):
        format_type = format_type.value

    try:
        level_name = validate_log_level(level or LogLevel.INFO.value)
        console_format = validate_log_format(format_type or LogFormat.TEXT.value)
    except ValueError as e:
        print(f"Warning: {e}. Using fallback settings.", file=sys.stderr)
        level_name, console_format = LogLevel.INFO.value, LogFormat.TEXT.value

    numeric_level = logging.getLevelName(level_name)
    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    filters: List[logging.Filter] = [ContextFilter()]
    if sanitize_sensitive_data:
        filters.append(SensitiveDataFilter())

    if console_format == LogFormat.JSON.value:
        console_formatter: logging.Formatter = JSONFormatter()
    else:
        console_formatter = TextFormatter(use_colors=True if use_colors is None else use_colors)
    _attach(root, logging.StreamHandler(sys.stdout), numeric_level, console_formatter, filters)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            print(f"Warning: Failed to create file handler: {e}", file=sys.stderr)
        else:
            _attach(root, file_handler, numeric_level, JSONFormatter(), filters)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ============================================================================
# Domain loggers
# ============================================================================

class APILogger:
    """Debug-level trace of outbound GitLab and AI provider calls, URLs masked."""

    def __init__(self, logger_name: str = "ai_reviewer.api"):
        self.logger = get_logger(logger_name)

    def log_request(self, api_name: str, method: str, url: str, **extra: Any) -> None:
        self.logger.debug(
            f"API Request: {method} {_redactor.redact_string(url)}",
            extra={"api_name": api_name, "method": method, **_redactor.redact_dict(extra)}
        )

    def log_response(
        self,
        api_name: str,
        method: str,
        url: str,
        status_code: int,
        response_time_ms: Optional[float] = None
    ) -> None:
        self.logger.debug(
            f"API Response: {method} {_redactor.redact_string(url)} - {status_code}",
            extra={
                "api_name": api_name,
                "method": method,
                "status_code": status_code,
                "response_time_ms": response_time_ms,
            }
        )

    def log_error(
        self,
        api_name: str,
        method: str,
        url: str,
        error: Exception,
        status_code: Optional[int] = None
    ) -> None:
        self.logger.error(
            f"API Error: {method} {_redactor.redact_string(url)} - {_redactor.redact_string(str(error))}",
            extra={
                "api_name": api_name,
                "method": method,
                "status_code": status_code,
                "error_type": type(error).__name__,
            }
        )


class ReviewLogger:
    """Milestones of a merge request review: parsed diff, per-file outcomes, published note."""

    def __init__(self, logger_name: str = "ai_reviewer.review"):
        self.logger = get_logger(logger_name)

    def log_diff_processing(
        self,
        file_count: int,
        total_additions: int,
        total_deletions: int,
        languages: Dict[str, int]
    ) -> None:
        self.logger.info(
            f"Parsed {file_count} reviewable file(s): +{total_additions} -{total_deletions}",
            extra={
                "file_count": file_count,
                "total_additions": total_additions,
                "total_deletions": total_deletions,
                "languages": languages,
            }
        )

    def log_review_generation(
        self,
        files_reviewed: int,
        files_skipped: int,
        files_failed: int,
        issues_found: int,
        processing_time_ms: float
    ) -> None:
        self.logger.info(
            f"Reviewed {files_reviewed} file(s), skipped {files_skipped}, failed {files_failed}; "
            f"{issues_found} issue(s) found",
            extra={
                "files_reviewed": files_reviewed,
                "files_skipped": files_skipped,
                "files_failed": files_failed,
                "issues_found": issues_found,
                "processing_time_ms": round(processing_time_ms, 1),
            }
        )

    def log_comment_publication(self, comment_id: Any, updated: bool) -> None:
        self.logger.info(
            "Updated existing review comment" if updated else "Posted new review comment",
            extra={"comment_id": comment_id, "updated": updated}
        )


api_logger = APILogger()
review_logger = ReviewLogger()


__all__ = [
    "setup_logging",
    "get_logger",
    "log_context",
    "get_log_context",
    "validate_log_level",
    "validate_log_format",
    "JSONFormatter",
    "TextFormatter",
    "ContextFilter",
    "SensitiveDataFilter",
    "SensitiveDataRedactor",
    "APILogger",
    "ReviewLogger",
    "api_logger",
    "review_logger",
]
