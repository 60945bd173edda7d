"""
Parser for free-text AI review responses.

The model is asked to list findings as ``- **Field**: value`` lines, but
nothing guarantees it does. The parser is a two-state line scanner that
picks up whatever markers it recognizes and ignores everything else, so
malformed output degrades to fewer fields rather than an exception.
"""

from enum import Enum
from typing import List, Optional

from .models import Issue, ReviewResult, Severity
from .utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SUMMARY = "Code review completed."

ISSUE_MARKER = "- **Issue Type**:"
FIELD_PREFIX = "- **"

# Marker -> Issue attribute
FIELD_MARKERS = {
    "- **Severity**:": "severity",
    "- **Line**:": "line",
    "- **Description**:": "description",
    "- **Suggestion**:": "suggestion",
    "- **Example**:": "example",
}


class ParserState(Enum):
    """Scanner state: between issues or inside one."""
    NO_ISSUE = "no_issue"
    IN_ISSUE = "in_issue"


def extract_value(line: str) -> str:
    """Text after the first colon, trimmed; empty if there is no colon."""
    _, colon, value = line.partition(":")
    return value.strip() if colon else ""


def parse_line_number(value: str) -> Optional[int]:
    if value == "N/A":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def extract_summary(review_text: str) -> str:
    """
    Collect the prose before the first ``- **`` marker line.

    Lines are trimmed, blank ones skipped, and the rest joined with a
    single space. Falls back to DEFAULT_SUMMARY when nothing is found.
    """
    summary_lines = []
    for line in (review_text or "").split("\n"):
        stripped = line.strip()
        if stripped.startswith(FIELD_PREFIX):
            break
        if stripped:
            summary_lines.append(stripped)

    return " ".join(summary_lines).strip() or DEFAULT_SUMMARY


class ReviewResponseParser:
    """Turns an AI review text into a ReviewResult."""

    def parse(self, review_text: Optional[str]) -> ReviewResult:
        text = review_text or ""
        issues = self.parse_issues(text)
        logger.debug(f"Parsed {len(issues)} issues from AI review")
        return ReviewResult(
            summary=extract_summary(text),
            issues=issues,
            raw_review=text,
        )

    def parse_issues(self, review_text: str) -> List[Issue]:
        issues: List[Issue] = []
        state = ParserState.NO_ISSUE
        current: Optional[Issue] = None

        for line in review_text.split("\n"):
            stripped = line.strip()

            if stripped.startswith(ISSUE_MARKER):
                if current is not None:
                    issues.append(current)
                current = Issue(type=extract_value(stripped))
                state = ParserState.IN_ISSUE
                continue

            if state is ParserState.IN_ISSUE:
                self._apply_field(current, stripped)

        if current is not None:
            issues.append(current)

        return issues

    @staticmethod
    def _apply_field(issue: Issue, line: str) -> None:
        for marker, attribute in FIELD_MARKERS.items():
            if not line.startswith(marker):
                continue
            value = extract_value(line)
            if attribute == "line":
                issue.line = parse_line_number(value)
            elif attribute == "severity":
                issue.severity = value.upper() or Severity.MEDIUM.value
            else:
                setattr(issue, attribute, value)
            return
