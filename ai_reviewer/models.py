"""
Data models for the review pipeline.

ChangeRecord is what GitLab hands us, ParsedFile is what survives
filtering, FileReview is one file's outcome and AggregatedReport is
the whole merge request as rendered into the summary comment.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeType(str, Enum):
    """How a file changed in the merge request."""
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    MODIFIED = "modified"


class Severity(str, Enum):
    """Issue severities, in report order."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class IssueType(str, Enum):
    """Issue categories the system prompt asks for."""
    SECURITY = "SECURITY"
    PERFORMANCE = "PERFORMANCE"
    STYLE = "STYLE"
    BUG = "BUG"
    BEST_PRACTICE = "BEST_PRACTICE"


class ReviewStatus(str, Enum):
    """Outcome of one file's review."""
    REVIEWED = "reviewed"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class ChangeRecord:
    """A single entry of GitLab's merge request ``changes`` list."""
    old_path: str
    new_path: str
    diff: str = ""
    new_file: bool = False
    deleted_file: bool = False
    renamed_file: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ChangeRecord":
        new_path = data.get("new_path") or data.get("old_path") or ""
        return cls(
            old_path=data.get("old_path") or new_path,
            new_path=new_path,
            diff=data.get("diff") or "",
            new_file=bool(data.get("new_file", False)),
            deleted_file=bool(data.get("deleted_file", False)),
            renamed_file=bool(data.get("renamed_file", False)),
        )

    @property
    def change_type(self) -> ChangeType:
        if self.new_file:
            return ChangeType.ADDED
        if self.deleted_file:
            return ChangeType.DELETED
        if self.renamed_file:
            return ChangeType.RENAMED
        return ChangeType.MODIFIED


@dataclass
class ParsedFile:
    """A changed file that passed eligibility checks."""
    filename: str
    language: str
    change_type: ChangeType
    diff: str
    old_filename: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    is_new_file: bool = False
    is_deleted_file: bool = False
    is_renamed_file: bool = False
    too_large: bool = False
    size: Optional[int] = None


@dataclass
class AddedLine:
    """An added diff line with its line number in the new file."""
    line_number: int
    content: str


@dataclass
class ReviewContext:
    """Merge request context shared by every file's prompt."""
    description: Optional[str] = None
    commit_messages: List[str] = field(default_factory=list)


@dataclass
class Issue:
    """One structured finding extracted from an AI review."""
    type: str
    severity: str = Severity.MEDIUM.value
    line: Optional[int] = None
    description: str = ""
    suggestion: str = ""
    example: str = ""

    def __post_init__(self):
        if not self.severity:
            self.severity = Severity.MEDIUM.value


@dataclass
class ReviewResult:
    """What a single AI review call yields."""
    summary: str
    issues: List[Issue] = field(default_factory=list)
    raw_review: str = ""


@dataclass
class FileReview:
    """
    Review outcome for one file.

    Exactly one of reviewed, skipped or errored. Use the named
    constructors; skipped and errored reviews never carry issues.
    """
    filename: str
    status: ReviewStatus
    language: Optional[str] = None
    change_type: Optional[ChangeType] = None
    summary: str = ""
    issues: List[Issue] = field(default_factory=list)
    raw_review: Optional[str] = None
    reason: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def reviewed(cls, parsed_file: ParsedFile, result: ReviewResult) -> "FileReview":
        return cls(
            filename=parsed_file.filename,
            status=ReviewStatus.REVIEWED,
            language=parsed_file.language,
            change_type=parsed_file.change_type,
            summary=result.summary,
            issues=list(result.issues),
            raw_review=result.raw_review,
        )

    @classmethod
    def skipped(cls, parsed_file: ParsedFile, reason: str) -> "FileReview":
        return cls(
            filename=parsed_file.filename,
            status=ReviewStatus.SKIPPED,
            language=parsed_file.language,
            change_type=parsed_file.change_type,
            reason=reason,
        )

    @classmethod
    def errored(cls, parsed_file: ParsedFile, error_message: str) -> "FileReview":
        return cls(
            filename=parsed_file.filename,
            status=ReviewStatus.ERRORED,
            language=parsed_file.language,
            change_type=parsed_file.change_type,
            error_message=error_message,
        )

    @property
    def is_skipped(self) -> bool:
        return self.status is ReviewStatus.SKIPPED

    @property
    def is_errored(self) -> bool:
        return self.status is ReviewStatus.ERRORED


@dataclass
class AggregatedReport:
    """All file reviews of a merge request; totals are derived on access."""
    reviews: List[FileReview] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.reviews)

    @property
    def issue_count(self) -> int:
        return sum(len(review.issues) for review in self.reviews)

    @property
    def critical_count(self) -> int:
        return sum(
            1 for review in self.reviews for issue in review.issues
            if issue.severity == Severity.CRITICAL.value
        )

    @property
    def security_count(self) -> int:
        return sum(
            1 for review in self.reviews for issue in review.issues
            if issue.type == IssueType.SECURITY.value
        )


@dataclass
class FileStats:
    """Aggregate statistics over the parsed files of a merge request."""
    total_files: int = 0
    new_files: int = 0
    modified_files: int = 0
    deleted_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    language_breakdown: Dict[str, int] = field(default_factory=dict)
