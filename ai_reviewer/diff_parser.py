"""
Diff parser for the GitLab AI Reviewer.

This module turns GitLab merge request changes into review-ready files:

- clean_diff strips git headers and metadata, keeping hunks and content lines
- count_additions / count_deletions count changed lines
- extract_added_lines maps added lines to their line numbers in the new file
- DiffParser applies eligibility rules and builds ParsedFile records

Example:
    parser = DiffParser(FileFilter.from_settings(settings))
    parsed_files = parser.parse_merge_request_changes(changes_payload)
    stats = get_file_stats(parsed_files)
"""

import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Union

from .file_filter import FileFilter
from .language_detector import detect_language
from .models import AddedLine, ChangeRecord, ChangeType, FileStats, ParsedFile
from .utils.logger import get_logger

logger = get_logger(__name__)

BINARY_FILE_PATTERN = re.compile(r"^Binary files (?:.* and .* )?differ$", re.MULTILINE)
BINARY_FILE_PLACEHOLDER = "// Binary file - cannot review content"
TOO_LARGE_PLACEHOLDER = "// Diff too large for review"

HEADER_PREFIXES = ("diff --git", "index ", "+++", "---")
CONTENT_PREFIXES = ("+", "-", " ")

HUNK_HEADER_PATTERN = re.compile(r'@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@')
ADDITION_PATTERN = re.compile(r'^\+(?!\+)', re.MULTILINE)
DELETION_PATTERN = re.compile(r'^-(?!-)', re.MULTILINE)


def clean_diff(diff: str) -> str:
    """
    Strip non-semantic noise from a unified diff.

    Git headers are dropped, ``@@`` hunk headers and ``+``/``-``/space
    content lines are kept verbatim, anything else is dropped. Binary
    diffs collapse to a fixed placeholder.
    """
    if diff == BINARY_FILE_PLACEHOLDER or BINARY_FILE_PATTERN.search(diff):
        return BINARY_FILE_PLACEHOLDER

    cleaned_lines = []
    for line in diff.split("\n"):
        if line.startswith(HEADER_PREFIXES):
            continue
        if line.startswith("@@") or line.startswith(CONTENT_PREFIXES):
            cleaned_lines.append(line)

    return "\n".join(cleaned_lines)


def count_additions(diff: str) -> int:
    return len(ADDITION_PATTERN.findall(diff))


def count_deletions(diff: str) -> int:
    return len(DELETION_PATTERN.findall(diff))


def extract_added_lines(diff: str) -> List[AddedLine]:
    """
    Return added lines numbered as in the post-change file.

    Each parseable hunk header reseeds the counter at its new-file start
    line minus one; context and added lines advance it, deleted lines
    don't. Lines before the first hunk header are ignored.
    """
    added_lines: List[AddedLine] = []
    current_line = 0
    in_hunk = False

    for line in diff.split("\n"):
        if line.startswith("@@"):
            match = HUNK_HEADER_PATTERN.search(line)
            if match:
                current_line = int(match.group(1)) - 1
                in_hunk = True
            continue

        if not in_hunk:
            continue

        if line.startswith("+") and not line.startswith("+++"):
            added_lines.append(AddedLine(line_number=current_line + 1, content=line[1:]))

        if line.startswith(" ") or line.startswith("+"):
            current_line += 1

    return added_lines


def get_file_stats(parsed_files: Iterable[ParsedFile]) -> FileStats:
    """Summarize parsed files by change kind, line counts and language."""
    files = list(parsed_files)
    return FileStats(
        total_files=len(files),
        new_files=sum(1 for f in files if f.is_new_file),
        modified_files=sum(1 for f in files if not f.is_new_file and not f.is_deleted_file),
        deleted_files=sum(1 for f in files if f.is_deleted_file),
        total_additions=sum(f.additions for f in files),
        total_deletions=sum(f.deletions for f in files),
        language_breakdown=dict(Counter(f.language for f in files)),
    )


class DiffParser:
    """
    Converts GitLab merge request changes into ParsedFile records.

    Files with no diff, a matching skip pattern or an unsupported
    language are dropped. Diffs over the size limit are kept as
    ``too_large`` records so the report can list them as skipped.
    """

    def __init__(self, file_filter: FileFilter):
        self.file_filter = file_filter

    def parse_merge_request_changes(
        self,
        changes: Union[Dict[str, Any], List[Dict[str, Any]]]
    ) -> List[ParsedFile]:
        """
        Parse a GitLab ``/changes`` payload (or its ``changes`` list).

        A malformed entry is logged and dropped; it never aborts parsing
        of the remaining files.
        """
        entries = changes.get("changes", []) if isinstance(changes, dict) else changes
        parsed_files: List[ParsedFile] = []

        for entry in entries or []:
            try:
                record = entry if isinstance(entry, ChangeRecord) else ChangeRecord.from_api(entry)
                parsed_file = self.parse_file_change(record)
            except (AttributeError, TypeError, ValueError) as e:
                logger.error(
                    "Failed to parse file change",
                    extra={"entry": str(entry)[:200], "error_message": str(e)}
                )
                continue
            if parsed_file:
                parsed_files.append(parsed_file)

        return parsed_files

    def parse_file_change(self, change: ChangeRecord) -> Optional[ParsedFile]:
        """Build a ParsedFile for one change, or None if it is not reviewable."""
        filename = change.new_path

        if not change.diff or not change.diff.strip():
            logger.debug(f"Skipping file with no diff: {filename}")
            return None

        if self.file_filter.should_skip(filename):
            logger.debug(f"Skipping file based on configuration: {filename}")
            return None

        language = detect_language(filename)

        if self.file_filter.is_too_large(change.diff):
            logger.warning(
                f"Diff too large for {filename}: {len(change.diff)} characters",
                extra={"file_path": filename, "diff_size": len(change.diff)}
            )
            return self._base_file(change, language, TOO_LARGE_PLACEHOLDER, too_large=True, size=len(change.diff))

        if not self.file_filter.is_language_supported(language):
            logger.debug(f"Skipping unsupported language: {language} for {filename}")
            return None

        parsed = self._base_file(change, language, clean_diff(change.diff))
        parsed.additions = count_additions(change.diff)
        parsed.deletions = count_deletions(change.diff)
        return parsed

    @staticmethod
    def _base_file(change: ChangeRecord, language: str, diff: str, **kwargs: Any) -> ParsedFile:
        change_type: ChangeType = change.change_type
        return ParsedFile(
            filename=change.new_path,
            old_filename=change.old_path,
            language=language,
            change_type=change_type,
            diff=diff,
            is_new_file=change.new_file,
            is_deleted_file=change.deleted_file,
            is_renamed_file=change.renamed_file,
            **kwargs
        )
