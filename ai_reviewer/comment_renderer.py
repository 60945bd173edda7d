"""
Markdown rendering of review reports for GitLab notes.

Every comment starts with the bot signature (an HTML comment GitLab does
not display) so a later run can find and update it.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from .config.settings import DEFAULT_BOT_SIGNATURE
from .models import SEVERITY_ORDER, AggregatedReport, FileReview, Issue

HEADER = "## 🤖 AI Code Review"
NO_ISSUES_LINE = "✅ **Great work!** No issues found in this merge request."
OTHER_SEVERITY = "OTHER"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp in ISO 8601 with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CommentRenderer:
    """
    Renders the summary comment posted on a merge request.

    Output is deterministic for a given report and timestamp.
    """

    SEVERITY_ICONS = {
        "CRITICAL": "🚨",
        "HIGH": "⚠️",
        "MEDIUM": "⚡",
        "LOW": "💡",
        OTHER_SEVERITY: "📌",
    }

    def __init__(
        self,
        signature: str = DEFAULT_BOT_SIGNATURE,
        provider_name: str = "",
        model: str = ""
    ):
        self.signature = signature
        self.provider_name = provider_name
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "CommentRenderer":
        provider = settings.provider_settings()
        return cls(
            signature=settings.bot_signature,
            provider_name=provider.name,
            model=provider.model,
        )

    def render_report(self, report: AggregatedReport, generated_at: Optional[datetime] = None) -> str:
        """
        Render the full review report.

        Args:
            report: Aggregated file reviews
            generated_at: Timestamp for the footer, defaults to now

        Returns:
            Markdown comment body
        """
        lines = [self.signature, HEADER, ""]

        if report.issue_count == 0:
            lines.extend([NO_ISSUES_LINE, ""])
        else:
            lines.append("📊 **Review Summary:**")
            lines.append(f"- **Files Reviewed:** {report.file_count}")
            lines.append(f"- **Total Issues:** {report.issue_count}")
            if report.critical_count > 0:
                lines.append(f"- **Critical Issues:** ⚠️ {report.critical_count}")
            if report.security_count > 0:
                lines.append(f"- **Security Issues:** 🔒 {report.security_count}")
            lines.append("")

        for review in report.reviews:
            lines.extend(self._render_file(review))

        lines.append("---")
        lines.append(f"*Review generated by GitLab AI Reviewer at {format_timestamp(generated_at)}*")
        lines.append(f"*Powered by {self.provider_name.upper()} {self.model}*")

        return "\n".join(lines)

    def render_no_review(self, generated_at: Optional[datetime] = None) -> str:
        return "\n".join([
            self.signature,
            HEADER,
            "",
            "ℹ️ No reviewable code changes found in this merge request.",
            "",
            "This might be because:",
            "- Only configuration files or documentation were changed",
            "- Files are too large to review",
            "- File types are not supported for review",
            "",
            "---",
            f"*Review generated by GitLab AI Reviewer at {format_timestamp(generated_at)}*",
        ])

    def render_error(self, error: BaseException, generated_at: Optional[datetime] = None) -> str:
        return "\n".join([
            self.signature,
            HEADER,
            "",
            "❌ **Review Failed**",
            "",
            "An error occurred while reviewing this merge request:",
            f"`{error}`",
            "",
            "Please check the configuration and try again.",
            "",
            "---",
            f"*Error reported by GitLab AI Reviewer at {format_timestamp(generated_at)}*",
        ])

    def _render_file(self, review: FileReview) -> List[str]:
        if review.is_errored:
            return [f"### ❌ {review.filename}", f"*Error during review: {review.error_message}*", ""]

        if review.is_skipped:
            return [f"### ⏭️ {review.filename}", f"*Skipped: {review.reason}*", ""]

        if not review.issues:
            return [f"### ✅ {review.filename}", "*No issues found*", ""]

        lines = [f"### 📝 {review.filename}", f"*{len(review.issues)} issue(s) found*", ""]

        for severity, issues in self._group_by_severity(review.issues).items():
            if not issues:
                continue
            lines.extend([f"#### {self.SEVERITY_ICONS[severity]} {severity} Issues", ""])
            for issue in issues:
                lines.extend(self._render_issue(issue))

        return lines

    @staticmethod
    def _group_by_severity(issues: List[Issue]) -> Dict[str, List[Issue]]:
        # Insertion order is the render order
        groups: Dict[str, List[Issue]] = {severity.value: [] for severity in SEVERITY_ORDER}
        groups[OTHER_SEVERITY] = []
        for issue in issues:
            groups.get(issue.severity, groups[OTHER_SEVERITY]).append(issue)
        return groups

    @staticmethod
    def _render_issue(issue: Issue) -> List[str]:
        title = f"**{issue.type}**"
        if issue.line is not None:
            title += f" (Line {issue.line})"

        lines = [title, issue.description, ""]
        if issue.suggestion:
            lines.extend([f"*Suggestion:* {issue.suggestion}", ""])
        if issue.example:
            lines.extend(["*Example:*", "```", issue.example, "```", ""])
        return lines
