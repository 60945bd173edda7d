"""
Tests for review comment rendering.
"""

from datetime import datetime, timezone

from ai_reviewer.comment_renderer import CommentRenderer, format_timestamp
from ai_reviewer.models import AggregatedReport, FileReview, Issue, ReviewResult

GENERATED_AT = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def reviewed(parsed_file, issues, summary="Summary"):
    return FileReview.reviewed(parsed_file, ReviewResult(summary=summary, issues=issues))


class TestCommentRenderer:
    """Test cases for CommentRenderer."""

    def setup_method(self):
        self.renderer = CommentRenderer(signature="<!-- bot -->", provider_name="openai", model="gpt-4")

    def test_no_issues(self, make_parsed_file):
        report = AggregatedReport([reviewed(make_parsed_file("a.py"), [])])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert body.startswith("<!-- bot -->\n## 🤖 AI Code Review\n")
        assert "✅ **Great work!** No issues found in this merge request." in body
        assert "📊 **Review Summary:**" not in body
        assert "### ✅ a.py\n*No issues found*" in body
        assert body.endswith(
            "---\n"
            "*Review generated by GitLab AI Reviewer at 2024-05-01T12:30:00.000Z*\n"
            "*Powered by OPENAI gpt-4*"
        )

    def test_summary_block(self, make_parsed_file):
        report = AggregatedReport([
            reviewed(make_parsed_file("a.py"), [
                Issue(type="SECURITY", severity="CRITICAL", description="Injection"),
                Issue(type="STYLE", severity="LOW", description="Naming"),
            ]),
            FileReview.skipped(make_parsed_file("big.py", too_large=True), "File too large"),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert (
            "📊 **Review Summary:**\n"
            "- **Files Reviewed:** 2\n"
            "- **Total Issues:** 2\n"
            "- **Critical Issues:** ⚠️ 1\n"
            "- **Security Issues:** 🔒 1\n"
        ) in body

    def test_zero_critical_and_security_lines_omitted(self, make_parsed_file):
        report = AggregatedReport([
            reviewed(make_parsed_file("a.py"), [Issue(type="STYLE", severity="LOW")]),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert "- **Total Issues:** 1" in body
        assert "Critical Issues" not in body
        assert "Security Issues" not in body

    def test_severity_order_is_fixed(self, make_parsed_file):
        issues = [
            Issue(type="STYLE", severity="LOW", description="low one"),
            Issue(type="BUG", severity="MEDIUM", description="medium one"),
            Issue(type="SECURITY", severity="CRITICAL", description="critical one"),
            Issue(type="PERFORMANCE", severity="HIGH", description="high one"),
            Issue(type="BUG", severity="CRITICAL", description="critical two"),
        ]
        report = AggregatedReport([reviewed(make_parsed_file("a.py"), issues)])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        headings = [
            "#### 🚨 CRITICAL Issues",
            "#### ⚠️ HIGH Issues",
            "#### ⚡ MEDIUM Issues",
            "#### 💡 LOW Issues",
        ]
        positions = [body.index(heading) for heading in headings]
        assert positions == sorted(positions)
        assert body.index("critical one") < body.index("critical two") < body.index("high one")
        assert "*5 issue(s) found*" in body

    def test_empty_severity_groups_are_skipped(self, make_parsed_file):
        report = AggregatedReport([
            reviewed(make_parsed_file("a.py"), [Issue(type="BUG", severity="HIGH")]),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert "HIGH Issues" in body
        assert "CRITICAL Issues" not in body
        assert "MEDIUM Issues" not in body
        assert "LOW Issues" not in body

    def test_unknown_severity_rendered_last(self, make_parsed_file):
        report = AggregatedReport([
            reviewed(make_parsed_file("a.py"), [
                Issue(type="BUG", severity="BLOCKER", description="odd severity"),
                Issue(type="BUG", severity="LOW", description="low one"),
            ]),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert body.index("#### 💡 LOW Issues") < body.index("#### 📌 OTHER Issues") < body.index("odd severity")

    def test_issue_details(self, make_parsed_file):
        issue = Issue(
            type="SECURITY",
            severity="HIGH",
            line=42,
            description="Hardcoded secret",
            suggestion="Read it from the environment",
            example="token = os.environ['TOKEN']",
        )
        report = AggregatedReport([reviewed(make_parsed_file("a.py"), [issue])])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert (
            "**SECURITY** (Line 42)\n"
            "Hardcoded secret\n"
            "\n"
            "*Suggestion:* Read it from the environment\n"
            "\n"
            "*Example:*\n"
            "```\n"
            "token = os.environ['TOKEN']\n"
            "```\n"
        ) in body

    def test_issue_without_line_or_extras(self, make_parsed_file):
        report = AggregatedReport([
            reviewed(make_parsed_file("a.py"), [Issue(type="STYLE", severity="LOW", description="Nit")]),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert "**STYLE**\nNit\n" in body
        assert "*Suggestion:*" not in body
        assert "*Example:*" not in body

    def test_errored_and_skipped_files(self, make_parsed_file):
        report = AggregatedReport([
            FileReview.errored(make_parsed_file("broken.py"), "No review content received from AI"),
            FileReview.skipped(make_parsed_file("big.py", too_large=True), "File too large"),
        ])

        body = self.renderer.render_report(report, generated_at=GENERATED_AT)

        assert "### ❌ broken.py\n*Error during review: No review content received from AI*" in body
        assert "### ⏭️ big.py\n*Skipped: File too large*" in body

    def test_render_no_review(self):
        body = self.renderer.render_no_review(generated_at=GENERATED_AT)

        assert body.startswith("<!-- bot -->\n## 🤖 AI Code Review")
        assert "No reviewable code changes found" in body

    def test_render_error(self):
        body = self.renderer.render_error(RuntimeError("GitLab is down"), generated_at=GENERATED_AT)

        assert body.startswith("<!-- bot -->")
        assert "❌ **Review Failed**" in body
        assert "`GitLab is down`" in body
        assert body.endswith("*Error reported by GitLab AI Reviewer at 2024-05-01T12:30:00.000Z*")

    def test_from_settings(self, settings):
        renderer = CommentRenderer.from_settings(settings)

        assert renderer.signature == settings.bot_signature
        assert renderer.provider_name == "openai"
        assert renderer.model == "gpt-4"


class TestFormatTimestamp:
    """Test cases for format_timestamp."""

    def test_naive_datetime_is_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"

    def test_default_is_now(self):
        assert format_timestamp().endswith("Z")
