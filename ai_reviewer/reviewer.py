"""
Merge request review orchestration.

MergeRequestReviewer runs the whole review of one merge request:
fetch, parse, review each file, render, then create or update the
bot's summary note. Runs are sequential and keep no state between
invocations, so one reviewer instance can serve many merge requests.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Union

from .ai_providers import AIProvider, create_provider
from .comment_renderer import CommentRenderer
from .config.settings import Settings
from .diff_parser import DiffParser, get_file_stats
from .file_filter import FileFilter
from .gitlab_client import AsyncGitLabClient
from .models import AggregatedReport, FileReview, ParsedFile, ReviewContext
from .utils.exceptions import RetryExhaustedError
from .utils.logger import get_logger, log_context, review_logger

MAX_COMMIT_MESSAGES = 5
TOO_LARGE_REASON = "File too large"


class MergeRequestReviewer:
    """
    Orchestrates the review of a merge request.

    Per-file AI failures are recorded in the report and never abort the
    batch. Any other failure triggers a best-effort error note on the
    merge request and is then re-raised.
    """

    def __init__(
        self,
        settings: Settings,
        gitlab_client: AsyncGitLabClient,
        ai_provider: AIProvider,
        renderer: Optional[CommentRenderer] = None,
        diff_parser: Optional[DiffParser] = None
    ):
        self.settings = settings
        self.gitlab_client = gitlab_client
        self.ai_provider = ai_provider
        self.renderer = renderer or CommentRenderer(
            signature=settings.bot_signature,
            provider_name=ai_provider.name,
            model=ai_provider.model,
        )
        self.diff_parser = diff_parser or DiffParser(FileFilter.from_settings(settings))
        self.logger = get_logger("ai_reviewer.reviewer")

    async def review_merge_request(
        self,
        project_id: Union[str, int],
        mr_iid: Union[str, int],
        dry_run: bool = False
    ) -> Optional[AggregatedReport]:
        """
        Review a merge request and publish the summary note.

        Args:
            project_id: GitLab project ID or URL-encodable path
            mr_iid: Merge request IID
            dry_run: Render the note but don't post it

        Returns:
            The aggregated report, or None when nothing was reviewable

        Raises:
            Exception: Any fatal error, after an error note was attempted
        """
        with log_context(project_id=str(project_id), mr_iid=str(mr_iid)):
            self.logger.info(f"Starting review for MR {mr_iid} in project {project_id}")
            try:
                report = await self._review(project_id, mr_iid, dry_run)
            except Exception as e:
                self.logger.error(
                    f"Failed to review MR {mr_iid}: {e}",
                    extra={"error_type": type(e).__name__}
                )
                if not dry_run:
                    await self._post_error_comment(project_id, mr_iid, e)
                raise

            self.logger.info(f"Review completed for MR {mr_iid}")
            return report

    async def _review(
        self,
        project_id: Union[str, int],
        mr_iid: Union[str, int],
        dry_run: bool
    ) -> Optional[AggregatedReport]:
        merge_request = await self.gitlab_client.get_merge_request(project_id, mr_iid)
        author = (merge_request.get("author") or {}).get("name")
        self.logger.info(f'Reviewing MR: "{merge_request.get("title")}" by {author}')

        changes = await self.gitlab_client.get_merge_request_changes(project_id, mr_iid)
        parsed_files = self.diff_parser.parse_merge_request_changes(changes)

        if not parsed_files:
            self.logger.info("No reviewable files found in this merge request")
            if not dry_run:
                await self.gitlab_client.post_comment(project_id, mr_iid, self.renderer.render_no_review())
            return None

        stats = get_file_stats(parsed_files)
        review_logger.log_diff_processing(
            file_count=stats.total_files,
            total_additions=stats.total_additions,
            total_deletions=stats.total_deletions,
            languages=stats.language_breakdown
        )

        context = await self.gather_context(project_id, mr_iid, merge_request)
        report = await self.review_files(parsed_files, context)

        body = self.renderer.render_report(report)
        if dry_run:
            self.logger.info("Dry run mode - skipping comment publication", extra={"body_length": len(body)})
        else:
            await self.publish(project_id, mr_iid, body)
        return report

    async def gather_context(
        self,
        project_id: Union[str, int],
        mr_iid: Union[str, int],
        merge_request: Dict[str, Any]
    ) -> ReviewContext:
        """Build the review context; a failed commit lookup leaves commit messages empty."""
        context = ReviewContext(description=merge_request.get("description"))
        try:
            commits = await self.gitlab_client.get_merge_request_commits(project_id, mr_iid)
            context.commit_messages = [
                commit.get("message", "") for commit in commits[:MAX_COMMIT_MESSAGES]
            ]
        except Exception as e:
            self.logger.warning(f"Failed to get commit messages: {e}")
        return context

    async def review_files(self, parsed_files: List[ParsedFile], context: ReviewContext) -> AggregatedReport:
        """
        Review each file in order, one AI call at a time.

        The configured delay is awaited between consecutive AI calls.
        """
        start_time = time.time()
        reviews: List[FileReview] = []
        ai_calls = 0

        for parsed_file in parsed_files:
            if parsed_file.too_large:
                reviews.append(FileReview.skipped(parsed_file, TOO_LARGE_REASON))
                continue

            if ai_calls and self.settings.api_request_delay > 0:
                await asyncio.sleep(self.settings.api_request_delay)
            ai_calls += 1

            self.logger.info(f"Reviewing file: {parsed_file.filename}")
            try:
                result = await self.ai_provider.review(
                    parsed_file.filename,
                    parsed_file.language,
                    parsed_file.diff,
                    context
                )
            except Exception as e:
                self.logger.error(
                    f"Failed to review file {parsed_file.filename}: {e}",
                    extra={"file_path": parsed_file.filename, "error_type": type(e).__name__}
                )
                cause = e.last_error if isinstance(e, RetryExhaustedError) and e.last_error else e
                reviews.append(FileReview.errored(parsed_file, str(cause)))
                continue

            reviews.append(FileReview.reviewed(parsed_file, result))

        report = AggregatedReport(reviews=reviews)
        review_logger.log_review_generation(
            files_reviewed=sum(1 for r in reviews if not r.is_skipped and not r.is_errored),
            files_skipped=sum(1 for r in reviews if r.is_skipped),
            files_failed=sum(1 for r in reviews if r.is_errored),
            issues_found=report.issue_count,
            processing_time_ms=(time.time() - start_time) * 1000
        )
        return report

    async def publish(self, project_id: Union[str, int], mr_iid: Union[str, int], body: str) -> Dict[str, Any]:
        """Update the bot's existing note in place, or post a new one."""
        existing = await self.gitlab_client.find_existing_bot_comment(
            project_id, mr_iid, self.settings.bot_signature
        )
        if existing:
            result = await self.gitlab_client.update_comment(project_id, mr_iid, existing["id"], body)
            review_logger.log_comment_publication(existing["id"], updated=True)
        else:
            result = await self.gitlab_client.post_comment(project_id, mr_iid, body)
            review_logger.log_comment_publication(result.get("id"), updated=False)
        return result

    async def _post_error_comment(
        self,
        project_id: Union[str, int],
        mr_iid: Union[str, int],
        error: Exception
    ) -> None:
        try:
            await self.gitlab_client.post_comment(project_id, mr_iid, self.renderer.render_error(error))
        except Exception as comment_error:
            self.logger.error(f"Failed to post error comment: {comment_error}")


def build_reviewer(settings: Settings) -> MergeRequestReviewer:
    """
    Wire a reviewer from settings.

    Raises:
        ConfigurationError: If the AI provider is not usable
    """
    ai_provider = create_provider(settings)
    return MergeRequestReviewer(
        settings=settings,
        gitlab_client=AsyncGitLabClient.from_settings(settings),
        ai_provider=ai_provider,
    )
