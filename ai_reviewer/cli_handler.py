"""
CLI Handler for the GitLab AI Reviewer.

Parses command-line arguments, configures logging and runs either a
single merge request review (CI mode) or the webhook server.
"""

import argparse
import asyncio
import dataclasses
import os
import sys
from typing import List, Optional

from .config.settings import Settings, get_settings
from .utils.exceptions import ConfigurationError, ReviewBotError
from .utils.logger import get_logger, setup_logging

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

RUN_MODES = ("cli", "server", "auto")


class CLIHandler:
    """
    Handles the command-line interface and execution of the reviewer.

    ``auto`` mode reviews a single merge request when running inside a
    merge request pipeline (CI_MERGE_REQUEST_IID is set) and serves
    webhooks otherwise.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize CLI handler.

        Args:
            settings: Preloaded settings; read from the environment when omitted
        """
        self.settings = settings
        self.logger = None

    def create_parser(self) -> argparse.ArgumentParser:
        """
        Create and configure argument parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="gitlab-ai-reviewer",
            description="AI-powered code review for GitLab merge requests",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Review the merge request of the current CI pipeline
  gitlab-ai-reviewer cli

  # Review a specific merge request
  gitlab-ai-reviewer cli --project-id 42 --mr-iid 7

  # Listen for GitLab webhooks
  gitlab-ai-reviewer server

  # Render the review without posting it
  gitlab-ai-reviewer cli --dry-run --verbose
            """
        )

        parser.add_argument(
            "mode",
            nargs="?",
            choices=RUN_MODES,
            default=os.environ.get("RUN_MODE", "auto"),
            help="Run mode (default: $RUN_MODE or auto)"
        )

        parser.add_argument(
            "--project-id",
            type=str,
            help="GitLab project ID (default: $CI_PROJECT_ID or $GITLAB_PROJECT_ID)"
        )

        parser.add_argument(
            "--mr-iid",
            type=str,
            help="Merge request IID (default: $CI_MERGE_REQUEST_IID)"
        )

        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Run the review without publishing comments"
        )

        # Logging options
        parser.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="Logging level (default: $LOG_LEVEL or INFO)"
        )

        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose logging"
        )

        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        return self.create_parser().parse_args(args)

    def load_settings(self, parsed_args: argparse.Namespace) -> Settings:
        """
        Resolve settings, with command-line values taking precedence.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        overrides = {}
        if parsed_args.project_id:
            overrides["project_id"] = parsed_args.project_id
        if parsed_args.mr_iid:
            overrides["mr_iid"] = parsed_args.mr_iid
        if parsed_args.log_level:
            overrides["log_level"] = parsed_args.log_level

        if self.settings is None:
            settings = get_settings(validate=False, **overrides)
        else:
            settings = dataclasses.replace(self.settings, **overrides)

        settings.validate()
        return settings

    @staticmethod
    def resolve_mode(mode: str, settings: Settings) -> str:
        if mode == "auto":
            return "cli" if settings.mr_iid else "server"
        return mode

    def execute(self, args: Optional[List[str]] = None) -> int:
        """
        Execute the reviewer with provided arguments.

        Args:
            args: Command-line arguments to execute

        Returns:
            Exit code (0 for success, 1 for error)
        """
        parsed_args = self.parse_args(args)

        try:
            settings = self.load_settings(parsed_args)
        except ConfigurationError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return EXIT_FAILURE

        log_level = "DEBUG" if parsed_args.verbose else settings.log_level
        setup_logging(level=log_level, format_type=settings.log_format, log_file=settings.log_file)
        self.logger = get_logger("ai_reviewer.cli")

        mode = self.resolve_mode(parsed_args.mode, settings)
        self.logger.debug(f"Parsed arguments: {parsed_args}", extra={"run_mode": mode})

        try:
            if mode == "server":
                from .app_server import run_server
                run_server(settings)
                return EXIT_SUCCESS
            return asyncio.run(self.run_review(settings, dry_run=parsed_args.dry_run))
        except ReviewBotError as e:
            self.logger.error(f"Review bot error: {e}", extra={"error_code": e.error_code})
            return EXIT_FAILURE
        except Exception as e:
            self.logger.error(f"Unexpected error: {e}", exc_info=True)
            return EXIT_FAILURE

    async def run_review(self, settings: Settings, dry_run: bool = False) -> int:
        """
        Review the merge request named by the settings.

        Returns:
            Exit code
        """
        from .reviewer import build_reviewer

        if not settings.project_id or not settings.mr_iid:
            self.logger.error("Missing required environment variables for CLI mode")
            self.logger.info("Required: CI_PROJECT_ID (or GITLAB_PROJECT_ID) and CI_MERGE_REQUEST_IID")
            return EXIT_FAILURE

        self.logger.info(f"Starting AI review for MR {settings.mr_iid} in project {settings.project_id}")
        reviewer = build_reviewer(settings)
        report = await reviewer.review_merge_request(settings.project_id, settings.mr_iid, dry_run=dry_run)

        if report is not None:
            self.logger.info(
                "AI review completed successfully",
                extra={
                    "files": report.file_count,
                    "issues": report.issue_count,
                    "critical_issues": report.critical_count,
                    "security_issues": report.security_count
                }
            )
        else:
            self.logger.info("AI review completed successfully")
        return EXIT_SUCCESS


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the reviewer.

    Returns:
        Exit code (0 success, 1 error, 130 interrupted)
    """
    try:
        return CLIHandler().execute(args)
    except KeyboardInterrupt:
        print("\nReview bot interrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED


def main_sync() -> None:
    """Console script entry point."""
    sys.exit(main())
