#!/usr/bin/env python3
"""
GitLab AI Reviewer entry point.

Usage:
    python review_bot.py [cli|server|auto] [options]

Examples:
    # Review the merge request of the current CI pipeline
    python review_bot.py cli

    # Review a specific merge request without posting the result
    python review_bot.py cli --project-id 42 --mr-iid 7 --dry-run

    # Listen for GitLab webhooks on $PORT
    python review_bot.py server
"""

import sys

from ai_reviewer.cli_handler import main


if __name__ == "__main__":
    sys.exit(main())
