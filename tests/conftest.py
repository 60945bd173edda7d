"""
Configuration for pytest test suite
"""
import os

import pytest

# Set test environment variables BEFORE importing anything from ai_reviewer
os.environ.update({
    "CI_PROJECT_ID": "123",
    "CI_MERGE_REQUEST_IID": "456",
    "GITLAB_TOKEN": "test_token",
    "GITLAB_URL": "https://gitlab.example.com",
    "AI_PROVIDER": "openai",
    "OPENAI_API_KEY": "test_openai_api_key",
    "API_REQUEST_DELAY": "0",
})

from ai_reviewer.config.settings import Settings  # noqa: E402
from ai_reviewer.models import ChangeType, ParsedFile  # noqa: E402


@pytest.fixture
def settings():
    """Settings for an openai-backed reviewer with no inter-call delay."""
    return Settings(
        gitlab_url="https://gitlab.example.com",
        gitlab_token="test_token",
        project_id="123",
        mr_iid="456",
        ai_provider="openai",
        openai_api_key="test_openai_api_key",
        api_request_delay=0,
    )


@pytest.fixture
def sample_diff():
    return (
        "diff --git a/src/app.py b/src/app.py\n"
        "index 83db48f..bf269f4 100644\n"
        "--- a/src/app.py\n"
        "+++ b/src/app.py\n"
        "@@ -1,3 +1,4 @@\n"
        " def main():\n"
        "+    print('hello')\n"
        "-    pass\n"
        "+    return 0\n"
    )


@pytest.fixture
def make_parsed_file():
    """Factory for ParsedFile records."""
    def _make(filename="src/app.py", language="python", too_large=False):
        return ParsedFile(
            filename=filename,
            language=language,
            change_type=ChangeType.MODIFIED,
            diff="@@ -1 +1 @@\n+x = 1",
            too_large=too_large,
        )
    return _make
