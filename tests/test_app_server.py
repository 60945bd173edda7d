"""
Tests for the webhook server.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from ai_reviewer import __version__
from ai_reviewer.app_server import create_app, run_server
from ai_reviewer.utils.exceptions import GitLabAPIError

MR_EVENT = {"X-Gitlab-Event": "Merge Request Hook"}


def mr_payload(action="open", iid=7, project_id=42):
    return {
        "object_kind": "merge_request",
        "user": {"id": 1, "name": "Dev", "username": "dev"},
        "project": {"id": project_id, "name": "app", "path_with_namespace": "group/app"},
        "object_attributes": {
            "iid": iid,
            "id": 1001,
            "title": "Add feature",
            "state": "opened",
            "action": action,
            "source_branch": "feature",
            "target_branch": "main",
        },
    }


@pytest.fixture
def reviewer():
    mock = Mock()
    mock.review_merge_request = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def factory(reviewer):
    return Mock(return_value=reviewer)


@pytest.fixture
def client(settings, factory):
    return TestClient(create_app(settings, reviewer_factory=factory))


class TestHealth:
    """Test cases for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert "timestamp" in body


class TestWebhook:
    """Test cases for the webhook endpoint."""

    @pytest.mark.parametrize("action", ["open", "update"])
    def test_triggers_review(self, client, factory, reviewer, settings, action):
        response = client.post("/webhook", json=mr_payload(action=action), headers=MR_EVENT)

        assert response.status_code == 200
        assert response.json() == {"message": "Event processed successfully"}
        factory.assert_called_once_with(settings)
        reviewer.review_merge_request.assert_awaited_once_with(42, 7)

    @pytest.mark.parametrize("action", ["close", "merge", "reopen", None])
    def test_other_actions_are_acknowledged(self, client, reviewer, action):
        response = client.post("/webhook", json=mr_payload(action=action), headers=MR_EVENT)

        assert response.status_code == 200
        reviewer.review_merge_request.assert_not_awaited()

    def test_other_events_are_acknowledged(self, client, reviewer):
        response = client.post("/webhook", json={"object_kind": "push"}, headers={"X-Gitlab-Event": "Push Hook"})

        assert response.status_code == 200
        assert response.json() == {"message": "Event processed successfully"}
        reviewer.review_merge_request.assert_not_awaited()

    def test_missing_event_header(self, client, reviewer):
        response = client.post("/webhook", json=mr_payload())

        assert response.status_code == 200
        reviewer.review_merge_request.assert_not_awaited()

    def test_invalid_json(self, client):
        response = client.post(
            "/webhook",
            content=b"{not json",
            headers={**MR_EVENT, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload"}

    def test_invalid_payload(self, client, reviewer):
        payload = mr_payload()
        del payload["object_attributes"]["iid"]

        response = client.post("/webhook", json=payload, headers=MR_EVENT)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid webhook payload"}
        reviewer.review_merge_request.assert_not_awaited()

    def test_review_failure(self, client, reviewer):
        reviewer.review_merge_request.side_effect = GitLabAPIError("Not found", status_code=404)

        response = client.post("/webhook", json=mr_payload(), headers=MR_EVENT)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_factory_failure(self, settings):
        factory = Mock(side_effect=RuntimeError("bad config"))
        client = TestClient(create_app(settings, reviewer_factory=factory))

        response = client.post("/webhook", json=mr_payload(), headers=MR_EVENT)

        assert response.status_code == 500


class TestRunServer:
    """Test cases for run_server."""

    def test_runs_uvicorn(self, settings):
        settings.server_port = 8080

        with patch("ai_reviewer.app_server.uvicorn.run") as mock_run:
            run_server(settings)

        kwargs = mock_run.call_args.kwargs
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 8080
        assert kwargs["log_level"] == "info"
