"""
Async GitLab API client for the GitLab AI Reviewer.

This module wraps the GitLab REST endpoints the review pipeline needs:
merge request metadata, changes, commits and notes, plus posting and
updating the summary note. Read calls are retried on transient failures.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx

from .utils.exceptions import GitLabAPIError
from .utils.logger import api_logger, get_logger
from .utils.retry import API_RETRY_CONFIG, RetryConfig, retry_with_backoff

ProjectId = Union[str, int]


class AsyncGitLabClient:
    """
    Async client for interacting with the GitLab API.

    Every HTTP or transport failure is raised as GitLabAPIError carrying
    the status code (when there is one) and the endpoint.
    """

    def __init__(
        self,
        gitlab_url: str,
        token: str,
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the async GitLab client.

        Args:
            gitlab_url: GitLab instance URL, e.g. https://gitlab.com
            token: Personal, project or CI access token
            timeout: Request timeout in seconds
            retry_config: Retry policy for read calls
            transport: Optional httpx transport, mainly for tests
        """
        if not token:
            raise GitLabAPIError("GitLab token is required")

        self.logger = get_logger("ai_reviewer.gitlab_client")
        self.api_url = f"{gitlab_url.rstrip('/')}/api/v4"
        self.timeout = timeout
        self.retry_config = retry_config or API_RETRY_CONFIG
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json"
        }

        self.logger.info(
            "Async GitLab client initialized",
            extra={"api_url": self.api_url, "timeout": timeout}
        )

    @classmethod
    def from_settings(cls, settings, **kwargs: Any) -> "AsyncGitLabClient":
        return cls(
            gitlab_url=settings.gitlab_url,
            token=settings.gitlab_token,
            timeout=settings.request_timeout,
            **kwargs
        )

    @asynccontextmanager
    async def get_client(self):
        """Async context manager for HTTP client."""
        async with httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport
        ) as client:
            yield client

    @staticmethod
    def _mr_path(project_id: ProjectId, mr_iid: Union[str, int]) -> str:
        # Namespaced paths like "group/project" must be URL-encoded
        return f"/projects/{quote(str(project_id), safe='')}/merge_requests/{mr_iid}"

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Perform one request and return the decoded JSON body."""
        api_logger.log_request("gitlab", method, path)
        start_time = time.time()

        try:
            async with self.get_client() as client:
                response = await client.request(method, path, json=json, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            api_logger.log_error("gitlab", method, path, e, status_code=status_code)
            raise GitLabAPIError(
                f"GitLab API {method} {path} failed with status {status_code}",
                status_code=status_code,
                response_body=e.response.text[:500],
                endpoint=path
            ) from e
        except httpx.RequestError as e:
            api_logger.log_error("gitlab", method, path, e)
            raise GitLabAPIError(f"GitLab API {method} {path} failed: {e}", endpoint=path) from e
        except ValueError as e:
            raise GitLabAPIError(f"Invalid JSON from GitLab API {method} {path}", endpoint=path) from e

        api_logger.log_response(
            "gitlab", method, path, response.status_code,
            response_time_ms=(time.time() - start_time) * 1000
        )
        return data

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        get = retry_with_backoff(self.retry_config)(self._request)
        return await get("GET", path, params=params)

    async def get_merge_request(self, project_id: ProjectId, mr_iid: Union[str, int]) -> Dict[str, Any]:
        """
        Fetch merge request metadata (title, author, description, ...).

        Raises:
            GitLabAPIError: If retrieval fails
        """
        mr_details = await self._get(self._mr_path(project_id, mr_iid))
        self.logger.info(
            "Successfully retrieved MR details",
            extra={
                "mr_title": mr_details.get("title"),
                "source_branch": mr_details.get("source_branch"),
                "target_branch": mr_details.get("target_branch"),
            }
        )
        return mr_details

    async def get_merge_request_changes(self, project_id: ProjectId, mr_iid: Union[str, int]) -> Dict[str, Any]:
        """
        Fetch the merge request with its ``changes`` list.

        Raises:
            GitLabAPIError: If retrieval fails
        """
        changes = await self._get(f"{self._mr_path(project_id, mr_iid)}/changes")
        self.logger.debug(f"Fetched {len(changes.get('changes', []))} changes for MR {mr_iid}")
        return changes

    async def get_merge_request_commits(self, project_id: ProjectId, mr_iid: Union[str, int]) -> List[Dict[str, Any]]:
        return await self._get(f"{self._mr_path(project_id, mr_iid)}/commits")

    async def get_merge_request_notes(self, project_id: ProjectId, mr_iid: Union[str, int]) -> List[Dict[str, Any]]:
        return await self._get(
            f"{self._mr_path(project_id, mr_iid)}/notes",
            params={"per_page": 100, "sort": "desc", "order_by": "updated_at"}
        )

    async def post_comment(self, project_id: ProjectId, mr_iid: Union[str, int], body: str) -> Dict[str, Any]:
        """
        Post a general note on the merge request.

        Raises:
            GitLabAPIError: If posting fails
        """
        self.logger.debug("Posting comment to MR", extra={"body_length": len(body)})
        result = await self._request("POST", f"{self._mr_path(project_id, mr_iid)}/notes", json={"body": body})
        self.logger.info(f"Posted comment on MR {mr_iid}", extra={"comment_id": result.get("id")})
        return result

    async def update_comment(
        self,
        project_id: ProjectId,
        mr_iid: Union[str, int],
        comment_id: Union[str, int],
        body: str
    ) -> Dict[str, Any]:
        """
        Replace the body of an existing note.

        Raises:
            GitLabAPIError: If updating fails
        """
        result = await self._request(
            "PUT",
            f"{self._mr_path(project_id, mr_iid)}/notes/{comment_id}",
            json={"body": body}
        )
        self.logger.info(f"Updated comment {comment_id} on MR {mr_iid}", extra={"comment_id": comment_id})
        return result

    async def find_existing_bot_comment(
        self,
        project_id: ProjectId,
        mr_iid: Union[str, int],
        signature: str
    ) -> Optional[Dict[str, Any]]:
        """
        Find a note previously posted by the bot.

        A note matches when its body contains the signature and it is not a
        system note. Lookup failures are logged and treated as "not found".
        """
        try:
            notes = await self.get_merge_request_notes(project_id, mr_iid)
        except Exception as e:
            self.logger.error(
                "Failed to find existing bot comment",
                extra={"error_type": type(e).__name__, "error_message": str(e)}
            )
            return None

        for note in notes:
            if signature in (note.get("body") or "") and note.get("system") is False:
                return note
        return None
