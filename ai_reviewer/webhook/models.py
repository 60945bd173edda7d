"""
Pydantic models for GitLab merge request webhook payloads.

Only the fields needed to decide whether to review and which merge
request to review are required; everything else GitLab sends is kept
as extra data.

GitLab webhook documentation:
https://docs.gitlab.com/ee/user/project/integrations/webhooks.html
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WebhookEventType(str, Enum):
    """
    GitLab webhook event types.

    These correspond to the X-Gitlab-Event header values.
    """

    MERGE_REQUEST = "Merge Request Hook"
    PUSH = "Push Hook"
    NOTE = "Note Hook"
    PIPELINE = "Pipeline Hook"


class MergeRequestAction(str, Enum):
    """Merge request webhook action types."""

    OPEN = "open"
    CLOSE = "close"
    REOPEN = "reopen"
    UPDATE = "update"
    MERGE = "merge"


# Actions that start a review
REVIEW_TRIGGER_ACTIONS = (MergeRequestAction.OPEN.value, MergeRequestAction.UPDATE.value)


class GitLabUser(BaseModel):
    """User who triggered the event."""

    id: int | None = Field(None, description="User ID")
    name: str | None = Field(None, description="User display name")
    username: str | None = Field(None, description="User username")

    model_config = ConfigDict(extra="allow")


class GitLabProject(BaseModel):
    """Target project of the merge request."""

    id: int = Field(..., description="Project ID")
    name: str | None = Field(None, description="Project name")
    path_with_namespace: str | None = Field(None, description="Full project path with namespace")
    web_url: str | None = Field(None, description="Project web URL")

    model_config = ConfigDict(extra="allow")


class MergeRequestAttributes(BaseModel):
    """The ``object_attributes`` of a merge request event."""

    iid: int = Field(..., description="MR internal ID (project-scoped)")
    id: int | None = Field(None, description="MR database ID")
    title: str | None = Field(None, description="MR title")
    description: str | None = Field(None, description="MR description")
    state: str | None = Field(None, description="MR state (opened, closed, locked, merged)")
    action: str | None = Field(None, description="Action that triggered the event")
    source_branch: str | None = Field(None, description="Source branch name")
    target_branch: str | None = Field(None, description="Target branch name")

    model_config = ConfigDict(extra="allow")


class MergeRequestWebhookPayload(BaseModel):
    """GitLab merge request webhook payload."""

    object_kind: str = Field("merge_request", description="Event kind")
    user: GitLabUser | None = Field(None, description="User who triggered the event")
    project: GitLabProject = Field(..., description="Target project")
    object_attributes: MergeRequestAttributes = Field(..., description="Merge request details")

    @field_validator("object_kind")
    @classmethod
    def validate_object_kind(cls, v: str) -> str:
        """Validate that object_kind is 'merge_request'."""
        if v != "merge_request":
            raise ValueError(f"Expected object_kind 'merge_request', got '{v}'")
        return v

    @property
    def action(self) -> str | None:
        return self.object_attributes.action

    @property
    def mr_iid(self) -> int:
        return self.object_attributes.iid

    @property
    def project_id(self) -> int:
        return self.project.id

    @property
    def should_trigger_review(self) -> bool:
        """Whether the action is one that starts a review."""
        return self.action in REVIEW_TRIGGER_ACTIONS

    model_config = ConfigDict(extra="allow")
