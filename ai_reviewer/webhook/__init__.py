"""
GitLab webhook payload models.

Main exports:
    - WebhookEventType: Enum for X-Gitlab-Event header values
    - MergeRequestWebhookPayload: Pydantic model for MR webhooks
"""

from .models import (
    REVIEW_TRIGGER_ACTIONS,
    GitLabProject,
    GitLabUser,
    MergeRequestAction,
    MergeRequestAttributes,
    MergeRequestWebhookPayload,
    WebhookEventType,
)

__all__ = [
    "REVIEW_TRIGGER_ACTIONS",
    "GitLabProject",
    "GitLabUser",
    "MergeRequestAction",
    "MergeRequestAttributes",
    "MergeRequestWebhookPayload",
    "WebhookEventType",
]
