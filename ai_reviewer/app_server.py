"""
Webhook server for the GitLab AI Reviewer.

A small FastAPI application:
- GET /health for load balancers and uptime checks
- POST /webhook receiving GitLab merge request events

Opened and updated merge requests are reviewed before the webhook
request returns.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .config.settings import Settings
from .reviewer import MergeRequestReviewer, build_reviewer
from .utils.logger import get_logger
from .webhook.models import MergeRequestWebhookPayload, WebhookEventType

logger = get_logger("ai_reviewer.app_server")

ReviewerFactory = Callable[[Settings], MergeRequestReviewer]


def create_app(settings: Settings, reviewer_factory: Optional[ReviewerFactory] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings
        reviewer_factory: Builds a reviewer per event (defaults to build_reviewer)

    Returns:
        Configured FastAPI app
    """
    factory = reviewer_factory or build_reviewer

    app = FastAPI(
        title="GitLab AI Reviewer",
        description="AI-powered code review for GitLab merge requests",
        version=__version__,
    )

    @app.get("/health")
    async def health_check():
        """Basic health check for load balancers."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        }

    @app.post("/webhook")
    async def gitlab_webhook(request: Request):
        """Handle GitLab webhook events; merge request open/update events trigger a review."""
        event_type = request.headers.get("X-Gitlab-Event")

        try:
            event: Any = await request.json()
        except ValueError as e:
            logger.error(
                "Failed to parse webhook payload",
                extra={"error_type": type(e).__name__, "error_message": str(e)}
            )
            return JSONResponse(status_code=400, content={"error": "Invalid JSON payload"})

        if event_type != WebhookEventType.MERGE_REQUEST.value:
            logger.info(f"Received GitLab event: {event_type}")
            return JSONResponse(status_code=200, content={"message": "Event processed successfully"})

        try:
            payload = MergeRequestWebhookPayload.model_validate(event)
        except ValidationError as e:
            logger.warning(
                "Invalid merge request webhook payload",
                extra={"error_count": e.error_count()}
            )
            return JSONResponse(status_code=400, content={"error": "Invalid webhook payload"})

        logger.info(
            f"Received GitLab event: {event_type}",
            extra={"project_id": payload.project_id, "mr_iid": payload.mr_iid, "action": payload.action}
        )

        if payload.should_trigger_review:
            try:
                reviewer = factory(settings)
                await reviewer.review_merge_request(payload.project_id, payload.mr_iid)
            except Exception as e:
                logger.error(
                    "Error processing webhook",
                    extra={"error_type": type(e).__name__, "error_message": str(e)},
                    exc_info=True
                )
                return JSONResponse(status_code=500, content={"error": "Internal server error"})

        return JSONResponse(status_code=200, content={"message": "Event processed successfully"})

    return app


def run_server(settings: Settings) -> None:
    """Run the webhook server with uvicorn until interrupted."""
    app = create_app(settings)
    logger.info(
        f"GitLab AI Reviewer server running on port {settings.server_port}",
        extra={"host": settings.server_host, "port": settings.server_port}
    )
    logger.info("Webhook endpoint: POST /webhook")
    logger.info("Health check: GET /health")

    uvicorn.run(
        app=app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
