"""
Webhook Handler Module

This module defines the FastAPI endpoint that receives GitHub webhooks.
It verifies the signature, classifies the event and queues the matching
work as a background task.

Design Decisions:
- Return 200 OK as soon as the event is dispatched (GitHub timeout handling)
- Offload review and reply work to background tasks
- The handler is stateless: no session and no delivery de-duplication
"""

import json
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from pydantic import ValidationError

from github_reviewer.logging_config import get_logger
from github_reviewer.models import PullRequestEvent, ReviewCommentEvent
from github_reviewer.webhook.events import parse_webhook_event
from github_reviewer.webhook.processor import WebhookProcessor
from github_reviewer.webhook.security import extract_delivery_id, require_valid_signature

logger = get_logger(__name__)

# Only these events have their payload parsed
DISPATCHED_EVENTS = {"pull_request", "pull_request_review_comment"}


def create_webhook_router(path: str = "/webhook") -> APIRouter:
    """
    Build the router serving ``POST <path>``.

    The processor and webhook secret are read from ``request.app.state``.
    """
    router = APIRouter(tags=["webhook"])

    @router.post(path, status_code=status.HTTP_200_OK)
    async def github_webhook(
        request: Request,
        background_tasks: BackgroundTasks
    ) -> Dict[str, Any]:
        """
        GitHub webhook endpoint.

        Verifies the signature over the raw body, then dispatches by the
        ``X-GitHub-Event`` header. Review and reply work continues after the
        response is sent.
        """
        delivery_id = extract_delivery_id(request)

        # Raw body must be captured before JSON parsing for the signature
        raw_body = await request.body()
        await require_valid_signature(request, raw_body, request.app.state.settings.github_webhook_secret)

        event_type = request.headers.get("X-GitHub-Event")
        logger.info("Received GitHub event", event_type=event_type, delivery_id=delivery_id)

        if event_type == "ping":
            return {"status": "pong"}

        if event_type not in DISPATCHED_EVENTS:
            logger.debug("Ignoring webhook event", event_type=event_type, delivery_id=delivery_id)
            return {"status": "ignored", "event": event_type, "delivery_id": delivery_id}

        try:
            payload = json.loads(raw_body) if raw_body else {}
        except ValueError as e:
            logger.error("Failed to parse webhook payload", error=str(e), delivery_id=delivery_id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid JSON payload"
            )

        try:
            event = parse_webhook_event(event_type, payload)
        except ValidationError as e:
            logger.error("Invalid webhook payload", error=str(e), event_type=event_type, delivery_id=delivery_id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid {event_type} payload"
            )

        processor: WebhookProcessor = request.app.state.processor

        try:
            if isinstance(event, PullRequestEvent) and event.triggers_review:
                background_tasks.add_task(processor.process_pull_request, event)
                queued = True
            elif isinstance(event, ReviewCommentEvent) and event.action == "created":
                background_tasks.add_task(processor.process_review_comment, event)
                queued = True
            else:
                queued = False
        except Exception as e:
            logger.error(
                "Error processing webhook",
                delivery_id=delivery_id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error processing webhook"
            )

        if not queued:
            logger.debug("Ignoring webhook event", event_type=event_type, delivery_id=delivery_id)

        return {
            "status": "processed" if queued else "ignored",
            "event": event_type,
            "delivery_id": delivery_id
        }

    return router
