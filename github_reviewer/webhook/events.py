"""
Webhook event classification.

Turns an ``X-GitHub-Event`` header and its JSON payload into one of the
WebhookEvent variants the gateway dispatches on.
"""

from typing import Any, Dict, Optional

from github_reviewer.models import (
    PingEvent,
    PullRequestEvent,
    PullRequestWebhookPayload,
    ReviewCommentEvent,
    ReviewCommentWebhookPayload,
    UnsupportedEvent,
    WebhookEvent,
)


def parse_webhook_event(event_type: Optional[str], payload: Dict[str, Any]) -> WebhookEvent:
    """
    Classify a webhook delivery.

    Raises:
        pydantic.ValidationError: If a supported event lacks required fields
    """
    if event_type == "ping":
        return PingEvent()

    if event_type == "pull_request":
        pr = PullRequestWebhookPayload.model_validate(payload)
        return PullRequestEvent(
            action=pr.action,
            pr_number=pr.number,
            owner=pr.repository.owner.login,
            repo=pr.repository.name,
        )

    if event_type == "pull_request_review_comment":
        rc = ReviewCommentWebhookPayload.model_validate(payload)
        return ReviewCommentEvent(
            action=rc.action,
            pr_number=rc.pull_request.number,
            owner=rc.repository.owner.login,
            repo=rc.repository.name,
            comment=rc.comment,
        )

    return UnsupportedEvent(event_type=event_type)
