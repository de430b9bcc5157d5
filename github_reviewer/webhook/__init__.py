"""
Webhook Package

This package contains webhook handling components:
- handler: FastAPI route for GitHub deliveries
- security: webhook signature verification
- events: classification of deliveries into WebhookEvent variants
- processor: the background review and reply work
"""

from github_reviewer.webhook.handler import create_webhook_router
from github_reviewer.webhook.processor import WebhookProcessor

__all__ = ["create_webhook_router", "WebhookProcessor"]
