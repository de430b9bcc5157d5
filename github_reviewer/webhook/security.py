"""
Webhook Security Module

This module handles secure verification of GitHub webhook payloads.
It implements HMAC-SHA256 signature verification to ensure requests
are genuinely from GitHub.

Design Decisions:
- Verify the signature over the raw body, before any payload parsing
- Compare lengths first, then use constant-time comparison
- Fail closed: a missing header, missing body or any error means invalid
"""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

from github_reviewer.logging_config import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Return ``sha256=<hex digest>`` of the body under the webhook secret."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    raw_body: Optional[bytes],
    signature_header: Optional[str],
    secret: str
) -> bool:
    """
    Check a GitHub ``X-Hub-Signature-256`` header against the raw body.

    Args:
        raw_body: Request body exactly as received
        signature_header: Header value, e.g. ``sha256=ab12...``
        secret: Shared webhook secret

    Returns:
        True only if the signature matches
    """
    if not signature_header or raw_body is None:
        return False

    try:
        expected = compute_signature(secret, raw_body).encode("utf-8")
        received = signature_header.encode("utf-8")

        if len(received) != len(expected):
            return False

        return hmac.compare_digest(received, expected)
    except Exception as e:
        logger.error("Error verifying webhook signature", error=str(e))
        return False


async def require_valid_signature(request: Request, raw_body: bytes, secret: str) -> None:
    """
    Reject the request with 401 unless its signature is valid.

    Raises:
        HTTPException: If the signature is missing or invalid
    """
    signature_header = request.headers.get(SIGNATURE_HEADER)

    if not verify_signature(raw_body, signature_header, secret):
        logger.warning(
            "Invalid webhook signature",
            signature_present=signature_header is not None,
            remote_addr=request.client.host if request.client else "unknown"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature"
        )


def extract_delivery_id(request: Request) -> Optional[str]:
    """Extract the webhook delivery ID from headers, for log correlation."""
    return request.headers.get("X-GitHub-Delivery")
