"""
Webhook Security Module

Signature verification for incoming Calendly webhooks.
Calendly signs "<timestamp>.<raw body>" with HMAC-SHA256 and sends the
result as "t=<timestamp>,v1=<signature>", the same scheme Stripe uses.
- Constant-time signature comparison
- Timestamp validation against replays
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

CALENDLY_SIGNATURE_HEADER = "Calendly-Webhook-Signature"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds

    Returns:
        True if timestamp is valid, False otherwise
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
        age = abs(int(time.time()) - webhook_time)

        if age > max_age:
            logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
            return False

        return True
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False


def parse_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split "t=...,v1=...,v1=..." into the timestamp and every v1 signature"""
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


def verify_signature_header(
    header: str, secret: str, raw_body: bytes, max_age: int = MAX_WEBHOOK_AGE_SECONDS
) -> None:
    """
    Verify a "t=<timestamp>,v1=<signature>" header against the raw body.

    Raises:
        WebhookSignatureError: with a short reason on any failure
    """
    if not header:
        raise WebhookSignatureError("Missing signature header")

    timestamp, signatures = parse_signature_header(header)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Invalid signature format")

    if not verify_timestamp(timestamp, max_age=max_age):
        raise WebhookSignatureError("Timestamp outside the tolerance zone")

    signed_payload = timestamp.encode("utf-8") + b"." + raw_body
    expected_signature = compute_hmac_sha256(secret, signed_payload)

    if not any(constant_time_compare(expected_signature, sig) for sig in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")


async def verify_calendly_webhook(request: Request, secret: str) -> bytes:
    """
    Verify Calendly webhook signature.

    Calendly uses:
    - Header: 'Calendly-Webhook-Signature' (format: "t=<timestamp>,v1=<signature>")

    Returns:
        The raw request body
    """
    raw_body = await request.body()
    logger.debug("📥 Calendly webhook received")

    try:
        verify_signature_header(request.headers.get(CALENDLY_SIGNATURE_HEADER, ""), secret, raw_body)
    except WebhookSignatureError as e:
        logger.warning(f"🚫 Calendly webhook rejected: {e}")
        raise

    logger.debug("✅ Calendly webhook signature verified")
    return raw_body


def create_webhook_signature(secret: str, payload: bytes, timestamp: Optional[int] = None) -> str:
    """
    Create a webhook signature header for testing or outgoing webhooks.

    Returns:
        Header value in "t=<timestamp>,v1=<signature>" form
    """
    timestamp = int(time.time()) if timestamp is None else timestamp
    sig = compute_hmac_sha256(secret, str(timestamp).encode("utf-8") + b"." + payload)
    return f"t={timestamp},v1={sig}"
