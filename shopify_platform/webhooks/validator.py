"""Webhook signature verification (constant-time HMAC).

The platform signs each delivery: X-Shopify-Hmac-Sha256 is the base64
HMAC-SHA256 of the raw request body, keyed with the app's secret.

- Comparison uses hmac.compare_digest()
- Missing signature or empty secret -> invalid (fail-closed)
- Never raises; the dispatcher turns False into an error response
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from shopify_platform.webhooks.types import (
    API_VERSION_HEADER,
    DOMAIN_HEADER,
    HMAC_HEADER,
    TOPIC_HEADER,
    WEBHOOK_ID_HEADER,
    WebhookDelivery,
    WebhookValidation,
    WebhookValidationReason,
)

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = (HMAC_HEADER, TOPIC_HEADER, DOMAIN_HEADER)


def compute_hmac(raw_body: str | bytes, secret: str) -> str:
    body = raw_body.encode("utf-8") if isinstance(raw_body, str) else raw_body
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def validate_hmac(raw_body: str | bytes, provided_signature: str | None, secret: str) -> bool:
    """True if provided_signature is the body's HMAC under secret."""
    if not secret:
        logger.warning("API secret key not set, rejecting webhook")
        return False
    if not provided_signature:
        return False

    # compare_digest raises TypeError on non-ASCII str, so compare bytes
    expected = compute_hmac(raw_body, secret).encode("utf-8")
    return hmac.compare_digest(expected, provided_signature.encode("utf-8", "surrogateescape"))


def validate_delivery(
    raw_body: str | bytes,
    headers,
    path: str,
    secret: str,
) -> WebhookValidation:
    """Check headers and signature of one delivery.

    headers must be a case-insensitive mapping (httpx.Headers).
    """
    missing = [name for name in REQUIRED_HEADERS if not headers.get(name)]
    if missing:
        return WebhookValidation(
            valid=False,
            reason=WebhookValidationReason.MISSING_HEADERS,
            missing_headers=missing,
        )

    body = raw_body.decode("utf-8", errors="replace") if isinstance(raw_body, bytes) else raw_body
    delivery = WebhookDelivery(
        topic=headers[TOPIC_HEADER],
        domain=headers[DOMAIN_HEADER],
        hmac=headers[HMAC_HEADER],
        body=body,
        path=path,
        webhook_id=headers.get(WEBHOOK_ID_HEADER),
        api_version=headers.get(API_VERSION_HEADER),
    )

    if not validate_hmac(raw_body, delivery.hmac, secret):
        return WebhookValidation(
            valid=False,
            reason=WebhookValidationReason.INVALID_HMAC,
            delivery=delivery,
        )

    return WebhookValidation(valid=True, reason=WebhookValidationReason.VALID, delivery=delivery)
