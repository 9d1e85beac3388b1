"""Inbound webhook dispatch.

One delivery moves through:
received -> header-extracted -> validated -> handlers-resolved -> dispatched -> completed

Any failure short-circuits with InvalidWebhookError carrying the HTTP
status the endpoint should return:

- 400  required header missing
- 401  HMAC mismatch
- 404  no handler for the topic (or none at this request path)
- 500  a handler raised

Handlers run one after another in registration order, each awaited before
the next starts. The first failure stops the chain.
"""

from __future__ import annotations

import inspect
from typing import Any

from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import InvalidWebhookError, ResponseInfo
from shopify_platform.logger import ShopifyLogger
from shopify_platform.runtime.http import normalize_request
from shopify_platform.webhooks.registry import WebhookRegistry
from shopify_platform.webhooks.types import (
    DeliveryMethod,
    HttpWebhookHandler,
    WebhookProcessResult,
    WebhookValidation,
    WebhookValidationReason,
    callback_path,
    topic_for_storage,
)
from shopify_platform.webhooks.validator import validate_delivery


def validate(config: ShopifyConfig, raw_body: str | bytes, raw_request: Any) -> WebhookValidation:
    request = normalize_request(raw_request)
    return validate_delivery(raw_body, request.headers, request.path, config.api_secret_key)


def _fail(message: str, status_code: int, status_text: str) -> InvalidWebhookError:
    return InvalidWebhookError(message, ResponseInfo(status_code=status_code, status_text=status_text))


def resolve_http_handlers(
    registry: WebhookRegistry,
    topic: str,
    path: str,
) -> list[HttpWebhookHandler]:
    """Handlers registered for topic whose callback path equals path."""
    handlers = registry.get_handlers(topic)
    if not handlers:
        raise _fail(f"No handler found for topic '{topic}'", 404, "Not Found")

    method = registry.delivery_method(topic)
    if method is not DeliveryMethod.HTTP:
        raise _fail(
            f"Topic '{topic}' is registered for {method.value} delivery, not HTTP",
            404,
            "Not Found",
        )

    request_path = callback_path(path)
    matching = [
        handler
        for handler in handlers
        if isinstance(handler, HttpWebhookHandler)
        and callback_path(handler.callback_url) == request_path
    ]
    if not matching:
        raise _fail(
            f"No HTTP handler registered for topic '{topic}' at path '{request_path}'",
            404,
            "Not Found",
        )
    return matching


async def process(
    registry: WebhookRegistry,
    config: ShopifyConfig,
    logger: ShopifyLogger,
    raw_body: str | bytes,
    raw_request: Any,
    raw_response: Any = None,
) -> WebhookProcessResult:
    """Validate a delivery and run its handlers.

    Each handler is called as callback(topic, shop, body) and may be sync
    or async. Returns a 200 result; every failure raises
    InvalidWebhookError for the endpoint to turn into a response. When a
    raw_response (anything with a settable status_code, such as a
    Starlette Response) is given, its status is set to the outcome.
    """
    try:
        result = await _dispatch(registry, config, logger, raw_body, raw_request)
    except InvalidWebhookError as e:
        if raw_response is not None:
            raw_response.status_code = e.status_code
        raise

    if raw_response is not None:
        raw_response.status_code = result.status_code
    return result


async def _dispatch(
    registry: WebhookRegistry,
    config: ShopifyConfig,
    logger: ShopifyLogger,
    raw_body: str | bytes,
    raw_request: Any,
) -> WebhookProcessResult:
    validation = validate(config, raw_body, raw_request)

    if validation.reason is WebhookValidationReason.MISSING_HEADERS:
        missing = ", ".join(validation.missing_headers)
        logger.debug("Webhook request is missing headers", missing=missing)
        raise _fail(f"Missing one or more of the required HTTP headers: {missing}", 400, "Bad Request")

    delivery = validation.delivery
    if not validation.valid or delivery is None:
        logger.debug("Webhook HMAC validation failed", topic=delivery.topic if delivery else "")
        raise _fail("Could not validate request HMAC", 401, "Unauthorized")

    topic = topic_for_storage(delivery.topic)
    handlers = resolve_http_handlers(registry, topic, delivery.path)

    logger.info(
        "Processing webhook request",
        topic=topic,
        domain=delivery.domain,
        webhook_id=delivery.webhook_id,
        handlers=len(handlers),
    )

    for handler in handlers:
        try:
            result = handler.callback(topic, delivery.domain, delivery.body)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Webhook handler failed",
                topic=topic,
                domain=delivery.domain,
                error=f"{type(e).__name__}: {e}",
            )
            raise _fail(f"Error while handling webhook '{topic}': {e}", 500, "Internal Server Error") from e

    return WebhookProcessResult(webhook=delivery, status_code=200)
