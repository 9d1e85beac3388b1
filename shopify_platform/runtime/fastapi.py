"""FastAPI integration: webhook endpoints backed by Shopify.webhooks.process.

Security contract:
- Never return error details to the webhook caller
- Status comes from InvalidWebhookError (400/401/404/500)
- 200 only after every matching handler completed
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Iterable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shopify_platform.errors import InvalidWebhookError
from shopify_platform.webhooks.types import TOPIC_HEADER, HttpWebhookHandler, callback_path

if TYPE_CHECKING:
    from shopify_platform import Shopify

logger = logging.getLogger(__name__)


def _log_webhook(path: str, topic: str, status: str, status_code: int) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT path=%s topic=%s status=%s code=%d",
        path,
        topic,
        status,
        status_code,
    )


async def handle_webhook_request(shopify: Shopify, request: Request) -> JSONResponse:
    """Process one delivery and map the outcome to a response."""
    start = time.time()
    body = await request.body()
    topic = request.headers.get(TOPIC_HEADER, "unknown")
    path = request.url.path

    try:
        await shopify.webhooks.process(body, request)
    except InvalidWebhookError as e:
        _log_webhook(path, topic, "rejected", e.status_code)
        logger.debug("Webhook rejected: %s", e)
        return JSONResponse({"status": "error"}, status_code=e.status_code)

    _log_webhook(path, topic, "processed", 200)
    logger.debug("Webhook processed in %.1fms: %s", (time.time() - start) * 1000, topic)
    return JSONResponse({"status": "received"}, status_code=200)


def http_callback_paths(shopify: Shopify) -> list[str]:
    """Distinct request paths of every registered HTTP handler."""
    paths: list[str] = []
    for topic in shopify.webhooks.get_topics_added():
        for handler in shopify.webhooks.get_handlers(topic):
            if isinstance(handler, HttpWebhookHandler):
                path = callback_path(handler.callback_url)
                if path not in paths:
                    paths.append(path)
    return paths


def register_webhook_routes(app: FastAPI, shopify: Shopify, paths: Iterable[str] | None = None) -> None:
    """Add a POST endpoint per webhook path.

    Without explicit paths, one endpoint is added for every HTTP handler
    callback path currently registered, so call this after add_handlers().
    """
    route_paths = list(paths) if paths is not None else http_callback_paths(shopify)

    async def webhook_endpoint(request: Request) -> JSONResponse:
        return await handle_webhook_request(shopify, request)

    for path in route_paths:
        app.add_api_route(path, webhook_endpoint, methods=["POST"], include_in_schema=False)

    logger.info("Webhook routes registered: %s", ", ".join(route_paths) or "(none)")
