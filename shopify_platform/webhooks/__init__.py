"""Webhook registry, subscription reconciliation and delivery dispatch.

Webhooks binds one registry to one config so that two Shopify instances
never share handlers.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from shopify_platform.config import ShopifyConfig
from shopify_platform.logger import ShopifyLogger
from shopify_platform.session.session import Session
from shopify_platform.webhooks import process as _process
from shopify_platform.webhooks import register as _register
from shopify_platform.webhooks.registry import HandlerInput, WebhookRegistry
from shopify_platform.webhooks.types import (
    DeliveryMethod,
    EventBridgeWebhookHandler,
    HttpWebhookHandler,
    PubSubWebhookHandler,
    RegisterResult,
    RegisterReturn,
    WebhookHandler,
    WebhookProcessResult,
    WebhookValidation,
)


class Webhooks:
    """Per-instance webhook API."""

    def __init__(
        self,
        config: ShopifyConfig,
        logger: ShopifyLogger,
        client_factory: Callable[[Session], _register.GraphqlQueryClient],
    ):
        self._config = config
        self._logger = logger
        self._client_factory = client_factory
        self.registry = WebhookRegistry(logger)

    def add_handlers(self, handlers: Mapping[str, HandlerInput]) -> None:
        self.registry.add_handlers(handlers)

    def get_handlers(self, topic: str) -> list[WebhookHandler]:
        return self.registry.get_handlers(topic)

    def get_topics_added(self) -> list[str]:
        return self.registry.get_topics_added()

    async def register(self, session: Session) -> RegisterReturn:
        client = self._client_factory(session)
        return await _register.register(self.registry, self._config, client, self._logger)

    async def process(
        self,
        raw_body: str | bytes,
        raw_request: Any,
        raw_response: Any = None,
    ) -> WebhookProcessResult:
        return await _process.process(
            self.registry, self._config, self._logger, raw_body, raw_request, raw_response
        )

    def validate(self, raw_body: str | bytes, raw_request: Any) -> WebhookValidation:
        return _process.validate(self._config, raw_body, raw_request)


__all__ = [
    "DeliveryMethod",
    "EventBridgeWebhookHandler",
    "HttpWebhookHandler",
    "PubSubWebhookHandler",
    "RegisterResult",
    "RegisterReturn",
    "WebhookHandler",
    "WebhookProcessResult",
    "WebhookRegistry",
    "Webhooks",
]
