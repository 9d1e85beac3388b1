"""Shopify platform integration library.

shopify_api(config) returns a Shopify instance that owns its config,
logger and webhook registry:

    shopify = shopify_api(ShopifyConfig(api_key=..., api_secret_key=..., host_name=...))
    shopify.webhooks.add_handlers({"PRODUCTS_CREATE": HttpWebhookHandler("/webhooks", on_product)})
    await shopify.webhooks.register(session)
    await shopify.webhooks.process(raw_body, request)
"""

from __future__ import annotations

from typing import Any

import httpx

from shopify_platform.clients.graphql import GraphqlClient
from shopify_platform.config import ShopifyConfig, load_config
from shopify_platform.logger import LogSeverity, ShopifyLogger
from shopify_platform.session import session_utils
from shopify_platform.session.decode_session_token import decode_session_token
from shopify_platform.session.session import JwtPayload, Session
from shopify_platform.utils import shop_validator
from shopify_platform.version import __version__
from shopify_platform.webhooks import (
    DeliveryMethod,
    EventBridgeWebhookHandler,
    HttpWebhookHandler,
    PubSubWebhookHandler,
    Webhooks,
)


class SessionUtils:
    """Session-id helpers bound to one config."""

    def __init__(self, config: ShopifyConfig):
        self._config = config

    def get_current_id(self, raw_request: Any, is_online: bool) -> str | None:
        return session_utils.get_current_session_id(self._config, raw_request, is_online)

    def get_jwt_session_id(self, shop: str, user_id: str) -> str:
        return session_utils.get_jwt_session_id(self._config, shop, user_id)

    def get_offline_id(self, shop: str) -> str:
        return session_utils.get_offline_id(self._config, shop)

    def decode_session_token(self, token: str) -> JwtPayload:
        return decode_session_token(self._config, token)


class Utils:
    def __init__(self, config: ShopifyConfig):
        self._config = config

    def sanitize_shop(self, shop: str, throw_on_invalid: bool = False) -> str | None:
        return shop_validator.sanitize_shop(self._config, shop, throw_on_invalid)

    def sanitize_host(self, host: str, throw_on_invalid: bool = False) -> str | None:
        return shop_validator.sanitize_host(self._config, host, throw_on_invalid)


class Shopify:
    """One configured app. Instances share no mutable state."""

    def __init__(self, config: ShopifyConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self.logger = ShopifyLogger(config)
        self._transport = transport
        self.session = SessionUtils(config)
        self.utils = Utils(config)
        self.webhooks = Webhooks(config, self.logger, self.graphql_client)

    def graphql_client(self, session: Session) -> GraphqlClient:
        return GraphqlClient(session, self.config, transport=self._transport)


def shopify_api(
    config: ShopifyConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **overrides: Any,
) -> Shopify:
    """Create a Shopify instance from a config object or keyword settings."""
    if config is None:
        config = load_config(**overrides)
    return Shopify(config, transport=transport)


__all__ = [
    "DeliveryMethod",
    "EventBridgeWebhookHandler",
    "GraphqlClient",
    "HttpWebhookHandler",
    "LogSeverity",
    "PubSubWebhookHandler",
    "Session",
    "Shopify",
    "ShopifyConfig",
    "__version__",
    "load_config",
    "shopify_api",
]
