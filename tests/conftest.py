"""Shared fixtures for the shopify_platform test suite."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any

import httpx
import pytest

from shopify_platform import Session, Shopify, ShopifyConfig, shopify_api

SHOP = "shop1.myshopify.io"
ACCESS_TOKEN = "dangit"


class QueuedTransport(httpx.MockTransport):
    """httpx transport that answers requests from a FIFO of canned responses.

    Queue an Exception instance to simulate a transport failure.
    """

    def __init__(self) -> None:
        self.responses: list[Any] = []
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def queue(self, body: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> None:
        self.responses.append((status_code, body, headers or {}))

    def queue_error(self, error: Exception) -> None:
        self.responses.append(error)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        status_code, body, headers = item
        return httpx.Response(status_code, json=body, headers=headers)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def mutations(self) -> list[dict[str, Any]]:
        """Request bodies that carried a mutation."""
        return [body for body in self.bodies if body["query"].lstrip().startswith("mutation")]


def make_config(**overrides: Any) -> ShopifyConfig:
    settings: dict[str, Any] = {
        "api_key": "test_key",
        "api_secret_key": "test_secret_key",
        "scopes": ["read_products", "write_orders"],
        "host_name": "test_host_name",
        "is_embedded_app": False,
    }
    settings.update(overrides)
    return ShopifyConfig(**settings)


@pytest.fixture
def config() -> ShopifyConfig:
    return make_config()


@pytest.fixture
def transport() -> QueuedTransport:
    return QueuedTransport()


@pytest.fixture
def shopify(config: ShopifyConfig, transport: QueuedTransport) -> Shopify:
    return shopify_api(config, transport=transport)


@pytest.fixture
def session() -> Session:
    return Session(
        id=f"{SHOP}_1",
        shop=SHOP,
        state="state",
        is_online=True,
        access_token=ACCESS_TOKEN,
    )


@pytest.fixture
def sign():
    """sign(body, secret) -> base64 HMAC-SHA256, as the platform computes it."""

    def _sign(body: str | bytes, secret: str) -> str:
        raw = body.encode() if isinstance(body, str) else body
        return base64.b64encode(hmac.new(secret.encode(), raw, hashlib.sha256).digest()).decode()

    return _sign


@pytest.fixture
def webhook_headers():
    """Build the headers of a platform delivery."""

    def _headers(
        hmac_value: str,
        topic: str = "PRODUCTS_CREATE",
        domain: str = SHOP,
        webhook_id: str = "b54557e4-bdd9-4b37-8a5f-bf7d70bcd043",
        api_version: str = "2024-10",
    ) -> dict[str, str]:
        return {
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": domain,
            "X-Shopify-Hmac-Sha256": hmac_value,
            "X-Shopify-Webhook-Id": webhook_id,
            "X-Shopify-API-Version": api_version,
            "Content-Type": "application/json",
        }

    return _headers


@pytest.fixture
def config_factory():
    """make_config(**overrides) for tests that need a non-default config."""
    return make_config
