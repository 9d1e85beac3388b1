"""Webhook handler definitions and result types.

A handler is one of three delivery-method variants. HTTP handlers carry
an in-process callback; EventBridge and PubSub handlers only describe
where the platform should push events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Union
from urllib.parse import urlsplit

# Inbound header names, as sent by the platform
HMAC_HEADER = "X-Shopify-Hmac-Sha256"
TOPIC_HEADER = "X-Shopify-Topic"
DOMAIN_HEADER = "X-Shopify-Shop-Domain"
WEBHOOK_ID_HEADER = "X-Shopify-Webhook-Id"
API_VERSION_HEADER = "X-Shopify-API-Version"


class DeliveryMethod(str, Enum):
    """Transports the platform can push webhook events through."""

    HTTP = "http"
    EVENT_BRIDGE = "eventbridge"
    PUB_SUB = "pubsub"


class WebhookOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# callback(topic, shop, body), sync or async
WebhookCallback = Callable[..., Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class HttpWebhookHandler:
    """Deliveries POSTed to callback_url on this app, handled by callback."""

    callback_url: str
    callback: WebhookCallback
    include_fields: list[str] = field(default_factory=list)
    metafield_namespaces: list[str] = field(default_factory=list)

    delivery_method: ClassVar[DeliveryMethod] = DeliveryMethod.HTTP

    @property
    def address(self) -> str:
        return self.callback_url


@dataclass(frozen=True)
class EventBridgeWebhookHandler:
    """Deliveries pushed to an Amazon EventBridge partner event source."""

    arn: str
    include_fields: list[str] = field(default_factory=list)
    metafield_namespaces: list[str] = field(default_factory=list)

    delivery_method: ClassVar[DeliveryMethod] = DeliveryMethod.EVENT_BRIDGE

    @property
    def address(self) -> str:
        return self.arn


@dataclass(frozen=True)
class PubSubWebhookHandler:
    """Deliveries published to a Google Cloud Pub/Sub topic."""

    pub_sub_project: str
    pub_sub_topic: str
    include_fields: list[str] = field(default_factory=list)
    metafield_namespaces: list[str] = field(default_factory=list)

    delivery_method: ClassVar[DeliveryMethod] = DeliveryMethod.PUB_SUB

    @property
    def address(self) -> str:
        return f"pubsub://{self.pub_sub_project}:{self.pub_sub_topic}"


WebhookHandler = Union[HttpWebhookHandler, EventBridgeWebhookHandler, PubSubWebhookHandler]


def topic_for_storage(topic: str) -> str:
    """products/create -> PRODUCTS_CREATE"""
    return topic.upper().replace("/", "_")


def callback_path(callback_url: str) -> str:
    """Request path a callback URL or path is delivered to.

    "webhooks", "/webhooks/" and "https://app.example.com/webhooks" all
    give "/webhooks".
    """
    path = urlsplit(callback_url).path.strip("/")
    return f"/{path}"


@dataclass
class RegisterResult:
    """Outcome of one remote subscription operation."""

    success: bool
    result: Any
    delivery_method: DeliveryMethod
    operation: WebhookOperation


RegisterReturn = dict[str, list[RegisterResult]]


@dataclass
class WebhookDelivery:
    """One inbound delivery, as read from its headers and body."""

    topic: str
    domain: str
    hmac: str
    body: str
    path: str
    webhook_id: str | None = None
    api_version: str | None = None


class WebhookValidationReason(str, Enum):
    MISSING_HEADERS = "missing_headers"
    INVALID_HMAC = "invalid_hmac"
    VALID = "valid"


@dataclass
class WebhookValidation:
    valid: bool
    reason: WebhookValidationReason
    delivery: WebhookDelivery | None = None
    missing_headers: list[str] = field(default_factory=list)


@dataclass
class WebhookProcessResult:
    webhook: WebhookDelivery
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
