"""Tests for the webhook handler registry.

Tests:
- Accumulation and registration order
- Delivery-method exclusivity (registry unchanged on failure)
- Topic normalization
- Per-instance isolation
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from shopify_platform import shopify_api
from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import InvalidDeliveryMethodError
from shopify_platform.logger import ShopifyLogger
from shopify_platform.webhooks.registry import WebhookRegistry
from shopify_platform.webhooks.types import (
    EventBridgeWebhookHandler,
    HttpWebhookHandler,
    PubSubWebhookHandler,
)

ARN = "arn:aws:events:us-east-1::event-source/aws.partner/shopify.com/12345/source"


def _registry() -> WebhookRegistry:
    config = ShopifyConfig(api_key="key", api_secret_key="secret", host_name="app.example.com")
    return WebhookRegistry(ShopifyLogger(config))


def _http(path: str = "/webhooks") -> HttpWebhookHandler:
    return HttpWebhookHandler(callback_url=path, callback=AsyncMock())


def _event_bridge() -> EventBridgeWebhookHandler:
    return EventBridgeWebhookHandler(arn=ARN)


def _pub_sub() -> PubSubWebhookHandler:
    return PubSubWebhookHandler(pub_sub_project="my-project", pub_sub_topic="my-topic")


_HANDLER_FACTORIES = {"http": _http, "eventbridge": _event_bridge, "pubsub": _pub_sub}


class TestAddHandlers:
    def test_single_handler(self):
        registry = _registry()
        handler = _http()
        registry.add_handlers({"PRODUCTS_CREATE": handler})
        assert registry.get_handlers("PRODUCTS_CREATE") == [handler]
        assert registry.get_topics_added() == ["PRODUCTS_CREATE"]

    def test_unknown_topic_returns_empty(self):
        assert _registry().get_handlers("ORDERS_PAID") == []

    def test_list_input_preserves_order(self):
        registry = _registry()
        first, second = _http(), _http()
        registry.add_handlers({"PRODUCTS_CREATE": [first, second]})
        assert registry.get_handlers("PRODUCTS_CREATE") == [first, second]

    def test_calls_accumulate_same_address(self):
        """Same-address handlers are kept, not merged or replaced."""
        registry = _registry()
        first, second = _http(), _http()
        registry.add_handlers({"PRODUCTS_CREATE": first})
        registry.add_handlers({"PRODUCTS_CREATE": second})
        handlers = registry.get_handlers("PRODUCTS_CREATE")
        assert handlers == [first, second]
        assert handlers[0] is first
        assert handlers[1] is second

    def test_calls_accumulate_distinct_addresses(self):
        registry = _registry()
        first, second = _http("/webhooks1"), _http("/webhooks2")
        registry.add_handlers({"PRODUCTS_CREATE": first})
        registry.add_handlers({"PRODUCTS_CREATE": second})
        assert registry.get_handlers("PRODUCTS_CREATE") == [first, second]

    def test_multiple_topics_in_one_call(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http(), "PRODUCTS_UPDATE": _http()})
        assert sorted(registry.get_topics_added()) == ["PRODUCTS_CREATE", "PRODUCTS_UPDATE"]

    def test_topics_are_unique(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        assert registry.get_topics_added() == ["PRODUCTS_CREATE"]

    def test_get_handlers_returns_copy(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        registry.get_handlers("PRODUCTS_CREATE").clear()
        assert len(registry.get_handlers("PRODUCTS_CREATE")) == 1


class TestTopicNormalization:
    def test_rest_topic_is_stored_in_graphql_form(self):
        registry = _registry()
        registry.add_handlers({"products/create": _http()})
        assert registry.get_topics_added() == ["PRODUCTS_CREATE"]

    def test_lookup_accepts_either_form(self):
        registry = _registry()
        handler = _http()
        registry.add_handlers({"PRODUCTS_CREATE": handler})
        assert registry.get_handlers("products/create") == [handler]

    def test_both_forms_in_one_call_accumulate(self):
        registry = _registry()
        first, second = _http(), _http()
        registry.add_handlers({"products/create": first, "PRODUCTS_CREATE": second})
        assert registry.get_handlers("PRODUCTS_CREATE") == [first, second]


class TestMultipleHandlerWarning:
    def test_warns_when_topic_has_multiple_handlers(self, caplog):
        caplog.set_level(logging.INFO, logger="shopify_platform")
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": [_http(), _http()]})
        assert (
            "Detected multiple handlers for 'PRODUCTS_CREATE', "
            "webhooks.process will call them sequentially"
        ) in caplog.messages

    def test_no_warning_for_single_handler(self, caplog):
        caplog.set_level(logging.INFO, logger="shopify_platform")
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        assert not any("Detected multiple handlers" in m for m in caplog.messages)

    def test_warns_on_second_call(self, caplog):
        caplog.set_level(logging.INFO, logger="shopify_platform")
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        assert not any("Detected" in m for m in caplog.messages)
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        assert any("Detected multiple handlers for 'PRODUCTS_CREATE'" in m for m in caplog.messages)


class TestDeliveryMethodExclusivity:
    def test_mixing_http_and_event_bridge_fails(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({"PRODUCTS_CREATE": _event_bridge()})

    def test_mixing_within_one_call_fails(self):
        registry = _registry()
        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({"PRODUCTS_CREATE": [_http(), _pub_sub()]})
        assert registry.get_handlers("PRODUCTS_CREATE") == []

    def test_multiple_event_bridge_handlers_fail(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _event_bridge()})
        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({"PRODUCTS_CREATE": _event_bridge()})

    def test_multiple_pub_sub_handlers_fail(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _pub_sub()})
        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({"PRODUCTS_CREATE": _pub_sub()})

    def test_failed_call_leaves_other_topics_untouched(self):
        """Validation happens before any topic of the call is stored."""
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http()})
        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({
                "ORDERS_CREATE": _http(),
                "PRODUCTS_CREATE": _event_bridge(),
            })
        assert registry.get_topics_added() == ["PRODUCTS_CREATE"]
        assert registry.get_handlers("ORDERS_CREATE") == []

    def test_different_topics_may_use_different_methods(self):
        registry = _registry()
        registry.add_handlers({"PRODUCTS_CREATE": _http(), "ORDERS_CREATE": _event_bridge()})
        assert sorted(registry.get_topics_added()) == ["ORDERS_CREATE", "PRODUCTS_CREATE"]

    @given(
        topic=st.from_regex(r"[A-Z]{1,12}(_[A-Z]{1,12}){0,2}", fullmatch=True),
        methods=st.lists(st.sampled_from(sorted(_HANDLER_FACTORIES)), min_size=2, max_size=2, unique=True),
    )
    @settings(max_examples=50)
    def test_mixed_methods_never_change_state(self, topic, methods):
        registry = _registry()
        first = _HANDLER_FACTORIES[methods[0]]()
        registry.add_handlers({topic: first})
        before = registry.get_handlers(topic)

        with pytest.raises(InvalidDeliveryMethodError):
            registry.add_handlers({topic: _HANDLER_FACTORIES[methods[1]]()})

        assert registry.get_handlers(topic) == before


class TestInstanceIsolation:
    """Two Shopify instances never see each other's handlers."""

    def test_different_topics(self, config_factory):
        shopify1 = shopify_api(config_factory(api_secret_key="kitties are cute"))
        shopify2 = shopify_api(config_factory(api_secret_key="dogs are cute too"))
        handler1, handler2 = _http("/webhooks"), _http("/webhooks2")

        shopify1.webhooks.add_handlers({"PRODUCTS": handler1})
        shopify2.webhooks.add_handlers({"PRODUCTS_CREATE": handler2})

        assert shopify1.webhooks.get_topics_added() == ["PRODUCTS"]
        assert shopify1.webhooks.get_handlers("PRODUCTS") == [handler1]
        assert shopify1.webhooks.get_handlers("PRODUCTS_CREATE") == []
        assert shopify2.webhooks.get_topics_added() == ["PRODUCTS_CREATE"]
        assert shopify2.webhooks.get_handlers("PRODUCTS_CREATE") == [handler2]
        assert shopify2.webhooks.get_handlers("PRODUCTS") == []

    def test_same_topic(self, config_factory):
        shopify1 = shopify_api(config_factory())
        shopify2 = shopify_api(config_factory())
        handler1, handler2 = _http("/webhooks"), _http("/webhooks2")

        shopify1.webhooks.add_handlers({"PRODUCTS_CREATE": handler1})
        shopify2.webhooks.add_handlers({"PRODUCTS_CREATE": handler2})

        assert shopify1.webhooks.get_handlers("PRODUCTS_CREATE") == [handler1]
        assert shopify2.webhooks.get_handlers("PRODUCTS_CREATE") == [handler2]

    def test_mixed_methods_across_instances_are_allowed(self, config_factory):
        shopify1 = shopify_api(config_factory())
        shopify2 = shopify_api(config_factory())
        shopify1.webhooks.add_handlers({"PRODUCTS_CREATE": _http()})
        shopify2.webhooks.add_handlers({"PRODUCTS_CREATE": _event_bridge()})
        assert len(shopify2.webhooks.get_handlers("PRODUCTS_CREATE")) == 1
