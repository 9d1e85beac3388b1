"""Webhook handler registry.

Maps topic -> ordered list of handlers. Each Shopify instance owns its own
registry; nothing here is process-global.

Rules:
- All handlers of one topic share a delivery method
- Only HTTP topics may hold more than one handler
- add_handlers() accumulates; it never replaces or deduplicates
- A rejected add_handlers() call leaves the registry untouched

Mutation is meant for app startup. Dispatch only reads the registry, so
concurrent deliveries need no locking, but mutating while deliveries are
in flight is the caller's problem.
"""

from __future__ import annotations

from typing import Mapping, Sequence, Union

from shopify_platform.errors import InvalidDeliveryMethodError
from shopify_platform.logger import ShopifyLogger
from shopify_platform.webhooks.types import (
    DeliveryMethod,
    WebhookHandler,
    topic_for_storage,
)

HandlerInput = Union[WebhookHandler, Sequence[WebhookHandler]]


class WebhookRegistry:
    """In-memory topic -> handlers mapping."""

    def __init__(self, logger: ShopifyLogger):
        self._logger = logger
        self._handlers: dict[str, list[WebhookHandler]] = {}

    def add_handlers(self, handlers: Mapping[str, HandlerInput]) -> None:
        """Add handlers for one or more topics.

        Raises InvalidDeliveryMethodError, without changing anything, if any
        topic would end up with mixed delivery methods or with several
        non-HTTP handlers.
        """
        staged: dict[str, list[WebhookHandler]] = {}

        for topic, value in handlers.items():
            key = topic_for_storage(topic)
            new_handlers = list(value) if isinstance(value, (list, tuple)) else [value]
            combined = staged.get(key, self._handlers.get(key, [])) + new_handlers
            _check_delivery_methods(key, combined)
            staged[key] = combined

        for key, combined in staged.items():
            self._handlers[key] = combined
            if len(combined) > 1:
                self._logger.info(
                    f"Detected multiple handlers for '{key}', "
                    "webhooks.process will call them sequentially"
                )

    def get_handlers(self, topic: str) -> list[WebhookHandler]:
        return list(self._handlers.get(topic_for_storage(topic), []))

    def get_topics_added(self) -> list[str]:
        return [topic for topic, handlers in self._handlers.items() if handlers]

    def delivery_method(self, topic: str) -> DeliveryMethod | None:
        handlers = self._handlers.get(topic_for_storage(topic))
        return handlers[0].delivery_method if handlers else None


def _check_delivery_methods(topic: str, handlers: list[WebhookHandler]) -> None:
    methods = {handler.delivery_method for handler in handlers}
    if len(methods) > 1:
        names = ", ".join(sorted(method.value for method in methods))
        raise InvalidDeliveryMethodError(
            f"Handlers for '{topic}' mix delivery methods ({names}); "
            "a topic can only be delivered through one method"
        )
    if len(handlers) > 1 and DeliveryMethod.HTTP not in methods:
        raise InvalidDeliveryMethodError(
            f"Can only add multiple handlers for '{topic}' when the delivery method is HTTP"
        )
