"""Webhook subscription reconciliation.

Brings the platform's webhook subscriptions in line with the local
registry. The platform decides what exists; the registry decides what
should exist. For every registered topic:

1. Local handlers collapse to one desired subscription per address
2. Desired subscriptions at an existing address are left alone, or
   updated in place if their fields differ
3. Remaining desired subscriptions take over an unmatched remote
   subscription of the same delivery method (update), else are created
4. Remote subscriptions still unmatched are deleted

Topics that are not in the registry are never touched. Operations are
one-shot: a failed operation is reported in the result, not retried, and
does not stop the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from shopify_platform.clients.graphql import GraphqlResponse
from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import GraphqlQueryError, HttpRequestError, HttpResponseError
from shopify_platform.logger import ShopifyLogger
from shopify_platform.webhooks import query_templates
from shopify_platform.webhooks.registry import WebhookRegistry
from shopify_platform.webhooks.types import (
    DeliveryMethod,
    EventBridgeWebhookHandler,
    HttpWebhookHandler,
    PubSubWebhookHandler,
    RegisterResult,
    RegisterReturn,
    WebhookHandler,
    WebhookOperation,
    callback_path,
)


class GraphqlQueryClient(Protocol):
    async def query(
        self,
        data: str,
        variables: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> GraphqlResponse: ...


@dataclass
class Subscription:
    """A webhook subscription, either on the platform or desired locally."""

    topic: str
    delivery_method: DeliveryMethod
    address: str
    endpoint: dict[str, str]
    include_fields: list[str] = field(default_factory=list)
    metafield_namespaces: list[str] = field(default_factory=list)
    id: str | None = None

    def same_fields(self, other: Subscription) -> bool:
        return (
            sorted(self.include_fields) == sorted(other.include_fields)
            and sorted(self.metafield_namespaces) == sorted(other.metafield_namespaces)
        )

    def as_input(self) -> dict[str, Any]:
        return {
            **self.endpoint,
            "includeFields": self.include_fields,
            "metafieldNamespaces": self.metafield_namespaces,
        }


@dataclass
class PlannedOperation:
    operation: WebhookOperation
    subscription: Subscription


# ---------------------------------------------------------------------------
# Remote state
# ---------------------------------------------------------------------------


def _subscription_from_node(node: dict[str, Any]) -> Subscription | None:
    endpoint = node.get("endpoint") or {}
    typename = endpoint.get("__typename")

    if typename == "WebhookHttpEndpoint":
        method = DeliveryMethod.HTTP
        address = endpoint["callbackUrl"]
        target = {"callbackUrl": address}
    elif typename == "WebhookEventBridgeEndpoint":
        method = DeliveryMethod.EVENT_BRIDGE
        address = endpoint["arn"]
        target = {"arn": address}
    elif typename == "WebhookPubSubEndpoint":
        method = DeliveryMethod.PUB_SUB
        target = {
            "pubSubProject": endpoint["pubSubProject"],
            "pubSubTopic": endpoint["pubSubTopic"],
        }
        address = f"pubsub://{target['pubSubProject']}:{target['pubSubTopic']}"
    else:
        return None

    return Subscription(
        topic=node["topic"],
        delivery_method=method,
        address=address,
        endpoint=target,
        include_fields=list(node.get("includeFields") or []),
        metafield_namespaces=list(node.get("metafieldNamespaces") or []),
        id=node["id"],
    )


async def fetch_existing_subscriptions(
    client: GraphqlQueryClient,
    logger: ShopifyLogger,
) -> dict[str, list[Subscription]]:
    """Read every webhook subscription of the shop, grouped by topic."""
    existing: dict[str, list[Subscription]] = {}
    end_cursor: str | None = None

    while True:
        response = await client.query(
            query_templates.GET_WEBHOOK_SUBSCRIPTIONS,
            variables={"first": query_templates.PAGE_SIZE, "endCursor": end_cursor},
        )
        connection = response.body["data"]["webhookSubscriptions"]

        for edge in connection["edges"]:
            subscription = _subscription_from_node(edge["node"])
            if subscription is None:
                logger.debug("Skipping webhook subscription with unknown endpoint", id=edge["node"].get("id"))
                continue
            existing.setdefault(subscription.topic, []).append(subscription)

        page_info = connection["pageInfo"]
        if not page_info.get("hasNextPage"):
            break
        end_cursor = page_info["endCursor"]

    return existing


# ---------------------------------------------------------------------------
# Desired state
# ---------------------------------------------------------------------------


def _absolute_callback_url(config: ShopifyConfig, callback_url: str) -> str:
    if callback_url.startswith(("http://", "https://")):
        return callback_url
    return f"{config.app_url}{callback_path(callback_url)}"


def _desired_subscription(config: ShopifyConfig, topic: str, handler: WebhookHandler) -> Subscription:
    if isinstance(handler, HttpWebhookHandler):
        address = _absolute_callback_url(config, handler.callback_url)
        target = {"callbackUrl": address}
    elif isinstance(handler, EventBridgeWebhookHandler):
        address = handler.arn
        target = {"arn": handler.arn}
    elif isinstance(handler, PubSubWebhookHandler):
        address = handler.address
        target = {"pubSubProject": handler.pub_sub_project, "pubSubTopic": handler.pub_sub_topic}
    else:
        raise TypeError(f"Unknown webhook handler type: {type(handler).__name__}")

    return Subscription(
        topic=topic,
        delivery_method=handler.delivery_method,
        address=address,
        endpoint=target,
        include_fields=list(handler.include_fields),
        metafield_namespaces=list(handler.metafield_namespaces),
    )


def desired_subscriptions(
    config: ShopifyConfig,
    topic: str,
    handlers: list[WebhookHandler],
) -> list[Subscription]:
    """One subscription per distinct address, fields merged across handlers."""
    by_address: dict[str, Subscription] = {}
    for handler in handlers:
        wanted = _desired_subscription(config, topic, handler)
        current = by_address.get(wanted.address)
        if current is None:
            by_address[wanted.address] = wanted
            continue
        current.include_fields = sorted(set(current.include_fields) | set(wanted.include_fields))
        current.metafield_namespaces = sorted(
            set(current.metafield_namespaces) | set(wanted.metafield_namespaces)
        )
    return list(by_address.values())


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_operations(desired: list[Subscription], existing: list[Subscription]) -> list[PlannedOperation]:
    """Diff desired against existing subscriptions for a single topic."""
    unmatched_remote = list(existing)
    unmatched_desired: list[Subscription] = []
    operations: list[PlannedOperation] = []

    for wanted in desired:
        remote = next(
            (
                s for s in unmatched_remote
                if s.address == wanted.address and s.delivery_method == wanted.delivery_method
            ),
            None,
        )
        if remote is None:
            unmatched_desired.append(wanted)
            continue
        unmatched_remote.remove(remote)
        if not wanted.same_fields(remote):
            wanted.id = remote.id
            operations.append(PlannedOperation(WebhookOperation.UPDATE, wanted))

    for wanted in unmatched_desired:
        remote = next(
            (s for s in unmatched_remote if s.delivery_method == wanted.delivery_method),
            None,
        )
        if remote is None:
            operations.append(PlannedOperation(WebhookOperation.CREATE, wanted))
            continue
        unmatched_remote.remove(remote)
        wanted.id = remote.id
        operations.append(PlannedOperation(WebhookOperation.UPDATE, wanted))

    for remote in unmatched_remote:
        operations.append(PlannedOperation(WebhookOperation.DELETE, remote))

    return operations


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def _variables(planned: PlannedOperation) -> dict[str, Any]:
    subscription = planned.subscription
    if planned.operation is WebhookOperation.CREATE:
        return {"topic": subscription.topic, "webhookSubscription": subscription.as_input()}
    if planned.operation is WebhookOperation.UPDATE:
        return {"id": subscription.id, "webhookSubscription": subscription.as_input()}
    return {"id": subscription.id}


async def run_operation(
    client: GraphqlQueryClient,
    planned: PlannedOperation,
    logger: ShopifyLogger,
) -> RegisterResult:
    subscription = planned.subscription
    method = subscription.delivery_method
    name = query_templates.mutation_name(method, planned.operation)

    logger.info(
        "Registering webhook",
        topic=subscription.topic,
        operation=planned.operation.value,
        address=subscription.address,
    )

    try:
        response = await client.query(
            query_templates.build_mutation(method, planned.operation),
            variables=_variables(planned),
        )
    except (HttpRequestError, HttpResponseError, GraphqlQueryError) as e:
        logger.error(
            "Webhook registration failed",
            topic=subscription.topic,
            operation=planned.operation.value,
            error=str(e),
        )
        return RegisterResult(success=False, result=e, delivery_method=method, operation=planned.operation)

    payload = (response.body.get("data") or {}).get(name) or {}
    success = not payload.get("userErrors")
    if not success:
        logger.error(
            "Webhook registration returned user errors",
            topic=subscription.topic,
            operation=planned.operation.value,
            errors=payload.get("userErrors"),
        )
    return RegisterResult(
        success=success,
        result=response.body,
        delivery_method=method,
        operation=planned.operation,
    )


async def register(
    registry: WebhookRegistry,
    config: ShopifyConfig,
    client: GraphqlQueryClient,
    logger: ShopifyLogger,
) -> RegisterReturn:
    """Reconcile the registry's topics with the shop's subscriptions.

    Returns {topic: [RegisterResult, ...]}; a topic already in sync maps to
    an empty list. Only the initial read of existing subscriptions can
    raise.
    """
    topics = registry.get_topics_added()
    if not topics:
        logger.info("No webhook handlers registered, nothing to reconcile")
        return {}

    existing = await fetch_existing_subscriptions(client, logger)

    results: RegisterReturn = {}
    for topic in topics:
        desired = desired_subscriptions(config, topic, registry.get_handlers(topic))
        operations = plan_operations(desired, existing.get(topic, []))
        results[topic] = [await run_operation(client, planned, logger) for planned in operations]

    return results
