"""GraphQL documents used to read and mutate webhook subscriptions."""

from __future__ import annotations

from shopify_platform.webhooks.types import DeliveryMethod, WebhookOperation

PAGE_SIZE = 250

GET_WEBHOOK_SUBSCRIPTIONS = """
query shopifyPlatformReadWebhookSubscriptions($first: Int!, $endCursor: String) {
  webhookSubscriptions(first: $first, after: $endCursor) {
    edges {
      node {
        id
        topic
        includeFields
        metafieldNamespaces
        endpoint {
          __typename
          ... on WebhookHttpEndpoint {
            callbackUrl
          }
          ... on WebhookEventBridgeEndpoint {
            arn
          }
          ... on WebhookPubSubEndpoint {
            pubSubProject
            pubSubTopic
          }
        }
      }
    }
    pageInfo {
      endCursor
      hasNextPage
    }
  }
}
"""

_MUTATION_NAMES: dict[tuple[DeliveryMethod, WebhookOperation], str] = {
    (DeliveryMethod.HTTP, WebhookOperation.CREATE): "webhookSubscriptionCreate",
    (DeliveryMethod.HTTP, WebhookOperation.UPDATE): "webhookSubscriptionUpdate",
    (DeliveryMethod.EVENT_BRIDGE, WebhookOperation.CREATE): "eventBridgeWebhookSubscriptionCreate",
    (DeliveryMethod.EVENT_BRIDGE, WebhookOperation.UPDATE): "eventBridgeWebhookSubscriptionUpdate",
    (DeliveryMethod.PUB_SUB, WebhookOperation.CREATE): "pubSubWebhookSubscriptionCreate",
    (DeliveryMethod.PUB_SUB, WebhookOperation.UPDATE): "pubSubWebhookSubscriptionUpdate",
}

_INPUT_TYPES = {
    DeliveryMethod.HTTP: "WebhookSubscriptionInput",
    DeliveryMethod.EVENT_BRIDGE: "EventBridgeWebhookSubscriptionInput",
    DeliveryMethod.PUB_SUB: "PubSubWebhookSubscriptionInput",
}

DELETE_MUTATION_NAME = "webhookSubscriptionDelete"

DELETE_WEBHOOK_SUBSCRIPTION = """
mutation webhookSubscriptionDelete($id: ID!) {
  webhookSubscriptionDelete(id: $id) {
    userErrors {
      field
      message
    }
    deletedWebhookSubscriptionId
  }
}
"""


def mutation_name(method: DeliveryMethod, operation: WebhookOperation) -> str:
    if operation is WebhookOperation.DELETE:
        return DELETE_MUTATION_NAME
    return _MUTATION_NAMES[(method, operation)]


def build_mutation(method: DeliveryMethod, operation: WebhookOperation) -> str:
    """Return the create/update mutation document for a delivery method.

    Create takes $topic and $webhookSubscription; update takes $id and
    $webhookSubscription.
    """
    if operation is WebhookOperation.DELETE:
        return DELETE_WEBHOOK_SUBSCRIPTION

    name = mutation_name(method, operation)
    input_type = _INPUT_TYPES[method]
    if operation is WebhookOperation.CREATE:
        params = "$topic: WebhookSubscriptionTopic!"
        args = "topic: $topic"
    else:
        params = "$id: ID!"
        args = "id: $id"

    return f"""
mutation {name}({params}, $webhookSubscription: {input_type}!) {{
  {name}({args}, webhookSubscription: $webhookSubscription) {{
    webhookSubscription {{
      id
    }}
    userErrors {{
      field
      message
    }}
  }}
}}
"""
