"""Exception hierarchy for the Shopify platform library.

Every error raised by the library derives from ShopifyError so hosting
apps can catch the whole family at their boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ShopifyError(Exception):
    """Base exception for all library errors."""

    pass


class ConfigError(ShopifyError):
    """Raised when the library configuration fails validation."""

    pass


class InvalidShopError(ShopifyError):
    """Raised when a shop domain is not a valid Shopify domain."""

    pass


class InvalidHostError(ShopifyError):
    """Raised when an embedded-app host parameter is malformed."""

    pass


class MissingJwtTokenError(ShopifyError):
    """Raised when a Bearer token is expected but absent."""

    pass


class InvalidJwtError(ShopifyError):
    """Raised when a session token fails verification."""

    pass


class InvalidDeliveryMethodError(ShopifyError):
    """Raised when handlers for one topic would mix delivery methods."""

    pass


# ---------------------------------------------------------------------------
# HTTP client errors
# ---------------------------------------------------------------------------


@dataclass
class ResponseInfo:
    """Status and body of a failed (or rejected) HTTP exchange."""

    status_code: int
    status_text: str = ""
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class HttpRequestError(ShopifyError):
    """Raised when the request never produced a response (network failure)."""

    pass


class HttpResponseError(ShopifyError):
    """Raised when the platform answers with a non-2xx status."""

    def __init__(self, message: str, response: ResponseInfo):
        self.response = response
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.response.status_code


class HttpThrottlingError(HttpResponseError):
    """HTTP 429 from the platform."""

    def __init__(self, message: str, response: ResponseInfo, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, response)


class HttpInternalError(HttpResponseError):
    """HTTP 5xx from the platform."""

    pass


class GraphqlQueryError(ShopifyError):
    """Raised when a 200 GraphQL response carries top-level errors."""

    def __init__(self, message: str, body: Any = None):
        self.body = body
        super().__init__(message)


# ---------------------------------------------------------------------------
# Webhook delivery errors
# ---------------------------------------------------------------------------


class InvalidWebhookError(ShopifyError):
    """Raised when an inbound delivery fails validation, routing or handling.

    Carries the HTTP status the endpoint should answer the platform with.
    """

    def __init__(self, message: str, response: ResponseInfo):
        self.response = response
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.response.status_code
