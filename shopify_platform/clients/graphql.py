"""Shopify GraphQL Admin API client.

One client per session. Requests go to
{scheme}://{shop}/admin/api/{api_version}/graphql.json authenticated with
the session's access token. Non-2xx answers and transport failures are
raised as library errors; callers decide whether to retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import (
    GraphqlQueryError,
    HttpInternalError,
    HttpRequestError,
    HttpResponseError,
    HttpThrottlingError,
    ResponseInfo,
)
from shopify_platform.session.session import Session
from shopify_platform.version import __version__

logger = logging.getLogger(__name__)


@dataclass
class GraphqlResponse:
    """Parsed response body plus headers."""

    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class GraphqlClient:
    """Async client for the Admin GraphQL endpoint of one shop."""

    def __init__(
        self,
        session: Session,
        config: ShopifyConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not session.access_token and not config.is_private_app:
            raise ValueError("GraphqlClient requires a session with an access token")
        self.session = session
        self.config = config
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return (
            f"{self.config.host_scheme}://{self.session.shop}"
            f"/admin/api/{self.config.api_version}/graphql.json"
        )

    def _headers(self, extra_headers: dict[str, str] | None) -> dict[str, str]:
        user_agent = f"Shopify Platform Library v{__version__} | Python"
        if self.config.user_agent_prefix:
            user_agent = f"{self.config.user_agent_prefix} | {user_agent}"

        access_token = self.session.access_token
        if self.config.is_private_app and not access_token:
            access_token = self.config.api_secret_key

        headers = {
            "X-Shopify-Access-Token": access_token or "",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        headers.update(extra_headers or {})
        return headers

    async def query(
        self,
        data: str,
        variables: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> GraphqlResponse:
        """Execute a query or mutation and return the parsed response."""
        payload = {"query": data, "variables": variables or {}}

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.config.request_timeout,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers=self._headers(extra_headers),
                )
        except httpx.HTTPError as e:
            logger.warning("GraphQL request to %s failed: %s", self.session.shop, e)
            raise HttpRequestError(f"Failed to make Shopify HTTP request: {e}") from e

        headers = dict(response.headers)
        if response.is_error:
            raise _response_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise HttpRequestError("Shopify returned a non-JSON response") from e

        if body.get("errors"):
            raise GraphqlQueryError("GraphQL query returned errors", body=body)

        return GraphqlResponse(body=body, headers=headers)


def _response_error(response: httpx.Response) -> HttpResponseError:
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text

    info = ResponseInfo(
        status_code=response.status_code,
        status_text=response.reason_phrase,
        body=body,
        headers=dict(response.headers),
    )
    message = f"Received an error response ({response.status_code} {response.reason_phrase}) from Shopify"

    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            seconds = float(retry_after) if retry_after else None
        except ValueError:
            seconds = None
        return HttpThrottlingError(message, info, retry_after=seconds)
    if response.status_code >= 500:
        return HttpInternalError(message, info)
    return HttpResponseError(message, info)
