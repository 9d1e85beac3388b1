"""Request normalization and signed cookies.

The library only needs a request's method, URL and headers. Host
frameworks hand us different request objects, so everything goes through
normalize_request() first.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import urlsplit

import httpx


@dataclass
class NormalizedRequest:
    """Framework-independent view of an inbound request."""

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"


def _to_headers(headers: Any) -> httpx.Headers:
    """Build httpx.Headers without re-encoding values as ASCII.

    Starlette and httpx headers expose the raw byte pairs; anything else is
    treated as a mapping of str or bytes values.
    """
    raw = getattr(headers, "raw", None)
    if raw is not None:
        return httpx.Headers(list(raw))
    return httpx.Headers(
        [
            (key, value.encode("utf-8") if isinstance(value, str) else value)
            for key, value in headers.items()
        ]
    )


def normalize_request(raw_request: Any) -> NormalizedRequest:
    """Convert a host-framework request into a NormalizedRequest.

    Accepts a NormalizedRequest, a Starlette/FastAPI Request (anything with
    .method, .url and .headers), or a mapping with "method", "url" and
    "headers" keys.
    """
    if isinstance(raw_request, NormalizedRequest):
        return raw_request

    if isinstance(raw_request, Mapping):
        return NormalizedRequest(
            method=str(raw_request.get("method", "GET")).upper(),
            url=str(raw_request.get("url", "/")),
            headers=_to_headers(raw_request.get("headers") or {}),
        )

    try:
        method = raw_request.method
        url = raw_request.url
        headers = raw_request.headers
    except AttributeError as e:
        raise TypeError(f"Unsupported request type: {type(raw_request).__name__}") from e

    return NormalizedRequest(
        method=str(method).upper(),
        url=str(url),
        headers=_to_headers(headers),
    )


def _sign(key: str, value: str) -> str:
    digest = hmac.new(key.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


class Cookies:
    """Read-side signed cookie jar.

    A signed cookie "name" is accompanied by "name.sig", the base64
    HMAC-SHA256 of the cookie value under one of the configured keys.
    """

    def __init__(self, request: NormalizedRequest, keys: list[str]):
        self._keys = keys
        self._values: dict[str, str] = {}
        header = request.headers.get("cookie")
        if header:
            jar = SimpleCookie()
            try:
                jar.load(header)
            except CookieError:
                jar = SimpleCookie()
            self._values = {name: morsel.value for name, morsel in jar.items()}

    def get(self, name: str) -> str | None:
        return self._values.get(name)

    def is_signed_cookie_valid(self, name: str) -> bool:
        value = self.get(name)
        signature = self.get(f"{name}.sig")
        if value is None or signature is None:
            return False
        provided = signature.encode("utf-8", "surrogateescape")
        return any(hmac.compare_digest(_sign(key, value).encode("utf-8"), provided) for key in self._keys)

    def get_and_verify(self, name: str) -> str | None:
        """Return the cookie value only if its signature checks out."""
        if not self.is_signed_cookie_valid(name):
            return None
        return self.get(name)

    @staticmethod
    def generate_signature(value: str, keys: list[str]) -> str:
        if not keys:
            raise ValueError("No keys provided for cookie signing")
        return _sign(keys[0], value)
