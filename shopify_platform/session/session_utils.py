"""Session-id derivation.

Embedded apps identify the current session from the App Bridge bearer
token; non-embedded apps use the signed session cookie set during OAuth.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import MissingJwtTokenError
from shopify_platform.runtime.http import Cookies, normalize_request
from shopify_platform.session.decode_session_token import decode_session_token
from shopify_platform.utils.shop_validator import sanitize_shop

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "shopify_app_session"

_BEARER_RE = re.compile(r"^Bearer (.+)$")


def get_jwt_session_id(config: ShopifyConfig, shop: str, user_id: str) -> str:
    return f"{sanitize_shop(config, shop, throw_on_invalid=True)}_{user_id}"


def get_offline_id(config: ShopifyConfig, shop: str) -> str:
    return f"offline_{sanitize_shop(config, shop, throw_on_invalid=True)}"


def get_current_session_id(
    config: ShopifyConfig,
    raw_request: Any,
    is_online: bool,
) -> str | None:
    """Return the session id for the request, or None if it carries none."""
    request = normalize_request(raw_request)

    if config.is_embedded_app:
        auth_header = request.headers.get("authorization")
        if not auth_header:
            return None

        match = _BEARER_RE.match(auth_header)
        if not match:
            raise MissingJwtTokenError("Missing Bearer token in authorization header")

        payload = decode_session_token(config, match.group(1))
        shop = re.sub(r"^https://", "", payload.dest)
        if is_online:
            return get_jwt_session_id(config, shop, payload.sub)
        return get_offline_id(config, shop)

    cookies = Cookies(request, keys=[config.api_secret_key])
    return cookies.get_and_verify(SESSION_COOKIE_NAME)
