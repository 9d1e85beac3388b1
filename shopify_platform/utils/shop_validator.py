"""Shop-domain and host-parameter sanitization."""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import urlsplit

from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import InvalidHostError, InvalidShopError

_SHOP_DOMAINS = [r"myshopify\.com", r"shopify\.com", r"myshopify\.io", r"shop\.dev"]
_HOST_ORIGINS = [r"myshopify\.com", r"shopify\.com", r"myshopify\.io", r"spin\.dev"]

_BASE64_RE = re.compile(r"^[0-9a-zA-Z+/]+={0,2}$")


def _custom_domains(config: ShopifyConfig) -> list[str]:
    return [
        domain.pattern if isinstance(domain, re.Pattern) else domain
        for domain in config.custom_shop_domains
    ]


def sanitize_shop(config: ShopifyConfig, shop: str, throw_on_invalid: bool = False) -> str | None:
    """Return the shop domain if valid, else None (or raise InvalidShopError).

    Admin URLs of the form admin.shopify.com/store/<name> are converted to
    <name>.myshopify.com.
    """
    domains = "|".join(_SHOP_DOMAINS + _custom_domains(config))
    shop_url_re = re.compile(rf"^[a-zA-Z0-9][a-zA-Z0-9-_]*\.({domains})[/]*$")
    shop_admin_re = re.compile(rf"^admin\.({domains})/store/([a-zA-Z0-9][a-zA-Z0-9-_]*)$")

    admin_match = shop_admin_re.match(shop or "")
    if admin_match:
        shop = f"{admin_match.group(2)}.myshopify.com"

    sanitized = shop if shop and shop_url_re.match(shop) else None
    if sanitized is None and throw_on_invalid:
        raise InvalidShopError("Received invalid shop argument")
    return sanitized


def sanitize_host(config: ShopifyConfig, host: str, throw_on_invalid: bool = False) -> str | None:
    """Return the base64 host parameter if it decodes to a Shopify origin."""
    sanitized: str | None = host if host and _BASE64_RE.match(host) else None

    if sanitized is not None:
        try:
            decoded = base64.b64decode(sanitized).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            sanitized = None
        else:
            hostname = urlsplit(f"https://{decoded}").hostname or ""
            origins = "|".join(_HOST_ORIGINS + _custom_domains(config))
            if not re.search(rf"\.({origins})$", hostname):
                sanitized = None

    if sanitized is None and throw_on_invalid:
        raise InvalidHostError("Received invalid host argument")
    return sanitized
