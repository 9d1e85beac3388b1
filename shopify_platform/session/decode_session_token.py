"""App Bridge session token (JWT) verification."""

from __future__ import annotations

import logging

from jose import JWTError, jwt

from shopify_platform.config import ShopifyConfig
from shopify_platform.errors import InvalidJwtError
from shopify_platform.session.session import JwtPayload

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_CLOCK_TOLERANCE_SECONDS = 10

_REQUIRED_CLAIMS = ("iss", "dest", "aud", "sub", "exp", "nbf", "iat", "jti", "sid")


def decode_session_token(config: ShopifyConfig, token: str) -> JwtPayload:
    """Verify a session token signed with the app secret and return its claims.

    Raises InvalidJwtError when the signature, timing claims or audience
    do not check out.
    """
    try:
        claims = jwt.decode(
            token,
            config.api_secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_aud": False, "leeway": _CLOCK_TOLERANCE_SECONDS},
        )
    except JWTError as e:
        logger.debug("Session token rejected: %s", e)
        raise InvalidJwtError(f"Failed to parse session token: {e}") from e

    if claims.get("aud") != config.api_key:
        raise InvalidJwtError("Session token had invalid API key")

    missing = [name for name in _REQUIRED_CLAIMS if name not in claims]
    if missing:
        raise InvalidJwtError(f"Session token is missing claims: {', '.join(missing)}")

    known = {name: claims[name] for name in _REQUIRED_CLAIMS}
    extra = {k: v for k, v in claims.items() if k not in known}
    return JwtPayload(**known, extra=extra)
