"""Shop session model.

A Session holds the access token for one shop (offline) or one shop user
(online). Storage adapters persist sessions through to_property_list()
and rebuild them with Session.from_property_list().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


def _parse_scopes(scopes: str | list[str] | None) -> set[str]:
    """Split scopes and add the read scopes implied by write scopes."""
    if scopes is None:
        return set()
    if isinstance(scopes, str):
        scopes = scopes.split(",")

    result = {s.strip() for s in scopes if s.strip()}
    # write_x implies read_x, unauthenticated_write_x implies unauthenticated_read_x
    implied = {
        scope.replace("write_", "read_", 1)
        for scope in result
        if scope.startswith(("write_", "unauthenticated_write_"))
    }
    return result | implied


def scopes_equal(a: str | list[str] | None, b: str | list[str] | None) -> bool:
    return _parse_scopes(a) == _parse_scopes(b)


@dataclass
class Session:
    """Access-token session for a shop."""

    id: str
    shop: str
    state: str
    is_online: bool
    scope: str | None = None
    expires: datetime | None = None
    access_token: str | None = None
    online_access_info: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        # naive expiry times are taken as UTC
        if self.expires is not None and self.expires.tzinfo is None:
            self.expires = self.expires.replace(tzinfo=timezone.utc)

    def is_active(self, scopes: str | list[str]) -> bool:
        return (
            not self.is_scope_changed(scopes)
            and bool(self.access_token)
            and not self.is_expired()
        )

    def is_scope_changed(self, scopes: str | list[str]) -> bool:
        return not scopes_equal(scopes, self.scope)

    def is_expired(self, within_ms: int = 0) -> bool:
        if self.expires is None:
            return False
        now = datetime.now(timezone.utc)
        return self.expires - timedelta(milliseconds=within_ms) <= now

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "shop": self.shop,
            "state": self.state,
            "is_online": self.is_online,
        }
        if self.scope is not None:
            data["scope"] = self.scope
        if self.expires is not None:
            data["expires"] = self.expires
        if self.access_token is not None:
            data["access_token"] = self.access_token
        if self.online_access_info is not None:
            data["online_access_info"] = self.online_access_info
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_property_list(self) -> list[tuple[str, str | int | bool]]:
        """Flatten to (key, primitive) pairs for key/value session stores.

        expires becomes epoch milliseconds and online_access_info is reduced
        to the associated user id.
        """
        entries: list[tuple[str, str | int | bool]] = []
        for key, value in self.to_dict().items():
            if key == "expires":
                entries.append((key, int(value.timestamp() * 1000)))
            elif key == "online_access_info":
                user_id = (value.get("associated_user") or {}).get("id")
                if user_id is not None:
                    entries.append((key, user_id))
            else:
                entries.append((key, value))
        return entries

    @classmethod
    def from_property_list(cls, entries: list[tuple[str, Any]]) -> Session:
        data: dict[str, Any] = {}
        for key, value in entries:
            key = key.lower()
            if key == "is_online":
                data["is_online"] = value if isinstance(value, bool) else str(value).lower() == "true"
            elif key == "expires":
                data["expires"] = datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
            elif key == "online_access_info":
                data["online_access_info"] = {"associated_user": {"id": int(value)}}
            else:
                data[key] = value
        return cls.from_dict(data)


@dataclass
class JwtPayload:
    """Claims of an App Bridge session token."""

    iss: str
    dest: str
    aud: str
    sub: str
    exp: int
    nbf: int
    iat: int
    jti: str
    sid: str
    extra: dict[str, Any] = field(default_factory=dict)
