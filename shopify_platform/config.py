"""Library configuration.

Settings are read from SHOPIFY_* environment variables (and an optional
.env file), or passed explicitly when constructing ShopifyConfig.
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

from shopify_platform.errors import ConfigError
from shopify_platform.logger import LogSeverity

# Default Admin API version requested when none is configured
LATEST_API_VERSION = "2024-10"


class ShopifyConfig(BaseSettings):
    """Environment-driven settings for one Shopify app."""

    api_key: str = ""
    api_secret_key: str = ""
    scopes: Annotated[list[str], NoDecode] = Field(default_factory=list)
    host_name: str = ""
    host_scheme: Literal["http", "https"] = "https"
    api_version: str = LATEST_API_VERSION
    is_embedded_app: bool = True
    is_private_app: bool = False
    user_agent_prefix: str | None = None
    private_app_storefront_access_token: str | None = None
    custom_shop_domains: Annotated[list[Any], NoDecode] = Field(default_factory=list)

    # callable(severity, message); never read from the environment
    log_function: Callable[..., Any] | None = Field(default=None, exclude=True)
    log_level: LogSeverity = LogSeverity.INFO

    request_timeout: float = 30.0

    model_config = {
        "env_prefix": "SHOPIFY_",
        "env_file": ".env",
        "extra": "ignore",
        "validate_assignment": True,
    }

    @field_validator("scopes", "custom_shop_domains", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return LogSeverity[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown log level {value!r}") from None
        return value

    @model_validator(mode="after")
    def _check_required(self) -> ShopifyConfig:
        missing = []
        if not self.api_secret_key:
            missing.append("api_secret_key")
        if not self.host_name:
            missing.append("host_name")
        if not self.api_key and not self.is_private_app:
            missing.append("api_key")
        if missing:
            raise ValueError(f"Missing required config values: {', '.join(missing)}")
        if "://" in self.host_name:
            raise ValueError("host_name must not include a scheme, use host_scheme instead")
        return self

    @property
    def app_url(self) -> str:
        return f"{self.host_scheme}://{self.host_name}"


def load_config(**overrides: Any) -> ShopifyConfig:
    """Build a validated ShopifyConfig, raising ConfigError on bad input."""
    try:
        return ShopifyConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
