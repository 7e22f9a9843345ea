"""Pydantic models for the Withings OAuth client.

This module provides the base model class that all package models inherit from,
plus the configuration model used to build a Withings provider adapter.

## Security-relevant configuration fields

- `redirect_uri`: affects redirect binding and open-redirect risk.
- `scope`: affects what permissions are requested from Withings.
- `account_url` / `api_url`: control where credentials and tokens are sent.

Treat changes to these fields as security-sensitive.

Example:
    >>> from withings_oauth.models import WithingsAuthConfigModel
    >>> config = WithingsAuthConfigModel(
    ...     client_id="cid",
    ...     client_secret="secret",
    ...     redirect_uri="https://example.com/callback",
    ... )
    >>> config.api_url
    'https://wbsapi.withings.net'
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

WITHINGS_ACCOUNT_URL = "https://account.withings.com"
WITHINGS_API_URL = "https://wbsapi.withings.net"


class SdkBaseModel(BaseModel):
    """Base model for all package Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable for thread safety
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


class WithingsAuthConfigModel(SdkBaseModel):
    """Withings OAuth provider configuration.

    Only the client credentials are required; endpoints default to the
    production Withings hosts.
    """

    client_id: str
    client_secret: str
    redirect_uri: str
    # Optional override of the provider default scopes, space or comma separated.
    scope: str | None = None
    pkce_method: Literal["S256", "plain"] | None = None
    account_url: str = WITHINGS_ACCOUNT_URL
    api_url: str = WITHINGS_API_URL
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("account_url", "api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def scopes(self) -> list[str] | None:
        """Configured scopes as a list, or None when the defaults apply."""
        if not self.scope:
            return None
        return [s for s in self.scope.replace(",", " ").split(" ") if s]
