"""Contracts and shared types for the Withings OAuth client."""

from __future__ import annotations

import math
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from .models import SdkBaseModel

if TYPE_CHECKING:
    from .transport import HttpTransport

# Anything above 2012-10-01 is read as an absolute expiry timestamp.
_OAUTH2_INITIAL_DATE = 1349067600

_RESERVED_TOKEN_KEYS = frozenset(
    {"access_token", "resource_owner_id", "refresh_token", "expires_in", "expires"}
)


class ProviderError(Exception):
    """Standardized provider error with HTTP-style status information."""

    def __init__(self, error: str, description: str | None = None, status_code: int = 400):
        super().__init__(description or error)
        self.error = error
        self.description = description
        self.status_code = status_code


class IdentityProviderError(ProviderError):
    """Error reported by the identity provider, carrying the parsed response body."""

    def __init__(self, message: str, code: int, response_body: Mapping[str, Any] | str | None):
        super().__init__("identity_provider_error", message, status_code=code)
        self.code = code
        self.response_body = response_body


class InvalidProviderResponse(IdentityProviderError):
    """The provider answered with a malformed envelope."""

    def __init__(self, message: str, response_body: Mapping[str, Any] | str | None):
        super().__init__(message, 0, response_body)
        self.error = "invalid_response"


class UnexpectedResponseError(ProviderError):
    """The provider answered with a body that could not be interpreted."""

    def __init__(self, description: str, status_code: int = 502):
        super().__init__("invalid_response", description, status_code=status_code)


class ClientCredentials(SdkBaseModel):
    """OAuth client credentials owned by a provider adapter."""

    client_id: str
    client_secret: str
    redirect_uri: str


class AccessToken(SdkBaseModel):
    """Access token issued by a provider.

    Keys of the token response that have no dedicated field are kept in
    `values`.
    """

    access_token: str
    refresh_token: str | None = None
    expires: int | None = None
    resource_owner_id: str | None = None
    values: dict[str, Any] = {}

    @classmethod
    def from_response(cls, data: Mapping[str, Any], *, now: float | None = None) -> AccessToken:
        """Build a token from an (already unwrapped) token response.

        Raises:
            ValueError: If `access_token` is missing or `expires_in` is not numeric.
        """
        if not data.get("access_token"):
            raise ValueError('Required option not passed: "access_token"')

        current = int(now if now is not None else time.time())
        expires: int | None = None
        if data.get("expires_in") is not None:
            expires_in = data["expires_in"]
            if isinstance(expires_in, bool) or not _is_numeric(expires_in):
                raise ValueError("expires_in value must be an integer")
            expires_in = int(float(expires_in))
            expires = current + expires_in if expires_in != 0 else 0
        elif data.get("expires"):
            expires = int(data["expires"])
            if expires <= _OAUTH2_INITIAL_DATE:
                expires += current

        resource_owner_id = data.get("resource_owner_id")
        refresh_token = data.get("refresh_token")
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=str(refresh_token) if refresh_token is not None else None,
            expires=expires,
            resource_owner_id=str(resource_owner_id) if resource_owner_id is not None else None,
            values={k: v for k, v in data.items() if k not in _RESERVED_TOKEN_KEYS},
        )

    def has_expired(self, *, now: float | None = None) -> bool:
        if self.expires is None:
            raise RuntimeError('"expires" is not set on the token')
        return self.expires <= (now if now is not None else time.time())

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the OAuth2 token-response shape."""
        payload = dict(self.values)
        payload["access_token"] = self.access_token
        if self.refresh_token is not None:
            payload["refresh_token"] = self.refresh_token
        if self.expires is not None:
            payload["expires"] = self.expires
        if self.resource_owner_id is not None:
            payload["resource_owner_id"] = self.resource_owner_id
        return payload

    def __str__(self) -> str:
        return self.access_token


def _is_numeric(value: Any) -> bool:
    if isinstance(value, int):
        return True
    try:
        number = float(str(value))
    except ValueError:
        return False
    # int() cannot represent inf or nan.
    return math.isfinite(number)


class GenericResourceOwner:
    """Key/value view over a resource-owner details response."""

    def __init__(self, response: Mapping[str, Any], resource_owner_id_key: str):
        self._response = dict(response)
        self._resource_owner_id_key = resource_owner_id_key

    @property
    def id(self) -> Any:
        return self._response.get(self._resource_owner_id_key)

    def get(self, key: str, default: Any = None) -> Any:
        return self._response.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._response)

    def __repr__(self) -> str:
        return f"GenericResourceOwner(id={self.id!r})"


TokenLike = AccessToken | str


def token_value(token: TokenLike) -> str:
    """Return the bearer string of an AccessToken or raw token."""
    return token.access_token if isinstance(token, AccessToken) else token


@runtime_checkable
class ProviderAdapter(Protocol):
    """Interface all provider adapters must implement.

    The generic `OAuth2Client` supplies its defaults and calls these extension
    points to obtain provider-specific URLs and behavior.
    """

    provider_name: str
    credentials: ClientCredentials
    scope_separator: str
    access_token_method: str
    resource_owner_id_key: str | None

    def base_authorization_url(self) -> str:
        """Authorization endpoint without query string."""

    def base_access_token_url(self, params: Mapping[str, Any]) -> str:
        """Token endpoint for the given request parameters."""

    def resource_owner_details_url(self, token: TokenLike) -> str:
        """URL returning the resource owner's profile/details."""

    def default_scopes(self) -> list[str]:
        """Scopes requested when the caller asks for none."""

    def filter_authorization_parameters(
        self, params: dict[str, Any], options: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Adjust the engine's authorization parameters for this provider."""

    def prepare_access_token_options(self, options: Mapping[str, Any]) -> dict[str, Any]:
        """Adjust caller options before a token request is built."""

    def check_response(self, response: httpx.Response, data: Mapping[str, Any] | str) -> None:
        """Raise IdentityProviderError when the parsed body reports an error."""

    def unwrap_token_response(self, result: Mapping[str, Any]) -> dict[str, Any]:
        """Return the token payload from a provider token response."""

    def create_resource_owner(
        self, response: Mapping[str, Any], token: TokenLike
    ) -> GenericResourceOwner:
        """Build a resource owner from a successful details response."""

    def authorization_headers(self, token: TokenLike | None = None) -> dict[str, str]:
        """Headers authenticating a request with the given token."""

    async def revoke(self, token: TokenLike, transport: HttpTransport) -> httpx.Response:
        """Revoke a token, returning the raw HTTP response."""


__all__ = [
    "AccessToken",
    "ClientCredentials",
    "GenericResourceOwner",
    "IdentityProviderError",
    "InvalidProviderResponse",
    "ProviderAdapter",
    "ProviderError",
    "TokenLike",
    "UnexpectedResponseError",
    "token_value",
]
