"""Generic OAuth2 client driving the authorization-code flow through a ProviderAdapter."""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from .contracts import (
    AccessToken,
    GenericResourceOwner,
    ProviderAdapter,
    TokenLike,
    UnexpectedResponseError,
)
from .grants import Grant, get_grant
from .transport import METHOD_GET, HttpTransport, append_query, build_query_string

logger = logging.getLogger(__name__)

PKCE_METHOD_S256 = "S256"
PKCE_METHOD_PLAIN = "plain"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization URL plus the per-flow values the caller must keep."""

    url: str
    state: str
    code_verifier: str | None = None


def random_state(length: int = 32) -> str:
    return secrets.token_hex(length // 2)


def pkce_challenge(code_verifier: str, method: str) -> str:
    if method == PKCE_METHOD_PLAIN:
        return code_verifier
    if method == PKCE_METHOD_S256:
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    raise ValueError(f"Unsupported PKCE method: {method}")


class OAuth2Client:
    """Provider-agnostic OAuth2 client.

    The client owns the generic parts of the protocol (state, PKCE, grant
    parameters, token interpretation) and asks the adapter for everything
    provider-specific.

    Args:
        adapter: Provider adapter supplying URLs, scopes and response handling
        transport: HTTP transport; a default `HttpTransport` when omitted
        pkce_method: "S256" or "plain" to send a PKCE challenge, None to skip it
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        transport: HttpTransport | None = None,
        *,
        pkce_method: str | None = None,
    ):
        if pkce_method not in (None, PKCE_METHOD_S256, PKCE_METHOD_PLAIN):
            raise ValueError(f"Unsupported PKCE method: {pkce_method}")
        self.adapter = adapter
        self.transport = transport or HttpTransport()
        self.pkce_method = pkce_method

    # ----- authorize -----
    def get_authorization_parameters(self, options: Mapping[str, Any]) -> tuple[dict[str, Any], str | None]:
        """Generic authorization parameters, filtered by the adapter.

        Returns the parameters and the PKCE code verifier (if any).
        """
        params: dict[str, Any] = dict(options)
        params.pop("code_verifier", None)
        if not params.get("state"):
            params["state"] = random_state()
        if not params.get("scope"):
            params["scope"] = self.adapter.default_scopes()
        params.setdefault("response_type", "code")
        params.setdefault("approval_prompt", "auto")

        scope = params["scope"]
        if isinstance(scope, (list, tuple)):
            params["scope"] = self.adapter.scope_separator.join(scope)

        code_verifier: str | None = None
        if self.pkce_method:
            code_verifier = options.get("code_verifier") or secrets.token_urlsafe(48)
            params["code_challenge"] = pkce_challenge(code_verifier, self.pkce_method)
            params["code_challenge_method"] = self.pkce_method

        credentials = self.adapter.credentials
        if params.get("redirect_uri") is None:
            params["redirect_uri"] = credentials.redirect_uri
        params["client_id"] = credentials.client_id

        return self.adapter.filter_authorization_parameters(params, options), code_verifier

    def get_authorization_url(self, **options: Any) -> AuthorizationRequest:
        """Build the URL the resource owner is redirected to."""
        params, code_verifier = self.get_authorization_parameters(options)
        url = append_query(self.adapter.base_authorization_url(), build_query_string(params))
        return AuthorizationRequest(url=url, state=params["state"], code_verifier=code_verifier)

    # ----- token -----
    async def get_access_token(self, grant: str | Grant, **options: Any) -> AccessToken:
        """Request an access token using the given grant and options.

        Raises:
            IdentityProviderError: If the provider reports an error or a malformed envelope
            UnexpectedResponseError: If the token response is not a JSON object
            ValueError: If the grant is unknown or a required parameter is missing
        """
        resolved = get_grant(grant)
        options = self.adapter.prepare_access_token_options(options)

        scope = options.get("scope")
        if isinstance(scope, (list, tuple)):
            options["scope"] = self.adapter.scope_separator.join(scope)

        credentials = self.adapter.credentials
        defaults: dict[str, Any] = {
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": credentials.redirect_uri,
        }
        params = resolved.prepare_request_parameters(defaults, options)

        request = self.get_access_token_request(params)
        logger.debug(
            "Requesting access token",
            extra={"provider": self.adapter.provider_name, "grant_type": resolved.name},
        )
        response = await self.get_parsed_response(request)
        if not isinstance(response, Mapping):
            raise UnexpectedResponseError(
                "Invalid response received from Authorization Server. Expected JSON."
            )

        prepared = self.prepare_access_token_response(response)
        return AccessToken.from_response(prepared)

    def get_access_token_request(self, params: Mapping[str, Any]) -> httpx.Request:
        method = self.adapter.access_token_method
        url = self.adapter.base_access_token_url(params)
        if method.upper() == METHOD_GET:
            url = append_query(url, build_query_string(params))
        options = self.transport.access_token_options(method, params)
        return self.transport.build_request(
            method, url, headers=options.get("headers"), body=options.get("body")
        )

    def prepare_access_token_response(self, result: Mapping[str, Any]) -> dict[str, Any]:
        """Unwrap the provider response, then map the resource owner id."""
        prepared = dict(self.adapter.unwrap_token_response(result))
        key = self.adapter.resource_owner_id_key
        if key is not None:
            prepared["resource_owner_id"] = prepared.get(key)
        return prepared

    # ----- resource owner -----
    async def get_resource_owner(self, token: TokenLike) -> GenericResourceOwner:
        """Fetch the resource owner's details for the given token."""
        response = await self.fetch_resource_owner_details(token)
        return self.adapter.create_resource_owner(response, token)

    async def fetch_resource_owner_details(self, token: TokenLike) -> dict[str, Any]:
        url = self.adapter.resource_owner_details_url(token)
        request = self.get_authenticated_request(METHOD_GET, url, token)
        response = await self.get_parsed_response(request)
        if not isinstance(response, Mapping):
            raise UnexpectedResponseError(
                "Invalid response received from Authorization Server. Expected JSON."
            )
        return dict(response)

    def get_authenticated_request(
        self,
        method: str,
        url: str,
        token: TokenLike,
        *,
        headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> httpx.Request:
        merged = {**dict(headers or {}), **self.adapter.authorization_headers(token)}
        return self.transport.build_request(method, url, headers=merged, body=body)

    # ----- responses -----
    async def get_response(self, request: httpx.Request) -> httpx.Response:
        return await self.transport.send(request)

    async def get_parsed_response(self, request: httpx.Request) -> Any:
        """Send a request and return its parsed body after the adapter's error check."""
        response = await self.get_response(request)
        parsed = self.transport.parse_response(response)
        self.adapter.check_response(response, parsed)
        return parsed

    # ----- revoke -----
    async def revoke(self, token: TokenLike) -> httpx.Response:
        return await self.adapter.revoke(token, self.transport)
