"""Withings OAuth ProviderAdapter implementation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ConfigDict, StrictInt, ValidationError

from ..bearer import BearerAuthorization
from ..client import OAuth2Client
from ..contracts import (
    ClientCredentials,
    GenericResourceOwner,
    IdentityProviderError,
    InvalidProviderResponse,
    ProviderAdapter,
    TokenLike,
    token_value,
)
from ..models import SdkBaseModel, WithingsAuthConfigModel
from ..transport import METHOD_POST, HttpTransport, append_query, build_query_string

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = ("user.info", "user.metrics", "user.activity")

# Withings requires this action on every token endpoint call.
TOKEN_ACTION = "requesttoken"


class WithingsStatus(SdkBaseModel):
    """The `status` field every Withings response carries."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    status: StrictInt


class WithingsEnvelope(WithingsStatus):
    """Successful `{status: 0, body}` wrapper around Withings responses."""

    body: dict[str, Any] | None = None


class WithingsErrorEnvelope(SdkBaseModel):
    """Error `{status?, error}` wrapper returned instead of a body."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    status: StrictInt | None = None
    error: str


class WithingsProviderAdapter(ProviderAdapter):
    """Withings ProviderAdapter plugged into `OAuth2Client`."""

    provider_name = "withings"
    scope_separator = ","
    access_token_method = METHOD_POST
    # Key used in a token response to identify the resource owner.
    resource_owner_id_key = "userid"

    def __init__(
        self,
        withings_config: WithingsAuthConfigModel,
        bearer: BearerAuthorization | None = None,
    ):
        self.credentials = ClientCredentials(
            client_id=withings_config.client_id,
            client_secret=withings_config.client_secret,
            redirect_uri=withings_config.redirect_uri,
        )
        self.account_url = withings_config.account_url
        self.api_url = withings_config.api_url
        self._scopes = withings_config.scopes
        self._bearer = bearer or BearerAuthorization()

    # ----- urls -----
    def base_authorization_url(self) -> str:
        return f"{self.account_url}/oauth2_user/authorize2"

    def base_access_token_url(self, params: Mapping[str, Any]) -> str:
        return f"{self.api_url}/v2/oauth2"

    def resource_owner_details_url(self, token: TokenLike) -> str:
        # The device endpoint takes the token in the query string.
        return f"{self.api_url}/v2/user?action=getdevice&access_token={token_value(token)}"

    def revoke_url(self, token: TokenLike) -> str:
        return append_query(
            f"{self.api_url}/notify?action=revoke",
            build_query_string({"token": token_value(token)}),
        )

    # ----- authorize -----
    def default_scopes(self) -> list[str]:
        """All scopes Withings offers. Request only the ones you need."""
        if self._scopes:
            return list(self._scopes)
        return list(DEFAULT_SCOPES)

    def filter_authorization_parameters(
        self, params: dict[str, Any], options: Mapping[str, Any]
    ) -> dict[str, Any]:
        # Withings does not understand approval_prompt.
        filtered = dict(params)
        filtered.pop("approval_prompt", None)
        filtered.pop("prompt", None)
        if options.get("prompt"):
            filtered["prompt"] = options["prompt"]
        return filtered

    # ----- token -----
    def prepare_access_token_options(self, options: Mapping[str, Any]) -> dict[str, Any]:
        prepared = dict(options)
        if not prepared.get("action"):
            prepared["action"] = TOKEN_ACTION
        return prepared

    def check_response(self, response: httpx.Response, data: Mapping[str, Any] | str) -> None:
        """Raise IdentityProviderError when the body carries an `error` key.

        The error code is the body's `status` when present, otherwise the HTTP status.
        """
        if not isinstance(data, Mapping) or "error" not in data:
            return
        try:
            envelope = WithingsErrorEnvelope.model_validate(dict(data))
        except ValidationError:
            message, code = str(data["error"]), response.status_code
        else:
            message = envelope.error
            code = envelope.status if envelope.status is not None else response.status_code
        logger.warning(
            "Withings endpoint returned an error",
            extra={
                "provider": self.provider_name,
                "status_code": response.status_code,
                "provider_error": code,
            },
        )
        raise IdentityProviderError(message, code, dict(data))

    def unwrap_token_response(self, result: Mapping[str, Any]) -> dict[str, Any]:
        """Return the `body` of a successful token envelope.

        Raises:
            InvalidProviderResponse: If `status` is missing or non-zero, or `body` is missing.
        """
        raw = dict(result)
        if "status" not in result:
            raise InvalidProviderResponse(
                "Invalid response received from Authorization Server. Missing status.", raw
            )

        try:
            status = WithingsStatus.model_validate({"status": result["status"]}).status
        except ValidationError as exc:
            raise InvalidProviderResponse(
                "Invalid response received from Authorization Server. Malformed status.", raw
            ) from exc

        if status != 0:
            logger.warning(
                "Withings token endpoint returned non-zero status",
                extra={
                    "provider": self.provider_name,
                    "endpoint": "token",
                    "provider_status": status,
                },
            )
            raise InvalidProviderResponse(
                f"Invalid response received from Authorization Server. Status code {status}.",
                raw,
            )

        # The body is only decoded once the status says it is a token payload.
        try:
            envelope = WithingsEnvelope.model_validate(raw)
        except ValidationError as exc:
            raise InvalidProviderResponse(
                "Invalid response received from Authorization Server. Malformed body.", raw
            ) from exc

        if envelope.body is None:
            raise InvalidProviderResponse(
                "Invalid response received from Authorization Server. Missing body.", raw
            )

        return dict(envelope.body)

    # ----- resource owner -----
    def create_resource_owner(
        self, response: Mapping[str, Any], token: TokenLike
    ) -> GenericResourceOwner:
        return GenericResourceOwner(response, self.resource_owner_id_key)

    def authorization_headers(self, token: TokenLike | None = None) -> dict[str, str]:
        return self._bearer.headers(token)

    # ----- revoke -----
    async def revoke(self, token: TokenLike, transport: HttpTransport) -> httpx.Response:
        """Revoke access for the given token and return the raw response."""
        options = transport.access_token_options(self.access_token_method, {})
        request = transport.build_request(
            METHOD_POST,
            self.revoke_url(token),
            headers=options.get("headers"),
            body=options.get("body"),
        )
        response = await transport.send(request)
        logger.info(
            "Withings revoke request completed",
            extra={
                "provider": self.provider_name,
                "endpoint": "revoke",
                "status_code": response.status_code,
            },
        )
        return response


def create_withings_client(
    withings_config: WithingsAuthConfigModel,
    http_client: httpx.AsyncClient | None = None,
) -> OAuth2Client:
    """Build an `OAuth2Client` wired to a Withings adapter from configuration."""
    transport = HttpTransport(http_client, timeout_seconds=withings_config.timeout_seconds)
    return OAuth2Client(
        WithingsProviderAdapter(withings_config),
        transport,
        pkce_method=withings_config.pkce_method,
    )
