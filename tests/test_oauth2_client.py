import base64
import hashlib
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from withings_oauth.bearer import BearerAuthorization
from withings_oauth.client import OAuth2Client, pkce_challenge
from withings_oauth.contracts import (
    ClientCredentials,
    GenericResourceOwner,
    TokenLike,
    UnexpectedResponseError,
    token_value,
)
from withings_oauth.grants import RefreshToken
from withings_oauth.models import WithingsAuthConfigModel
from withings_oauth.providers.withings import create_withings_client
from withings_oauth.transport import HttpTransport
from tests.provider_adapter_testkit import FakeAsyncHttpClient, json_response, text_response


class _PlainAdapter:
    """Standard OAuth2 provider without envelopes, used to exercise the generic client."""

    provider_name = "plain"
    scope_separator = " "
    resource_owner_id_key: str | None = "id"

    def __init__(self, access_token_method: str = "POST") -> None:
        self.access_token_method = access_token_method
        self.credentials = ClientCredentials(
            client_id="cid", client_secret="secret", redirect_uri="https://app/callback"
        )
        self._bearer = BearerAuthorization()

    def base_authorization_url(self) -> str:
        return "https://idp.example.com/authorize"

    def base_access_token_url(self, params: Mapping[str, Any]) -> str:
        return "https://idp.example.com/token"

    def resource_owner_details_url(self, token: TokenLike) -> str:
        return "https://idp.example.com/me"

    def default_scopes(self) -> list[str]:
        return ["read", "write"]

    def filter_authorization_parameters(
        self, params: dict[str, Any], options: Mapping[str, Any]
    ) -> dict[str, Any]:
        return params

    def prepare_access_token_options(self, options: Mapping[str, Any]) -> dict[str, Any]:
        return dict(options)

    def check_response(self, response: httpx.Response, data: Mapping[str, Any] | str) -> None:
        return None

    def unwrap_token_response(self, result: Mapping[str, Any]) -> dict[str, Any]:
        return dict(result)

    def create_resource_owner(
        self, response: Mapping[str, Any], token: TokenLike
    ) -> GenericResourceOwner:
        return GenericResourceOwner(response, "id")

    def authorization_headers(self, token: TokenLike | None = None) -> dict[str, str]:
        return self._bearer.headers(token)

    async def revoke(self, token: TokenLike, transport: HttpTransport) -> httpx.Response:
        request = transport.build_request("POST", f"https://idp.example.com/revoke/{token_value(token)}")
        return await transport.send(request)


def _client(adapter: Any, fake: FakeAsyncHttpClient | None = None, **kwargs: Any) -> OAuth2Client:
    return OAuth2Client(adapter, HttpTransport(fake), **kwargs)  # type: ignore[arg-type]


def test_authorization_url_generic_defaults() -> None:
    request = _client(_PlainAdapter()).get_authorization_url()
    query = parse_qs(urlsplit(request.url).query)

    assert query["scope"] == ["read write"]
    assert query["response_type"] == ["code"]
    assert query["approval_prompt"] == ["auto"]
    assert query["redirect_uri"] == ["https://app/callback"]
    assert query["client_id"] == ["cid"]
    assert len(request.state) == 32
    assert request.code_verifier is None
    assert "code_challenge" not in query


def test_authorization_url_generates_fresh_state_per_call() -> None:
    client = _client(_PlainAdapter())
    assert client.get_authorization_url().state != client.get_authorization_url().state


def test_authorization_url_drops_none_options() -> None:
    request = _client(_PlainAdapter()).get_authorization_url(redirect_uri=None, login_hint=None)
    query = parse_qs(urlsplit(request.url).query)

    assert query["redirect_uri"] == ["https://app/callback"]
    assert "login_hint" not in query
    assert "None" not in request.url


def test_authorization_url_passes_caller_options_through() -> None:
    request = _client(_PlainAdapter()).get_authorization_url(
        state="s1", scope="custom", redirect_uri="https://other/cb", login_hint="me"
    )
    query = parse_qs(urlsplit(request.url).query)

    assert request.state == "s1"
    assert query["scope"] == ["custom"]
    assert query["redirect_uri"] == ["https://other/cb"]
    assert query["login_hint"] == ["me"]


def test_client_id_cannot_be_overridden() -> None:
    url = _client(_PlainAdapter()).get_authorization_url(client_id="evil").url
    assert parse_qs(urlsplit(url).query)["client_id"] == ["cid"]


def test_authorization_url_with_pkce_s256() -> None:
    request = _client(_PlainAdapter(), pkce_method="S256").get_authorization_url(
        code_verifier="verifier"
    )
    query = parse_qs(urlsplit(request.url).query)

    expected = (
        base64.urlsafe_b64encode(hashlib.sha256(b"verifier").digest()).decode().rstrip("=")
    )
    assert request.code_verifier == "verifier"
    assert query["code_challenge"] == [expected]
    assert query["code_challenge_method"] == ["S256"]
    assert "code_verifier" not in query


def test_authorization_url_with_generated_pkce_verifier() -> None:
    request = _client(_PlainAdapter(), pkce_method="plain").get_authorization_url()
    query = parse_qs(urlsplit(request.url).query)

    assert request.code_verifier
    assert query["code_challenge"] == [request.code_verifier]
    assert query["code_challenge_method"] == ["plain"]


def test_unsupported_pkce_method_is_rejected() -> None:
    with pytest.raises(ValueError):
        _client(_PlainAdapter(), pkce_method="S512")
    with pytest.raises(ValueError):
        pkce_challenge("v", "S512")


def test_withings_pkce_from_config() -> None:
    client = create_withings_client(
        WithingsAuthConfigModel(
            client_id="cid", client_secret="secret", redirect_uri="none", pkce_method="S256"
        )
    )
    request = client.get_authorization_url()
    assert "code_challenge" in parse_qs(urlsplit(request.url).query)


@pytest.mark.asyncio
async def test_get_access_token_maps_resource_owner_id_and_expiry() -> None:
    fake = FakeAsyncHttpClient(
        default_response=json_response(
            200, {"access_token": "at", "expires_in": 3600, "id": 7, "token_type": "Bearer"}
        )
    )

    token = await _client(_PlainAdapter(), fake).get_access_token(
        "authorization_code", code="c", scope=["a", "b"]
    )

    assert token.access_token == "at"
    assert token.resource_owner_id == "7"
    assert token.expires is not None
    assert parse_qs(fake.last_request.content.decode())["scope"] == ["a b"]


@pytest.mark.asyncio
async def test_get_access_token_accepts_grant_instances() -> None:
    fake = FakeAsyncHttpClient(default_response=json_response(200, {"access_token": "at"}))

    await _client(_PlainAdapter(), fake).get_access_token(RefreshToken(), refresh_token="rt")

    assert parse_qs(fake.last_request.content.decode())["grant_type"] == ["refresh_token"]


@pytest.mark.asyncio
async def test_get_access_token_with_get_method_uses_query() -> None:
    fake = FakeAsyncHttpClient(default_response=json_response(200, {"access_token": "at"}))

    await _client(_PlainAdapter("GET"), fake).get_access_token("client_credentials")

    request = fake.last_request
    assert request.method == "GET"
    assert parse_qs(urlsplit(str(request.url)).query)["grant_type"] == ["client_credentials"]
    assert request.content == b""


@pytest.mark.asyncio
async def test_get_access_token_requires_grant_parameters() -> None:
    fake = FakeAsyncHttpClient()

    with pytest.raises(ValueError, match='"code"'):
        await _client(_PlainAdapter(), fake).get_access_token("authorization_code")
    with pytest.raises(ValueError, match="not supported"):
        await _client(_PlainAdapter(), fake).get_access_token("device_code")
    assert fake.requests == []


@pytest.mark.asyncio
async def test_get_access_token_rejects_non_json_body() -> None:
    fake = FakeAsyncHttpClient(default_response=text_response(200, "not json"))

    with pytest.raises(UnexpectedResponseError):
        await _client(_PlainAdapter(), fake).get_access_token("authorization_code", code="c")


@pytest.mark.asyncio
async def test_get_access_token_requires_access_token_in_body() -> None:
    fake = FakeAsyncHttpClient(default_response=json_response(200, {"token_type": "Bearer"}))

    with pytest.raises(ValueError, match="access_token"):
        await _client(_PlainAdapter(), fake).get_access_token("authorization_code", code="c")


@pytest.mark.asyncio
async def test_get_resource_owner_uses_bearer_header() -> None:
    fake = FakeAsyncHttpClient(default_response=json_response(200, {"id": "u1", "name": "Ann"}))

    owner = await _client(_PlainAdapter(), fake).get_resource_owner("at")

    assert fake.last_request.headers["authorization"] == "Bearer at"
    assert owner.id == "u1"
    assert owner.get("name") == "Ann"


@pytest.mark.asyncio
async def test_get_resource_owner_rejects_non_mapping_body() -> None:
    fake = FakeAsyncHttpClient(default_response=json_response(200, ["a", "b"]))

    with pytest.raises(UnexpectedResponseError):
        await _client(_PlainAdapter(), fake).get_resource_owner("at")


@pytest.mark.asyncio
async def test_revoke_delegates_to_adapter() -> None:
    fake = FakeAsyncHttpClient(default_response=httpx.Response(204))

    response = await _client(_PlainAdapter(), fake).revoke("at")

    assert response.status_code == 204
    assert fake.last_request.url.path == "/revoke/at"
