"""HTTP request construction, retrieval and body parsing for OAuth2 calls."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode

import httpx

from .contracts import UnexpectedResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

METHOD_GET = "GET"
METHOD_POST = "POST"


def create_http_client(timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.AsyncClient:
    """Create a short-lived async HTTP client with the package defaults."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), follow_redirects=True)


def append_query(url: str, query: str) -> str:
    """Append an encoded query string to a URL that may already carry one."""
    query = query.strip("?&")
    if not query:
        return url
    glue = "&" if "?" in url else "?"
    return f"{url}{glue}{query}"


def build_query_string(params: Mapping[str, Any]) -> str:
    return urlencode([(k, v) for k, v in params.items() if v is not None], doseq=True)


class HttpTransport:
    """Builds requests and retrieves responses for the OAuth2 client.

    When no `client` is injected, each call opens a short-lived client from
    `create_http_client()`. Retries and timeouts are the client's concern.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.timeout_seconds = timeout_seconds

    def access_token_options(
        self, method: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Request options for a token-endpoint call.

        POST requests carry the parameters as a form-encoded body.
        """
        options: dict[str, Any] = {"headers": {"content-type": "application/x-www-form-urlencoded"}}
        if method.upper() == METHOD_POST:
            options["body"] = build_query_string(params)
        return options

    def build_request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> httpx.Request:
        return httpx.Request(method.upper(), url, headers=dict(headers or {}), content=body)

    async def send(self, request: httpx.Request) -> httpx.Response:
        logger.debug(
            "Sending OAuth2 request",
            extra={"method": request.method, "path": request.url.path},
        )
        if self._client is not None:
            return await self._client.send(request)
        async with create_http_client(self.timeout_seconds) as client:
            return await client.send(request)

    def parse_response(self, response: httpx.Response) -> dict[str, Any] | list[Any] | str:
        """Parse a response body as form data, JSON, or raw text.

        Raises:
            UnexpectedResponseError: If a JSON body is required but unreadable.
        """
        content_type = response.headers.get("content-type", "")
        text = response.text

        if "urlencoded" in content_type:
            return dict(parse_qsl(text, keep_blank_values=True))

        try:
            return response.json()
        except ValueError as exc:
            if "json" in content_type:
                raise UnexpectedResponseError(
                    f"Failed to parse JSON response: {exc}", status_code=response.status_code
                ) from exc
            if response.status_code == 500:
                raise UnexpectedResponseError(
                    "An OAuth server error was encountered that did not contain a JSON body",
                    status_code=500,
                ) from exc
            return text
