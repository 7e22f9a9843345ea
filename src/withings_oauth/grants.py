"""OAuth2 grant types understood by `OAuth2Client`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class Grant:
    """Base grant: names the `grant_type` and the parameters it requires."""

    name: str = ""
    required_parameters: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.name

    def prepare_request_parameters(
        self, defaults: Mapping[str, Any], options: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Merge defaults, `grant_type` and caller options into request parameters.

        Raises:
            ValueError: If a required parameter is missing from `options`.
        """
        provided = {**defaults, **options}
        for name in self.required_parameters:
            if not provided.get(name):
                raise ValueError(f'Required parameter not passed: "{name}"')
        params = dict(defaults)
        params["grant_type"] = self.name
        params.update(options)
        return params


class AuthorizationCode(Grant):
    name = "authorization_code"
    required_parameters = ("code",)


class RefreshToken(Grant):
    name = "refresh_token"
    required_parameters = ("refresh_token",)


class ClientCredentialsGrant(Grant):
    name = "client_credentials"


class Password(Grant):
    name = "password"
    required_parameters = ("username", "password")


_GRANTS: dict[str, type[Grant]] = {
    grant.name: grant for grant in (AuthorizationCode, RefreshToken, ClientCredentialsGrant, Password)
}


def get_grant(grant: str | Grant) -> Grant:
    """Resolve a grant name (or pass through a Grant instance)."""
    if isinstance(grant, Grant):
        return grant
    try:
        return _GRANTS[grant]()
    except KeyError:
        raise ValueError(f'Grant "{grant}" is not supported') from None
