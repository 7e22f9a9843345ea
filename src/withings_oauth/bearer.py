"""Bearer authorization helper shared by provider adapters."""

from __future__ import annotations

from .contracts import TokenLike, token_value


class BearerAuthorization:
    """Builds `Authorization: Bearer <token>` headers.

    Adapters hold an instance of this helper and delegate
    `authorization_headers()` to it.
    """

    scheme = "Bearer"

    def headers(self, token: TokenLike | None = None) -> dict[str, str]:
        if token is None:
            return {}
        return {"Authorization": f"{self.scheme} {token_value(token)}"}
