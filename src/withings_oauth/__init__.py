"""Withings OAuth2 - provider adapter and OAuth2 client for the Withings API.

## Key Components

- `WithingsProviderAdapter`: Withings URLs, scopes, envelope unwrapping,
  error checking and token revocation
- `OAuth2Client`: drives the authorization-code flow through a `ProviderAdapter`
- `WithingsAuthConfigModel` / `load_withings_config()`: client configuration

## Quick Example

```python
from withings_oauth import OAuth2Client, WithingsAuthConfigModel, WithingsProviderAdapter

adapter = WithingsProviderAdapter(
    WithingsAuthConfigModel(
        client_id="your-client-id",
        client_secret="your-secret",
        redirect_uri="https://example.com/withings/callback",
    )
)
client = OAuth2Client(adapter)

request = client.get_authorization_url(prompt="consent")
# redirect the user to request.url, keep request.state

token = await client.get_access_token("authorization_code", code=code)
owner = await client.get_resource_owner(token)
await client.revoke(token)
```
"""

from .bearer import BearerAuthorization
from .client import AuthorizationRequest, OAuth2Client
from .config import load_withings_config
from .contracts import (
    AccessToken,
    ClientCredentials,
    GenericResourceOwner,
    IdentityProviderError,
    InvalidProviderResponse,
    ProviderAdapter,
    ProviderError,
    UnexpectedResponseError,
)
from .grants import AuthorizationCode, ClientCredentialsGrant, Grant, Password, RefreshToken
from .models import WithingsAuthConfigModel
from .providers import WithingsProviderAdapter, create_withings_client
from .transport import HttpTransport, create_http_client

__all__ = [
    "AccessToken",
    "AuthorizationCode",
    "AuthorizationRequest",
    "BearerAuthorization",
    "ClientCredentials",
    "ClientCredentialsGrant",
    "GenericResourceOwner",
    "Grant",
    "HttpTransport",
    "IdentityProviderError",
    "InvalidProviderResponse",
    "OAuth2Client",
    "Password",
    "ProviderAdapter",
    "ProviderError",
    "RefreshToken",
    "UnexpectedResponseError",
    "WithingsAuthConfigModel",
    "WithingsProviderAdapter",
    "create_http_client",
    "create_withings_client",
    "load_withings_config",
]
