"""OAuth provider implementations.

This module contains concrete implementations of OAuth providers.
"""

from .withings import (
    WithingsEnvelope,
    WithingsErrorEnvelope,
    WithingsProviderAdapter,
    WithingsStatus,
    create_withings_client,
)

__all__ = [
    "WithingsEnvelope",
    "WithingsErrorEnvelope",
    "WithingsProviderAdapter",
    "WithingsStatus",
    "create_withings_client",
]
