"""
JWKS client package.

Contains logic for retrieving and caching the identity authority's JSON Web
Key Set used to verify user token signatures.

Key points:
- The whole key set is replaced on refresh, never patched in place.
- Unknown key ids trigger a refresh at most once per cooldown interval.
- Timeouts belong to the HTTP client; nothing here retries a failed fetch.
"""

from .client import (  # noqa: F401
    DEFAULT_COOLDOWN_SECONDS,
    JWKS_PATH,
    JWKSFetcher,
    RemoteKeySetCache,
)
