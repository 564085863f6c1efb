"""
Backend-to-backend token package.

- types: the TokenManager contract and TokenResponse model.
- key_store: ordered shared secrets with an initialize-once signing key.
- server_token_manager: HS256 issuing/verification plus the insecure noop
  variant for local setups.
"""

from .key_store import KeyStore, KeyStoreState  # noqa: F401
from .server_token_manager import (  # noqa: F401
    SERVER_SUBJECT,
    NoopTokenManager,
    ServerTokenManager,
)
from .types import TokenManager, TokenResponse  # noqa: F401

__all__ = [
    "KeyStore",
    "KeyStoreState",
    "NoopTokenManager",
    "SERVER_SUBJECT",
    "ServerTokenManager",
    "TokenManager",
    "TokenResponse",
]
