"""
Shared-secret tokens for backend-to-backend authentication.

Every backend in the mesh is configured with the same ordered list of
secrets under ``backend.auth.keys``. Tokens are signed with the first secret
and accepted if any secret verifies them, so a new secret can be rolled out
at the end of the list, promoted to the front, and the old one removed.
"""

from __future__ import annotations

from secrets import token_bytes
from typing import Iterable, Optional

from jose import jwt
from jose.exceptions import JOSEError

from shared.config import AuthConfig
from shared.errors import AuthenticationError, ConfigurationError
from shared.logging import get_logger
from ..keys import SYMMETRIC_ALGORITHM, SymmetricKey
from .key_store import KeyStore
from .types import TokenManager, TokenResponse

SERVER_SUBJECT = "mesh-server"

_GENERATED_SECRET_BYTES = 32


class NoopTokenManager(TokenManager):
    """Token manager that issues empty tokens and accepts everything.

    Only for local setups without backend auth; callers that require real
    authentication should check ``is_insecure_server_token_manager``.
    """

    is_insecure_server_token_manager: bool = True

    async def get_token(self) -> TokenResponse:
        return TokenResponse(token="")

    async def authenticate(self, token: Optional[str] = None) -> None:
        return None


class ServerTokenManager(TokenManager):
    """Creates and validates tokens for backend-to-backend authentication."""

    is_insecure_server_token_manager: bool = False

    def __init__(self, secrets: Iterable[str], *, production: bool = True, logger=None):
        self.logger = logger or get_logger("auth.server_tokens")
        self._production = production

        keys = [SymmetricKey.from_base64url(secret) for secret in secrets]
        if not keys:
            if production:
                raise ConfigurationError(
                    "You must configure at least one key in backend.auth.keys for production."
                )
            self.logger.warning(
                "No backend.auth.keys configured; a secret will be generated for "
                "backend-to-backend authentication: DEVELOPMENT USE ONLY"
            )
        self._store = KeyStore(keys)

    @staticmethod
    def noop() -> TokenManager:
        return NoopTokenManager()

    @classmethod
    def from_config(cls, config: AuthConfig, *, logger=None) -> "ServerTokenManager":
        return cls(config.backend_secrets, production=config.is_production, logger=logger)

    @property
    def key_store(self) -> KeyStore:
        return self._store

    def _generate_key(self) -> SymmetricKey:
        # Only reachable with an empty store, which construction forbids in production
        if self._production:
            raise ConfigurationError("Key generation is not supported in production")
        self.logger.warning("Generated a secret for backend-to-backend authentication: DEVELOPMENT USE ONLY")
        return SymmetricKey(token_bytes(_GENERATED_SECRET_BYTES))

    async def get_token(self) -> TokenResponse:
        signing_key = await self._store.ensure_signing_key(self._generate_key)
        token = jwt.encode(
            {"sub": SERVER_SUBJECT},
            signing_key.material(),
            algorithm=SYMMETRIC_ALGORITHM,
            headers={"sub": SERVER_SUBJECT},
        )
        return TokenResponse(token=token)

    async def authenticate(self, token: Optional[str]) -> None:
        if not token:
            raise AuthenticationError("Invalid server token: token is missing")

        verify_error: Optional[Exception] = None
        for key in self._store.keys:
            try:
                jwt.decode(
                    token,
                    key.material(),
                    algorithms=[SYMMETRIC_ALGORITHM],
                    options={"verify_aud": False},
                )
                return
            except JOSEError as exc:
                verify_error = exc

        if verify_error is None:
            raise AuthenticationError("Invalid server token: no verification keys available")
        raise AuthenticationError(f"Invalid server token: {verify_error}") from verify_error
