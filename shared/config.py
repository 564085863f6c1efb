"""
Shared configuration management for the mesh auth core.
"""

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


PRODUCTION_ENV = "production"


class BackendAuthKey(BaseModel):
    """A single shared secret for backend-to-backend tokens."""

    # base64url-encoded symmetric key material
    secret: str


class BackendAuthConfig(BaseModel):
    """Settings under ``backend.auth``."""

    keys: List[BackendAuthKey] = Field(default_factory=list)


class BackendConfig(BaseModel):
    """Settings under ``backend``."""

    auth: BackendAuthConfig = Field(default_factory=BackendAuthConfig)


class AuthConfig(BaseSettings):
    """Configuration for the server token manager and identity validator.

    Values come from keyword arguments, ``MESH_AUTH_*`` environment variables
    or a ``.env`` file. Nested values use ``__`` as delimiter, e.g.
    ``MESH_AUTH_BACKEND__AUTH__KEYS='[{"secret": "..."}]'``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MESH_AUTH_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = "development"
    log_level: str = "info"

    # Backend-to-backend tokens
    backend: BackendConfig = Field(default_factory=BackendConfig)

    # Identity authority
    auth_service_url: str = "http://localhost:7007/api/auth"
    identity_issuer: Optional[str] = None
    identity_audience: str = "mesh"

    # Remote key set
    jwks_cooldown_seconds: float = 30.0
    jwks_http_timeout: float = 10.0
    clock_skew_seconds: int = 5

    @property
    def is_production(self) -> bool:
        return self.env == PRODUCTION_ENV

    @property
    def backend_secrets(self) -> List[str]:
        """Secrets from ``backend.auth.keys`` in configured order."""
        return [key.secret for key in self.backend.auth.keys]

    @property
    def issuer(self) -> str:
        return self.identity_issuer or self.auth_service_url


def get_config(**overrides) -> AuthConfig:
    """Load configuration, applying explicit overrides on top of the environment."""
    return AuthConfig(**overrides)
