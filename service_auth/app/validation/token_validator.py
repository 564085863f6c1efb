"""
Identity token validation for end-user bearer tokens.
"""

import re
import time
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional

import httpx
from jose import jwt
from jose.exceptions import JWTError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.config import AuthConfig
from shared.discovery import ServiceDiscovery, StaticServiceDiscovery
from shared.errors import AuthenticationError, KeyResolutionError
from shared.logging import get_logger, set_principal
from ..jwks.client import DEFAULT_COOLDOWN_SECONDS, JWKS_PATH, JWKSFetcher, RemoteKeySetCache
from ..keys import AsymmetricKey, is_asymmetric

AUTH_SERVICE_ID = "auth"
DEFAULT_AUDIENCE = "mesh"
DEFAULT_CLOCK_SKEW_SECONDS = 5

_BEARER_RE = re.compile(r"^Bearer[ ]+(\S+)$", re.IGNORECASE)


class UserIdentity(BaseModel):
    """Identity of the user a validated token was issued to."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: Literal["user"] = "user"
    user_entity_ref: str
    ownership_entity_refs: List[str] = Field(default_factory=list)


class IdentityResponse(BaseModel):
    """A validated token together with the identity it carries."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    token: str
    identity: UserIdentity


class TokenVerificationResponse(BaseModel):
    """Response model for token verification."""

    valid: bool
    identity: Optional[UserIdentity] = None
    error: Optional[str] = None


def get_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not isinstance(authorization_header, str):
        return None
    match = _BEARER_RE.match(authorization_header.strip())
    return match.group(1) if match else None


class IdentityTokenValidator:
    """Validates user tokens signed by the identity authority.

    Public keys come from ``<auth base url>/.well-known/jwks.json`` through a
    RemoteKeySetCache. The verification algorithm is always the one the key
    set declares for the token's key id.
    """

    def __init__(
        self,
        *,
        issuer: str,
        key_cache: RemoteKeySetCache,
        endpoint: str,
        audience: str = DEFAULT_AUDIENCE,
        clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.issuer = issuer
        self.audience = audience
        self.endpoint = endpoint
        self.clock_skew_seconds = clock_skew_seconds
        self.key_cache = key_cache
        self.logger = get_logger("auth.identity")
        self._clock = clock

    @classmethod
    async def create(
        cls,
        *,
        discovery: ServiceDiscovery,
        issuer: str,
        audience: str = DEFAULT_AUDIENCE,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS,
        http_timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> "IdentityTokenValidator":
        """Resolve the key set endpoint once and build a validator around it."""
        base_url = await discovery.get_base_url(AUTH_SERVICE_ID)
        endpoint = f"{base_url.rstrip('/')}{JWKS_PATH}"
        fetcher = JWKSFetcher(endpoint, timeout=http_timeout, client=http_client)
        key_cache = RemoteKeySetCache(fetcher, cooldown_seconds=cooldown_seconds, clock=clock)
        return cls(
            issuer=issuer,
            key_cache=key_cache,
            endpoint=endpoint,
            audience=audience,
            clock_skew_seconds=clock_skew_seconds,
            clock=clock,
        )

    @classmethod
    async def from_config(
        cls,
        config: AuthConfig,
        *,
        discovery: Optional[ServiceDiscovery] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> "IdentityTokenValidator":
        return await cls.create(
            discovery=discovery or StaticServiceDiscovery.from_config(config),
            issuer=config.issuer,
            audience=config.identity_audience,
            cooldown_seconds=config.jwks_cooldown_seconds,
            clock_skew_seconds=config.clock_skew_seconds,
            http_timeout=config.jwks_http_timeout,
            http_client=http_client,
            clock=clock,
        )

    async def authenticate(self, token: Optional[str]) -> IdentityResponse:
        """Validate ``token`` and return the identity it was issued to."""
        if not token:
            raise AuthenticationError("No token specified")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise AuthenticationError("Invalid token header") from exc

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise AuthenticationError("Token header is missing key id (kid)")

        try:
            key = await self.key_cache.get_key(kid)
        except KeyResolutionError as exc:
            raise AuthenticationError(
                "Signing key not found for token",
                details={"kid": kid}
            ) from exc

        claims = self._verify_claims(token, header, key)

        identity = UserIdentity(
            user_entity_ref=claims["sub"],
            ownership_entity_refs=self._ownership_refs(claims),
        )
        self.logger.debug("Token verified", sub=identity.user_entity_ref, kid=kid)
        return IdentityResponse(token=token, identity=identity)

    async def verify_token(self, token: Optional[str]) -> TokenVerificationResponse:
        """Like ``authenticate`` but reports failures in the response instead of raising."""
        if token and token.lower().startswith("bearer "):
            token = get_bearer_token(token)

        try:
            response = await self.authenticate(token)
        except AuthenticationError as e:
            self.logger.warning("Token verification failed", error=str(e))
            return TokenVerificationResponse(valid=False, error=e.message)

        set_principal(response.identity.user_entity_ref)
        return TokenVerificationResponse(valid=True, identity=response.identity)

    async def warmup(self) -> None:
        """Eagerly load the key set so the first request does not pay the cost."""
        try:
            await self.key_cache.refresh()
        except KeyResolutionError as exc:
            self.logger.warning("JWKS warmup failed", error=str(exc))

    async def close(self) -> None:
        await self.key_cache.fetcher.close()

    def _verify_claims(self, token: str, header: Mapping[str, Any], key: AsymmetricKey) -> Dict[str, Any]:
        alg = header.get("alg")
        if not is_asymmetric(key) or alg != key.algorithm:
            raise AuthenticationError(
                "Token algorithm does not match signing key",
                details={"kid": key.kid}
            )

        try:
            claims = jwt.decode(
                token,
                key.material(),
                algorithms=[key.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_aud": True,
                    "verify_iss": True,
                    "verify_sub": True,
                    # Time claims are checked against the injected clock below
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require_aud": True,
                    "require_iss": True,
                    "require_sub": True,
                },
            )
        except JWTError as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Token is missing subject claim")

        self._verify_times(claims)
        return claims

    def _verify_times(self, claims: Mapping[str, Any]) -> None:
        now = self._clock()
        skew = self.clock_skew_seconds

        exp = _numeric_claim(claims, "exp")
        if exp is None:
            raise AuthenticationError("Token is missing expiration claim")
        if exp <= now - skew:
            raise AuthenticationError("Token has expired")

        iat = _numeric_claim(claims, "iat")
        if iat is None:
            raise AuthenticationError("Token is missing issued-at claim")
        if iat > now + skew:
            raise AuthenticationError("Token was issued in the future")

        nbf = _numeric_claim(claims, "nbf")
        if nbf is not None and nbf > now + skew:
            raise AuthenticationError("Token is not yet valid")

    @staticmethod
    def _ownership_refs(claims: Mapping[str, Any]) -> List[str]:
        ent = claims.get("ent")
        if ent is None:
            return []
        if not isinstance(ent, list) or not all(isinstance(ref, str) for ref in ent):
            raise AuthenticationError("Token 'ent' claim must be a list of entity references")
        return list(ent)


def _numeric_claim(claims: Mapping[str, Any], name: str) -> Optional[float]:
    value = claims.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AuthenticationError(f"Token '{name}' claim must be a number")
    return float(value)
