"""
JWKS fetching and caching for the identity authority's public keys.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx

from shared.errors import KeyResolutionError
from shared.logging import get_logger
from ..keys import AsymmetricKey, parse_key_set

JWKS_PATH = "/.well-known/jwks.json"

# Minimum time between two refreshes of the key set. A rotated key is picked
# up at most this long after its first token is seen; unknown key ids cannot
# trigger more than one fetch per interval.
DEFAULT_COOLDOWN_SECONDS = 30.0


class JWKSFetcher:
    """Fetches the key set document over HTTP."""

    def __init__(self, url: str, *, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self) -> Mapping[str, Any]:
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise KeyResolutionError(
                f"Failed to fetch JWKS: {exc}",
                details={"url": self.url}
            ) from exc

        try:
            document = response.json()
        except ValueError as exc:
            raise KeyResolutionError("Failed to parse JWKS JSON", details={"url": self.url}) from exc

        if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
            raise KeyResolutionError("Malformed JWKS document", details={"url": self.url})
        return document

    async def close(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()


@dataclass(frozen=True)
class _KeySetSnapshot:
    keys: Mapping[str, AsymmetricKey] = field(default_factory=dict)
    fetched_at: Optional[float] = None


class RemoteKeySetCache:
    """Key id -> public key cache with rotation-aware refresh.

    A lookup for an unknown key id refreshes the whole set, but at most once
    per cooldown interval, counted from the last fetch attempt whether it
    succeeded or not. A failed fetch keeps the previous snapshot. The
    snapshot is replaced by reference, so readers never observe a
    half-written mapping.
    """

    def __init__(
        self,
        fetcher: JWKSFetcher,
        *,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher
        self.cooldown_seconds = cooldown_seconds
        self.logger = get_logger("auth.jwks")
        self._clock = clock
        self._snapshot = _KeySetSnapshot()
        # Set on every fetch attempt, failed ones included
        self._last_attempt: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def last_fetched(self) -> Optional[float]:
        return self._snapshot.fetched_at

    @property
    def key_ids(self) -> Tuple[str, ...]:
        return tuple(self._snapshot.keys)

    def _cooldown_elapsed(self) -> bool:
        if self._last_attempt is None:
            return True
        return self._clock() - self._last_attempt >= self.cooldown_seconds

    async def get_key(self, kid: str) -> AsymmetricKey:
        """Return the key for ``kid``, refreshing the set if allowed."""
        key = self._snapshot.keys.get(kid)
        if key is not None:
            return key

        async with self._refresh_lock:
            # Another lookup may have refreshed while we waited
            snapshot = self._snapshot
            key = snapshot.keys.get(kid)
            if key is not None:
                return key

            if not self._cooldown_elapsed():
                self.logger.info("JWKS refresh suppressed by cooldown", kid=kid)
                raise KeyResolutionError("Signing key not found", details={"kid": kid})

            snapshot = await self._refresh_locked()

        key = snapshot.keys.get(kid)
        if key is None:
            self.logger.warning("Key not found after JWKS refresh", kid=kid)
            raise KeyResolutionError("Signing key not found", details={"kid": kid})
        return key

    async def refresh(self) -> None:
        """Fetch the key set now, regardless of cooldown."""
        async with self._refresh_lock:
            await self._refresh_locked()

    async def _refresh_locked(self) -> _KeySetSnapshot:
        self._last_attempt = self._clock()
        document = await self.fetcher.fetch()
        try:
            keys: Dict[str, AsymmetricKey] = parse_key_set(document)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise KeyResolutionError(f"Malformed JWKS document: {exc}") from exc

        snapshot = _KeySetSnapshot(keys=keys, fetched_at=self._clock())
        self._snapshot = snapshot
        self.logger.info("JWKS refreshed successfully", keys_count=len(keys))
        return snapshot

    def clear(self) -> None:
        """Drop all cached keys; the next lookup fetches immediately."""
        self._snapshot = _KeySetSnapshot()
        self._last_attempt = None
        self.logger.info("JWKS cache cleared")
