"""Ordered store of shared verification keys with a designated signing key."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

from ..keys import SymmetricKey


class KeyStoreState(Enum):
    """Lifecycle of the signing key."""
    UNINITIALIZED = "uninitialized"  # no keys, generation pending
    INITIALIZING = "initializing"    # first key being generated
    READY = "ready"                  # signing key present


class KeyStore:
    """Verification keys in rotation order; the first one signs.

    Keys are only ever added once, by ``ensure_signing_key`` on an empty
    store. Readers see an immutable tuple so iteration never races with that
    single mutation.
    """

    def __init__(self, keys: Iterable[SymmetricKey] = ()):
        self._keys: Tuple[SymmetricKey, ...] = tuple(keys)
        self._state = KeyStoreState.READY if self._keys else KeyStoreState.UNINITIALIZED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> KeyStoreState:
        return self._state

    @property
    def keys(self) -> Tuple[SymmetricKey, ...]:
        return self._keys

    @property
    def signing_key(self) -> Optional[SymmetricKey]:
        return self._keys[0] if self._keys else None

    def is_empty(self) -> bool:
        return not self._keys

    async def ensure_signing_key(self, generate: Callable[[], SymmetricKey]) -> SymmetricKey:
        """Return the signing key, generating one exactly once if the store is empty."""
        if self._state is KeyStoreState.READY:
            return self._keys[0]

        async with self._lock:
            if self._state is KeyStoreState.READY:
                return self._keys[0]

            self._state = KeyStoreState.INITIALIZING
            try:
                key = generate()
            except BaseException:
                self._state = KeyStoreState.UNINITIALIZED
                raise
            self._keys = (key,)
            self._state = KeyStoreState.READY
            return key
