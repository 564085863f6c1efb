"""
Verification keys.

Every key carries exactly one algorithm it may be used with. Verification
always takes the algorithm from the key, never from the token header, which
closes the door on "none" and symmetric-as-asymmetric confusion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union

from jose import jwk
from jose.backends.base import Key
from jose.exceptions import JWKError
from jose.utils import base64url_decode

from shared.errors import ConfigurationError
from shared.logging import get_logger

logger = get_logger("auth.keys")

SYMMETRIC_ALGORITHM = "HS256"
ASYMMETRIC_ALGORITHMS = ("ES256", "ES384", "ES512", "RS256", "RS384", "RS512")

_EC_CURVE_ALGORITHMS = {"P-256": "ES256", "P-384": "ES384", "P-521": "ES512"}


@dataclass(frozen=True)
class SymmetricKey:
    """Shared HMAC secret used for backend-to-backend tokens."""

    secret: bytes = field(repr=False)
    algorithm: str = field(default=SYMMETRIC_ALGORITHM, init=False)

    @classmethod
    def from_base64url(cls, encoded: str) -> "SymmetricKey":
        if not isinstance(encoded, str) or not encoded.strip():
            raise ConfigurationError("Backend auth secret must be a non-empty string")
        try:
            secret = base64url_decode(encoded.strip().encode("ascii"))
        except (ValueError, UnicodeEncodeError) as exc:
            raise ConfigurationError("Backend auth secret is not valid base64url") from exc
        if not secret:
            raise ConfigurationError("Backend auth secret decoded to zero bytes")
        return cls(secret)

    def material(self) -> Key:
        return jwk.construct(self.secret, self.algorithm)


@dataclass(frozen=True)
class AsymmetricKey:
    """Public key published by the identity authority under a key id."""

    kid: str
    algorithm: str
    public_jwk: Mapping[str, Any] = field(repr=False, compare=False)
    _material: Key = field(repr=False, compare=False)

    @classmethod
    def from_jwk(cls, key_dict: Mapping[str, Any]) -> "AsymmetricKey":
        """Build a key from a JWK entry, raising ValueError if it is unusable."""
        kid = key_dict.get("kid")
        if not isinstance(kid, str) or not kid:
            raise ValueError("JWK is missing 'kid'")

        use = key_dict.get("use")
        if use is not None and use != "sig":
            raise ValueError(f"JWK use '{use}' is not 'sig'")

        if key_dict.get("kty") == "oct":
            raise ValueError("symmetric JWKs are never accepted from a remote key set")

        algorithm = key_dict.get("alg") or _infer_algorithm(key_dict)
        if algorithm not in ASYMMETRIC_ALGORITHMS:
            raise ValueError(f"JWK algorithm '{algorithm}' is not an allowed asymmetric algorithm")

        try:
            material = jwk.construct(dict(key_dict), algorithm)
        except (JWKError, KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"JWK could not be constructed: {exc}") from exc

        return cls(kid=kid, algorithm=algorithm, public_jwk=dict(key_dict), _material=material)

    def material(self) -> Key:
        return self._material


VerificationKey = Union[SymmetricKey, AsymmetricKey]


def is_asymmetric(key: VerificationKey) -> bool:
    return isinstance(key, AsymmetricKey) and key.algorithm in ASYMMETRIC_ALGORITHMS


def parse_key_set(document: Mapping[str, Any]) -> Dict[str, AsymmetricKey]:
    """Turn a JWKS document into a ``kid -> AsymmetricKey`` mapping.

    Unusable entries are skipped; a document without a ``keys`` list is an
    error for the caller to handle.
    """
    keys = document.get("keys")
    if not isinstance(keys, list):
        raise ValueError("JWKS 'keys' must be a list")

    kid_to_key: Dict[str, AsymmetricKey] = {}
    for key_dict in keys:
        if not isinstance(key_dict, dict):
            continue
        try:
            key = AsymmetricKey.from_jwk(key_dict)
        except ValueError as exc:
            logger.debug("Skipping JWKS entry", kid=key_dict.get("kid"), reason=str(exc))
            continue
        kid_to_key[key.kid] = key
    return kid_to_key


def _infer_algorithm(key_dict: Mapping[str, Any]) -> str:
    kty = key_dict.get("kty")
    if kty == "EC":
        return _EC_CURVE_ALGORITHMS.get(key_dict.get("crv"), "")
    if kty == "RSA":
        return "RS256"
    return ""
