"""
Unit tests for verification key parsing.
"""

import pytest

from service_auth.app.keys import (
    AsymmetricKey,
    SymmetricKey,
    is_asymmetric,
    parse_key_set,
)
from shared.errors import ConfigurationError
from shared.test_helpers import FakeIdentityAuthority


class TestSymmetricKey:
    """Test cases for SymmetricKey."""

    def test_from_base64url(self):
        """Test decoding an unpadded base64url secret."""
        key = SymmetricKey.from_base64url("c2VjcmV0LWtleS1tYXRlcmlhbA")

        assert key.secret == b"secret-key-material"
        assert key.algorithm == "HS256"
        assert not is_asymmetric(key)

    @pytest.mark.parametrize("value", ["", "   ", "a"])
    def test_invalid_secret(self, value):
        """Test that empty or undecodable secrets are configuration errors."""
        with pytest.raises(ConfigurationError):
            SymmetricKey.from_base64url(value)

    def test_repr_hides_secret(self):
        """Test that the secret never shows up in repr."""
        key = SymmetricKey(b"top-secret")

        assert "top-secret" not in repr(key)


class TestParseKeySet:
    """Test cases for parse_key_set."""

    @pytest.fixture
    def public_jwk(self):
        """A real ES256 public JWK."""
        authority = FakeIdentityAuthority("http://issuer")
        authority.issue_token("foo")
        return authority.list_public_keys()["keys"][0]

    def test_parses_ec_key(self, public_jwk):
        """Test that a well-formed ES256 JWK is indexed by kid."""
        keys = parse_key_set({"keys": [public_jwk]})

        key = keys[public_jwk["kid"]]
        assert isinstance(key, AsymmetricKey)
        assert key.algorithm == "ES256"
        assert is_asymmetric(key)

    def test_infers_algorithm_from_curve(self, public_jwk):
        """Test that a JWK without alg gets the curve's algorithm."""
        del public_jwk["alg"]

        keys = parse_key_set({"keys": [public_jwk]})

        assert keys[public_jwk["kid"]].algorithm == "ES256"

    def test_skips_unusable_entries(self, public_jwk):
        """Test that unusable entries are dropped without failing the set."""
        entries = [
            "not-a-dict",
            {**public_jwk, "kid": None},
            {**public_jwk, "kid": "enc-key", "use": "enc"},
            {**public_jwk, "kid": "none-key", "alg": "none"},
            {"kty": "oct", "kid": "hmac-key", "alg": "HS256", "k": "c2VjcmV0"},
            {**public_jwk, "kid": "rsa-claimed", "alg": "RS256"},
            {"kty": "EC", "crv": "P-999", "alg": "ES256", "kid": "unknown-curve", "x": "AA", "y": "AA"},
            public_jwk,
        ]

        keys = parse_key_set({"keys": entries})

        assert list(keys) == [public_jwk["kid"]]

    def test_rejects_missing_key_list(self):
        """Test that a document without a keys list is an error."""
        with pytest.raises(ValueError):
            parse_key_set({"keys": "nope"})
