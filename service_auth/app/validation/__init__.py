"""
Token validation package.

Validates end-user tokens issued by the identity authority:

- Resolves signing keys by key id through the remote JWKS cache.
- Checks signature, algorithm, issuer, audience, expiry and issued-at.
- Maps the validated claims into a UserIdentity record.
"""

from .token_validator import (  # noqa: F401
    DEFAULT_AUDIENCE,
    IdentityResponse,
    IdentityTokenValidator,
    TokenVerificationResponse,
    UserIdentity,
    get_bearer_token,
)
