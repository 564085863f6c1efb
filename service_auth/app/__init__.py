"""
Auth core for service-to-service and end-user authentication.

- app.tokens: Shared-secret server tokens (issue + verify, key rotation).
- app.jwks: Fetching and caching the identity authority's public keys.
- app.validation: End-user token validation against those keys.
- app.keys: Verification key types, each bound to a single algorithm.

Design notes:
- Keep the package import side-effects minimal; module import must not
  perform network calls. All IO happens in explicit async calls.
- Use the shared/ utilities for configuration, logging and errors.
"""
