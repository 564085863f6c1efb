"""
Shared utilities for the mesh auth core.

This package aggregates common building blocks consumed by the auth
components:

- config: Configuration via pydantic-settings
- logging: Structured logging with request and principal context
- errors: Canonical error types and responses
- discovery: Base URL resolution for other mesh services
- test_helpers: Fakes for clocks and identity authorities used in tests

Do not import from service_auth into shared/.
"""
