"""
Unit tests for the shared configuration, discovery, error and logging layers.
"""

import json

import pytest
import structlog

from shared.config import AuthConfig, get_config
from shared.discovery import StaticServiceDiscovery
from shared.errors import AuthenticationError, ConfigurationError, KeyResolutionError
from shared.logging import (
    add_principal_context,
    add_service_context,
    clear_context,
    configure_logging,
    set_principal,
    set_request_id,
)


class TestAuthConfig:
    """Test cases for AuthConfig."""

    def test_defaults(self, monkeypatch):
        """Test default values without any environment."""
        monkeypatch.delenv("MESH_AUTH_ENV", raising=False)
        config = AuthConfig()

        assert config.env == "development"
        assert not config.is_production
        assert config.backend_secrets == []
        assert config.jwks_cooldown_seconds == 30.0
        assert config.clock_skew_seconds == 5
        assert config.identity_audience == "mesh"

    def test_issuer_defaults_to_auth_service_url(self):
        """Test that the issuer falls back to the auth service URL."""
        config = AuthConfig(auth_service_url="http://auth.internal/api/auth")

        assert config.issuer == "http://auth.internal/api/auth"
        assert AuthConfig(identity_issuer="https://id.example.com").issuer == "https://id.example.com"

    def test_reads_environment(self, monkeypatch):
        """Test that MESH_AUTH_* variables populate the config."""
        monkeypatch.setenv("MESH_AUTH_ENV", "production")
        monkeypatch.setenv("MESH_AUTH_JWKS_COOLDOWN_SECONDS", "60")
        monkeypatch.setenv(
            "MESH_AUTH_BACKEND",
            json.dumps({"auth": {"keys": [{"secret": "first"}, {"secret": "second"}]}}),
        )

        config = get_config()

        assert config.is_production
        assert config.jwks_cooldown_seconds == 60.0
        assert config.backend_secrets == ["first", "second"]

    def test_overrides_win_over_environment(self, monkeypatch):
        """Test that explicit overrides take precedence."""
        monkeypatch.setenv("MESH_AUTH_ENV", "production")

        config = get_config(env="development")

        assert not config.is_production


class TestStaticServiceDiscovery:
    """Test cases for StaticServiceDiscovery."""

    @pytest.mark.asyncio
    async def test_resolves_base_urls(self):
        """Test lookup with trailing slashes removed."""
        discovery = StaticServiceDiscovery(
            {"auth": "http://auth:7007/api/auth/"},
            {"auth": "https://mesh.example.com/api/auth"},
        )

        assert await discovery.get_base_url("auth") == "http://auth:7007/api/auth"
        assert await discovery.get_external_base_url("auth") == "https://mesh.example.com/api/auth"

    @pytest.mark.asyncio
    async def test_external_defaults_to_internal(self):
        """Test that external URLs fall back to the internal mapping."""
        discovery = StaticServiceDiscovery({"auth": "http://auth:7007/api/auth"})

        assert await discovery.get_external_base_url("auth") == "http://auth:7007/api/auth"

    @pytest.mark.asyncio
    async def test_unknown_service(self):
        """Test that unknown service ids are configuration errors."""
        discovery = StaticServiceDiscovery({})

        with pytest.raises(ConfigurationError) as exc_info:
            await discovery.get_base_url("catalog")
        assert exc_info.value.details == {"service_id": "catalog"}

    @pytest.mark.asyncio
    async def test_from_config(self):
        """Test that the auth service URL is registered under 'auth'."""
        discovery = StaticServiceDiscovery.from_config(AuthConfig(auth_service_url="http://auth:1234/api/auth"))

        assert await discovery.get_base_url("auth") == "http://auth:1234/api/auth"


class TestErrors:
    """Test cases for the error hierarchy."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ConfigurationError(), "CONFIGURATION_ERROR"),
            (AuthenticationError(), "AUTHENTICATION_ERROR"),
            (KeyResolutionError(), "KEY_RESOLUTION_ERROR"),
        ],
    )
    def test_codes(self, error, code):
        """Test the stable code of each error type."""
        assert error.code == code

    def test_to_response(self):
        """Test conversion to the error response model."""
        error = AuthenticationError("Token has expired", details={"kid": "abc"})

        response = error.to_response()

        assert response.model_dump() == {
            "code": "AUTHENTICATION_ERROR",
            "message": "Token has expired",
            "details": {"kid": "abc"},
        }
        assert str(error) == "Token has expired"


class TestLogging:
    """Test cases for the logging processors."""

    def teardown_method(self):
        clear_context()
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()

    def test_principal_context(self):
        """Test that request id and principal are attached to events."""
        request_id = set_request_id()
        set_principal("user:default/foo")

        event = add_principal_context(None, "info", {"event": "Token verified"})

        assert event["request_id"] == request_id
        assert event["principal"] == "user:default/foo"

    def test_principal_context_empty(self):
        """Test that nothing is added without context."""
        clear_context()

        event = add_principal_context(None, "info", {"event": "x"})

        assert event == {"event": "x"}

    def test_service_context_component(self):
        """Test that the component is derived from the logger name."""
        structlog.contextvars.bind_contextvars(service="mesh-auth")

        event = add_service_context(None, "info", {"event": "x", "logger": "auth.jwks"})

        assert event["component"] == "jwks"
        assert event["service"] == "mesh-auth"

    def test_configure_logging_binds_service(self):
        """Test that configure_logging binds the service name."""
        configure_logging("mesh-auth", "debug")

        assert structlog.contextvars.get_contextvars()["service"] == "mesh-auth"
