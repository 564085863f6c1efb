"""
Service discovery for resolving the base URLs of other mesh services.
"""

from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from .config import AuthConfig
from .errors import ConfigurationError


class ServiceDiscovery(ABC):
    """Resolves base URLs for services by id."""

    @abstractmethod
    async def get_base_url(self, service_id: str) -> str:
        """Return the internal base URL of ``service_id``."""
        raise NotImplementedError

    @abstractmethod
    async def get_external_base_url(self, service_id: str) -> str:
        """Return the externally reachable base URL of ``service_id``."""
        raise NotImplementedError


class StaticServiceDiscovery(ServiceDiscovery):
    """Discovery backed by a fixed id -> URL mapping."""

    def __init__(self, base_urls: Mapping[str, str], external_base_urls: Optional[Mapping[str, str]] = None):
        self._base_urls: Dict[str, str] = {k: v.rstrip("/") for k, v in base_urls.items()}
        self._external_base_urls: Dict[str, str] = {
            k: v.rstrip("/") for k, v in (external_base_urls or base_urls).items()
        }

    @classmethod
    def from_config(cls, config: AuthConfig) -> "StaticServiceDiscovery":
        return cls({"auth": config.auth_service_url})

    async def get_base_url(self, service_id: str) -> str:
        try:
            return self._base_urls[service_id]
        except KeyError as exc:
            raise ConfigurationError(
                f"No base URL configured for service '{service_id}'",
                details={"service_id": service_id}
            ) from exc

    async def get_external_base_url(self, service_id: str) -> str:
        try:
            return self._external_base_urls[service_id]
        except KeyError as exc:
            raise ConfigurationError(
                f"No external base URL configured for service '{service_id}'",
                details={"service_id": service_id}
            ) from exc
