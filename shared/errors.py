"""
Shared error handling for the mesh auth core.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class MeshAuthError(Exception):
    """Base exception for mesh auth components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(MeshAuthError):
    """Missing or invalid configuration, raised at construction time."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class AuthenticationError(MeshAuthError):
    """Authentication-related errors."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class KeyResolutionError(MeshAuthError):
    """Remote key set could not be fetched or did not contain the key id."""

    def __init__(self, message: str = "Key resolution failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("KEY_RESOLUTION_ERROR", message, details)
