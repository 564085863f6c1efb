"""Contracts shared by server token managers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class TokenResponse(BaseModel):
    """A freshly issued server token."""

    token: str


class TokenManager(ABC):
    """Issues and verifies tokens for backend-to-backend requests."""

    @abstractmethod
    async def get_token(self) -> TokenResponse:
        """Return a token the caller can present to another backend."""
        raise NotImplementedError

    @abstractmethod
    async def authenticate(self, token: str) -> None:
        """Return if ``token`` is valid, raise AuthenticationError otherwise."""
        raise NotImplementedError
