"""Bearer token verification interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """Identity resolved from a bearer token."""

    id: str = Field(description="Stable user identifier")
    email: str | None = Field(default=None, description="User e-mail if known")


@runtime_checkable
class TokenVerifier(Protocol):
    """Resolve a bearer token into a user or raise AuthenticationError."""

    async def verify(self, token: str) -> AuthenticatedUser:
        """Return the user owning ``token``."""
        ...
