"""Request dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from cv_screener_agents.orchestrator.container import ServiceContainer
from cv_screener_core.exceptions import AuthenticationError
from cv_screener_core.interfaces.auth import AuthenticatedUser

LOCAL_CLIENT = "local"


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services  # type: ignore[no-any-return]


ServicesDep = Annotated[ServiceContainer, Depends(get_services)]


def bearer_token(request: Request) -> str | None:
    """Token of an ``Authorization: Bearer ...`` header, if any."""
    header = request.headers.get("authorization", "")
    if not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    return token or None


async def get_current_user(request: Request, services: ServicesDep) -> AuthenticatedUser:
    """Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: If no token is sent or the verifier rejects it.
    """
    token = bearer_token(request)
    if token is None:
        msg = "Not authenticated"
        raise AuthenticationError(msg)
    return await services.token_verifier.verify(token)


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, else ``local``."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or LOCAL_CLIENT


ClientIP = Annotated[str, Depends(client_ip)]
