"""Bearer token verification against a Supabase-compatible auth server."""

from __future__ import annotations

import httpx
import structlog

from cv_screener_core.exceptions import AuthenticationError
from cv_screener_core.interfaces.auth import AuthenticatedUser

logger = structlog.get_logger()


class SupabaseAuthClient:
    """Resolve access tokens by calling ``GET {base_url}/auth/v1/user``."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize with the auth server location and optional shared client."""
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def verify(self, token: str) -> AuthenticatedUser:
        """Return the user owning ``token``.

        Raises:
            AuthenticationError: If the token is empty, rejected or the
                auth server cannot be reached.
        """
        if not token:
            msg = "Missing bearer token"
            raise AuthenticationError(msg)

        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            response = await self._client.get(f"{self._base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning("auth_request_failed", error=str(e))
            msg = "Authentication service unavailable"
            raise AuthenticationError(msg) from e

        if response.status_code != 200:
            logger.info("auth_token_rejected", status=response.status_code)
            msg = "Unauthorized"
            raise AuthenticationError(msg)

        payload = response.json()
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            msg = "Unauthorized"
            raise AuthenticationError(msg)
        return AuthenticatedUser(id=str(user_id), email=payload.get("email"))

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
