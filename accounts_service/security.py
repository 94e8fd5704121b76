"""Bearer token extraction for the HTTP API."""
from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer


class BearerToken:
    """Return the raw bearer token from the ``Authorization`` header, if any.

    Verification is left to the account service so that a missing record is
    reported before a bad token.
    """

    def __init__(self) -> None:
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> Optional[str]:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            return None
        token = credentials.credentials.strip()
        return token or None


__all__ = ["BearerToken"]
