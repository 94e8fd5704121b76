"""Signed, time-bounded bearer tokens."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from jose import JWTError, jwt

from .errors import AuthFailure
from .models import TokenClaims

TOKEN_ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(hours=24)

_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": True,
    "require_exp": True,
    "require_sub": True,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _claims_from_payload(payload: Dict[str, object]) -> TokenClaims:
    subject = payload.get("sub")
    expires = payload.get("exp")
    issued = payload.get("iat")
    if not isinstance(subject, str) or not subject:
        raise ValueError("token subject missing")
    if not isinstance(expires, (int, float)):
        raise ValueError("token expiry missing")
    return TokenClaims(
        subject=subject,
        expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
        issued_at=datetime.fromtimestamp(issued, tz=timezone.utc) if isinstance(issued, (int, float)) else None,
    )


class TokenService:
    """Issue and verify HS256 JWTs binding an account email."""

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not secret or not secret.strip():
            raise ValueError("A token signing secret must be provided")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock or _utcnow

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, subject: str) -> str:
        issued_at = self._clock()
        claims = {
            "sub": subject,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        """Validate ``token`` and return its claims.

        Every kind of failure is reported as the same :class:`AuthFailure`.
        """

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options=_DECODE_OPTIONS,
            )
            claims = _claims_from_payload(payload)
        except (JWTError, ValueError, TypeError, AttributeError) as exc:
            raise AuthFailure() from exc

        if claims.expires_at <= self._clock():
            raise AuthFailure()
        return claims

    def verify(self, token: str) -> str:
        return self.decode(token).subject


__all__ = ["DEFAULT_TOKEN_TTL", "TOKEN_ALGORITHM", "TokenService"]
