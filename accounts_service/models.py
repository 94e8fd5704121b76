"""Domain models for user accounts and bearer token claims."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the persisted collection.

    ``password`` always holds the credential hash, never the plaintext.
    """

    id: str
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile: Dict[str, object] = field(default_factory=dict)

    def with_id(self, user_id: str) -> "User":
        return replace(self, id=user_id)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "password": self.password,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile": dict(self.profile),
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "User":
        """Create a :class:`User` from a decoded record."""
        required_fields = {"id", "email", "password"}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(f"Missing required user record fields: {', '.join(sorted(missing))}")

        profile = data.get("profile") or {}
        if not isinstance(profile, dict):
            raise ValueError("User record field 'profile' must be an object")

        first_name = data.get("first_name")
        last_name = data.get("last_name")
        return User(
            id=str(data["id"]),
            email=str(data["email"]),
            password=str(data["password"]),
            first_name=str(first_name) if first_name is not None else None,
            last_name=str(last_name) if last_name is not None else None,
            profile=dict(profile),
        )


@dataclass(frozen=True)
class NewUser:
    """Registration input; ``password`` is the plaintext supplied by the caller."""

    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class UserUpdate:
    """Replacement values for an existing account.

    Fields left as ``None`` keep the stored value. A supplied ``password`` is
    plaintext and gets hashed again before it is stored.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile: Optional[Dict[str, object]] = None


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    expires_at: datetime
    issued_at: Optional[datetime] = None


__all__ = ["NewUser", "TokenClaims", "User", "UserUpdate"]
