"""Error kinds raised by the account service core."""
from __future__ import annotations


class AccountServiceError(Exception):
    """Base class for every failure raised by the account service."""


class NotFound(AccountServiceError):
    """Raised when a requested user record does not exist."""


class InvalidCredentials(AccountServiceError):
    """Raised when a login email/password pair does not match a stored account."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class Unauthorized(AccountServiceError):
    """Raised when the caller is not allowed to mutate the target record."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class AuthFailure(Unauthorized):
    """Raised for any bearer token that fails verification."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class ValidationFailure(AccountServiceError, ValueError):
    """Raised when an inbound record is malformed."""


class StoreFailure(AccountServiceError, RuntimeError):
    """Raised when the persisted collection cannot be read, decoded or written."""


class CredentialFailure(AccountServiceError, RuntimeError):
    """Raised when a stored credential is not a recognisable hash."""


__all__ = [
    "AccountServiceError",
    "AuthFailure",
    "CredentialFailure",
    "InvalidCredentials",
    "NotFound",
    "StoreFailure",
    "Unauthorized",
    "ValidationFailure",
]
