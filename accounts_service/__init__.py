"""User account storage, authentication and bearer token service."""

from __future__ import annotations

from typing import Any

from .accounts import AccountService
from .credentials import CredentialService
from .storage import FileStorage, resolve_store_path
from .store import UserStore
from .tokens import TokenService


def create_application(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "AccountService",
    "CredentialService",
    "FileStorage",
    "TokenService",
    "UserStore",
    "create_application",
    "resolve_store_path",
]
