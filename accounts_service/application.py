"""Application factory wiring settings, storage and services together."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from .accounts import AccountService
from .api import create_app
from .config import Settings, load_settings
from .credentials import CredentialService
from .storage import FileStorage
from .store import UserStore
from .tokens import TokenService


def build_account_service(settings: Settings) -> AccountService:
    """Create an :class:`AccountService` backed by the configured JSON file."""

    storage = FileStorage(settings.store_path)
    storage.ensure()
    return AccountService(
        UserStore(storage),
        CredentialService(rounds=settings.bcrypt_rounds),
        TokenService(settings.token_secret, ttl=settings.token_ttl),
    )


def create_application(*, settings: Optional[Settings] = None) -> FastAPI:
    """Create the ASGI application from explicit or loaded settings."""

    resolved = settings or load_settings()
    app = create_app(accounts=build_account_service(resolved))
    app.state.settings = resolved
    return app


__all__ = ["build_account_service", "create_application"]
