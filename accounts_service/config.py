"""Configuration management for the user account service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .credentials import DEFAULT_BCRYPT_ROUNDS
from .storage import resolve_store_path


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the account service."""

    store_path: Path
    token_secret: str
    token_ttl: timedelta = timedelta(hours=24)
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    @staticmethod
    def from_dict(data: Dict[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        secret = data.get("token_secret")
        if not secret or not str(secret).strip():
            raise ValueError("Missing required configuration field: token_secret")

        raw_store_path = data.get("store_path")
        if raw_store_path:
            candidate = Path(str(raw_store_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            store_path = candidate.resolve(strict=False)
        else:
            store_path = resolve_store_path(None)

        try:
            rounds = int(data.get("bcrypt_rounds", DEFAULT_BCRYPT_ROUNDS))  # type: ignore[arg-type]
            ttl_hours = float(data.get("token_ttl_hours", 24))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("bcrypt_rounds and token_ttl_hours must be numbers") from exc

        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")

        if ttl_hours <= 0:
            raise ValueError("token_ttl_hours must be positive")

        return Settings(
            store_path=store_path,
            token_secret=str(secret),
            token_ttl=timedelta(hours=ttl_hours),
            bcrypt_rounds=rounds,
        )


_ENV_OVERRIDES = {
    "ACCOUNTS_STORE_PATH": "store_path",
    "ACCOUNTS_TOKEN_SECRET": "token_secret",
    "ACCOUNTS_TOKEN_TTL_HOURS": "token_ttl_hours",
    "ACCOUNTS_BCRYPT_ROUNDS": "bcrypt_rounds",
}


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "accounts.yaml").resolve(strict=False)
    return candidate


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""
    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("ACCOUNTS_CONFIG"))

    raw: Dict[str, object] = {}
    base_path: Path | None = None
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        raw.update(loaded)
        base_path = path.parent

    for env_name, key in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value:
            raw[key] = value
            if key == "store_path":
                base_path = None

    return Settings.from_dict(raw, base_path=base_path)


__all__ = ["Settings", "load_settings", "resolve_config_path"]
