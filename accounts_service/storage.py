"""File-backed storage medium for the persisted user collection."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from .errors import StoreFailure

_EMPTY_COLLECTION = b"[]\n"


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_store_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the user collection."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.json").resolve(strict=False)


class FileStorage:
    """Read and replace a single file as one blob.

    Writes go to a temporary sibling which is then renamed over the target, so
    a concurrent reader sees either the previous or the next contents in full.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> None:
        """Create an empty collection if the file does not exist yet."""

        try:
            _ensure_directory(self._path)
            if not self._path.exists():
                self.write_all(_EMPTY_COLLECTION)
        except OSError as exc:
            raise StoreFailure(f"Unable to initialise user store at {self._path}") from exc

    def read_all(self) -> bytes:
        try:
            return self._path.read_bytes()
        except OSError as exc:
            raise StoreFailure(f"Unable to read user store at {self._path}") from exc

    def write_all(self, data: bytes) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=str(self._path.parent))
        except OSError as exc:
            raise StoreFailure(f"Unable to write user store at {self._path}") from exc

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StoreFailure(f"Unable to write user store at {self._path}") from exc


__all__ = ["FileStorage", "resolve_store_path"]
