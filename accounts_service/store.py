"""JSON-file persistence for user records."""
from __future__ import annotations

import json
import threading
from typing import List, Protocol

from .errors import NotFound, StoreFailure, ValidationFailure
from .models import User


class StorageMedium(Protocol):
    def read_all(self) -> bytes: ...

    def write_all(self, data: bytes) -> None: ...


def _same_email(left: str, right: str) -> bool:
    return left.strip().lower() == right.strip().lower()


def _next_user_id(users: List[User]) -> str:
    if not users:
        return "1"
    last_id = users[-1].id
    try:
        return str(int(last_id) + 1)
    except ValueError as exc:
        raise StoreFailure(f"Stored user id {last_id!r} is not numeric") from exc


class UserStore:
    """Ordered collection of users persisted as a single JSON document.

    Every mutation holds the store's lock for the whole read-modify-write
    span. Reads take no lock and see whatever collection was last written.
    """

    def __init__(self, storage: StorageMedium) -> None:
        self._storage = storage
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self) -> List[User]:
        return self._load()

    def get_by_id(self, user_id: str) -> User:
        for user in self._load():
            if user.id == user_id:
                return user
        raise NotFound("User not found")

    def get_by_email(self, email: str) -> User:
        for user in self._load():
            if _same_email(user.email, email):
                return user
        raise NotFound("User not found")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, user: User) -> User:
        """Append ``user`` with a freshly assigned id and return the stored record.

        The caller supplies the credential hash; nothing is hashed here.
        """

        with self._lock:
            users = self._load()
            if any(_same_email(existing.email, user.email) for existing in users):
                raise ValidationFailure("A user with that email already exists")
            created = user.with_id(_next_user_id(users))
            users.append(created)
            self._save(users)
        return created

    def update(self, user: User) -> bool:
        """Replace the record sharing ``user.id``.

        Returns ``False`` when no record has that id; the collection is then
        written back unchanged. Another record already holding ``user.email``
        raises :class:`ValidationFailure` and nothing is written.
        """

        with self._lock:
            users = self._load()
            if any(existing.id != user.id and _same_email(existing.email, user.email) for existing in users):
                raise ValidationFailure("A user with that email already exists")
            matched = False
            for index, existing in enumerate(users):
                if existing.id == user.id:
                    users[index] = user
                    matched = True
                    break
            self._save(users)
        return matched

    def delete(self, user_id: str) -> None:
        with self._lock:
            users = self._load()
            for index, existing in enumerate(users):
                if existing.id == user_id:
                    del users[index]
                    break
            self._save(users)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load(self) -> List[User]:
        try:
            raw = self._storage.read_all()
        except OSError as exc:
            raise StoreFailure("Unable to read user store") from exc
        try:
            records = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreFailure("User store contains malformed JSON") from exc

        if not isinstance(records, list):
            raise StoreFailure("User store must contain a JSON array")

        users: List[User] = []
        for record in records:
            if not isinstance(record, dict):
                raise StoreFailure("User store entries must be JSON objects")
            try:
                users.append(User.from_dict(record))
            except ValueError as exc:
                raise StoreFailure(str(exc)) from exc
        return users

    def _save(self, users: List[User]) -> None:
        payload = json.dumps([user.to_dict() for user in users], indent=2)
        try:
            self._storage.write_all(payload.encode("utf-8") + b"\n")
        except OSError as exc:
            raise StoreFailure("Unable to write user store") from exc


__all__ = ["StorageMedium", "UserStore"]
