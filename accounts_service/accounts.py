"""Login, registration and ownership-checked account management."""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from .credentials import CredentialService
from .errors import AuthFailure, InvalidCredentials, NotFound, Unauthorized, ValidationFailure
from .models import NewUser, User, UserUpdate
from .store import UserStore
from .tokens import TokenService


def _normalize_email(email: Optional[str]) -> str:
    normalized = email.strip().lower() if email else ""
    if not normalized:
        raise ValidationFailure("Email must not be empty")
    return normalized


class AccountService:
    """Coordinate the user store, password hashing and bearer tokens."""

    def __init__(
        self,
        store: UserStore,
        credentials: CredentialService,
        tokens: TokenService,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._tokens = tokens

    def login(self, email: str, password: str) -> str:
        """Return a bearer token for a matching email/password pair.

        An unknown email and a wrong password raise the same
        :class:`InvalidCredentials` error.
        """

        try:
            user = self._store.get_by_email(email.strip().lower())
        except NotFound as exc:
            raise InvalidCredentials() from exc

        if not self._credentials.verify(password, user.password):
            raise InvalidCredentials()

        return self._tokens.issue(user.email)

    def list_users(self) -> List[User]:
        return self._store.list()

    def get_user(self, user_id: str) -> User:
        return self._store.get_by_id(user_id)

    def create_user(self, new_user: NewUser) -> User:
        email = _normalize_email(new_user.email)
        if not new_user.password:
            raise ValidationFailure("Password must not be empty")

        record = User(
            id="",
            email=email,
            password=self._credentials.hash(new_user.password),
            first_name=new_user.first_name,
            last_name=new_user.last_name,
            profile=dict(new_user.profile),
        )
        return self._store.create(record)

    def update_user(self, user_id: str, update: UserUpdate, token: Optional[str]) -> User:
        """Apply ``update`` to the account owned by the token's subject.

        The stored id is always preserved. A supplied password is hashed
        again; an omitted one keeps the current credential.
        """

        target = self._store.get_by_id(user_id)
        self._authorize(target, token)

        changes = {}
        if update.email is not None:
            changes["email"] = _normalize_email(update.email)
        if update.password is not None:
            if not update.password:
                raise ValidationFailure("Password must not be empty")
            changes["password"] = self._credentials.hash(update.password)
        if update.first_name is not None:
            changes["first_name"] = update.first_name
        if update.last_name is not None:
            changes["last_name"] = update.last_name
        if update.profile is not None:
            changes["profile"] = dict(update.profile)

        updated = replace(target, **changes)
        if not self._store.update(updated):
            raise NotFound("User not found")
        return updated

    def delete_user(self, user_id: str, token: Optional[str]) -> None:
        target = self._store.get_by_id(user_id)
        self._authorize(target, token)
        self._store.delete(target.id)

    def _authorize(self, target: User, token: Optional[str]) -> None:
        if not token:
            raise Unauthorized()
        try:
            subject = self._tokens.verify(token)
        except AuthFailure as exc:
            raise Unauthorized() from exc
        if subject != target.email:
            raise Unauthorized()


__all__ = ["AccountService"]
