"""User directory backed by a JSON document."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from passlib.context import CryptContext

from .exceptions import InvalidCredentials, StoreUnavailable
from .models import Identity, User
from .store import JSONDocumentStore

logger = logging.getLogger("seatbooking.users")

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Verified against when the username is unknown so both failure paths cost the same.
_DUMMY_HASH = _pwd_context.hash("seatbooking-placeholder-password")

DEFAULT_USERS: Tuple[Tuple[str, str, str, bool], ...] = (
    ("admin", "admin123", "Administrator", True),
    ("student1", "student1", "John Doe", False),
    ("student2", "student2", "Jane Smith", False),
)


def _hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def _verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        return False


def _normalise_username(username: str) -> str:
    value = username.strip()
    if not value:
        raise ValueError("Username must not be empty")
    return value


def _record_to_user(username: str, record: Mapping[str, Any]) -> User:
    if not isinstance(record, Mapping):
        raise StoreUnavailable(f"Corrupt user record for {username}")
    name = record.get("name")
    return User(
        username=username,
        display_name=str(name) if name else username,
        is_admin=record.get("isAdmin") is True,
        password_hash=str(record.get("password", "")),
    )


def _user_to_record(user: User) -> Dict[str, Any]:
    return {
        "password": user.password_hash,
        "name": user.display_name,
        "isAdmin": user.is_admin,
    }


class UserDirectory:
    """Looks up provisioned users and checks their credentials."""

    def __init__(self, path: Path) -> None:
        self._document = JSONDocumentStore(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._document.path

    def _load(self) -> Dict[str, User]:
        raw = self._document.read()
        return {username: _record_to_user(username, record) for username, record in raw.items()}

    def get(self, username: str) -> Optional[User]:
        return self._load().get(username)

    def list_users(self) -> List[User]:
        return sorted(self._load().values(), key=lambda user: user.username)

    def authenticate(self, username: str, password: str) -> Identity:
        """Return the identity for valid credentials or raise :class:`InvalidCredentials`."""
        user = self._load().get(username.strip()) if username else None
        if user is None:
            _verify_password(password, _DUMMY_HASH)
            raise InvalidCredentials()
        if not password or not _verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user.identity()

    def create_user(
        self,
        username: str,
        display_name: str,
        password: str,
        *,
        is_admin: bool = False,
    ) -> User:
        """Add a user to the directory, rejecting duplicates."""
        normalised = _normalise_username(username)
        if not password:
            raise ValueError("Password must not be empty")
        name = display_name.strip() or normalised

        user = User(
            username=normalised,
            display_name=name,
            is_admin=is_admin,
            password_hash=_hash_password(password),
        )
        with self._lock:
            raw = self._document.read()
            if normalised in raw:
                raise ValueError(f"User '{normalised}' already exists")
            raw[normalised] = _user_to_record(user)
            self._document.write(raw)
        logger.info("Provisioned user %s (admin=%s)", normalised, is_admin)
        return user

    def initialize(self) -> bool:
        """Seed the directory with the default accounts if it does not exist yet."""
        with self._lock:
            if self._document.exists():
                return False
            document = {
                username: _user_to_record(
                    User(
                        username=username,
                        display_name=name,
                        is_admin=is_admin,
                        password_hash=_hash_password(password),
                    )
                )
                for username, password, name, is_admin in DEFAULT_USERS
            }
            self._document.write(document)
        logger.info("Seeded user directory at %s", self.path)
        return True


__all__ = ["DEFAULT_USERS", "UserDirectory"]
