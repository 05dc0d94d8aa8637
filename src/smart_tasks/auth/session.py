# src/smart_tasks/auth/session.py

from __future__ import annotations

"""
Mock session provider.

Demo accounts live in memory; the signed-in user is persisted in the local
store so a restart keeps the session. Passwords are never written to disk.
logout() only forgets the session; task_api.logout() also clears the
cached task list through the sync engine.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import KeyValueStore
from ..tasks.task_models import utc_now

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "taskmanager_user"

MSG_INVALID_CREDENTIALS = "Invalid email or password"
MSG_USER_EXISTS = "User already exists"


@dataclass(slots=True)
class User:
    id: int
    email: str
    name: str
    avatar: str = "👤"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name, "avatar": self.avatar}

    @classmethod
    def from_dict(cls, data: Any) -> User:
        if not isinstance(data, dict):
            raise ValueError("stored user is not an object")
        try:
            return cls(
                id=int(data["id"]),
                email=str(data["email"]),
                name=str(data.get("name") or ""),
                avatar=str(data.get("avatar") or "👤"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"stored user is malformed: {e}") from e


@dataclass(slots=True, frozen=True)
class AuthResult:
    success: bool
    error: str | None = None


@dataclass(slots=True)
class _Account:
    user: User
    password: str


def default_accounts() -> list[_Account]:
    return [
        _Account(User(1, "admin@taskmanager.com", "Admin User", "👨‍💻"), "admin123"),
        _Account(User(2, "user@taskmanager.com", "Regular User", "👩‍💼"), "user123"),
        _Account(User(3, "demo@taskmanager.com", "Demo User", "🚀"), "demo123"),
    ]


@dataclass
class MockAuthProvider:
    store: KeyValueStore
    session_key: str = DEFAULT_SESSION_KEY
    latency_seconds: float = 0.0

    _accounts: list[_Account] = field(default_factory=default_accounts)
    _user: User | None = None

    def __post_init__(self) -> None:
        self._user = self._restore()

    def _restore(self) -> User | None:
        raw = self.store.read(self.session_key)
        if raw is None:
            return None
        try:
            return User.from_dict(raw)
        except ValueError as e:
            logger.error("Error parsing stored user, dropping session: %s", e)
            self.store.remove(self.session_key)
            return None

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def _find(self, email: str) -> _Account | None:
        needle = (email or "").strip().lower()
        for acc in self._accounts:
            if acc.user.email.lower() == needle:
                return acc
        return None

    def _sign_in(self, user: User) -> None:
        self._user = user
        self.store.write(self.session_key, user.to_dict())

    async def _simulate_latency(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def login(self, email: str, password: str) -> AuthResult:
        await self._simulate_latency()
        acc = self._find(email)
        if acc is None or acc.password != password:
            logger.info("Login rejected for %s", email)
            return AuthResult(False, MSG_INVALID_CREDENTIALS)

        self._sign_in(acc.user)
        logger.info("Logged in as %s", acc.user.email)
        return AuthResult(True)

    async def register(self, email: str, password: str, name: str) -> AuthResult:
        await self._simulate_latency()
        if self._find(email) is not None:
            return AuthResult(False, MSG_USER_EXISTS)

        user = User(id=int(utc_now().timestamp() * 1000), email=email.strip(), name=name.strip())
        self._accounts.append(_Account(user, password))
        self._sign_in(user)
        logger.info("Registered %s", user.email)
        return AuthResult(True)

    def logout(self) -> None:
        """Forget the session."""
        if self._user is not None:
            logger.info("Logged out %s", self._user.email)
        self._user = None
        self.store.remove(self.session_key)
