"""
Client-side session storage.

The bearer token lives in persisted client storage. A missing or expired
session is how claims learn the user is unauthenticated, so ``current()``
never returns a session that should not be sent.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """An authenticated storefront user."""

    user_id: str
    token: str
    expires_at: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Check if session can still be sent to the server."""
        if not self.user_id or not self.token:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "token": self.token,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        expires_at = data.get("expires_at")
        parsed = datetime.fromisoformat(expires_at) if expires_at else None
        if parsed is not None and parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return cls(user_id=data["user_id"], token=data["token"], expires_at=parsed)


class SessionStore(ABC):
    """Abstract interface for persisted session storage."""

    @abstractmethod
    def load(self) -> Optional[Session]:
        """Return the stored session, valid or not."""

    @abstractmethod
    def save(self, session: Session) -> None:
        """Persist a session, replacing any previous one."""

    @abstractmethod
    def clear(self) -> None:
        """Forget the stored session."""

    def current(self) -> Optional[Session]:
        """The stored session if it is present and unexpired."""
        session = self.load()
        if session is None:
            return None
        if not session.is_valid():
            logger.info(f"Stored session for user {session.user_id} has expired")
            return None
        return session


class MemorySessionStore(SessionStore):
    """Session store for tests and embedded use."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self._session = session

    def load(self) -> Optional[Session]:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore(SessionStore):
    """Session persisted as JSON with owner-only permissions."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                return Session.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(session.to_dict(), f, indent=2)
        self.path.chmod(0o600)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
