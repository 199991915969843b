"""
client/models.py -- Immutable session snapshots handed to client code.

Both classes are frozen: consumers hold read-only values and can never
mutate the manager's state behind its back. A new state is a new object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class SessionEvent(str, Enum):
    """Kinds of notification an identity provider pushes to SessionManager."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class Session:
    """Proof that one identity is authenticated on this client.

    expires_at is the provider's refresh horizon; None means the provider
    did not report one.
    """

    identity_id: str
    email: str
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


@dataclass(frozen=True)
class SessionState:
    """What SessionManager publishes.

    is_loading=True means "not known yet" -- consumers must not treat a
    missing session as logged-out while it is set.
    """

    session: Session | None = None
    is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and not self.session.is_expired()
