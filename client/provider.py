"""
client/provider.py -- Structural interfaces for the client's external collaborators.

IdentityProvider: a session-based auth service (Supabase Auth in production).
    It owns credentials and sessions; SessionManager only mirrors what it
    reports through on_session_change().

ProfileTable: the application's own user table, reached through the
    provider's data API. Only insert is needed -- provisioning never reads.

typing.Protocol keeps SessionManager testable with plain in-memory doubles.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from client.models import Session, SessionEvent

SessionListener = Callable[[SessionEvent, "Session | None"], None]
Unsubscribe = Callable[[], None]


class IdentityProvider(Protocol):
    async def sign_in_with_password(self, email: str, password: str) -> None:
        """Start a session. Success is announced via on_session_change, not returned."""
        ...

    async def sign_up(self, email: str, password: str) -> str:
        """Create an identity and return the id the provider assigned."""
        ...

    async def sign_out(self) -> None: ...

    async def get_session(self) -> Session | None:
        """Return the persisted session, if any, without prompting for credentials."""
        ...

    def on_session_change(self, callback: SessionListener) -> Unsubscribe:
        """Register a callback for every session change; returns an unsubscribe function."""
        ...


class ProfileTable(Protocol):
    async def insert(self, record: dict) -> None:
        """Insert one row. Duplicate keys must raise, not upsert."""
        ...
