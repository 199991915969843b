"""
client/supabase_provider.py -- Supabase adapters for IdentityProvider and ProfileTable.

Wraps supabase-py's async client:
  auth.sign_in_with_password / sign_up / sign_out / get_session
  auth.on_auth_state_change          -> push notifications
  table(<profiles_table>).insert(...) -> profile provisioning

Supabase errors are classified by their code/message text. The exception
classes have moved between supabase-py releases; the codes have not.

  invalid_credentials / "invalid login credentials" -> InvalidCredentialsError
  user_already_exists / "already registered"        -> ConflictError
  anything else                                      -> ProviderError

Passwords are passed straight through and never logged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from supabase import AsyncClient, acreate_client

from client.models import Session, SessionEvent
from client.profiles import ProfileSynchronizer
from client.provider import SessionListener, Unsubscribe
from client.session import SessionManager
from core.config import Settings, get_settings
from core.errors import ConflictError, InvalidCredentialsError, ProviderError

logger = logging.getLogger("negocehub.client.supabase")

# (substring in code or message, exception factory)
_ERROR_MAP: list[tuple[str, type]] = [
    ("invalid_credentials", InvalidCredentialsError),
    ("invalid login credentials", InvalidCredentialsError),
    ("user_already_exists", ConflictError),
    ("already registered", ConflictError),
]


def _classify(exc: Exception, action: str) -> Exception:
    text = f"{getattr(exc, 'code', '') or ''} {exc}".lower()
    for needle, error_cls in _ERROR_MAP:
        if needle in text:
            return error_cls()
    logger.warning("Supabase %s failed: %s", action, exc)
    return ProviderError(f"Could not {action}")


def to_session(raw) -> Session | None:
    """Convert a supabase-py Session object into our frozen Session."""
    if raw is None or getattr(raw, "user", None) is None:
        return None
    expires_at = None
    if getattr(raw, "expires_at", None):
        expires_at = datetime.fromtimestamp(int(raw.expires_at), tz=timezone.utc)
    return Session(
        identity_id=str(raw.user.id),
        email=raw.user.email or "",
        access_token=raw.access_token,
        refresh_token=getattr(raw, "refresh_token", None),
        expires_at=expires_at,
    )


def to_event(raw_event) -> SessionEvent:
    value = getattr(raw_event, "value", raw_event)
    try:
        return SessionEvent(str(value))
    except ValueError:
        # Events we do not model (PASSWORD_RECOVERY, MFA_...) still carry a session.
        return SessionEvent.USER_UPDATED


class SupabaseIdentityProvider:
    """IdentityProvider backed by Supabase Auth."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def sign_in_with_password(self, email: str, password: str) -> None:
        try:
            await self._client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            raise _classify(exc, "sign in") from exc

    async def sign_up(self, email: str, password: str) -> str:
        try:
            response = await self._client.auth.sign_up({"email": email, "password": password})
        except Exception as exc:
            raise _classify(exc, "sign up") from exc
        if response.user is None:
            raise ProviderError("Sign-up returned no user")
        return str(response.user.id)

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except Exception as exc:
            raise _classify(exc, "sign out") from exc

    async def get_session(self) -> Session | None:
        try:
            raw = await self._client.auth.get_session()
        except Exception as exc:
            raise _classify(exc, "restore the session") from exc
        return to_session(raw)

    def on_session_change(self, callback: SessionListener) -> Unsubscribe:
        def _forward(raw_event, raw_session) -> None:
            callback(to_event(raw_event), to_session(raw_session))

        subscription = self._client.auth.on_auth_state_change(_forward)
        return subscription.unsubscribe


class SupabaseProfileTable:
    """ProfileTable backed by a PostgREST table (plain insert, no upsert)."""

    def __init__(self, client: AsyncClient, table: str = "users") -> None:
        self._client = client
        self._table = table

    async def insert(self, record: dict) -> None:
        await self._client.table(self._table).insert(record).execute()


async def create_session_manager(settings: Settings | None = None) -> SessionManager:
    """Build a started SessionManager wired to Supabase from settings."""
    settings = settings or get_settings()
    if not (settings.supabase_url and settings.supabase_anon_key):
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set to use the Supabase provider.")
    client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
    manager = SessionManager(
        SupabaseIdentityProvider(client),
        ProfileSynchronizer(SupabaseProfileTable(client, settings.profiles_table)),
        failure_policy=settings.provisioning_failure_policy,
    )
    await manager.start()
    return manager
