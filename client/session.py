"""
client/session.py -- The client's single source of truth for "who is logged in".

SessionManager mirrors the identity provider's session into an immutable
SessionState and publishes every change to subscribers. It is meant to be
created once per client process and started once.

Writers:
  _publish() is the only method that assigns self._state. It is called by
  the provider's change notifications, by the startup restore, by the
  loading toggles around login/register/logout, and by logout's local
  clear. Everything else reads.

Ordering:
  is_loading stays True until start()'s restore completes, even if a
  login or logout finishes first.

  The provider's notifications and our own awaited calls travel on
  separate channels and may interleave. Whatever is published last wins;
  there is no request fencing. login() in particular never sets the
  session -- the SIGNED_IN notification does.

Concurrency:
  login/register/logout are not safe against each other. No lock or queue
  is used; callers (UI) keep at most one in flight.

Usage:
    manager = SessionManager(provider, ProfileSynchronizer(table))
    await manager.start()
    await manager.wait_until_ready()
    if manager.is_authenticated: ...
    unsubscribe = manager.subscribe(lambda state: render(state))
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable

from client.models import Session, SessionEvent, SessionState
from client.profiles import ProfileSynchronizer
from client.provider import IdentityProvider, Unsubscribe
from core.config import ProvisioningFailurePolicy
from core.errors import MarketplaceError, ProviderError, ProvisioningError

logger = logging.getLogger("negocehub.client.session")

StateListener = Callable[[SessionState], None]

_UNSET = object()


class SessionManager:
    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileSynchronizer,
        failure_policy: ProvisioningFailurePolicy = ProvisioningFailurePolicy.propagate,
    ) -> None:
        self._provider = provider
        self._profiles = profiles
        self._failure_policy = failure_policy
        self._state = SessionState(session=None, is_loading=True)
        self._listeners: list[StateListener] = []
        self._provider_unsubscribe: Unsubscribe | None = None
        self._ready = asyncio.Event()
        self._started = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_session(self) -> Session | None:
        return self._state.session

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call listener with every future SessionState. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the provider and restore any persisted session.

        Subscribing first means a notification that fires during the restore
        is not lost. Calling start() twice is a no-op.
        """
        if self._started:
            return
        self._started = True
        self._provider_unsubscribe = self._provider.on_session_change(self._on_provider_change)
        try:
            session = await self._provider.get_session()
        except Exception:
            # Leave "unknown" behind: a failed restore reads as logged out.
            logger.exception("Session restore failed; continuing unauthenticated")
            session = None
        self._publish(session=session, is_loading=False)
        self._ready.set()
        if session is not None:
            logger.info("Session restored for identity %s", session.identity_id)

    async def wait_until_ready(self) -> SessionState:
        """Wait for start()'s restore to finish and return the state at that point."""
        await self._ready.wait()
        return self._state

    def close(self) -> None:
        """Stop listening to the provider."""
        if self._provider_unsubscribe is not None:
            self._provider_unsubscribe()
            self._provider_unsubscribe = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> None:
        """Sign in through the provider.

        Returning without an exception means the provider accepted the
        credentials; the session itself arrives via the change notification
        and may not be visible yet.
        """
        self._publish(is_loading=True)
        try:
            await self._call_provider("sign in", self._provider.sign_in_with_password(email, password))
        finally:
            self._publish(is_loading=self._restore_pending())

    async def register(self, name: str, email: str, password: str) -> str:
        """Create the identity with the provider, then its profile row.

        Returns the new identity id. If the profile insert fails the
        configured ProvisioningFailurePolicy runs and ProvisioningError
        propagates; the provider identity is not deleted either way.
        """
        self._publish(is_loading=True)
        try:
            identity_id = await self._call_provider("sign up", self._provider.sign_up(email, password))
            try:
                await self._profiles.provision(identity_id, name, email)
            except ProvisioningError:
                await self._handle_provisioning_failure(identity_id)
                raise
            return identity_id
        finally:
            self._publish(is_loading=self._restore_pending())

    async def logout(self) -> None:
        """Sign out and clear the local session without waiting for the notification."""
        self._publish(is_loading=True)
        try:
            await self._call_provider("sign out", self._provider.sign_out())
        except ProviderError:
            self._publish(is_loading=self._restore_pending())
            raise
        self._publish(session=None, is_loading=self._restore_pending())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _restore_pending(self) -> bool:
        # Until start()'s restore finishes the session is still unknown.
        return not self._ready.is_set()

    def _on_provider_change(self, event: SessionEvent, session: Session | None) -> None:
        logger.debug("Provider session event %s", event.value if isinstance(event, SessionEvent) else event)
        self._publish(session=session, is_loading=False)

    def _publish(self, session: Session | None | object = _UNSET, is_loading: bool | object = _UNSET) -> None:
        changes: dict = {}
        if session is not _UNSET:
            changes["session"] = session
        if is_loading is not _UNSET:
            changes["is_loading"] = is_loading
        new_state = dataclasses.replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Session listener raised; continuing with remaining listeners")

    async def _call_provider(self, action: str, call):
        try:
            return await call
        except MarketplaceError:
            raise
        except Exception as exc:
            logger.warning("Identity provider %s failed: %s", action, exc)
            raise ProviderError(f"Could not {action}") from exc

    async def _handle_provisioning_failure(self, identity_id: str) -> None:
        logger.error(
            "Identity %s exists at the provider without a profile row (policy=%s)",
            identity_id,
            self._failure_policy.value,
        )
        if self._failure_policy is ProvisioningFailurePolicy.sign_out:
            try:
                await self._provider.sign_out()
            except Exception:
                logger.exception("Sign-out after failed provisioning also failed for %s", identity_id)
            self._publish(session=None)
