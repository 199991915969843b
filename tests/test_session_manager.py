"""Unit tests for client/session.py and client/profiles.py.

Uses in-memory doubles for the identity provider and the profile table so
the ordering between awaited calls and pushed notifications can be driven
by hand.

Covers:
- is_loading is True until start() finishes the restore, False after, even
  when a login or register completes while the restore is still pending
- restore failure ends loading and reads as logged out
- login() never sets the session; the SIGNED_IN notification does
- logout() clears the session locally before any notification arrives
- register() provisions a profile row under the provider-assigned id
- provisioning failure: propagate keeps the session, sign_out clears it
- provider failures surface as ProviderError; listener errors are isolated
"""

from __future__ import annotations

import asyncio

import pytest

from client.models import Session, SessionEvent, SessionState
from client.profiles import ProfileSynchronizer
from client.session import SessionManager
from core.config import ProvisioningFailurePolicy
from core.errors import InvalidCredentialsError, ProviderError, ProvisioningError

ALICE = Session(identity_id="id-alice", email="a@x.com", access_token="at-1", refresh_token="rt-1")


class FakeProvider:
    """IdentityProvider double. Notifications are pushed only via emit()."""

    def __init__(self, stored: Session | None = None) -> None:
        self.stored = stored
        self.listeners: list = []
        self.sign_in_calls: list[tuple[str, str]] = []
        self.sign_out_calls = 0
        self.restore_error: Exception | None = None
        self.sign_in_error: Exception | None = None
        self.sign_out_error: Exception | None = None
        self.next_id = "id-new"

    async def sign_in_with_password(self, email: str, password: str) -> None:
        self.sign_in_calls.append((email, password))
        if self.sign_in_error:
            raise self.sign_in_error

    async def sign_up(self, email: str, password: str) -> str:
        return self.next_id

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.sign_out_error:
            raise self.sign_out_error

    async def get_session(self) -> Session | None:
        if self.restore_error:
            raise self.restore_error
        return self.stored

    def on_session_change(self, callback):
        self.listeners.append(callback)

        def unsubscribe() -> None:
            self.listeners.remove(callback)

        return unsubscribe

    def emit(self, event: SessionEvent, session: Session | None) -> None:
        for callback in list(self.listeners):
            callback(event, session)


class GatedProvider(FakeProvider):
    """FakeProvider whose session restore waits until gate is set."""

    def __init__(self, stored: Session | None = None) -> None:
        super().__init__(stored)
        self.gate = asyncio.Event()

    async def get_session(self) -> Session | None:
        await self.gate.wait()
        return await super().get_session()


class FakeProfileTable:
    """ProfileTable double with a primary key on id."""

    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}
        self.fail_with: Exception | None = None

    async def insert(self, record: dict) -> None:
        if self.fail_with:
            raise self.fail_with
        if record["id"] in self.rows:
            raise RuntimeError("duplicate key value violates unique constraint")
        self.rows[record["id"]] = record


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def table() -> FakeProfileTable:
    return FakeProfileTable()


def _manager(provider, table, policy=ProvisioningFailurePolicy.propagate) -> SessionManager:
    return SessionManager(provider, ProfileSynchronizer(table), failure_policy=policy)


class TestStartup:
    async def test_loading_until_started(self, provider, table) -> None:
        manager = _manager(provider, table)
        assert manager.is_loading is True
        assert manager.is_authenticated is False

    async def test_loading_holds_while_restore_pending(self, table) -> None:
        provider = GatedProvider(stored=ALICE)
        manager = _manager(provider, table)
        starting = asyncio.create_task(manager.start())
        await asyncio.sleep(0)
        assert manager.is_loading is True

        await manager.login("a@x.com", "secret123")
        assert manager.is_loading is True
        await manager.register("Bob", "b@x.com", "secret123")
        assert manager.is_loading is True

        provider.gate.set()
        await starting
        assert manager.is_loading is False
        assert manager.current_session == ALICE

    async def test_failed_login_during_restore_keeps_loading(self, table) -> None:
        provider = GatedProvider()
        provider.sign_in_error = InvalidCredentialsError()
        manager = _manager(provider, table)
        starting = asyncio.create_task(manager.start())
        await asyncio.sleep(0)
        with pytest.raises(InvalidCredentialsError):
            await manager.login("a@x.com", "wrong")
        assert manager.is_loading is True
        provider.gate.set()
        await starting
        assert manager.is_loading is False

    async def test_restores_persisted_session(self, table) -> None:
        manager = _manager(FakeProvider(stored=ALICE), table)
        await manager.start()
        state = await manager.wait_until_ready()
        assert state.is_loading is False
        assert state.session == ALICE
        assert manager.is_authenticated

    async def test_no_persisted_session(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        assert manager.is_loading is False
        assert manager.current_session is None

    async def test_restore_failure_reads_as_logged_out(self, provider, table) -> None:
        provider.restore_error = RuntimeError("storage unreadable")
        manager = _manager(provider, table)
        await manager.start()
        assert manager.is_loading is False
        assert manager.is_authenticated is False

    async def test_start_is_idempotent(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        await manager.start()
        assert len(provider.listeners) == 1

    async def test_close_unsubscribes(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        manager.close()
        provider.emit(SessionEvent.SIGNED_IN, ALICE)
        assert manager.current_session is None


class TestLogin:
    async def test_session_arrives_only_via_notification(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        await manager.login("a@x.com", "secret123")
        assert provider.sign_in_calls == [("a@x.com", "secret123")]
        assert manager.current_session is None
        assert manager.is_loading is False

        provider.emit(SessionEvent.SIGNED_IN, ALICE)
        assert manager.current_session == ALICE

    async def test_rejected_credentials_propagate(self, provider, table) -> None:
        provider.sign_in_error = InvalidCredentialsError()
        manager = _manager(provider, table)
        await manager.start()
        with pytest.raises(InvalidCredentialsError):
            await manager.login("a@x.com", "wrong")
        assert manager.is_loading is False
        assert manager.current_session is None

    async def test_unexpected_failure_is_provider_error(self, provider, table) -> None:
        provider.sign_in_error = ConnectionError("network down")
        manager = _manager(provider, table)
        await manager.start()
        with pytest.raises(ProviderError):
            await manager.login("a@x.com", "secret123")
        assert manager.is_loading is False

    async def test_loading_toggles_around_call(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        seen: list[bool] = []
        manager.subscribe(lambda state: seen.append(state.is_loading))
        await manager.login("a@x.com", "secret123")
        assert seen == [True, False]


class TestLogout:
    async def test_clears_locally_without_notification(self, table) -> None:
        provider = FakeProvider(stored=ALICE)
        manager = _manager(provider, table)
        await manager.start()
        await manager.logout()
        assert provider.sign_out_calls == 1
        assert manager.current_session is None
        assert manager.is_loading is False

    async def test_late_signed_out_notification_is_harmless(self, table) -> None:
        provider = FakeProvider(stored=ALICE)
        manager = _manager(provider, table)
        await manager.start()
        await manager.logout()
        states: list[SessionState] = []
        manager.subscribe(states.append)
        provider.emit(SessionEvent.SIGNED_OUT, None)
        assert manager.current_session is None
        # Nothing changed, so nothing was published
        assert states == []

    async def test_failed_sign_out_keeps_session(self, table) -> None:
        provider = FakeProvider(stored=ALICE)
        provider.sign_out_error = ConnectionError("offline")
        manager = _manager(provider, table)
        await manager.start()
        with pytest.raises(ProviderError):
            await manager.logout()
        assert manager.current_session == ALICE
        assert manager.is_loading is False


class TestRegister:
    async def test_provisions_profile_under_provider_id(self, provider, table) -> None:
        provider.next_id = "id-bob"
        manager = _manager(provider, table)
        await manager.start()
        identity_id = await manager.register("Bob", "Bob@X.com", "secret123")
        assert identity_id == "id-bob"
        assert table.rows["id-bob"] == {"id": "id-bob", "name": "Bob", "email": "bob@x.com", "is_seller": False}
        assert manager.is_loading is False

    async def test_propagate_policy_keeps_provider_session(self, provider, table) -> None:
        table.fail_with = RuntimeError("permission denied for table users")
        manager = _manager(provider, table)
        await manager.start()
        provider.emit(SessionEvent.SIGNED_IN, ALICE)
        with pytest.raises(ProvisioningError) as excinfo:
            await manager.register("Alice", "a@x.com", "secret123")
        assert excinfo.value.identity_id == "id-new"
        assert provider.sign_out_calls == 0
        assert manager.current_session == ALICE
        assert manager.is_loading is False

    async def test_sign_out_policy_clears_session(self, provider, table) -> None:
        table.fail_with = RuntimeError("permission denied for table users")
        manager = _manager(provider, table, ProvisioningFailurePolicy.sign_out)
        await manager.start()
        provider.emit(SessionEvent.SIGNED_IN, ALICE)
        with pytest.raises(ProvisioningError):
            await manager.register("Alice", "a@x.com", "secret123")
        assert provider.sign_out_calls == 1
        assert manager.current_session is None

    async def test_second_provision_for_same_id_fails(self, table) -> None:
        sync = ProfileSynchronizer(table)
        await sync.provision("id-1", "Carol", "c@x.com")
        with pytest.raises(ProvisioningError):
            await sync.provision("id-1", "Carol", "c@x.com")
        assert len(table.rows) == 1


class TestListeners:
    async def test_listener_error_does_not_stop_others(self, provider, table) -> None:
        manager = _manager(provider, table)
        received: list[SessionState] = []

        def broken(state: SessionState) -> None:
            raise RuntimeError("render failed")

        manager.subscribe(broken)
        manager.subscribe(received.append)
        await manager.start()
        provider.emit(SessionEvent.SIGNED_IN, ALICE)
        assert manager.current_session == ALICE
        assert received[-1].session == ALICE

    async def test_unsubscribe_stops_delivery(self, provider, table) -> None:
        manager = _manager(provider, table)
        received: list[SessionState] = []
        unsubscribe = manager.subscribe(received.append)
        unsubscribe()
        await manager.start()
        assert received == []

    async def test_published_state_is_immutable(self, provider, table) -> None:
        manager = _manager(provider, table)
        await manager.start()
        state = manager.state
        with pytest.raises(AttributeError):
            state.is_loading = True  # type: ignore[misc]
