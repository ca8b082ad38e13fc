"""
Unit tests for session.observable module.

Tests:
- AuthState.describe() status lines
- AuthClient converts session failures into state snapshots
- Subscribers receive the current state immediately and every update
"""

import asyncio

import pytest

from relayauth.session.config import SessionConfig
from relayauth.session.observable import AuthClient, AuthState
from tests.fixtures.relay import FakeSigner, FakeTransport, nip42_responder


@pytest.fixture
def client(session_config: SessionConfig, fake_transport: FakeTransport) -> AuthClient:
    return AuthClient.from_config(session_config, FakeSigner(), fake_transport)


class TestAuthState:
    @pytest.mark.parametrize(
        ("state", "line"),
        [
            (AuthState(), "Ready to authenticate"),
            (AuthState(is_connecting=True), "Connecting and authenticating..."),
            (AuthState(is_authenticated=True), "Authenticated"),
            (AuthState(error="timed out"), "Error: timed out"),
        ],
    )
    def test_describe(self, state: AuthState, line: str):
        assert state.describe() == line


class TestAuthClient:
    def test_subscribe_replays_current_state(self, client: AuthClient):
        seen: list[AuthState] = []
        client.subscribe(seen.append)
        assert seen == [AuthState()]

    @pytest.mark.asyncio
    async def test_authenticate_and_publish(self, client: AuthClient):
        seen: list[AuthState] = []
        client.subscribe(seen.append)

        assert await client.authenticate() is True
        event_id = await client.publish_event("hello", "greeting", [["t", "x"]])

        assert event_id is not None
        assert client.state == AuthState(is_authenticated=True, event_id=event_id)
        assert AuthState(is_connecting=True) in seen

    @pytest.mark.asyncio
    async def test_no_signer(self, session_config, fake_transport):
        client = AuthClient.from_config(session_config, None, fake_transport)
        assert client.is_signer_available() is False

        assert await client.authenticate() is False
        assert client.state.error == "No signer available"
        assert fake_transport.connections == []

    @pytest.mark.asyncio
    async def test_authentication_failure_is_recorded(self, session_config):
        transport = FakeTransport(nip42_responder(auth_ok=False, auth_message="blocked: no"))
        client = AuthClient.from_config(session_config, FakeSigner(), transport)

        assert await client.authenticate() is False
        assert client.state.is_authenticated is False
        assert client.state.is_connecting is False
        assert "blocked: no" in client.state.error

    @pytest.mark.asyncio
    async def test_publish_before_authenticate(self, client: AuthClient):
        assert await client.publish_event("hello", "greeting") is None
        assert client.state.error == "Must authenticate first"

    @pytest.mark.asyncio
    async def test_publish_rejection_is_recorded(self, session_config):
        transport = FakeTransport(nip42_responder(event_ok=False, event_message="rate-limited"))
        client = AuthClient.from_config(session_config, FakeSigner(), transport)
        await client.authenticate()

        assert await client.publish_event("hello", "greeting") is None
        assert "rate-limited" in client.state.error
        assert client.state.is_authenticated is True

    @pytest.mark.asyncio
    async def test_invalid_tags_are_recorded(self, client: AuthClient):
        await client.authenticate()
        assert await client.publish_event("hello", "greeting", [["d", "dup"]]) is None
        assert "'d' tag" in client.state.error

    @pytest.mark.asyncio
    async def test_disconnect_resets_state(self, client: AuthClient):
        await client.authenticate()
        await client.publish_event("hello", "greeting")

        await client.disconnect()

        assert client.state == AuthState()
        assert not client.session.authenticated

    @pytest.mark.asyncio
    async def test_unsubscribe(self, client: AuthClient):
        seen: list[AuthState] = []
        unsubscribe = client.subscribe(seen.append)
        unsubscribe()

        await client.authenticate()
        assert seen == [AuthState()]

    @pytest.mark.asyncio
    async def test_connection_drop_reaches_subscribers(self, client, fake_transport):
        seen: list[AuthState] = []
        client.subscribe(seen.append)
        await client.authenticate()

        fake_transport.connection.drop()
        for _ in range(10):
            await asyncio.sleep(0)

        assert seen[-1].is_authenticated is False
        assert "lost" in seen[-1].error
        assert client.state.describe().startswith("Error:")

    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self, client: AuthClient):
        seen: list[AuthState] = []

        def broken(state: AuthState) -> None:
            if state.is_authenticated:
                raise RuntimeError("render failed")

        client.subscribe(broken)
        client.subscribe(seen.append)

        assert await client.authenticate() is True
        assert seen[-1].is_authenticated is True

    @pytest.mark.asyncio
    async def test_no_duplicate_snapshots(self, client: AuthClient):
        seen: list[AuthState] = []
        client.subscribe(seen.append)
        await client.authenticate()

        assert all(a != b for a, b in zip(seen, seen[1:], strict=False))
