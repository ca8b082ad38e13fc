"""In-process relay, transport and signer fakes shared across test packages.

Usage: Registered via ``pytest_plugins`` in the root ``conftest.py``. The
classes and [nip42_responder][] are also imported directly by tests that
script a relay's behaviour.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from relayauth.models.record import compute_record_id
from relayauth.session.config import SessionConfig
from relayauth.utils.signer import SignerAdapter


RELAY_URL = "wss://relay.example.com"
PUBKEY = "ab" * 32
FAKE_SIG = "0" * 128

Frame = list[Any]
Responder = Callable[[Frame], list[Frame] | None]


# =============================================================================
# Signer
# =============================================================================


class FakeSigner:
    """Deterministic ``ExternalSigner``: real NIP-01 ids, placeholder signatures."""

    def __init__(
        self,
        pubkey: str = PUBKEY,
        *,
        refuse: bool = False,
        tamper: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
    ) -> None:
        self.pubkey = pubkey
        self.refuse = refuse
        self.tamper = tamper
        self.signed: list[dict[str, Any]] = []

    async def get_public_key(self) -> str:
        return self.pubkey

    async def sign_event(self, event: dict[str, Any]) -> dict[str, Any]:
        if self.refuse:
            raise PermissionError("user rejected the request")
        result = dict(event)
        result["id"] = compute_record_id(
            event["pubkey"], event["created_at"], event["kind"], event["tags"], event["content"]
        )
        result["sig"] = FAKE_SIG
        if self.tamper is not None:
            result = self.tamper(result)
        self.signed.append(result)
        return result


# =============================================================================
# Connection / Transport
# =============================================================================


def nip42_responder(
    challenge: str | None = "c1",
    *,
    auth_ok: bool | None = True,
    auth_message: str = "",
    event_ok: bool | None = True,
    event_message: str = "",
) -> Responder:
    """Script a relay that challenges on ``REQ`` and answers submissions.

    ``None`` for ``challenge``, ``auth_ok`` or ``event_ok`` makes the relay
    stay silent at that step.
    """

    def respond(frame: Frame) -> list[Frame] | None:
        match frame[0]:
            case "REQ" if challenge is not None:
                return [["EOSE", frame[1]], ["AUTH", challenge]]
            case "AUTH" if auth_ok is not None:
                return [["OK", frame[1]["id"], auth_ok, auth_message]]
            case "EVENT" if event_ok is not None:
                return [["OK", frame[1]["id"], event_ok, event_message]]
        return None

    return respond


class FakeConnection:
    """``Connection`` backed by an ``asyncio.Queue`` of inbound frames."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.responder = responder
        self.sent: list[str] = []
        self.closed = False
        self.fail_send = False
        self._inbound: asyncio.Queue[str | BaseException | None] = asyncio.Queue()

    @property
    def frames(self) -> list[Frame]:
        """Outbound frames, decoded."""
        return [json.loads(text) for text in self.sent]

    def frames_of(self, message_type: str) -> list[Frame]:
        return [frame for frame in self.frames if frame[0] == message_type]

    def push(self, frame: Frame | str) -> None:
        """Deliver a frame from the relay (raw strings are passed verbatim)."""
        self._inbound.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def push_error(self, error: BaseException) -> None:
        """Make the next ``recv`` raise *error* (e.g. an undecodable frame)."""
        self._inbound.put_nowait(error)

    def drop(self) -> None:
        """Simulate the relay closing the socket."""
        self._inbound.put_nowait(None)

    async def send(self, text: str) -> None:
        if self.closed or self.fail_send:
            raise ConnectionResetError("socket closed")
        self.sent.append(text)
        if self.responder is not None:
            for reply in self.responder(json.loads(text)) or ():
                self.push(reply)

    async def recv(self) -> str | None:
        if self.closed:
            return None
        item = await self._inbound.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self._inbound.put_nowait(None)


class FakeTransport:
    """``Transport`` handing out [FakeConnection][] objects."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.responder = responder
        self.connect_error: BaseException | None = None
        self.connections: list[FakeConnection] = []
        self.urls: list[str] = []

    @property
    def connection(self) -> FakeConnection:
        """The most recently opened connection."""
        return self.connections[-1]

    async def connect(self, url: str, timeout: float) -> FakeConnection:  # noqa: ASYNC109
        self.urls.append(url)
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(self.responder)
        self.connections.append(connection)
        return connection


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def signer_adapter(fake_signer: FakeSigner) -> SignerAdapter:
    return SignerAdapter(fake_signer)


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport whose relay completes the handshake and accepts events."""
    return FakeTransport(nip42_responder())


@pytest.fixture
def session_config() -> SessionConfig:
    """Session config with short timeouts for fast failure paths."""
    return SessionConfig(relay_url=RELAY_URL, timeout=0.5, publish_timeout=0.2)
