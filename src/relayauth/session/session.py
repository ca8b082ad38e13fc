"""NIP-42 authentication and event publication over one relay connection.

[RelayAuthSession][relayauth.session.session.RelayAuthSession] owns a single
[Connection][relayauth.utils.transport.Connection] and drives it through:

```text
IDLE -> CONNECTING -> AWAITING_CHALLENGE -> AUTHENTICATING -> AUTHENTICATED
                                                     AUTHENTICATED <-> PUBLISHING
any state -> CLOSED   (timeout, rejection, transport loss, disconnect)
```

One reader task per connection parses inbound frames in arrival order and
hands them to a [MessageDispatcher][relayauth.session.dispatcher.MessageDispatcher].
The challenge route answers ``["AUTH", challenge]`` with a signed kind 22242
proof; two [CorrelationSlot][relayauth.session.correlation.CorrelationSlot]
objects (one for the proof, one for a published event) claim the ``OK``
frames whose id they are waiting for and ignore every other one.

Note:
    There is no automatic reconnection. After a transport loss the session
    is ``CLOSED``; call
    [authenticate()][relayauth.session.session.RelayAuthSession.authenticate]
    again to open a fresh connection (and receive a fresh challenge).

See Also:
    [SignerAdapter][relayauth.utils.signer.SignerAdapter]: Identity and
        signatures.
    [AuthClient][relayauth.session.observable.AuthClient]: Observable
        wrapper that turns failures into state snapshots.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, Self

from relayauth.core.exceptions import (
    AuthenticationFailed,
    AuthenticationTimeout,
    NotAuthenticated,
    PublishFailed,
    PublishTimeout,
    RelayAuthError,
    SignerError,
    TransportError,
)
from relayauth.core.logger import Logger
from relayauth.models.message import (
    AuthChallenge,
    ClosedNotice,
    Notice,
    RelayMessage,
    encode_auth,
    encode_event,
    encode_req,
    parse_relay_message,
)
from relayauth.models.record import build_proof_record, build_publish_record
from relayauth.utils.transport import WebSocketTransport

from .correlation import CorrelationSlot
from .dispatcher import MessageDispatcher


if TYPE_CHECKING:
    from types import TracebackType

    from relayauth.utils.signer import SignerAdapter
    from relayauth.utils.transport import Connection, Transport

    from .config import SessionConfig


SERVICE_NAME: Final[str] = "session"

StatusListener = Callable[["SessionStatus"], None]


class SessionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_CHALLENGE = "awaiting_challenge"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    PUBLISHING = "publishing"
    CLOSED = "closed"


_HANDSHAKE_STATES: Final = frozenset(
    {SessionState.CONNECTING, SessionState.AWAITING_CHALLENGE, SessionState.AUTHENTICATING}
)
_AUTHENTICATED_STATES: Final = frozenset({SessionState.AUTHENTICATED, SessionState.PUBLISHING})


@dataclass(frozen=True, slots=True)
class SessionStatus:
    """Immutable snapshot of a session, delivered to subscribers.

    Attributes:
        state: Current lifecycle state.
        relay_url: Configured relay URL.
        identity: Hex public key while connected, else ``None``.
        error: Message of the most recent failure, cleared when a new
            operation starts or on an explicit disconnect.
        last_published_id: Id of the last event the relay accepted.
    """

    state: SessionState
    relay_url: str
    identity: str | None = None
    error: str | None = None
    last_published_id: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.state in _AUTHENTICATED_STATES

    @property
    def connecting(self) -> bool:
        return self.state in _HANDSHAKE_STATES

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "relay_url": self.relay_url,
            "identity": self.identity,
            "authenticated": self.authenticated,
            "connecting": self.connecting,
            "error": self.error,
            "last_published_id": self.last_published_id,
        }


class RelayAuthSession:
    """Client side of the NIP-42 handshake plus kind 30078 publication.

    Args:
        config: Relay URL, timeouts and trigger subscription.
        signer: Shared signer adapter; never owned by the session.
        transport: Connection factory. Defaults to a
            [WebSocketTransport][relayauth.utils.transport.WebSocketTransport]
            built from ``config``.
        logger: Structured logger. Defaults to ``Logger("session")``.

    Examples:
        ```python
        config = SessionConfig(relay_url="wss://relay.example.com")
        async with RelayAuthSession(config, SignerAdapter(KeysSigner(keys))) as session:
            await session.authenticate()
            event_id = await session.publish("hello", d_tag="greeting")
        ```
    """

    def __init__(
        self,
        config: SessionConfig,
        signer: SignerAdapter,
        transport: Transport | None = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._config = config
        self._signer = signer
        self._transport: Transport = (
            transport
            if transport is not None
            else WebSocketTransport(
                proxy_url=config.proxy_url,
                allow_insecure=config.allow_insecure,
                heartbeat=config.heartbeat,
            )
        )
        self._logger = logger if logger is not None else Logger(SERVICE_NAME)

        self._dispatcher = MessageDispatcher()
        self._dispatcher.add(
            "challenge", lambda m: isinstance(m, AuthChallenge), self._on_challenge
        )
        self._dispatcher.add("closed", lambda m: isinstance(m, ClosedNotice), self._on_closed)
        self._dispatcher.add("notice", lambda m: isinstance(m, Notice), self._on_notice)
        self._auth_slot = CorrelationSlot("authenticate", self._dispatcher)
        self._publish_slot = CorrelationSlot("publish", self._dispatcher)

        self._connection: Connection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._state = SessionState.IDLE
        self._identity: str | None = None
        self._pending_challenge: str | None = None
        self._error: str | None = None
        self._last_published_id: str | None = None
        self._closed_by_caller = False

        self._listeners: list[StatusListener] = []
        self._last_status: SessionStatus | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def authenticated(self) -> bool:
        return self._state in _AUTHENTICATED_STATES

    @property
    def signer_available(self) -> bool:
        return self._signer.available

    @property
    def pending_challenge(self) -> str | None:
        """Most recent challenge not yet embedded in a submitted proof."""
        return self._pending_challenge

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def authenticate(self) -> bool:
        """Connect, answer the relay's challenge, and wait for acceptance.

        Already authenticated sessions return ``True`` immediately without
        touching the connection.

        Returns:
            ``True`` once the relay accepted the proof.

        Raises:
            OperationInProgress: If a handshake is already running.
            SignerUnavailable: If no identity can be resolved (no connection
                is opened).
            SigningRejected: If the signer refuses the proof.
            AuthenticationFailed: If the relay answers the proof with
                ``OK false``.
            AuthenticationTimeout: If the whole handshake exceeds
                ``config.timeout``.
            TransportError: If the connection fails or drops.
        """
        if self.authenticated:
            return True

        self._auth_slot.acquire()
        self._closed_by_caller = False
        self._error = None
        try:
            return await self._handshake()
        except RelayAuthError as e:
            self._record_error(e)
            raise
        finally:
            self._auth_slot.release()

    async def _handshake(self) -> bool:
        url = self._config.relay_url
        timeout = self._config.timeout

        identity = await self._signer.get_identity()
        self._identity = identity
        self._set_state(SessionState.CONNECTING)
        self._logger.info("auth_started", relay=url, pubkey=identity)

        try:
            async with asyncio.timeout(timeout):
                connection = await self._transport.connect(url, timeout)
                self._connection = connection
                self._reader = asyncio.create_task(
                    self._read_loop(connection), name=f"relayauth-reader:{url}"
                )
                await self._send(
                    encode_req(self._config.subscription_id, self._config.trigger_filter)
                )
                if self._state is SessionState.CONNECTING:
                    self._set_state(SessionState.AWAITING_CHALLENGE)
                result = await self._auth_slot.wait()
        except RelayAuthError:
            await self._teardown()
            raise
        except TimeoutError:
            stage = self._state
            await self._teardown()
            self._logger.warning("auth_timeout", relay=url, timeout=timeout, stage=stage)
            raise AuthenticationTimeout(
                f"Authentication with {url} timed out after {timeout}s (stage: {stage})"
            ) from None
        except OSError as e:
            await self._teardown()
            self._logger.warning("auth_connect_failed", relay=url, error=str(e))
            raise TransportError(f"Cannot connect to {url}: {e}") from e
        except asyncio.CancelledError:
            await self._teardown()
            raise

        if not result.accepted:
            await self._teardown()
            self._logger.warning("auth_rejected", relay=url, reason=result.message)
            raise AuthenticationFailed(
                f"Authentication rejected by relay: {result.message or 'no reason given'}"
            )
        if self._connection is None:
            raise TransportError(f"Connection to {url} closed during authentication")

        self._set_state(SessionState.AUTHENTICATED)
        self._logger.info("auth_accepted", relay=url, pubkey=identity, event_id=result.event_id)
        return True

    async def _on_challenge(self, message: RelayMessage) -> None:
        assert isinstance(message, AuthChallenge)  # noqa: S101  # guaranteed by route
        self._pending_challenge = message.challenge

        answering = (
            self._state in (SessionState.CONNECTING, SessionState.AWAITING_CHALLENGE)
            and self._auth_slot.occupied
            and self._auth_slot.target_id is None
            and self._identity is not None
        )
        if not answering:
            self._logger.info("challenge_stored", relay=self._config.relay_url, state=self._state)
            return

        self._logger.debug("challenge_received", relay=self._config.relay_url)
        try:
            proof = build_proof_record(self._identity, self._config.relay_url, message.challenge)
            signed = await self._signer.sign(proof)
        except SignerError as e:
            self._auth_slot.fail(e)
            return
        except (TypeError, ValueError) as e:
            self._auth_slot.fail(AuthenticationFailed(f"Cannot build proof for challenge: {e}"))
            return

        self._auth_slot.bind(signed.id)
        self._pending_challenge = None
        self._set_state(SessionState.AUTHENTICATING)
        try:
            await self._send(encode_auth(signed))
        except TransportError as e:
            self._auth_slot.fail(e)
            return
        self._logger.debug("proof_sent", relay=self._config.relay_url, event_id=signed.id)

    # -------------------------------------------------------------------------
    # Publication
    # -------------------------------------------------------------------------

    async def publish(
        self,
        content: str,
        d_tag: str,
        extra_tags: Iterable[Iterable[str]] | None = None,
    ) -> str:
        """Sign and publish a kind 30078 event, waiting for the relay's ``OK``.

        Args:
            content: Event content.
            d_tag: Value of the leading ``d`` tag.
            extra_tags: Tags appended after the ``d`` tag; must not contain
                another ``d`` tag.

        Returns:
            The id of the accepted event.

        Raises:
            NotAuthenticated: If the session is not authenticated (nothing
                is sent).
            OperationInProgress: If another publish is pending.
            ValueError: If the tags are invalid.
            SigningRejected: If the signer refuses the event.
            PublishFailed: If the relay answers ``OK false``.
            PublishTimeout: If no ``OK`` arrives in time. The session stays
                authenticated.
            TransportError: If the connection drops.
        """
        if not self.authenticated or self._connection is None or self._identity is None:
            error = NotAuthenticated("Not connected: authenticate before publishing")
            self._record_error(error)
            raise error

        self._publish_slot.acquire()
        self._error = None
        try:
            return await self._publish(self._identity, content, d_tag, extra_tags or ())
        except RelayAuthError as e:
            self._record_error(e)
            raise
        finally:
            self._publish_slot.release()
            if self._state is SessionState.PUBLISHING and self._connection is not None:
                self._set_state(SessionState.AUTHENTICATED)

    async def _publish(
        self,
        identity: str,
        content: str,
        d_tag: str,
        extra_tags: Iterable[Iterable[str]],
    ) -> str:
        record = build_publish_record(identity, content, d_tag, extra_tags)
        signed = await self._signer.sign(record)
        # The connection may have dropped while the signer was busy.
        if self._connection is None or self._state is not SessionState.AUTHENTICATED:
            raise TransportError("Connection closed while the event was being signed")

        self._publish_slot.bind(signed.id)
        self._set_state(SessionState.PUBLISHING)
        timeout = self._config.effective_publish_timeout
        try:
            async with asyncio.timeout(timeout):
                await self._send(encode_event(signed))
                result = await self._publish_slot.wait()
        except TimeoutError:
            self._logger.warning("publish_timeout", event_id=signed.id, timeout=timeout)
            raise PublishTimeout(
                f"Publish timed out: no OK for event {signed.id} within {timeout}s"
            ) from None

        if not result.accepted:
            self._logger.warning("publish_rejected", event_id=signed.id, reason=result.message)
            raise PublishFailed(result.message)

        self._last_published_id = signed.id
        self._logger.info("publish_accepted", event_id=signed.id, d_tag=d_tag)
        return signed.id

    # -------------------------------------------------------------------------
    # Advisory routes
    # -------------------------------------------------------------------------

    def _on_closed(self, message: RelayMessage) -> None:
        assert isinstance(message, ClosedNotice)  # noqa: S101  # guaranteed by route
        if message.auth_required:
            self._logger.info(
                "subscription_auth_required",
                subscription=message.subscription_id,
                reason=message.reason,
            )
        else:
            self._logger.debug(
                "subscription_closed", subscription=message.subscription_id, reason=message.reason
            )

    def _on_notice(self, message: RelayMessage) -> None:
        assert isinstance(message, Notice)  # noqa: S101  # guaranteed by route
        self._logger.info("relay_notice", relay=self._config.relay_url, message=message.message)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def _send(self, frame: str) -> None:
        connection = self._connection
        if connection is None:
            raise TransportError("Not connected")
        try:
            await connection.send(frame)
        except OSError as e:
            error = TransportError(f"Send to {self._config.relay_url} failed: {e}")
            await self._teardown(error)
            raise error from e

    async def _read_loop(self, connection: Connection) -> None:
        try:
            while self._connection is connection:
                try:
                    raw = await connection.recv()
                except UnicodeDecodeError as e:
                    self._logger.warning("malformed_frame", error=str(e))
                    continue
                if raw is None:
                    raise ConnectionResetError("relay closed the connection")
                try:
                    message = parse_relay_message(raw)
                except ValueError as e:
                    self._logger.warning("malformed_frame", error=str(e), frame=raw)
                    continue
                if not await self._dispatcher.dispatch(message):
                    self._logger.debug("message_unhandled", type=type(message).__name__)
        except OSError as e:
            if self._connection is connection:
                self._logger.warning(
                    "connection_lost", relay=self._config.relay_url, error=str(e)
                )
                await self._teardown(
                    TransportError(f"Connection to {self._config.relay_url} lost: {e}")
                )
        except Exception as e:  # Intentionally broad: pending operations must not hang
            if self._connection is connection:
                self._logger.exception("reader_failed", relay=self._config.relay_url)
                await self._teardown(TransportError(f"Reader failed: {e}"))

    async def _teardown(
        self, failure: RelayAuthError | None = None, *, record_error: bool = True
    ) -> None:
        """Drop the connection and fail pending operations. Idempotent.

        Runs synchronously up to ``CLOSED`` before awaiting anything, so a
        concurrent caller never observes a half-closed session.
        """
        connection, reader = self._connection, self._reader
        self._connection = None
        self._reader = None
        self._pending_challenge = None
        self._identity = None

        pending_error = failure if failure is not None else TransportError("Session closed")
        self._auth_slot.fail(pending_error)
        self._publish_slot.fail(pending_error)
        if failure is not None and record_error:
            self._error = str(failure)
        self._set_state(SessionState.CLOSED)

        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            await asyncio.wait([reader])
        if connection is not None:
            await connection.close()
            self._logger.debug("connection_closed", relay=self._config.relay_url)

    async def disconnect(self) -> None:
        """Close the connection and clear all session state. Idempotent.

        Pending operations fail with
        [TransportError][relayauth.core.exceptions.TransportError].
        """
        self._closed_by_caller = True
        self._error = None
        if self._state is SessionState.CLOSED and self._connection is None:
            self._notify()
            return
        await self._teardown(TransportError("Session disconnected"), record_error=False)
        self._logger.info("disconnected", relay=self._config.relay_url)

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            relay_url=self._config.relay_url,
            identity=self._identity,
            error=self._error,
            last_published_id=self._last_published_id,
        )

    def subscribe(self, listener: StatusListener, *, replay: bool = True) -> Callable[[], None]:
        """Register *listener* for status snapshots.

        Listeners run synchronously on every change of the snapshot. An
        exception raised by a listener is logged and does not affect the
        session or the other listeners.

        Args:
            listener: Callable receiving each new
                [SessionStatus][relayauth.session.session.SessionStatus].
            replay: Deliver the current snapshot immediately.

        Returns:
            A callable that unregisters the listener (idempotent).
        """
        self._listeners.append(listener)
        if replay:
            self._call_listener(listener, self.status())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            self._logger.debug("state_changed", old=self._state, new=state)
            self._state = state
        self._notify()

    def _record_error(self, error: RelayAuthError) -> None:
        # Failures caused by an explicit disconnect are reported to the caller only
        if self._closed_by_caller and self._state is SessionState.CLOSED:
            return
        self._error = str(error)
        self._notify()

    def _notify(self) -> None:
        status = self.status()
        if status == self._last_status:
            return
        self._last_status = status
        for listener in tuple(self._listeners):
            self._call_listener(listener, status)

    def _call_listener(self, listener: StatusListener, status: SessionStatus) -> None:
        try:
            listener(status)
        except Exception as e:  # Intentionally broad: listener failures must not break the session
            self._logger.error("listener_failed", error=str(e), error_type=type(e).__name__)

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()
