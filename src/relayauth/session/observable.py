"""Observable wrapper that reports outcomes as state instead of exceptions.

[AuthClient][relayauth.session.observable.AuthClient] sits on top of the
public contract of [RelayAuthSession][relayauth.session.session.RelayAuthSession]
for callers that render state (a status line, a button) rather than handle
exceptions. Every failure becomes the ``error`` string of a new
[AuthState][relayauth.session.observable.AuthState] snapshot delivered to
the subscribers.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from relayauth.core.exceptions import RelayAuthError
from relayauth.core.logger import Logger
from relayauth.utils.signer import SignerAdapter

from .session import RelayAuthSession, SessionStatus


if TYPE_CHECKING:
    from relayauth.utils.signer import ExternalSigner
    from relayauth.utils.transport import Transport

    from .config import SessionConfig


StateListener = Callable[["AuthState"], None]


@dataclass(frozen=True, slots=True)
class AuthState:
    is_authenticated: bool = False
    is_connecting: bool = False
    error: str | None = None
    event_id: str | None = None

    def describe(self) -> str:
        """One-line human readable summary, e.g. for a status bar."""
        if self.is_connecting:
            return "Connecting and authenticating..."
        if self.is_authenticated:
            return "Authenticated"
        if self.error:
            return f"Error: {self.error}"
        return "Ready to authenticate"


class AuthClient:
    """Failure-absorbing facade over one session.

    Examples:
        ```python
        client = AuthClient.from_config(config, KeysSigner(keys))
        unsubscribe = client.subscribe(lambda s: print(s.describe()))
        if await client.authenticate():
            event_id = await client.publish_event("hello", "greeting")
        await client.disconnect()
        ```
    """

    def __init__(self, session: RelayAuthSession, *, logger: Logger | None = None) -> None:
        self._session = session
        self._logger = logger or Logger("auth_client")
        self._state = AuthState()
        self._listeners: list[StateListener] = []
        session.subscribe(self._on_status, replay=False)

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        signer: ExternalSigner | None,
        transport: Transport | None = None,
    ) -> AuthClient:
        return cls(RelayAuthSession(config, SignerAdapter(signer), transport))

    @property
    def session(self) -> RelayAuthSession:
        return self._session

    @property
    def state(self) -> AuthState:
        return self._state

    def is_signer_available(self) -> bool:
        return self._session.signer_available

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* and call it immediately with the current state."""
        self._listeners.append(listener)
        self._call_listener(listener, self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_status(self, status: SessionStatus) -> None:
        # Transitions the caller did not start (a dropped socket) land here.
        changes: dict[str, Any] = {
            "is_authenticated": status.authenticated,
            "is_connecting": status.connecting,
        }
        if status.error is not None:
            changes["error"] = status.error
        self._update(**changes)

    def _update(self, **changes: Any) -> None:
        state = dataclasses.replace(self._state, **changes)
        if state == self._state:
            return
        self._state = state
        for listener in tuple(self._listeners):
            self._call_listener(listener, state)

    def _call_listener(self, listener: StateListener, state: AuthState) -> None:
        try:
            listener(state)
        except Exception as e:  # Intentionally broad: a broken view must not fail the operation
            self._logger.error("listener_failed", error=str(e), error_type=type(e).__name__)

    async def authenticate(self) -> bool:
        """Authenticate, returning ``False`` and recording the error on failure."""
        if not self.is_signer_available():
            self._update(error="No signer available")
            return False

        self._update(is_connecting=True, error=None)
        try:
            success = await self._session.authenticate()
        except RelayAuthError as e:
            self._update(is_authenticated=False, is_connecting=False, error=str(e))
            return False

        self._update(
            is_authenticated=success,
            is_connecting=False,
            error=None if success else "Authentication failed",
        )
        return success

    async def publish_event(
        self,
        content: str,
        d_tag: str,
        extra_tags: Iterable[Iterable[str]] = (),
    ) -> str | None:
        """Publish, returning the event id or ``None`` with the error recorded."""
        if not self._state.is_authenticated or not self._session.authenticated:
            self._update(
                is_authenticated=self._session.authenticated, error="Must authenticate first"
            )
            return None

        self._update(error=None)
        try:
            event_id = await self._session.publish(content, d_tag, extra_tags)
        except (RelayAuthError, ValueError) as e:
            self._update(is_authenticated=self._session.authenticated, error=str(e))
            return None

        self._update(event_id=event_id, error=None)
        return event_id

    async def disconnect(self) -> None:
        await self._session.disconnect()
        self._update(is_authenticated=False, is_connecting=False, error=None, event_id=None)
