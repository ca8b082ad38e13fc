"""Single-slot correlation of a submitted record with the relay's ``OK``.

A relay answers every ``EVENT`` and ``AUTH`` submission with
``["OK", <event-id>, <accepted>, <message>]``, asynchronously and on the
shared inbound stream. A [CorrelationSlot][relayauth.session.correlation.CorrelationSlot]
tracks at most one such submission:

1. [acquire()][relayauth.session.correlation.CorrelationSlot.acquire]
   occupies the slot (or raises ``OperationInProgress``) before any await,
   so two concurrent callers cannot both pass the guard.
2. [bind()][relayauth.session.correlation.CorrelationSlot.bind] sets the
   signed record id and installs a dispatcher route claiming only ``OK``
   frames with exactly that id.
3. [wait()][relayauth.session.correlation.CorrelationSlot.wait] returns
   the matching [OkResult][relayauth.models.message.OkResult], or raises
   whatever [fail()][relayauth.session.correlation.CorrelationSlot.fail]
   injected (transport loss, signing refusal).
4. [release()][relayauth.session.correlation.CorrelationSlot.release]
   uninstalls the route and frees the slot.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from relayauth.core.exceptions import OperationInProgress
from relayauth.models.message import OkResult, RelayMessage


if TYPE_CHECKING:
    from .dispatcher import MessageDispatcher, Route


class CorrelationSlot:
    """At most one in-flight record awaiting its ``OK``.

    Args:
        name: Operation name used in route names and error messages.
        dispatcher: Dispatcher the correlation route is installed on.
    """

    def __init__(self, name: str, dispatcher: MessageDispatcher) -> None:
        self._name = name
        self._dispatcher = dispatcher
        self._future: asyncio.Future[OkResult] | None = None
        self._target_id: str | None = None
        self._route: Route | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def occupied(self) -> bool:
        return self._future is not None

    @property
    def target_id(self) -> str | None:
        """Id of the bound record, or ``None`` if not yet bound."""
        return self._target_id

    def acquire(self) -> None:
        """Occupy the slot.

        Raises:
            OperationInProgress: If the slot is already occupied.
        """
        if self._future is not None:
            raise OperationInProgress(f"A {self._name} operation is already in progress")
        self._future = asyncio.get_running_loop().create_future()

    def bind(self, record_id: str) -> None:
        """Correlate the slot with *record_id* and start claiming its ``OK``."""
        if self._future is None:
            raise RuntimeError(f"{self._name} slot must be acquired before bind()")
        if self._route is not None:
            self._dispatcher.remove(self._route)
        self._target_id = record_id
        self._route = self._dispatcher.add(
            f"{self._name}:{record_id[:8]}", self._matches, self._on_result
        )

    def _matches(self, message: RelayMessage) -> bool:
        return (
            self._target_id is not None
            and isinstance(message, OkResult)
            and message.event_id == self._target_id
        )

    def _on_result(self, message: RelayMessage) -> None:
        if self._future is not None and not self._future.done():
            assert isinstance(message, OkResult)  # noqa: S101  # guaranteed by _matches
            self._future.set_result(message)

    def fail(self, exc: BaseException) -> None:
        """Complete the pending operation with *exc*. No-op if idle or done."""
        if self._future is not None and not self._future.done():
            self._future.set_exception(exc)

    async def wait(self) -> OkResult:
        """Wait for the correlated ``OK`` (or the injected failure)."""
        if self._future is None:
            raise RuntimeError(f"{self._name} slot must be acquired before wait()")
        return await asyncio.shield(self._future)

    def release(self) -> None:
        """Uninstall the route and free the slot. Safe to call when idle."""
        if self._route is not None:
            self._dispatcher.remove(self._route)
        future = self._future
        if future is not None:
            if not future.done():
                future.cancel()
            elif not future.cancelled():
                # Mark an unawaited failure as retrieved
                future.exception()
        self._future = None
        self._target_id = None
        self._route = None
