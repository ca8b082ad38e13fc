"""Ordered predicate/handler routing of inbound relay messages.

Both the handshake and publication read from the same inbound stream. Each
interested party installs a [Route][relayauth.session.dispatcher.Route]
with a predicate that claims the messages it cares about; the route stays
until it is removed explicitly. Every matching route runs, in installation
order, so a correlation route never hides a message from the always-on
challenge route.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from relayauth.models.message import RelayMessage  # noqa: TC001


Predicate = Callable[[RelayMessage], bool]
Handler = Callable[[RelayMessage], Awaitable[None] | None]


@dataclass(frozen=True, slots=True, eq=False)
class Route:
    """One installed predicate/handler pair.

    Routes compare by identity so that two routes with the same name and
    callables can be installed and removed independently.
    """

    name: str
    predicate: Predicate
    handler: Handler


class MessageDispatcher:
    """Fan inbound messages out to the installed routes.

    Examples:
        ```python
        dispatcher = MessageDispatcher()
        route = dispatcher.add("ok", lambda m: isinstance(m, OkResult), on_ok)
        await dispatcher.dispatch(OkResult("ab" * 32, True))
        dispatcher.remove(route)
        ```
    """

    def __init__(self) -> None:
        self._routes: list[Route] = []

    def __len__(self) -> int:
        return len(self._routes)

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def add(self, name: str, predicate: Predicate, handler: Handler) -> Route:
        """Install a route after the existing ones and return it."""
        route = Route(name=name, predicate=predicate, handler=handler)
        self._routes.append(route)
        return route

    def remove(self, route: Route) -> None:
        """Uninstall *route*. Removing a route twice is a no-op."""
        try:
            self._routes.remove(route)
        except ValueError:
            pass

    async def dispatch(self, message: RelayMessage) -> int:
        """Deliver *message* to every route whose predicate accepts it.

        Routes removed by an earlier handler during the same dispatch are
        skipped; routes added during it see only later messages.

        Returns:
            The number of handlers that ran.
        """
        handled = 0
        for route in tuple(self._routes):
            if route not in self._routes:
                continue
            if not route.predicate(message):
                continue
            result = route.handler(message)
            if inspect.isawaitable(result):
                await result
            handled += 1
        return handled
