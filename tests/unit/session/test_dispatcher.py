"""
Unit tests for session.dispatcher module.

Tests:
- Routes run in installation order, every matching route runs
- Removal during dispatch, idempotent removal
- Sync and async handlers
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from relayauth.models.message import AuthChallenge, Notice, OkResult
from relayauth.session.dispatcher import MessageDispatcher


EVENT_ID = "ab" * 32


def _is_ok(message) -> bool:
    return isinstance(message, OkResult)


class TestMessageDispatcher:
    def test_add_and_remove(self):
        dispatcher = MessageDispatcher()
        route = dispatcher.add("ok", _is_ok, MagicMock())
        assert len(dispatcher) == 1
        assert dispatcher.routes == (route,)

        dispatcher.remove(route)
        dispatcher.remove(route)
        assert len(dispatcher) == 0

    def test_identical_routes_are_distinct(self):
        dispatcher = MessageDispatcher()
        handler = MagicMock()
        first = dispatcher.add("ok", _is_ok, handler)
        second = dispatcher.add("ok", _is_ok, handler)
        dispatcher.remove(first)
        assert dispatcher.routes == (second,)

    @pytest.mark.asyncio
    async def test_every_matching_route_runs_in_order(self):
        dispatcher = MessageDispatcher()
        calls: list[str] = []
        dispatcher.add("first", _is_ok, lambda m: calls.append("first"))
        dispatcher.add("notice", lambda m: isinstance(m, Notice), lambda m: calls.append("notice"))
        dispatcher.add("second", _is_ok, lambda m: calls.append("second"))

        handled = await dispatcher.dispatch(OkResult(EVENT_ID, True))

        assert handled == 2
        assert calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        dispatcher = MessageDispatcher()
        handler = AsyncMock()
        dispatcher.add("challenge", lambda m: isinstance(m, AuthChallenge), handler)

        await dispatcher.dispatch(AuthChallenge("c1"))

        handler.assert_awaited_once_with(AuthChallenge("c1"))

    @pytest.mark.asyncio
    async def test_unmatched_returns_zero(self):
        dispatcher = MessageDispatcher()
        dispatcher.add("ok", _is_ok, MagicMock())
        assert await dispatcher.dispatch(Notice("hi")) == 0

    @pytest.mark.asyncio
    async def test_route_removed_during_dispatch_is_skipped(self):
        dispatcher = MessageDispatcher()
        later = MagicMock()
        routes = {}

        def remove_later(message):
            dispatcher.remove(routes["later"])

        dispatcher.add("remover", _is_ok, remove_later)
        routes["later"] = dispatcher.add("later", _is_ok, later)

        assert await dispatcher.dispatch(OkResult(EVENT_ID, True)) == 1
        later.assert_not_called()

    @pytest.mark.asyncio
    async def test_route_added_during_dispatch_sees_next_message(self):
        dispatcher = MessageDispatcher()
        added = MagicMock()
        dispatcher.add("adder", _is_ok, lambda m: dispatcher.add("added", _is_ok, added))

        await dispatcher.dispatch(OkResult(EVENT_ID, True))
        added.assert_not_called()

        await dispatcher.dispatch(OkResult(EVENT_ID, False))
        added.assert_called_once()
