"""
Unit tests for utils.transport module.

Tests:
- WebSocketConnection send/recv/close over a mocked aiohttp WebSocket
- WebSocketTransport TLS context and connector selection
- WebSocketTransport.connect() error translation to OSError
"""

import ssl
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from relayauth.utils.transport import (
    Connection,
    Transport,
    WebSocketConnection,
    WebSocketTransport,
)


RELAY_URL = "wss://relay.example.com"


def _ws(closed: bool = False) -> MagicMock:
    ws = MagicMock()
    ws.closed = closed
    ws.send_str = AsyncMock()
    ws.receive = AsyncMock()
    ws.close = AsyncMock()
    ws.close_code = 1000
    return ws


def _session() -> MagicMock:
    session = MagicMock()
    session.close = AsyncMock()
    return session


def _message(msg_type: aiohttp.WSMsgType, data: object = None) -> MagicMock:
    message = MagicMock()
    message.type = msg_type
    message.data = data
    return message


# =============================================================================
# WebSocketConnection
# =============================================================================


class TestWebSocketConnection:
    def test_satisfies_protocol(self):
        assert isinstance(WebSocketConnection(_ws(), _session()), Connection)

    @pytest.mark.asyncio
    async def test_send(self):
        ws = _ws()
        await WebSocketConnection(ws, _session()).send('["REQ","s",{}]')
        ws.send_str.assert_awaited_once_with('["REQ","s",{}]')

    @pytest.mark.asyncio
    async def test_send_on_closed_socket(self):
        with pytest.raises(ConnectionResetError):
            await WebSocketConnection(_ws(closed=True), _session()).send("x")

    @pytest.mark.asyncio
    async def test_send_client_error_becomes_os_error(self):
        ws = _ws()
        ws.send_str.side_effect = aiohttp.ClientConnectionError("reset")
        with pytest.raises(OSError, match="Send failed"):
            await WebSocketConnection(ws, _session()).send("x")

    @pytest.mark.asyncio
    async def test_recv_text(self):
        ws = _ws()
        ws.receive.return_value = _message(aiohttp.WSMsgType.TEXT, '["AUTH","c1"]')
        assert await WebSocketConnection(ws, _session()).recv() == '["AUTH","c1"]'

    @pytest.mark.asyncio
    async def test_recv_binary_is_decoded(self):
        ws = _ws()
        ws.receive.return_value = _message(aiohttp.WSMsgType.BINARY, b'["AUTH","c1"]')
        assert await WebSocketConnection(ws, _session()).recv() == '["AUTH","c1"]'

    @pytest.mark.asyncio
    async def test_recv_invalid_utf8_raises(self):
        ws = _ws()
        ws.receive.return_value = _message(aiohttp.WSMsgType.BINARY, b"\xff\xfe[]")
        with pytest.raises(UnicodeDecodeError):
            await WebSocketConnection(ws, _session()).recv()

    @pytest.mark.asyncio
    async def test_recv_error_raises(self):
        ws = _ws()
        ws.receive.return_value = _message(aiohttp.WSMsgType.ERROR)
        ws.exception.return_value = RuntimeError("bad frame")
        with pytest.raises(OSError, match="WebSocket error"):
            await WebSocketConnection(ws, _session()).recv()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "msg_type", [aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED]
    )
    async def test_recv_close_returns_none(self, msg_type):
        ws = _ws()
        ws.receive.return_value = _message(msg_type)
        assert await WebSocketConnection(ws, _session()).recv() is None

    @pytest.mark.asyncio
    async def test_close_closes_socket_and_session(self):
        ws, session = _ws(), _session()
        await WebSocketConnection(ws, session).close()
        ws.close.assert_awaited_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_suppresses_errors(self):
        ws, session = _ws(), _session()
        ws.close.side_effect = aiohttp.ServerDisconnectedError()
        await WebSocketConnection(ws, session).close()
        session.close.assert_awaited_once()


# =============================================================================
# WebSocketTransport configuration
# =============================================================================


class TestWebSocketTransportConfig:
    def test_satisfies_protocol(self):
        assert isinstance(WebSocketTransport(), Transport)

    def test_default_ssl_context_verifies(self):
        context = WebSocketTransport()._ssl_context()
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname is True

    def test_insecure_ssl_context(self):
        context = WebSocketTransport(allow_insecure=True)._ssl_context()
        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_proxied_ssl_context_is_insecure(self):
        context = WebSocketTransport(proxy_url="socks5://127.0.0.1:9050")._ssl_context()
        assert context.verify_mode == ssl.CERT_NONE

    def test_proxy_connector(self):
        with patch("relayauth.utils.transport.ProxyConnector") as mock_proxy:
            WebSocketTransport(proxy_url="socks5://127.0.0.1:9050")._connector()
        mock_proxy.from_url.assert_called_once()
        assert mock_proxy.from_url.call_args.args == ("socks5://127.0.0.1:9050",)


# =============================================================================
# WebSocketTransport.connect()
# =============================================================================


class TestWebSocketTransportConnect:
    @pytest.fixture
    def session(self):
        session = _session()
        session.ws_connect = AsyncMock(return_value=_ws())
        with (
            patch("relayauth.utils.transport.aiohttp.ClientSession", return_value=session),
            patch.object(WebSocketTransport, "_connector", return_value=MagicMock()),
        ):
            yield session

    @pytest.mark.asyncio
    async def test_success(self, session):
        connection = await WebSocketTransport(heartbeat=30.0).connect(RELAY_URL, timeout=5.0)
        assert isinstance(connection, WebSocketConnection)
        session.ws_connect.assert_awaited_once_with(RELAY_URL, heartbeat=30.0)
        session.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_client_error(self, session):
        session.ws_connect.side_effect = aiohttp.ClientConnectionError("refused")
        with pytest.raises(OSError, match="Connection failed"):
            await WebSocketTransport().connect(RELAY_URL, timeout=5.0)
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout(self, session):
        session.ws_connect.side_effect = TimeoutError()
        with pytest.raises(OSError, match="Connection timeout"):
            await WebSocketTransport().connect(RELAY_URL, timeout=5.0)
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ssl_error(self, session):
        session.ws_connect.side_effect = ssl.SSLError("certificate verify failed")
        with pytest.raises(OSError, match="Connection failed"):
            await WebSocketTransport().connect(RELAY_URL, timeout=5.0)
        session.close.assert_awaited_once()
