"""WebSocket transport for the relay connection.

Defines the bidirectional message channel the session runs on, as two
small protocols, and an aiohttp implementation of them:

* [Transport][relayauth.utils.transport.Transport] opens a connection.
* [Connection][relayauth.utils.transport.Connection] sends and receives
  text frames and closes.

[WebSocketTransport][relayauth.utils.transport.WebSocketTransport] supports
verified TLS by default, an insecure TLS context for relays with self-signed
certificates (``allow_insecure=True``), and SOCKS5 proxies for overlay
networks (``proxy_url="socks5://tor:9050"``) through ``aiohttp_socks``.

Note:
    Failures surface as ``OSError`` (connect refused, DNS, TLS, dropped
    socket, send on a closed socket). The session translates them into
    [TransportError][relayauth.core.exceptions.TransportError].

Examples:
    ```python
    transport = WebSocketTransport(allow_insecure=False)
    conn = await transport.connect("wss://relay.example.com", timeout=10.0)
    await conn.send('["REQ","sub",{"limit":1}]')
    frame = await conn.recv()
    await conn.close()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from typing import Final, Protocol, runtime_checkable

import aiohttp
from aiohttp_socks import ProxyConnector


logger = logging.getLogger(__name__)

_WS_CLOSE_TIMEOUT: Final[float] = 5.0


@runtime_checkable
class Connection(Protocol):
    """One open bidirectional text channel to a relay."""

    async def send(self, text: str) -> None:
        """Send one text frame. Raises ``OSError`` if the channel is gone."""
        ...

    async def recv(self) -> str | None:
        """Return the next text frame, or ``None`` once the peer has closed.

        Raises ``UnicodeDecodeError`` for a binary frame that is not UTF-8;
        the channel stays usable.
        """
        ...

    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Factory for [Connection][relayauth.utils.transport.Connection] objects."""

    async def connect(self, url: str, timeout: float) -> Connection:  # noqa: ASYNC109
        """Open a connection to *url* within *timeout* seconds."""
        ...


class WebSocketConnection:
    """aiohttp-backed [Connection][relayauth.utils.transport.Connection]."""

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = _WS_CLOSE_TIMEOUT,
    ) -> None:
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, text: str) -> None:
        if self._ws.closed:
            raise ConnectionResetError("WebSocket is closed")
        try:
            await self._ws.send_str(text)
        except aiohttp.ClientError as e:
            raise OSError(f"Send failed: {e}") from e

    async def recv(self) -> str | None:
        msg = await self._ws.receive()

        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            return msg.data.decode("utf-8")
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise OSError(f"WebSocket error: {self._ws.exception()}")
        # CLOSE, CLOSING, CLOSED
        logger.debug("ws_closed_by_peer code=%s", self._ws.close_code)
        return None

    async def close(self) -> None:
        """Close the WebSocket and its HTTP session with bounded waits."""
        # aiohttp can raise ClientError, ServerDisconnectedError, etc. during
        # close; teardown must not fail.
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


class WebSocketTransport:
    """aiohttp [Transport][relayauth.utils.transport.Transport].

    Args:
        proxy_url: SOCKS5 proxy URL for overlay networks. When set, the
            connection always uses an insecure TLS context because the
            overlay provides encryption.
        allow_insecure: Disable TLS certificate and hostname verification.
        heartbeat: Seconds between WebSocket pings (``None`` disables).
        close_timeout: Seconds to wait for each close step.

    Warning:
        ``allow_insecure=True`` makes the connection vulnerable to
        man-in-the-middle attacks. The relay's NIP-42 challenge binds the
        proof to the relay URL, not to the TLS channel.
    """

    def __init__(
        self,
        *,
        proxy_url: str | None = None,
        allow_insecure: bool = False,
        heartbeat: float | None = None,
        close_timeout: float = _WS_CLOSE_TIMEOUT,
    ) -> None:
        self._proxy_url = proxy_url
        self._allow_insecure = allow_insecure
        self._heartbeat = heartbeat
        self._close_timeout = close_timeout

    def _ssl_context(self) -> ssl.SSLContext:
        ssl_context = ssl.create_default_context()
        if self._allow_insecure or self._proxy_url is not None:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        return ssl_context

    def _connector(self) -> aiohttp.BaseConnector:
        ssl_context = self._ssl_context()
        if self._proxy_url is not None:
            return ProxyConnector.from_url(self._proxy_url, ssl=ssl_context)
        return aiohttp.TCPConnector(ssl=ssl_context)

    async def connect(self, url: str, timeout: float) -> WebSocketConnection:  # noqa: ASYNC109
        """Open a WebSocket to *url*.

        Raises:
            OSError: On connection failure (network, timeout, DNS, TLS).
            asyncio.CancelledError: If cancelled.
        """
        session = aiohttp.ClientSession(
            connector=self._connector(),
            timeout=aiohttp.ClientTimeout(total=None, connect=timeout, sock_connect=timeout),
        )

        try:
            ws = await session.ws_connect(url, heartbeat=self._heartbeat)
        except aiohttp.ClientError as e:
            await session.close()
            logger.debug("ws_connect_failed url=%s error=%s", url, str(e))
            raise OSError(f"Connection failed: {url} ({e})") from e
        except TimeoutError:
            await session.close()
            logger.debug("ws_connect_timeout url=%s", url)
            raise OSError(f"Connection timeout: {url}") from None
        except asyncio.CancelledError:
            await session.close()
            logger.debug("ws_connect_cancelled url=%s", url)
            raise
        except (ssl.SSLError, OSError) as e:
            await session.close()
            logger.debug("ws_connect_error url=%s error=%s", url, str(e))
            raise OSError(f"Connection failed: {url} ({e})") from e

        logger.debug(
            "ws_connected url=%s insecure=%s proxied=%s",
            url,
            self._allow_insecure,
            self._proxy_url is not None,
        )
        return WebSocketConnection(ws, session, close_timeout=self._close_timeout)
