"""Duplex WebSocket connection for hulaki.

This module provides the full-duplex connection used by the interactive
``hulaki ws`` session. One task may call ``receive()`` while another calls
``send()``; ``close()`` unblocks a pending ``receive()``.

Classes:
    ConnectionState: Enum for connection lifecycle states.
    DuplexConnection: Async WebSocket connection with open/send/receive/close.

Example:
    >>> import asyncio
    >>> from hulaki.http.websocket import DuplexConnection
    >>> async def main():
    ...     connection = await DuplexConnection.open("ws://localhost:9000")
    ...     await connection.send("hulaki")
    ...     print(await connection.receive())
    ...     await connection.close()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from enum import Enum
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from hulaki.errors import (
    ClosedError,
    ConnectError,
    ConnectTimeoutError,
    ErrorContext,
    ReceiveError,
    SendError,
)
from hulaki.http.base import BaseAsyncClient, ClientRecord, _validate_positive_number, set_params

logger = logging.getLogger(__name__)

# Send/receive records kept per connection unless told otherwise.
DEFAULT_HISTORY_LIMIT = 100

_SCHEME_MAP = {
    "http://": "ws://",
    "https://": "wss://",
}


class ConnectionState(Enum):
    """Duplex connection lifecycle states.

    Attributes:
        DISCONNECTED: Not opened yet.
        CONNECTING: Handshake in progress.
        CONNECTED: Handshake done, frames may flow both ways.
        CLOSING: Close requested, transport shutting down.
        CLOSED: Transport released. Terminal.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


def normalize_websocket_url(url: str) -> str:
    """Map ``http(s)://`` URLs to ``ws(s)://``; other schemes pass through."""
    url = (url or "").strip()
    lowered = url.lower()
    for source, target in _SCHEME_MAP.items():
        if lowered.startswith(source):
            return target + url[len(source):]
    return url


class DuplexConnection(BaseAsyncClient[str]):
    """A single full-duplex WebSocket connection.

    Exactly one reader and one writer are expected: the session loop
    writes, a background task reads. The transport is released once no
    matter how many times ``close()`` is called.

    Attributes:
        url: Target URL after scheme normalisation and param merge.
        send_timeout: Upper bound for a single ``send()`` in seconds.
        history: Most recent send/receive records, bounded by history_limit.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        open_timeout: float = 10.0,
        send_timeout: float = 5.0,
        ping_interval: float | None = 20.0,
        max_size: int | None = None,
        subprotocols: list[str] | None = None,
        history_limit: int | None = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """Initialize the connection without opening it.

        Args:
            url: ws://, wss://, http:// or https:// URL.
            headers: Headers attached to the upgrade request.
            params: Query parameters appended to the URL.
            open_timeout: Handshake timeout in seconds (default: 10.0).
            send_timeout: Per-frame send timeout in seconds (default: 5.0).
            ping_interval: Keepalive ping interval, None to disable.
            max_size: Maximum inbound frame size in bytes (default: no limit).
            subprotocols: Subprotocols offered in the handshake.
            history_limit: Most recent send/receive records kept, None for all.

        Raises:
            ValidationError: If the URL is empty or a timeout is not positive.
        """
        target = set_params(normalize_websocket_url(url), params)
        super().__init__(target, timeout=open_timeout, default_headers=headers)
        _validate_positive_number(send_timeout, "send_timeout")

        self.send_timeout = send_timeout
        self.ping_interval = ping_interval
        self.max_size = max_size
        self.subprotocols = subprotocols
        self.history: deque[ClientRecord] = deque(maxlen=history_limit)
        self._ws: ClientConnection | None = None
        self._state = ConnectionState.DISCONNECTED

    @classmethod
    async def open(
        cls,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> DuplexConnection:
        """Create a connection and perform the handshake.

        Raises:
            ConnectError: On DNS/TCP, TLS or handshake failure.
            ConnectTimeoutError: If the handshake exceeds ``open_timeout``.
        """
        connection = cls(url, headers=headers, params=params, **kwargs)
        await connection.connect()
        return connection

    @property
    def url(self) -> str:
        return self.endpoint

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def response_headers(self) -> dict[str, str]:
        """Headers returned by the server in the handshake response."""
        if self._ws is None or self._ws.response is None:
            return {}
        return dict(self._ws.response.headers.raw_items())

    @property
    def subprotocol(self) -> str | None:
        """Negotiated subprotocol, if any."""
        if self._ws is None:
            return None
        return self._ws.subprotocol

    def _context(self, operation: str) -> ErrorContext:
        return ErrorContext(target=self.url, operation=operation)

    async def connect(self) -> None:
        """Perform the WebSocket handshake.

        Raises:
            ConnectTimeoutError: If the handshake times out.
            ConnectError: If the handshake fails for any other reason.
        """
        if self._state == ConnectionState.CONNECTED:
            return
        if self._state != ConnectionState.DISCONNECTED:
            raise ConnectError(
                message="Connection cannot be reopened once closed",
                context=self._context("open"),
            )

        self._state = ConnectionState.CONNECTING
        logger.debug(f"Opening WebSocket connection to {self.url}")

        try:
            self._ws = await connect(
                self.url,
                additional_headers=self.default_headers or None,
                open_timeout=self.timeout,
                ping_interval=self.ping_interval,
                max_size=self.max_size,
                subprotocols=self.subprotocols,
                close_timeout=self.send_timeout,
            )
        except (asyncio.TimeoutError, TimeoutError) as e:
            self._state = ConnectionState.CLOSED
            raise ConnectTimeoutError(
                message=f"WebSocket handshake timed out after {self.timeout}s",
                context=self._context("open"),
                cause=e,
            ) from e
        except (WebSocketException, OSError, ValueError) as e:
            self._state = ConnectionState.CLOSED
            raise ConnectError(
                message=f"WebSocket connection failed: {e}",
                context=self._context("open"),
                cause=e,
            ) from e

        self._connected = True
        self._state = ConnectionState.CONNECTED
        logger.info(f"WebSocket connected to {self.url}")

    async def send(self, frame: str) -> None:
        """Transmit one text frame.

        Raises:
            SendError: If the connection is not open, the peer reset the
                stream, or the write exceeded ``send_timeout``.
        """
        if self._ws is None or self._state != ConnectionState.CONNECTED:
            raise SendError(
                message="Connection is not open",
                context=self._context("send"),
            )

        start_time = time.perf_counter()
        try:
            await asyncio.wait_for(self._ws.send(frame), timeout=self.send_timeout)
        except (asyncio.TimeoutError, TimeoutError) as e:
            self._record_failure("send", frame, start_time, e)
            raise SendError(
                message=f"Send timed out after {self.send_timeout}s",
                context=self._context("send"),
                cause=e,
            ) from e
        except (WebSocketException, OSError) as e:
            self._record_failure("send", frame, start_time, e)
            raise SendError(
                message=f"Failed to send frame: {e}",
                context=self._context("send"),
                cause=e,
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request("send", frame, None, duration_ms)

    async def receive(self) -> str:
        """Block until the next frame arrives.

        Binary frames are decoded as UTF-8 with replacement characters.

        Raises:
            ClosedError: If the connection is (or becomes) closed.
            ReceiveError: On any other transport failure.
        """
        if self._ws is None or self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            raise ClosedError(
                message="Connection is closed",
                context=self._context("receive"),
            )

        start_time = time.perf_counter()
        try:
            message = await self._ws.recv()
        except ConnectionClosed as e:
            raise ClosedError(
                message=f"Connection closed: {e}",
                context=self._context("receive"),
                cause=e,
            ) from e
        except (WebSocketException, OSError) as e:
            self._record_failure("receive", None, start_time, e)
            raise ReceiveError(
                message=f"Failed to receive frame: {e}",
                context=self._context("receive"),
                cause=e,
            ) from e

        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request("receive", None, message, duration_ms)
        return message

    async def close(self) -> None:
        """Close the connection. Safe to call any number of times."""
        if self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        if self._ws is None:
            self._state = ConnectionState.CLOSED
            return

        self._state = ConnectionState.CLOSING
        try:
            await self._ws.close()
        except (WebSocketException, OSError) as e:
            logger.debug(f"Error while closing WebSocket: {e}")
        finally:
            self._connected = False
            self._state = ConnectionState.CLOSED
            logger.info("WebSocket disconnected")

    async def disconnect(self) -> None:
        await self.close()

    async def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._ws is not None

    def _record_failure(
        self, operation: str, frame: str | None, start_time: float, error: Exception
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request(operation, frame, None, duration_ms, error=str(error))

    async def __aenter__(self) -> DuplexConnection:
        await self.connect()
        return self
