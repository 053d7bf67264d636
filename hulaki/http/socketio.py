"""Socket.IO probe for hulaki.

Speaks just enough Engine.IO v4 / Socket.IO v5 over a WebSocket to
connect, emit one event, or listen for an event for a fixed duration.
Results are returned as ``SocketIOResponse`` objects; connection and
payload problems are reported in the response instead of raised.

Packet reference:
    0{...}   Engine.IO open (server -> client)
    2 / 3    Engine.IO ping / pong
    40       Socket.IO connect to the default namespace ("40/chat," otherwise)
    42[...]  Socket.IO event, JSON array of event name and arguments
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from hulaki.errors import ConnectError, ConnectTimeoutError, ErrorContext, ValidationError
from hulaki.http.base import BaseAsyncClient, Option, RequestOptions, collect_options

logger = logging.getLogger(__name__)

CONNECTION_ERROR = "CONNECTION_ERROR"
CONNECTION_FAILED = "CONNECTION_FAILED"
INVALID_DATA = "INVALID_DATA"
EMIT_FAILED = "EMIT_FAILED"

DEFAULT_LISTEN_DURATION = 5.0

_SCHEMES = {"ws": "ws", "wss": "wss", "http": "ws", "https": "wss"}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str | None, default: float = DEFAULT_LISTEN_DURATION) -> float:
    """Parse ``500ms``, ``5s``, ``2m``, ``1h`` or combinations like ``1m30s``.

    Returns ``default`` seconds when the text cannot be parsed.
    """
    text = (text or "").strip().lower()
    if not text:
        return default
    parts = _DURATION_PART.findall(text)
    if not parts or "".join(value + unit for value, unit in parts) != text:
        logger.warning(f"Unparseable duration {text!r}, using {default}s")
        return default
    return sum(float(value) * _DURATION_UNITS[unit] for value, unit in parts)


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:g}ms"
    return f"{seconds:g}s"


def build_socketio_url(server_url: str, params: dict[str, str] | None = None) -> str:
    """Turn a server URL into the Engine.IO WebSocket transport URL.

    Raises:
        ValidationError: If the scheme is not ws/wss/http/https or the host is missing.
    """
    parts = urlsplit((server_url or "").strip())
    scheme = _SCHEMES.get(parts.scheme.lower())
    if scheme is None:
        raise ValidationError(
            f"invalid URL scheme: {parts.scheme!r} (must be ws, wss, http, or https)",
            field="url",
            value=server_url,
        )
    if not parts.netloc:
        raise ValidationError("invalid URL: missing host", field="url", value=server_url)

    path = parts.path
    if not path.endswith("/socket.io/"):
        path = path.rstrip("/") + "/socket.io/"

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query["EIO"] = "4"
    query["transport"] = "websocket"
    query.update(params or {})

    return urlunsplit((scheme, parts.netloc, path, urlencode(query), ""))


def _normalize_namespace(namespace: str | None) -> str:
    if not namespace or namespace == "/":
        return "/"
    return namespace if namespace.startswith("/") else f"/{namespace}"


def encode_event(event: str, data: Any = None, namespace: str = "/") -> str:
    """Encode a Socket.IO EVENT packet."""
    payload: list[Any] = [event]
    if data is not None:
        payload.append(data)
    prefix = "42" if namespace == "/" else f"42{namespace},"
    return prefix + json.dumps(payload, separators=(",", ":"))


def decode_event(packet: str) -> tuple[str | None, list[Any]]:
    """Decode a Socket.IO EVENT packet into its name and arguments.

    Returns ``(None, [])`` for anything that is not a well-formed event.
    """
    if not packet.startswith("42"):
        return None, []
    body = packet[2:]
    if body.startswith("/"):
        _, sep, body = body.partition(",")
        if not sep:
            return None, []
    body = body.lstrip("0123456789")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return None, []
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], str):
        return None, []
    return payload[0], payload[1:]


@dataclass
class SocketIOError:
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass
class SocketIOResponse:
    """Outcome of a connect, emit or listen probe.

    Attributes:
        event: Event name ("connect" for a bare connect).
        data: Details of what happened (url, timestamp, messages, ...).
        status: "success" or "error".
        connected: Whether the socket was connected at the end.
        error: Set when status is "error".
    """

    event: str = ""
    data: dict[str, Any] | None = None
    status: str = "success"
    connected: bool = False
    error: SocketIOError | None = None

    @classmethod
    def failure(cls, code: str, message: str, connected: bool = False) -> SocketIOResponse:
        return cls(status="error", connected=connected, error=SocketIOError(code, message))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "event": self.event,
            "data": self.data,
            "status": self.status,
            "connected": self.connected,
        }
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


class SocketIOClient(BaseAsyncClient[str]):
    """Minimal Socket.IO client over the WebSocket transport.

    Attributes:
        server_url: URL as given by the caller.
        namespace: Socket.IO namespace, "/" by default.
        open_timeout: Seconds allowed for the WebSocket and Engine.IO handshakes.
    """

    def __init__(
        self,
        server_url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        namespace: str | None = None,
        open_timeout: float = 10.0,
    ) -> None:
        self.namespace = _normalize_namespace(namespace)
        query = dict(params or {})
        if self.namespace != "/":
            query["namespace"] = self.namespace
        super().__init__(
            build_socketio_url(server_url, query),
            timeout=open_timeout,
            default_headers=headers,
        )
        self.server_url = server_url
        self.open_timeout = open_timeout
        self.session_id: str | None = None
        self._ws: ClientConnection | None = None

    async def connect(self) -> None:
        """Open the WebSocket, read the Engine.IO open packet, join the namespace.

        Raises:
            ConnectTimeoutError: If a handshake step times out.
            ConnectError: If the server cannot be reached or speaks something else.
        """
        if self._ws is not None:
            return
        context = ErrorContext(target=self.endpoint, operation="connect")

        try:
            self._ws = await connect(
                self.endpoint,
                additional_headers=self.default_headers or None,
                open_timeout=self.open_timeout,
            )
            opening = await asyncio.wait_for(self._ws.recv(), timeout=self.open_timeout)
        except (asyncio.TimeoutError, TimeoutError) as e:
            await self.disconnect()
            raise ConnectTimeoutError(
                message=f"Socket.IO handshake timed out after {self.open_timeout}s",
                context=context,
                cause=e,
            ) from e
        except (WebSocketException, OSError, ValueError) as e:
            await self.disconnect()
            raise ConnectError(
                message=f"failed to connect to Socket.IO server: {e}",
                context=context,
                cause=e,
            ) from e

        if not isinstance(opening, str) or not opening.startswith("0"):
            await self.disconnect()
            raise ConnectError(message="unexpected Engine.IO open packet", context=context)
        try:
            self.session_id = json.loads(opening[1:]).get("sid")
        except (json.JSONDecodeError, AttributeError):
            self.session_id = None

        connect_packet = "40" if self.namespace == "/" else f"40{self.namespace},"
        try:
            await self._ws.send(connect_packet)
        except (WebSocketException, OSError) as e:
            await self.disconnect()
            raise ConnectError(
                message=f"failed to join namespace {self.namespace}: {e}",
                context=context,
                cause=e,
            ) from e

        self._connected = True
        logger.info(f"Socket.IO connected to {self.endpoint} (sid={self.session_id})")

    async def disconnect(self) -> None:
        if self._ws is not None:
            try:
                await self._ws.close()
            except (WebSocketException, OSError) as e:
                logger.debug(f"Error while closing Socket.IO connection: {e}")
            self._ws = None
        self._connected = False

    async def is_connected(self) -> bool:
        return self._connected and self._ws is not None

    async def emit(self, event: str, data: Any = None) -> None:
        """Send one event packet."""
        await self._ensure_connected()
        assert self._ws is not None

        packet = encode_event(event, data, self.namespace)
        start_time = time.perf_counter()
        await self._ws.send(packet)
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request("emit", packet, None, duration_ms)

    async def listen(self, event: str, duration: float) -> list[str]:
        """Collect raw packets for ``event`` until ``duration`` seconds pass.

        Engine.IO pings are answered while listening. Returns early if the
        server closes the connection.
        """
        await self._ensure_connected()
        assert self._ws is not None

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration
        messages: list[str] = []

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                frame = await asyncio.wait_for(self._ws.recv(), timeout=remaining)
            except (asyncio.TimeoutError, TimeoutError):
                break
            except ConnectionClosed:
                self._connected = False
                break

            if isinstance(frame, bytes):
                frame = frame.decode("utf-8", errors="replace")
            if frame == "2":
                await self._ws.send("3")
                continue
            name, _ = decode_event(frame)
            if name == event:
                messages.append(frame)

        self._record_request("listen", event, messages, duration * 1000)
        return messages


def _parse_event_data(body: str | None) -> Any:
    if body is None or not body.strip():
        return None
    return json.loads(body)


async def _open(
    server_url: str, options: tuple[Option, ...], **kwargs: Any
) -> tuple[RequestOptions, SocketIOClient | None, SocketIOResponse | None]:
    """Build and connect a client, or return a failure response."""
    opts = collect_options(*options)
    try:
        client = SocketIOClient(
            server_url,
            headers=opts.headers,
            params=opts.params,
            namespace=opts.namespace,
            **kwargs,
        )
    except ValidationError as e:
        return opts, None, SocketIOResponse.failure(CONNECTION_ERROR, e.message)

    try:
        await client.connect()
    except ConnectError as e:
        return opts, None, SocketIOResponse.failure(CONNECTION_FAILED, e.message)
    return opts, client, None


async def socketio_connect(server_url: str, *options: Option, **kwargs: Any) -> SocketIOResponse:
    """Connect, report, disconnect."""
    _, client, failure = await _open(server_url, options, **kwargs)
    if failure is not None:
        return failure

    connected = await client.is_connected()
    await client.disconnect()
    return SocketIOResponse(
        event="connect",
        data={"url": server_url, "sid": client.session_id, "timestamp": int(time.time())},
        status="success",
        connected=connected,
    )


async def socketio_emit(
    server_url: str, event: str, *options: Option, **kwargs: Any
) -> SocketIOResponse:
    """Connect and emit ``event`` with the JSON body from ``with_body``."""
    opts, client, failure = await _open(server_url, options, **kwargs)
    if failure is not None:
        return failure

    try:
        try:
            event_data = _parse_event_data(opts.body)
        except json.JSONDecodeError as e:
            return SocketIOResponse.failure(
                INVALID_DATA, f"failed to decode event data: {e}", connected=True
            )

        try:
            await client.emit(event, event_data)
        except (WebSocketException, OSError) as e:
            return SocketIOResponse.failure(
                EMIT_FAILED, f"failed to emit event: {e}", connected=await client.is_connected()
            )

        return SocketIOResponse(
            event=event,
            data={
                "event": event,
                "data": event_data,
                "url": server_url,
                "timestamp": int(time.time()),
            },
            status="success",
            connected=await client.is_connected(),
        )
    finally:
        await client.disconnect()


async def socketio_listen(
    server_url: str, event: str, duration: float, *options: Option, **kwargs: Any
) -> SocketIOResponse:
    """Connect and collect ``event`` packets for ``duration`` seconds."""
    _, client, failure = await _open(server_url, options, **kwargs)
    if failure is not None:
        return failure

    try:
        messages = await client.listen(event, duration)
        return SocketIOResponse(
            event=event,
            data={
                "event": event,
                "messages": messages,
                "message_count": len(messages),
                "listen_duration": format_duration(duration),
                "url": server_url,
                "timestamp": int(time.time()),
            },
            status="success",
            connected=await client.is_connected(),
        )
    finally:
        await client.disconnect()
