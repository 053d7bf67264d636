"""Pytest fixtures for hulaki tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import pytest
from websockets.asyncio.server import ServerConnection, serve

from hulaki.errors import ClosedError, ReceiveError, SendError


class FakeConnection:
    """In-memory duplex connection.

    Frames fed with ``feed()`` are returned by ``receive()`` in order; an
    exception fed the same way is raised instead.
    """

    def __init__(self, fail_send: bool = False) -> None:
        self.url = "ws://fake.test/socket"
        self.sent: list[str] = []
        self.close_count = 0
        self.fail_send = fail_send
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, item: str | ReceiveError) -> None:
        self._inbound.put_nowait(item)

    async def send(self, frame: str) -> None:
        if self.fail_send:
            raise SendError(message="peer reset the stream")
        self.sent.append(frame)

    async def receive(self) -> str:
        item = await self._inbound.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.close_count += 1
        self._inbound.put_nowait(ClosedError())


async def _echo(connection: ServerConnection) -> None:
    async for message in connection:
        await connection.send(message)


@asynccontextmanager
async def _serve(handler: Callable[[ServerConnection], Any] = _echo, **kwargs: Any) -> AsyncIterator[str]:
    async with serve(handler, "127.0.0.1", 0, **kwargs) as server:
        port = list(server.sockets)[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}"


async def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def failing_connection() -> FakeConnection:
    return FakeConnection(fail_send=True)


@pytest.fixture
def ws_server() -> Callable[..., Any]:
    """Async context manager factory: ``async with ws_server() as url``.

    Echoes every frame unless another handler is given.
    """
    return _serve


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    return _wait_until
