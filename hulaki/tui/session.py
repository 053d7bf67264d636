"""Interactive duplex session.

The session owns the input buffer, message log, layout and state machine
of one ``hulaki ws`` invocation. A single loop consumes events one at a
time; a background task reads frames from the connection and feeds them
into the same queue.

Classes:
    SessionState: ACTIVE -> CLOSING -> TERMINATED.
    EntryKind: Kind of a message log entry.
    LogEntry: One line of scrollback.
    MessageLog: Ordered, append-only scrollback.
    InputBuffer: Single-line editable text with a cursor.
    Layout: Terminal size and derived widget dimensions.
    SessionView: Immutable snapshot handed to the renderer.
    Session: The event loop itself.

Example:
    >>> connection = await DuplexConnection.open("ws://localhost:9000")
    >>> session = Session(connection, renderer=print)
    >>> await session.post(KeyInput("h", "h"))
    >>> await session.post(KeyInput("enter"))
    >>> await session.post(KeyInput("ctrl+c"))
    >>> await session.run()
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from hulaki.errors import HulakiError, ReceiveError, SendError
from hulaki.tui.events import (
    QUIT_KEYS,
    SUBMIT_KEY,
    ConnectionLost,
    Event,
    InboundFrame,
    KeyInput,
    Resize,
)

logger = logging.getLogger(__name__)

# Rows taken by the prompt line and the bordered input box.
INPUT_CHROME_HEIGHT = 4


class FrameConnection(Protocol):
    """What the session needs from a duplex connection."""

    async def send(self, frame: str) -> None: ...

    async def receive(self) -> str: ...

    async def close(self) -> None: ...


class SessionState(Enum):
    """Session lifecycle states.

    Attributes:
        ACTIVE: Processing input and frames.
        CLOSING: Quit requested or connection failed; teardown pending.
        TERMINATED: Receiver stopped and connection closed.
    """

    ACTIVE = "active"
    CLOSING = "closing"
    TERMINATED = "terminated"


class EntryKind(Enum):
    SENT = "sent"
    RECEIVED = "received"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class LogEntry:
    kind: EntryKind
    text: str
    timestamp: datetime = field(default_factory=datetime.now)


class MessageLog:
    """Ordered scrollback of sent, received and error entries.

    Unbounded unless ``limit`` is given, in which case the oldest entries
    are evicted first. ``total`` counts every append, evicted or not.
    """

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        self._entries: deque[LogEntry] = deque(maxlen=limit)
        self.total = 0

    def append(self, kind: EntryKind, text: str) -> LogEntry:
        entry = LogEntry(kind=kind, text=text)
        self._entries.append(entry)
        self.total += 1
        return entry

    def entries(self, kind: EntryKind | None = None) -> list[LogEntry]:
        if kind is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.kind == kind]

    def texts(self, kind: EntryKind | None = None) -> list[str]:
        return [entry.text for entry in self.entries(kind)]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)


class InputBuffer:
    """Single-line text with a cursor, capped at ``char_limit`` characters."""

    def __init__(self, char_limit: int = 240) -> None:
        self.char_limit = char_limit
        self.text = ""
        self.cursor = 0

    @property
    def is_empty(self) -> bool:
        return not self.text

    def insert(self, chars: str) -> None:
        """Insert at the cursor; characters beyond the limit are dropped."""
        room = self.char_limit - len(self.text)
        if room <= 0:
            return
        chars = chars[:room]
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        self.cursor += len(chars)

    def backspace(self) -> None:
        if self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete(self) -> None:
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def move_left(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def move_right(self) -> None:
        self.cursor = min(len(self.text), self.cursor + 1)

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0


_EDIT_KEYS: dict[str, Callable[[InputBuffer], None]] = {
    "backspace": InputBuffer.backspace,
    "delete": InputBuffer.delete,
    "left": InputBuffer.move_left,
    "right": InputBuffer.move_right,
    "home": InputBuffer.home,
    "end": InputBuffer.end,
    "ctrl+u": InputBuffer.clear,
}


@dataclass
class Layout:
    """Terminal dimensions and the sizes derived from them.

    Updated only by resize events and read only while rendering.
    """

    width: int = 80
    height: int = 24

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, width)
        self.height = max(1, height)

    @property
    def input_width(self) -> int:
        return max(1, self.width - 4)

    @property
    def log_width(self) -> int:
        return max(1, self.width - 2)

    @property
    def log_height(self) -> int:
        return max(1, self.height - INPUT_CHROME_HEIGHT)


@dataclass(frozen=True)
class SessionView:
    """Everything a renderer needs to paint one frame of the UI."""

    state: SessionState
    entries: tuple[LogEntry, ...]
    entries_total: int
    input_text: str
    cursor: int
    width: int
    height: int
    input_width: int
    log_width: int
    log_height: int


Renderer = Callable[[SessionView], None]


class Session:
    """Single-consumer event loop around one duplex connection.

    Attributes:
        connection: The open connection. Owned by the session from here on.
        events: Bounded queue merging terminal input and inbound frames.
        log: Scrollback.
        input: Input buffer.
        layout: Current terminal layout.
        state: Current SessionState.
        error: The error that ended the session, if any.
    """

    def __init__(
        self,
        connection: FrameConnection,
        renderer: Renderer | None = None,
        queue_size: int = 1024,
        log_limit: int | None = None,
        char_limit: int = 240,
        width: int = 80,
        height: int = 24,
    ) -> None:
        self.connection = connection
        self.renderer = renderer
        self.events: asyncio.Queue[Event] = asyncio.Queue(maxsize=queue_size)
        self.log = MessageLog(limit=log_limit)
        self.input = InputBuffer(char_limit=char_limit)
        self.layout = Layout()
        self.layout.resize(width, height)
        self.state = SessionState.ACTIVE
        self.error: HulakiError | None = None
        self._shutdown = asyncio.Event()
        self._receiver: asyncio.Task[None] | None = None
        self._started = False

    async def post(self, event: Event) -> None:
        """Queue an event, waiting while the queue is full."""
        await self.events.put(event)

    def view(self) -> SessionView:
        return SessionView(
            state=self.state,
            entries=tuple(self.log),
            entries_total=self.log.total,
            input_text=self.input.text,
            cursor=self.input.cursor,
            width=self.layout.width,
            height=self.layout.height,
            input_width=self.layout.input_width,
            log_width=self.layout.log_width,
            log_height=self.layout.log_height,
        )

    def render(self) -> None:
        if self.renderer is not None:
            self.renderer(self.view())

    async def run(self) -> SessionState:
        """Run until quit or connection failure, then tear down.

        Returns:
            The final state, always TERMINATED.
        """
        if self._started:
            raise RuntimeError("Session.run() may only be called once")
        self._started = True

        url = getattr(self.connection, "url", None)
        if url:
            self.log.append(EntryKind.INFO, f"Connected to {url}")

        self._receiver = asyncio.create_task(self._receive_frames())
        try:
            self.render()
            while self.state is SessionState.ACTIVE:
                event = await self.events.get()
                await self.dispatch(event)
                self.render()
        finally:
            await self._teardown()
            self.render()
        return self.state

    async def dispatch(self, event: Event) -> None:
        """Apply one event to the session state."""
        if isinstance(event, Resize):
            self.layout.resize(event.width, event.height)
        elif isinstance(event, KeyInput):
            await self._handle_key(event)
        elif isinstance(event, InboundFrame):
            self.log.append(EntryKind.RECEIVED, event.text)
        elif isinstance(event, ConnectionLost):
            self._fail(event.error)
        else:
            raise TypeError(f"Unknown session event: {event!r}")

    async def _handle_key(self, event: KeyInput) -> None:
        if event.key in QUIT_KEYS:
            logger.debug(f"Quit requested with {event.key}")
            self.state = SessionState.CLOSING
        elif event.key == SUBMIT_KEY:
            await self._submit()
        elif event.key in _EDIT_KEYS:
            _EDIT_KEYS[event.key](self.input)
        elif event.character and event.character.isprintable():
            self.input.insert(event.character)

    async def _submit(self) -> None:
        text = self.input.text
        if not text:
            return
        try:
            await self.connection.send(text)
        except SendError as e:
            self._fail(e)
            return
        self.log.append(EntryKind.SENT, text)
        self.input.clear()

    def _fail(self, error: HulakiError) -> None:
        logger.warning(f"Session ending: {error}")
        self.error = error
        self.log.append(EntryKind.ERROR, str(error))
        self.state = SessionState.CLOSING

    async def _receive_frames(self) -> None:
        """Forward frames into the event queue until shutdown or failure."""
        while not self._shutdown.is_set():
            try:
                frame = await self.connection.receive()
            except ReceiveError as e:
                error: HulakiError = e
            except Exception as e:
                logger.exception("Frame receiver crashed")
                error = ReceiveError(message=f"Frame receiver failed: {e}", cause=e)
            else:
                await self.events.put(InboundFrame(frame))
                continue

            if not self._shutdown.is_set():
                await self.events.put(ConnectionLost(error))
            return

    async def _teardown(self) -> None:
        self.state = SessionState.CLOSING
        self._shutdown.set()
        await self.connection.close()
        if self._receiver is not None:
            self._receiver.cancel()
            try:
                await self._receiver
            except asyncio.CancelledError:
                pass
            self._receiver = None
        self.state = SessionState.TERMINATED
        logger.debug("Session terminated")
