"""Interactive terminal session for duplex connections."""

from hulaki.tui.events import ConnectionLost, Event, InboundFrame, KeyInput, Resize
from hulaki.tui.session import (
    EntryKind,
    InputBuffer,
    Layout,
    LogEntry,
    MessageLog,
    Session,
    SessionState,
    SessionView,
)

__all__ = [
    "ConnectionLost",
    "EntryKind",
    "Event",
    "InboundFrame",
    "InputBuffer",
    "KeyInput",
    "Layout",
    "LogEntry",
    "MessageLog",
    "Resize",
    "Session",
    "SessionState",
    "SessionView",
]
