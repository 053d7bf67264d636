"""Events consumed by the interactive session loop.

Terminal input and the background frame receiver both feed one queue of
these events. ``Session.dispatch`` matches them exhaustively.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from hulaki.errors import HulakiError

QUIT_KEYS = frozenset({"ctrl+c", "ctrl+q", "escape"})
SUBMIT_KEY = "enter"


@dataclass(frozen=True)
class Resize:
    """Terminal was resized to ``width`` x ``height`` cells."""

    width: int
    height: int


@dataclass(frozen=True)
class KeyInput:
    """A keystroke.

    Attributes:
        key: Normalised key name, e.g. ``"a"``, ``"enter"``, ``"ctrl+c"``.
        character: The printable character produced, if any.
    """

    key: str
    character: str | None = None


@dataclass(frozen=True)
class InboundFrame:
    """A frame delivered by the peer."""

    text: str


@dataclass(frozen=True)
class ConnectionLost:
    """The background receiver stopped because of a transport error."""

    error: HulakiError


Event = Union[Resize, KeyInput, InboundFrame, ConnectionLost]
