"""hulaki - a terminal client for HTTP, GraphQL, gRPC, WebSocket and Socket.IO.

Each command builds a request from small option helpers, fires it and
pretty-prints the result. ``hulaki ws`` opens an interactive duplex
session with a terminal UI.

Example:
    >>> from hulaki import DuplexConnection, Session
    >>> connection = await DuplexConnection.open("ws://localhost:9000")
    >>> await Session(connection).run()
"""

from hulaki.config import HulakiConfig, load_config
from hulaki.errors import (
    ClosedError,
    ConnectError,
    HulakiError,
    ReceiveError,
    SendError,
)
from hulaki.http import (
    DuplexConnection,
    GraphQLClient,
    GRPCClient,
    HttpClient,
    SocketIOClient,
    with_body,
    with_headers,
    with_params,
)
from hulaki.tui import Session, SessionState

__version__ = "0.1.0"

__all__ = [
    "ClosedError",
    "ConnectError",
    "DuplexConnection",
    "GRPCClient",
    "GraphQLClient",
    "HttpClient",
    "HulakiConfig",
    "HulakiError",
    "ReceiveError",
    "SendError",
    "Session",
    "SessionState",
    "SocketIOClient",
    "load_config",
    "with_body",
    "with_headers",
    "with_params",
]
