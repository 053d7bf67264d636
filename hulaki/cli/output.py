"""Rich output for hulaki command results.

Every command prints sections introduced by a heading (``HEADERS``,
``BODY``, ``ERRORS``, ``DATA``, ...) followed by ``key: value`` lines or
content. ``less`` mode prints the payload only.

Example:
    >>> output = create_output()
    >>> output.http_response(response, less=False)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    import httpx

    from hulaki.http.graphql import GraphQLResponse
    from hulaki.http.grpc import GRPCResponse
    from hulaki.http.socketio import SocketIOResponse

HEADING_STYLE = "bold #ffffff on #ff1493"
KEY_STYLE = "bold #14ff82"
CONTENT_STYLE = ""


class ResponseOutput:
    """Prints command results to a rich Console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(soft_wrap=True, highlight=False)

    def heading(self, text: str) -> None:
        self.console.print(Text(text, style=HEADING_STYLE))

    def key_value(self, key: str, value: Any) -> None:
        self.console.print(Text.assemble((key, KEY_STYLE), ": ", str(value)))

    def content(self, text: str) -> None:
        self.console.print(Text(text, style=CONTENT_STYLE))

    def json(self, data: Any) -> None:
        self.content(json.dumps(data, indent=2, ensure_ascii=False))

    def headers(self, headers: Any) -> None:
        """Print a HEADERS section. Accepts a mapping or httpx.Headers."""
        self.heading("HEADERS")
        items = headers.multi_items() if hasattr(headers, "multi_items") else headers.items()
        for key, value in items:
            self.key_value(key, value)

    def error(self, message: str) -> None:
        self.console.print(Text.assemble(("Error: ", "bold red"), message))

    def info(self, message: str) -> None:
        self.console.print(Text(message, style="dim"))

    def http_response(self, response: httpx.Response, less: bool = False) -> None:
        if less:
            self.content(response.text)
            return
        self.headers(response.headers)
        self.heading("BODY")
        self.content(response.text)

    def graphql_response(
        self, response: GraphQLResponse, less: bool = False, raw: bool = False
    ) -> None:
        if raw:
            if not less:
                self.headers(response.headers)
                self.heading("BODY")
            self.content(response.raw_body)
            return

        if not less:
            self.headers(response.headers)
            if response.errors:
                self.heading("ERRORS")
                for error in response.errors:
                    self.content(error.message)
                    for loc in error.locations or []:
                        self.content(
                            f"  Location: Line {loc.get('line')}, Column {loc.get('column')}"
                        )
            self.heading("DATA")

        if response.data is not None:
            self.json(response.data)
        elif less:
            for error in response.errors:
                self.content(f"Error: {error.message}")

    def _probe_error(self, code: str, message: str) -> None:
        self.heading("ERROR")
        self.key_value("Code", code)
        self.key_value("Message", message)

    def grpc_response(self, response: GRPCResponse, less: bool = False) -> None:
        if response.error is not None:
            self._probe_error(response.error.code, response.error.message)
            return

        if not less:
            self.heading("GRPC RESPONSE")
            if response.metadata:
                self.heading("METADATA")
                for key, value in response.metadata.items():
                    self.key_value(key, value)
            self.heading("DATA")

        if response.data is not None:
            self.json(response.data)

    def socketio_response(self, response: SocketIOResponse, less: bool = False) -> None:
        if response.error is not None:
            self._probe_error(response.error.code, response.error.message)
            return

        if not less:
            self.heading("SOCKET.IO RESPONSE")
            self.key_value("Status", response.status)
            self.key_value("Connected", str(response.connected).lower())
            if response.event:
                self.key_value("Event", response.event)
            self.heading("DATA")

        if response.data is not None:
            self.json(response.data)


def create_output(console: Console | None = None) -> ResponseOutput:
    """Create a response printer bound to ``console`` (stdout by default)."""
    return ResponseOutput(console)
