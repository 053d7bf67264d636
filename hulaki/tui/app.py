"""Textual front-end for the interactive WebSocket session.

The app owns no session state. It forwards keystrokes and resizes into
the session queue and paints every ``SessionView`` the session renders.
"""

from __future__ import annotations

from rich.text import Text
from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.widgets import RichLog, Static

from hulaki.tui.events import KeyInput, Resize
from hulaki.tui.session import EntryKind, LogEntry, Session, SessionView

PROMPT = "Send a message:"
PLACEHOLDER = "msg..."

_ENTRY_STYLES = {
    EntryKind.SENT: ("> ", "bold #ff1493"),
    EntryKind.RECEIVED: ("< ", "bold #14ff82"),
    EntryKind.ERROR: ("! ", "bold red"),
    EntryKind.INFO: ("* ", "dim"),
}


def format_entry(entry: LogEntry) -> Text:
    prefix, style = _ENTRY_STYLES[entry.kind]
    line = Text(prefix, style=style)
    line.append(entry.text, style="red" if entry.kind == EntryKind.ERROR else "")
    return line


def format_input(text: str, cursor: int) -> Text:
    if not text:
        line = Text(" ", style="reverse")
        line.append(PLACEHOLDER, style="dim")
        return line
    line = Text(text[:cursor])
    line.append(text[cursor : cursor + 1] or " ", style="reverse")
    line.append(text[cursor + 1 :])
    return line


class WebSocketApp(App[None]):
    """Terminal UI for one ``hulaki ws`` session."""

    CSS = """
    #log {
        border: round $accent;
        height: 1fr;
    }
    #prompt {
        height: 1;
        padding: 0 1;
        text-style: bold;
    }
    #input {
        border: round $primary;
        height: 3;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit_session", "Quit", show=False, priority=True),
        Binding("ctrl+q", "quit_session", "Quit", show=False, priority=True),
    ]

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self._rendered_total = 0

    def compose(self) -> ComposeResult:
        log = RichLog(id="log", wrap=True, markup=False, max_lines=self.session.log.limit)
        log.can_focus = False
        yield log
        yield Static(PROMPT, id="prompt")
        yield Static(format_input("", 0), id="input")

    def on_mount(self) -> None:
        self.session.renderer = self.show_view
        self._run_session()

    @work(exclusive=True, group="session")
    async def _run_session(self) -> None:
        await self.session.post(Resize(self.size.width, self.size.height))
        await self.session.run()
        self.exit()

    async def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        await self.session.post(KeyInput(event.key, event.character))

    async def on_resize(self, event: events.Resize) -> None:
        await self.session.post(Resize(event.size.width, event.size.height))

    async def action_quit_session(self) -> None:
        await self.session.post(KeyInput("ctrl+c"))

    def show_view(self, view: SessionView) -> None:
        """Paint a session snapshot. Called from the session loop."""
        try:
            log = self.query_one("#log", RichLog)
            input_box = self.query_one("#input", Static)
        except NoMatches:
            return

        fresh = min(view.entries_total - self._rendered_total, len(view.entries))
        if fresh > 0:
            for entry in view.entries[-fresh:]:
                log.write(format_entry(entry))
        self._rendered_total = view.entries_total

        log.styles.width = view.log_width + 2
        log.styles.height = view.log_height
        input_box.styles.width = view.input_width + 2
        input_box.update(format_input(view.input_text, view.cursor))
