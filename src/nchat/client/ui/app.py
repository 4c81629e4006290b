"""
Chat Application UI

Terminal chat window for the chat client, built using the Textual
framework. The app never touches the network: it drains rendered lines from
the client pipeline on a timer and pushes submitted text and the quit signal
into the pipeline's outbound queue.
"""

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, ScrollableContainer
from textual.css.query import NoMatches
from textual.widgets import Footer, Header, Input, Static

from ..render import (
    KIND_CHAT,
    KIND_ERROR,
    KIND_EXIT,
    KIND_JOIN,
    KIND_LEAVE,
    RenderedLine,
)

logger = logging.getLogger(__name__)

# Seconds between two polls of the rendered line queue
POLL_INTERVAL = 0.05

LINE_STYLES = {
    KIND_CHAT: "",
    KIND_JOIN: "green",
    KIND_LEAVE: "yellow",
    KIND_EXIT: "yellow",
    KIND_ERROR: "bold red",
}


class HistoryLine(Static):
    """Widget for displaying a single rendered history line."""

    def __init__(self, line: RenderedLine) -> None:
        """Initialize the line display."""
        # Text rather than a markup string, so user text is shown verbatim
        super().__init__(
            Text(line.text, style=LINE_STYLES.get(line.kind, "")),
            classes=f"line-{line.kind}",
        )
        self.line = line


class ChatScreen(Container):
    """Screen for chatting in a group."""

    def compose(self) -> ComposeResult:
        """Compose the chat screen."""
        yield Static("", id="group-header", classes="group-header")
        yield ScrollableContainer(id="chat-history")
        yield Input(placeholder="Type a message...", id="chat-input")


class ChatApp(App):
    """Main chat application."""

    CSS = """
    ChatScreen {
        height: 100%;
    }

    .group-header {
        padding: 0 1;
        background: $surface;
        text-align: center;
        text-style: bold;
    }

    #chat-history {
        height: 1fr;
        padding: 0 1;
    }

    #chat-input {
        dock: bottom;
    }

    HistoryLine {
        padding: 0 0 1 0;
    }

    .line-join, .line-leave, .line-exit {
        text-style: italic;
    }
    """

    BINDINGS = [
        Binding("escape", "quit", "Quit", show=True, priority=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("ctrl+d", "quit", "Quit", show=False, priority=True),
        Binding("delete", "clear_input", "Clear input", priority=True),
        Binding(
            "alt+delete", "clear_history", "Clear history", priority=True
        ),
    ]

    def __init__(self, pipeline, group_name: str) -> None:
        """
        Initialize the chat application.

        Args:
            pipeline: Object with ``submit``, ``shutdown`` and
                ``drain_lines`` (a ClientPipeline)
            group_name: Group shown in the window title
        """
        super().__init__()
        self.pipeline = pipeline
        self.group_name = group_name
        self.message_count = 0
        self._shutdown_sent = False

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield ChatScreen(id="chat-screen")
        yield Footer()

    def on_mount(self) -> None:
        """Handle application mount."""
        self.title = f"nchat - {self.group_name}"
        try:
            header = self.query_one("#group-header", Static)
            header.update(Text(f"Group: {self.group_name}"))
            self.query_one("#chat-input", Input).focus()
        except NoMatches:
            pass
        self.set_interval(POLL_INTERVAL, self._poll_lines)

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        if event.input.id != "chat-input":
            return
        text = event.value
        if not text.strip():
            return
        self.pipeline.submit(text)
        event.input.value = ""

    def _poll_lines(self) -> None:
        """Append every line the render thread produced since last tick."""
        lines = self.pipeline.drain_lines()
        if not lines:
            return
        try:
            history = self.query_one("#chat-history", ScrollableContainer)
        except NoMatches:
            logger.warning(f"History not mounted, dropped {len(lines)} lines")
            return
        for line in lines:
            self.message_count += 1
            history.mount(HistoryLine(line))
        history.scroll_end(animate=False)

    def request_shutdown(self) -> None:
        """Push the Shutdown event, at most once per session."""
        if self._shutdown_sent:
            return
        self._shutdown_sent = True
        self.pipeline.shutdown()

    async def action_quit(self) -> None:
        """Send the farewell signal, then leave the UI loop."""
        self.request_shutdown()
        self.exit()

    def action_clear_input(self) -> None:
        try:
            self.query_one("#chat-input", Input).value = ""
        except NoMatches:
            pass

    async def action_clear_history(self) -> None:
        try:
            history = self.query_one("#chat-history", ScrollableContainer)
        except NoMatches:
            return
        await history.remove_children()
