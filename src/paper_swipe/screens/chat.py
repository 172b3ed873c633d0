"""Chat screen for a single paper."""

from __future__ import annotations

import logging

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.css.query import NoMatches
from textual.screen import ModalScreen
from textual.widgets import Input, Static

from paper_swipe.chat import SENDER_USER, ChatSession
from paper_swipe.models import ChatMessage, Paper
from paper_swipe.query import escape_rich_text

logger = logging.getLogger(__name__)


class ChatScreen(ModalScreen[None]):
    """Interactive chat about a paper; answers are simulated."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
    ]

    CSS = """
    ChatScreen {
        align: center middle;
    }

    #chat-dialog {
        width: 80%;
        height: 85%;
        min-width: 60;
        min-height: 20;
        background: $th-background;
        border: tall $th-chat;
        padding: 0 2;
    }

    #chat-title {
        text-style: bold;
        color: $th-chat;
        margin-bottom: 1;
        height: auto;
    }

    #chat-messages {
        height: 1fr;
        background: $th-panel;
        padding: 1 1;
    }

    .chat-user {
        color: $th-accent;
        margin-bottom: 1;
        text-align: right;
    }

    .chat-ai {
        color: $th-text;
        margin-bottom: 1;
    }

    #chat-status {
        height: auto;
        color: $th-muted;
    }

    #chat-input {
        margin-top: 1;
        background: $th-panel;
    }
    """

    def __init__(self, paper: Paper, session: ChatSession | None = None) -> None:
        super().__init__()
        self._paper = paper
        self.session = session or ChatSession(paper.id, paper.title)
        self._waiting = False

    def compose(self) -> ComposeResult:
        with Vertical(id="chat-dialog"):
            yield Static(f"Chat: {escape_rich_text(self._paper.title[:70])}", id="chat-title")
            yield VerticalScroll(id="chat-messages")
            yield Static("", id="chat-status")
            yield Input(
                placeholder="Ask about this paper… (Enter to send, Esc to close)",
                id="chat-input",
            )

    def on_mount(self) -> None:
        for message in self.session.messages:
            self._mount_message(message)
        self.query_one("#chat-input", Input).focus()

    def _mount_message(self, message: ChatMessage) -> None:
        messages = self.query_one("#chat-messages", VerticalScroll)
        text = escape_rich_text(message.text)
        if message.sender == SENDER_USER:
            messages.mount(Static(f"{text} [bold]:You[/]", classes="chat-user"))
        else:
            messages.mount(Static(f"[bold]AI:[/] {text}", classes="chat-ai"))
        messages.scroll_end(animate=False)

    @on(Input.Submitted, "#chat-input")
    def on_question_submitted(self, event: Input.Submitted) -> None:
        if self._waiting:
            return
        message = self.session.add_user_message(event.value)
        if message is None:
            return
        event.input.value = ""
        self._mount_message(message)
        self._waiting = True
        self.query_one("#chat-status", Static).update("[dim]Typing…[/]")
        self.run_worker(self._await_reply(), exclusive=True, group="chat-reply")

    async def _await_reply(self) -> None:
        try:
            reply = await self.session.reply()
            self._mount_message(reply)
        except NoMatches:
            logger.debug("Chat screen closed before the reply arrived")
        finally:
            self._waiting = False
            try:
                self.query_one("#chat-status", Static).update("")
            except NoMatches:
                pass

    def action_close(self) -> None:
        self.dismiss(None)


__all__ = ["ChatScreen"]
