"""Sign-in dialog."""

from __future__ import annotations

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Static

from paper_swipe.auth import normalize_user_id


class SignInScreen(ModalScreen[str | None]):
    """Ask for a user id or email; dismisses with the normalized id or None."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    CSS = """
    SignInScreen {
        align: center middle;
    }

    #sign-in-dialog {
        width: 60;
        height: auto;
        background: $th-background;
        border: tall $th-accent;
        padding: 1 2;
    }

    #sign-in-title {
        text-style: bold;
        color: $th-accent;
        margin-bottom: 1;
    }

    #sign-in-error {
        color: $th-like;
        height: auto;
    }

    #sign-in-footer {
        color: $th-muted;
        margin-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="sign-in-dialog"):
            yield Label("Sign in", id="sign-in-title")
            yield Input(placeholder="Email or user id", id="sign-in-input")
            yield Static("", id="sign-in-error")
            yield Static("Enter to sign in · Esc to cancel", id="sign-in-footer")

    def on_mount(self) -> None:
        self.query_one("#sign-in-input", Input).focus()

    @on(Input.Submitted, "#sign-in-input")
    def on_submitted(self, event: Input.Submitted) -> None:
        try:
            user_id = normalize_user_id(event.value)
        except ValueError as exc:
            self.query_one("#sign-in-error", Static).update(str(exc))
            return
        self.dismiss(user_id)

    def action_cancel(self) -> None:
        self.dismiss(None)


__all__ = ["SignInScreen"]
