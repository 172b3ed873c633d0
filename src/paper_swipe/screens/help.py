"""Keyboard and mouse help overlay."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Label, Static

from paper_swipe.themes import THEME_COLORS


class HelpScreen(ModalScreen[None]):
    """Full-screen help overlay showing all keyboard shortcuts by category."""

    _DEFAULT_SECTIONS: list[tuple[str, list[tuple[str, str]]]] = [
        (
            "Feed",
            [
                ("j / ↓", "Next paper (swipe up)"),
                ("k / ↑", "Previous paper (swipe down)"),
                ("l / →", "Toggle bookmark (swipe right)"),
                ("h / ←", "Chat about the paper (swipe left)"),
                ("Space", "Toggle like (or double click the card)"),
            ],
        ),
        (
            "Search",
            [
                ("/", "Focus search"),
                ("Esc", "Back to the feed"),
                ("click chip", "Toggle a category filter"),
                ("r", "Reload the feed"),
            ],
        ),
        (
            "Paper",
            [
                ("o", "Open in browser"),
                ("Enter", "Paper details"),
                ("L", "Library of bookmarks"),
            ],
        ),
        (
            "App",
            [
                ("s", "Sign in / sign out"),
                ("Ctrl+t", "Cycle theme"),
                ("?", "Help overlay"),
                ("q", "Quit"),
            ],
        ),
    ]

    BINDINGS = [
        Binding("question_mark", "dismiss", "Close", show=False),
        Binding("escape", "dismiss", "Close"),
        Binding("q", "dismiss", "Close", show=False),
    ]

    CSS = """
    HelpScreen {
        align: center middle;
    }

    #help-dialog {
        width: 70%;
        height: 80%;
        min-width: 50;
        min-height: 20;
        background: $th-background;
        border: tall $th-accent;
        padding: 0 2;
        overflow-y: auto;
    }

    #help-title {
        text-style: bold;
        color: $th-accent;
        text-align: center;
        margin-bottom: 1;
    }

    .help-section-title {
        text-style: bold;
    }

    .help-keys {
        padding-left: 2;
        margin-bottom: 1;
        color: $th-text;
    }

    #help-footer {
        text-align: center;
        color: $th-muted;
    }
    """

    def __init__(
        self,
        sections: list[tuple[str, list[tuple[str, str]]]] | None = None,
        footer_note: str = "Close: ? / Esc / q",
    ) -> None:
        super().__init__()
        self._sections = sections or list(self._DEFAULT_SECTIONS)
        self._footer_note = footer_note

    @staticmethod
    def _render_section_lines(entries: list[tuple[str, str]]) -> str:
        key_color = THEME_COLORS["bookmark"]
        lines = [f"  [{key_color}]{key}[/]  {description}" for key, description in entries]
        return "\n".join(lines)

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="help-dialog"):
            yield Label("Keyboard & Mouse", id="help-title")
            for section_name, entries in self._sections:
                if not entries:
                    continue
                yield Label(
                    f"[{THEME_COLORS['accent']}]{section_name}[/]",
                    classes="help-section-title",
                )
                yield Static(self._render_section_lines(entries), classes="help-keys")
            yield Label(self._footer_note, id="help-footer")

    def action_dismiss(self) -> None:
        """Close the help screen."""
        self.dismiss(None)


__all__ = ["HelpScreen"]
