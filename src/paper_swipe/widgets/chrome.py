"""Widget chrome: category chips, feed status line and footer hints."""

from __future__ import annotations

from collections.abc import Iterable

from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.widgets import Label, Static

from paper_swipe.query import CATEGORIES, escape_rich_text
from paper_swipe.themes import THEME_COLORS


class ContextFooter(Static):
    """Context-sensitive footer showing relevant keybindings."""

    DEFAULT_CSS = """
    ContextFooter {
        dock: bottom;
        height: 1;
        background: $th-background;
        color: $th-muted;
        padding: 0 1;
        border-top: solid $th-panel-alt;
    }
    """

    def render_bindings(self, bindings: list[tuple[str, str]], mode_badge: str = "") -> None:
        """Update the footer with a list of (key, label) binding hints."""
        accent = THEME_COLORS["accent"]
        muted = THEME_COLORS["muted"]
        parts = []
        if mode_badge:
            parts.append(mode_badge)
        for key, label in bindings:
            parts.append(f"[bold {accent}]{escape_rich_text(key)}[/] [{muted}]{label}[/]")
        self.update("  ".join(parts))


class CategoryBar(Horizontal):
    """Row of toggleable category chips."""

    class Toggled(Message):
        """A chip was clicked."""

        def __init__(self, category_id: str) -> None:
            super().__init__()
            self.category_id = category_id

    DEFAULT_CSS = """
    CategoryBar {
        height: auto;
        padding: 0 1;
        background: $th-background;
    }

    CategoryBar .category-chip {
        padding: 0 1;
        margin-right: 1;
        color: $th-text;
        background: $th-panel-alt;
    }

    CategoryBar .category-chip:hover {
        background: $th-highlight;
    }

    CategoryBar .category-chip.selected {
        color: $th-panel;
        background: $th-accent;
        text-style: bold;
    }
    """

    def __init__(self, selected: Iterable[str] = (), *, id: str | None = None) -> None:
        super().__init__(id=id)
        self._selected = tuple(selected)

    def compose(self) -> ComposeResult:
        for category_id, label, _topic in CATEGORIES:
            classes = "category-chip selected" if category_id in self._selected else "category-chip"
            yield Label(label, classes=classes, id=_chip_id(category_id))

    def set_selected(self, selected: Iterable[str]) -> None:
        self._selected = tuple(selected)
        for category_id, _label, _topic in CATEGORIES:
            chips = self.query(f"#{_chip_id(category_id)}")
            for chip in chips:
                chip.set_class(category_id in self._selected, "selected")

    def on_click(self, event: events.Click) -> None:
        widget = event.widget
        if widget is None or not widget.id:
            return
        for category_id, _label, _topic in CATEGORIES:
            if widget.id == _chip_id(category_id):
                self.post_message(self.Toggled(category_id))
                return


def _chip_id(category_id: str) -> str:
    return "chip-" + category_id.replace(".", "-")


def build_status_text(
    *,
    status: str,
    count: int,
    has_more: bool,
    user_id: str | None,
    query_label: str,
    error: str | None = None,
) -> str:
    """Status line: load state, list size, signed-in user and active query."""
    muted = THEME_COLORS["muted"]
    parts: list[str] = []
    if status == "loading":
        parts.append(f"[{THEME_COLORS['accent']}]Loading…[/]")
    elif status == "loading_more":
        parts.append(f"[{THEME_COLORS['accent']}]Loading more…[/]")
    elif status == "error":
        detail = f": {escape_rich_text(error)}" if error else ""
        parts.append(f"[{THEME_COLORS['like']}]Fetch failed{detail}[/]")
    more = "+" if has_more and count else ""
    parts.append(f"{count}{more} papers")
    if user_id:
        parts.append(f"signed in as [bold]{escape_rich_text(user_id)}[/]")
    else:
        parts.append(f"[{muted}]not signed in (s)[/]")
    parts.append(f"[{muted}]{escape_rich_text(query_label)}[/]")
    return " · ".join(parts)


class FeedStatusBar(Static):
    """One-line feed status."""

    def show_status(self, **kwargs) -> None:
        self.update(build_status_text(**kwargs))


__all__ = [
    "CategoryBar",
    "ContextFooter",
    "FeedStatusBar",
    "build_status_text",
]
