"""Focused paper card: rendering plus mouse drag/tap translation."""

from __future__ import annotations

import time

from textual import events
from textual.message import Message
from textual.widgets import Static

from paper_swipe.gestures import SWIPE_THRESHOLD
from paper_swipe.models import Paper
from paper_swipe.query import escape_rich_text
from paper_swipe.themes import THEME_COLORS, get_category_color

# Terminal cells are coarse; scale them to the logical units gestures use
DRAG_SCALE_X = 10
DRAG_SCALE_Y = 20

ABSTRACT_PREVIEW_CHARS = 600


def cells_to_units(dx_cells: int, dy_cells: int) -> tuple[int, int]:
    """Convert a drag measured in terminal cells to gesture units."""
    return dx_cells * DRAG_SCALE_X, dy_cells * DRAG_SCALE_Y


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def render_paper_card(
    paper: Paper | None,
    *,
    position: int = 0,
    total: int = 0,
    drag_dx: float = 0.0,
    loading: bool = False,
) -> str:
    """Build the Rich markup shown for the focused paper."""
    muted = THEME_COLORS["muted"]
    if paper is None:
        if loading:
            return f"[{muted}]Loading papers…[/]"
        return (
            f"[{muted} italic]No papers to show.[/]\n"
            f"[{muted}]Try another search or press [bold]r[/bold] to reload.[/]"
        )

    accent = THEME_COLORS["accent"]
    lines: list[str] = []

    # Swipe hint, fading in as the drag approaches the threshold
    if drag_dx > 0:
        strength = "bold " if drag_dx >= SWIPE_THRESHOLD else ""
        lines.append(f"[{strength}{THEME_COLORS['bookmark']}]→ Bookmark[/]")
    elif drag_dx < 0:
        strength = "bold " if -drag_dx >= SWIPE_THRESHOLD else ""
        lines.append(f"[{strength}{THEME_COLORS['chat']}]← Chat[/]")

    lines.append(f"[bold]{escape_rich_text(paper.title)}[/]")
    lines.append(f"[{muted}]{escape_rich_text(paper.author_line)} · {paper.year}[/]")
    chips = "  ".join(
        f"[{get_category_color(cat)}]{escape_rich_text(cat)}[/]" for cat in paper.categories
    )
    lines.append(chips)
    lines.append("")
    lines.append(escape_rich_text(_truncate(paper.abstract, ABSTRACT_PREVIEW_CHARS)))
    lines.append("")

    heart = "♥" if paper.is_liked_by_user else "♡"
    like_color = THEME_COLORS["like"] if paper.is_liked_by_user else muted
    mark_color = THEME_COLORS["bookmark"] if paper.bookmarked else muted
    mark_label = "Bookmarked" if paper.bookmarked else "Bookmark"
    lines.append(
        f"[{like_color}]{heart} {paper.likes}[/]   "
        f"[{mark_color}]▣ {mark_label} ({paper.bookmarks})[/]"
    )
    if total:
        lines.append(f"[{accent}]{position + 1}/{total}[/]")
    return "\n".join(lines)


class PaperCard(Static, can_focus=True):
    """Shows one paper and turns mouse input into drag/tap messages."""

    class Dragged(Message):
        """The pointer moved while dragging; displacement in gesture units."""

        def __init__(self, paper_id: str, dx: float, dy: float) -> None:
            super().__init__()
            self.paper_id = paper_id
            self.dx = dx
            self.dy = dy

    class DragStarted(Message):
        def __init__(self, paper_id: str) -> None:
            super().__init__()
            self.paper_id = paper_id

    class Released(Message):
        """A drag ended with total displacement ``(dx, dy)`` in gesture units."""

        def __init__(self, paper_id: str, dx: float, dy: float) -> None:
            super().__init__()
            self.paper_id = paper_id
            self.dx = dx
            self.dy = dy

    class Tapped(Message):
        def __init__(self, paper_id: str, at_ms: float) -> None:
            super().__init__()
            self.paper_id = paper_id
            self.at_ms = at_ms

    DEFAULT_CSS = """
    PaperCard {
        height: 1fr;
        padding: 1 2;
        background: $th-panel;
        border: round $th-border;
        color: $th-text;
    }

    PaperCard:focus {
        border: round $th-accent;
    }

    PaperCard.dragging {
        border: round $th-highlight;
    }
    """

    def __init__(self, *, id: str | None = None) -> None:
        super().__init__("", id=id)
        self.paper: Paper | None = None
        self._drag_origin: tuple[int, int] | None = None
        self._drag_moved = False
        self._suppress_click = False

    def show(
        self,
        paper: Paper | None,
        *,
        position: int = 0,
        total: int = 0,
        drag_dx: float = 0.0,
        loading: bool = False,
    ) -> None:
        self.paper = paper
        self.update(
            render_paper_card(
                paper, position=position, total=total, drag_dx=drag_dx, loading=loading
            )
        )

    def _displacement(self, event: events.MouseEvent) -> tuple[int, int]:
        if self._drag_origin is None:
            return 0, 0
        origin_x, origin_y = self._drag_origin
        return cells_to_units(event.screen_x - origin_x, event.screen_y - origin_y)

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if self.paper is None or event.button != 1:
            return
        self._drag_origin = (event.screen_x, event.screen_y)
        self._drag_moved = False
        self.capture_mouse()
        self.add_class("dragging")
        self.post_message(self.DragStarted(self.paper.id))

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self._drag_origin is None or self.paper is None:
            return
        dx, dy = self._displacement(event)
        if dx or dy:
            self._drag_moved = True
        self.post_message(self.Dragged(self.paper.id, dx, dy))

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if self._drag_origin is None:
            return
        dx, dy = self._displacement(event)
        self._drag_origin = None
        self.release_mouse()
        self.remove_class("dragging")
        if self.paper is None:
            return
        if self._drag_moved or dx or dy:
            # The click that follows a drag is not a tap
            self._suppress_click = True
            self.post_message(self.Released(self.paper.id, dx, dy))

    def on_click(self, event: events.Click) -> None:
        if self._suppress_click:
            self._suppress_click = False
            return
        if self.paper is None:
            return
        self.post_message(self.Tapped(self.paper.id, time.monotonic() * 1000))


__all__ = [
    "DRAG_SCALE_X",
    "DRAG_SCALE_Y",
    "PaperCard",
    "cells_to_units",
    "render_paper_card",
]
