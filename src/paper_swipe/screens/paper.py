"""Paper detail screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Label, Static

from paper_swipe.models import Paper
from paper_swipe.query import category_label, escape_rich_text
from paper_swipe.themes import THEME_COLORS


def render_paper_details(paper: Paper) -> str:
    """Full details: authors, year, categories, links and the whole abstract."""
    muted = THEME_COLORS["muted"]
    accent = THEME_COLORS["accent"]
    lines = [
        f"[{accent}]Authors[/]",
        escape_rich_text(", ".join(paper.authors)),
        "",
        f"[{accent}]Published[/]  {paper.year}  [{muted}]({escape_rich_text(paper.published)})[/]",
        f"[{accent}]Categories[/]  "
        + ", ".join(escape_rich_text(category_label(cat)) for cat in paper.categories),
        f"[{accent}]arXiv[/]  {escape_rich_text(paper.arxiv_id)}",
    ]
    if paper.links.html:
        lines.append(f"[{accent}]Page[/]  {escape_rich_text(paper.links.html)}")
    if paper.links.pdf:
        lines.append(f"[{accent}]PDF[/]  {escape_rich_text(paper.links.pdf)}")
    lines.extend(
        [
            f"[{accent}]Likes[/]  {paper.likes}   [{accent}]Bookmarks[/]  {paper.bookmarks}",
            "",
            f"[{accent}]Abstract[/]",
            escape_rich_text(paper.abstract),
        ]
    )
    return "\n".join(lines)


class PaperDetailScreen(ModalScreen[None]):
    """Read-only view of a paper."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("q", "close", "Close", show=False),
        Binding("o", "open", "Open", show=False),
    ]

    CSS = """
    PaperDetailScreen {
        align: center middle;
    }

    #paper-dialog {
        width: 80%;
        height: 85%;
        background: $th-background;
        border: tall $th-accent;
        padding: 0 2;
    }

    #paper-title {
        text-style: bold;
        color: $th-text;
        margin-bottom: 1;
    }

    #paper-footer {
        color: $th-muted;
        margin-top: 1;
    }
    """

    def __init__(self, paper: Paper) -> None:
        super().__init__()
        self._paper = paper

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="paper-dialog"):
            yield Label(escape_rich_text(self._paper.title), id="paper-title")
            yield Static(render_paper_details(self._paper), id="paper-body")
            yield Label("o open · Esc close", id="paper-footer")

    def action_open(self) -> None:
        url = self._paper.read_url
        if url:
            self.app.open_url_in_browser(url)  # type: ignore[attr-defined]

    def action_close(self) -> None:
        self.dismiss(None)


__all__ = ["PaperDetailScreen", "render_paper_details"]
