"""Library screen: the signed-in user's bookmarked papers."""

from __future__ import annotations

import logging

from rapidfuzz import fuzz
from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.css.query import NoMatches
from textual.screen import ModalScreen
from textual.widgets import Input, Label, OptionList, Static
from textual.widgets.option_list import Option

from paper_swipe.errors import RemoteStoreFailure
from paper_swipe.models import Paper
from paper_swipe.query import escape_rich_text
from paper_swipe.services.store_service import RemoteStoreClient

logger = logging.getLogger(__name__)

FUZZY_MIN_SCORE = 40

EMPTY_LIBRARY_TEXT = (
    "[dim italic]No bookmarked papers yet[/]\n"
    "[dim]Swipe right on papers in the feed to bookmark them[/]"
)


def filter_papers(papers: list[Paper], query: str) -> list[Paper]:
    """Fuzzy-filter papers by title and authors, best matches first."""
    q = query.strip().lower()
    if not q:
        return list(papers)
    scored: list[tuple[float, int, Paper]] = []
    for index, paper in enumerate(papers):
        score = max(
            fuzz.partial_ratio(q, paper.title.lower()),
            fuzz.partial_ratio(q, " ".join(paper.authors).lower()),
        )
        if score >= FUZZY_MIN_SCORE:
            scored.append((score, index, paper))
    # Stable for equal scores: keep library order
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [paper for _score, _index, paper in scored]


def render_library_option(paper: Paper) -> str:
    return (
        f"[bold]{escape_rich_text(paper.title)}[/]\n"
        f"[dim]{escape_rich_text(paper.author_line)} · {paper.year}[/]"
    )


class LibraryScreen(ModalScreen[bool]):
    """Bookmarked papers with Read and Remove actions.

    Dismisses with True when any bookmark was removed.
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("x", "remove_selected", "Remove", show=False),
        Binding("delete", "remove_selected", "Remove", show=False),
        Binding("o", "read_selected", "Read", show=False),
    ]

    CSS = """
    LibraryScreen {
        align: center middle;
    }

    #library-dialog {
        width: 80%;
        height: 85%;
        min-width: 50;
        min-height: 15;
        background: $th-background;
        border: tall $th-bookmark;
        padding: 0 2;
    }

    #library-title {
        text-style: bold;
        color: $th-bookmark;
        margin-bottom: 1;
    }

    #library-filter {
        background: $th-panel;
    }

    #library-list {
        height: 1fr;
        background: $th-panel;
        border: none;
    }

    #library-empty {
        height: auto;
        padding: 1 0;
    }

    #library-footer {
        color: $th-muted;
        margin-top: 1;
    }
    """

    def __init__(self, store: RemoteStoreClient) -> None:
        super().__init__()
        self._store = store
        self._papers: list[Paper] = []
        self._filtered: list[Paper] = []
        self._removed_any = False

    def compose(self) -> ComposeResult:
        with Vertical(id="library-dialog"):
            yield Label("Library", id="library-title")
            yield Input(placeholder="Filter bookmarks…", id="library-filter")
            yield OptionList(id="library-list")
            yield Static("", id="library-empty")
            yield Static("↑↓ select · o read · x remove · Esc close", id="library-footer")

    def on_mount(self) -> None:
        self.run_worker(self._load(), exclusive=True, group="library-load")

    async def _load(self) -> None:
        try:
            self._papers = await self._store.list_bookmarked()
        except RemoteStoreFailure:
            self._papers = []
            self.notify("Could not load your library", title="Library", severity="error")
        self._populate(self._filter_text())
        try:
            self.query_one("#library-list", OptionList).focus()
        except NoMatches:
            pass

    def _filter_text(self) -> str:
        try:
            return self.query_one("#library-filter", Input).value
        except NoMatches:
            return ""

    def _populate(self, query: str) -> None:
        option_list = self.query_one("#library-list", OptionList)
        option_list.clear_options()
        self._filtered = filter_papers(self._papers, query)
        for paper in self._filtered:
            option_list.add_option(Option(render_library_option(paper), id=paper.arxiv_id))
        if self._filtered:
            option_list.highlighted = 0
        count = len(self._papers)
        self.query_one("#library-title", Label).update(
            f"Library ({count} paper{'s' if count != 1 else ''})"
        )
        empty = self.query_one("#library-empty", Static)
        if not self._papers:
            empty.update(EMPTY_LIBRARY_TEXT)
        elif not self._filtered:
            empty.update(f'[dim]No bookmarks match "{escape_rich_text(query)}".[/]')
        else:
            empty.update("")

    @on(Input.Changed, "#library-filter")
    def _on_filter_changed(self, event: Input.Changed) -> None:
        self._populate(event.value)

    def _selected(self) -> Paper | None:
        option_list = self.query_one("#library-list", OptionList)
        index = option_list.highlighted
        if index is None or not 0 <= index < len(self._filtered):
            return None
        return self._filtered[index]

    def action_read_selected(self) -> None:
        paper = self._selected()
        if paper is None:
            return
        url = paper.read_url
        if not url:
            self.notify("No link available for this paper", title="Library")
            return
        self.app.open_url_in_browser(url)  # type: ignore[attr-defined]

    def action_remove_selected(self) -> None:
        paper = self._selected()
        if paper is None:
            self.notify("Select a paper to remove", title="Library")
            return
        self.run_worker(self._remove(paper), group="library-remove")

    async def _remove(self, paper: Paper) -> None:
        try:
            await self._store.remove_bookmark(paper.arxiv_id)
        except RemoteStoreFailure:
            self.notify("Could not remove bookmark", title="Library", severity="error")
            return
        self._removed_any = True
        self._papers = [p for p in self._papers if p.arxiv_id != paper.arxiv_id]
        self._populate(self._filter_text())

    @on(OptionList.OptionSelected, "#library-list")
    def _on_option_selected(self) -> None:
        self.action_read_selected()

    def action_close(self) -> None:
        self.dismiss(self._removed_any)


__all__ = [
    "EMPTY_LIBRARY_TEXT",
    "FUZZY_MIN_SCORE",
    "LibraryScreen",
    "filter_papers",
    "render_library_option",
]
