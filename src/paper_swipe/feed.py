"""Feed state: paging, query changes, focus and the user's like/bookmark overlay."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import replace
from enum import Enum
from typing import Any

from paper_swipe.errors import PaperSwipeError, RemoteStoreFailure
from paper_swipe.models import DEFAULT_PAGE_SIZE, FeedQuery, Paper
from paper_swipe.parsing import unique_id
from paper_swipe.query import toggle_category
from paper_swipe.services.interfaces import PaperSource
from paper_swipe.services.store_service import RemoteStoreClient

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.5

# Load the next page once focus reaches this many items from the end
PREFETCH_DISTANCE = 2


class FeedStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOADING_MORE = "loading_more"
    ERROR = "error"


class Debouncer:
    """Run ``callback`` once input has been quiet for ``delay_seconds``.

    Every :meth:`trigger` cancels the pending timer, so only the last call
    within the window fires.
    """

    def __init__(self, delay_seconds: float, callback: Callable[..., None]) -> None:
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple[Any, ...]) -> None:
        self._handle = None
        self._callback(*args)


class FeedController:
    """Owns the paper list and every transition applied to it.

    At most one fetch is in flight. A query change that arrives meanwhile
    clears the list, is parked, and starts as soon as the in-flight fetch
    resolves; that fetch's result is then discarded.
    """

    def __init__(
        self,
        source: PaperSource,
        store: RemoteStoreClient,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        query: FeedQuery | None = None,
        rollback_on_store_failure: bool = False,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        on_store_error: Callable[[str], None] | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.page_size = page_size
        self.query = query or FeedQuery()
        self.rollback_on_store_failure = rollback_on_store_failure
        self.on_store_error = on_store_error

        self.papers: list[Paper] = []
        self.status = FeedStatus.IDLE
        self.cursor = 0
        self.has_more = True
        self.current_index = 0
        self.last_error: str | None = None

        self._fetching = False
        self._request_token = 0
        self._pending_query: FeedQuery | None = None
        # Bumped by every like/bookmark toggle; stale store snapshots are skipped
        self._overlay_generation: dict[str, int] = {}
        self._listeners: list[Callable[[FeedController], None]] = []
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._debouncer = Debouncer(debounce_seconds, self._apply_search_text)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[FeedController], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    def _set_status(self, status: FeedStatus) -> None:
        self.status = status
        self._notify()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._fetching

    @property
    def current_paper(self) -> Paper | None:
        if 0 <= self.current_index < len(self.papers):
            return self.papers[self.current_index]
        return None

    def get_paper(self, paper_id: str) -> Paper | None:
        for paper in self.papers:
            if paper.id == paper_id:
                return paper
        return None

    def _replace_paper(self, updated: Paper) -> None:
        self.papers = [updated if paper.id == updated.id else paper for paper in self.papers]

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def load_initial(self) -> None:
        """Fetch the first page for the current query, replacing the list on success."""
        if self._fetching:
            return
        await self._run_fetch(append=False)

    async def load_more(self) -> None:
        """Append the next page unless a fetch is running or the feed is exhausted."""
        if self._fetching or not self.has_more:
            return
        await self._run_fetch(append=True)

    async def on_viewport(self, last_visible_index: int) -> None:
        """Load the next page once ``last_visible_index`` is near the end of the list."""
        if self._near_end(last_visible_index):
            await self.load_more()

    def _near_end(self, index: int) -> bool:
        return bool(self.papers) and index >= len(self.papers) - PREFETCH_DISTANCE

    async def set_query(self, query: FeedQuery) -> None:
        """Switch to ``query``: clear the list and fetch its first page."""
        self.query = query
        self.papers = []
        self.cursor = 0
        self.has_more = True
        self.current_index = 0
        self._request_token += 1
        self._overlay_generation.clear()
        if self._fetching:
            logger.debug("Parking query %r until the in-flight fetch resolves", query)
            self._pending_query = query
            self._set_status(FeedStatus.LOADING)
            return
        await self._run_fetch(append=False)

    async def _run_fetch(self, *, append: bool) -> None:
        self._fetching = True
        token = self._request_token
        offset = self.cursor if append else 0
        self.last_error = None
        self._set_status(FeedStatus.LOADING_MORE if append else FeedStatus.LOADING)

        page = None
        try:
            page = await self.source.search(
                self.query.to_search_query(), offset, self.page_size
            )
        except PaperSwipeError as exc:
            logger.warning("Feed fetch failed (offset=%d)", offset, exc_info=True)
            if token == self._request_token:
                self.last_error = str(exc)
        finally:
            self._fetching = False

        pending, self._pending_query = self._pending_query, None
        if token != self._request_token:
            logger.debug("Discarding result for a superseded query")
        elif page is None:
            self._set_status(FeedStatus.ERROR)
        else:
            if append:
                added = self._new_entries(page.papers)
                self.papers = [*self.papers, *added]
                self.cursor += self.page_size
            else:
                added = list(page.papers)
                self.papers = added
                self.cursor = self.page_size
                self.current_index = min(self.current_index, max(len(self.papers) - 1, 0))
            self.has_more = page.has_more
            self._set_status(FeedStatus.READY)
            await self.refresh_relationships(added)

        if pending is not None and token != self._request_token:
            await self._run_fetch(append=False)

    def _new_entries(self, papers: Iterable[Paper]) -> list[Paper]:
        """Drop repeats of loaded papers; re-suffix ids that collide with other papers."""
        loaded = {paper.id: paper for paper in self.papers}
        used = set(loaded)
        added: list[Paper] = []
        for paper in papers:
            existing = loaded.get(paper.id)
            if existing is not None and existing.title == paper.title:
                logger.debug("Skipping %s repeated by the next page", paper.id)
                continue
            if paper.id in used:
                new_id = unique_id(paper.id, used)
                paper = replace(paper, id=new_id, arxiv_id=new_id)
            used.add(paper.id)
            added.append(paper)
        return added

    # ------------------------------------------------------------------
    # Query inputs
    # ------------------------------------------------------------------

    def on_search_text_changed(self, text: str) -> None:
        """Debounce keystrokes; the query changes once typing pauses."""
        self._debouncer.trigger(text)

    def _apply_search_text(self, text: str) -> None:
        if text == self.query.search_text:
            return
        self._track_task(self.set_query(replace(self.query, search_text=text)))

    async def toggle_category(self, category_id: str) -> None:
        """Add or remove a category filter; applies without debounce."""
        categories = toggle_category(self.query.categories, category_id)
        await self.set_query(replace(self.query, categories=categories))

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    def focus(self, index: int) -> int:
        """Move focus to ``index`` (clamped) and prefetch near the end."""
        if self.papers:
            clamped = max(0, min(index, len(self.papers) - 1))
        else:
            clamped = 0
        if clamped != self.current_index:
            self.current_index = clamped
            self._notify()
        if self._near_end(clamped) and self.has_more and not self._fetching:
            self._track_task(self.load_more())
        return clamped

    def focus_next(self) -> int:
        return self.focus(self.current_index + 1)

    def focus_previous(self) -> int:
        return self.focus(self.current_index - 1)

    # ------------------------------------------------------------------
    # User overlay
    # ------------------------------------------------------------------

    async def toggle_like(self, paper_id: str) -> Paper | None:
        """Flip the like flag optimistically, then persist it."""
        paper = self.get_paper(paper_id)
        if paper is None:
            return None
        self._bump_overlay(paper_id)
        liked = not paper.is_liked_by_user
        updated = replace(paper.with_likes_delta(1 if liked else -1), is_liked_by_user=liked)
        self._replace_paper(updated)
        self._notify()
        try:
            if liked:
                await self.store.add_like(updated)
            else:
                await self.store.remove_like(paper.arxiv_id)
        except RemoteStoreFailure:
            logger.warning("Keeping local like state for %s after store failure", paper_id)
            self._report_store_error("Could not save your like")
            if self.rollback_on_store_failure:
                self._restore(updated, paper)
        return self.get_paper(paper_id)

    async def toggle_bookmark(self, paper_id: str) -> Paper | None:
        """Flip the bookmark flag optimistically, then persist it."""
        paper = self.get_paper(paper_id)
        if paper is None:
            return None
        self._bump_overlay(paper_id)
        bookmarked = not paper.bookmarked
        updated = replace(
            paper.with_bookmarks_delta(1 if bookmarked else -1), bookmarked=bookmarked
        )
        self._replace_paper(updated)
        self._notify()
        try:
            if bookmarked:
                await self.store.add_bookmark(updated)
            else:
                await self.store.remove_bookmark(paper.arxiv_id)
        except RemoteStoreFailure:
            logger.warning("Keeping local bookmark state for %s after store failure", paper_id)
            self._report_store_error("Could not save your bookmark")
            if self.rollback_on_store_failure:
                self._restore(updated, paper)
        return self.get_paper(paper_id)

    def _bump_overlay(self, paper_id: str) -> None:
        self._overlay_generation[paper_id] = self._overlay_generation.get(paper_id, 0) + 1

    def _report_store_error(self, message: str) -> None:
        if self.on_store_error is not None:
            self.on_store_error(message)

    def _restore(self, optimistic: Paper, previous: Paper) -> None:
        # Only roll back if nothing newer replaced the optimistic record
        if self.get_paper(previous.id) == optimistic:
            self._replace_paper(previous)
            self._notify()

    async def refresh_relationships(self, papers: Iterable[Paper] | None = None) -> None:
        """Rebuild like/bookmark flags and counters from the store."""
        targets = list(self.papers if papers is None else papers)
        if not targets:
            return
        generations = {paper.id: self._overlay_generation.get(paper.id, 0) for paper in targets}
        snapshots = await asyncio.gather(*(self._snapshot(paper) for paper in targets))
        changed = False
        for snapshot in snapshots:
            if snapshot is None:
                continue
            if self._overlay_generation.get(snapshot.id, 0) != generations[snapshot.id]:
                logger.debug("Skipping stale relationship snapshot for %s", snapshot.id)
                continue
            current = self.get_paper(snapshot.id)
            if current is None:
                continue
            merged = replace(
                current,
                is_liked_by_user=snapshot.is_liked_by_user,
                bookmarked=snapshot.bookmarked,
                likes=snapshot.likes,
                bookmarks=snapshot.bookmarks,
            )
            if merged != current:
                self._replace_paper(merged)
                changed = True
        if changed:
            self._notify()

    async def _snapshot(self, paper: Paper) -> Paper | None:
        try:
            liked = await self.store.is_liked(paper.arxiv_id)
            bookmarked = await self.store.is_bookmarked(paper.arxiv_id)
            counts = await self.store.paper_counts(paper.arxiv_id)
        except RemoteStoreFailure:
            logger.warning("Could not refresh relationships for %s", paper.id)
            return None
        if counts is None:
            return replace(paper, is_liked_by_user=liked, bookmarked=bookmarked)
        return replace(
            paper,
            is_liked_by_user=liked,
            bookmarked=bookmarked,
            likes=counts.likes,
            bookmarks=counts.bookmarks,
        )

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _track_task(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in feed task: %s", exc, exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait for background loads started by focus or search changes."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def close(self) -> None:
        self._debouncer.cancel()
        for task in list(self._background_tasks):
            task.cancel()


__all__ = [
    "PREFETCH_DISTANCE",
    "SEARCH_DEBOUNCE_SECONDS",
    "Debouncer",
    "FeedController",
    "FeedStatus",
]
