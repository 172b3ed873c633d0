"""Tests for the feed controller: paging, query changes, focus and the user overlay."""

from __future__ import annotations

import asyncio

import pytest

from paper_swipe.auth import AuthSession
from paper_swipe.errors import RemoteStoreFailure, SourceUnavailable
from paper_swipe.feed import Debouncer, FeedController, FeedStatus
from paper_swipe.models import FeedPage, FeedQuery, Paper, PaperCounts, PaperLinks
from paper_swipe.query import DEFAULT_QUERY
from paper_swipe.services.store_service import RemoteStoreClient


def _paper(index: int, prefix: str = "p") -> Paper:
    return Paper(
        id=f"{prefix}{index}",
        title=f"Paper {index}",
        abstract="Abstract",
        authors=("Author",),
        year=2024,
        categories=("cs.AI",),
        links=PaperLinks(html=f"https://arxiv.org/abs/{prefix}{index}"),
    )


class FakeSource:
    """Serves ``total`` papers per query; ``gate`` holds the next search open.

    ``overlap`` makes every later page start that many entries early, the way
    relevance-ranked paging can repeat an entry.
    """

    def __init__(self, total: int = 25, overlap: int = 0) -> None:
        self.total = total
        self.overlap = overlap
        self.calls: list[tuple[str, int, int]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.error: Exception | None = None

    async def search(self, query: str, offset: int, page_size: int) -> FeedPage:
        self.calls.append((query, offset, page_size))
        self.started.set()
        if self.gate is not None:
            gate, self.gate = self.gate, None
            await gate.wait()
        if self.error is not None:
            raise self.error
        prefix = "p" if query == DEFAULT_QUERY else "q"
        start = max(offset - self.overlap, 0) if offset else 0
        end = min(start + page_size, self.total)
        papers = [_paper(i, prefix) for i in range(start, end)]
        return FeedPage(
            papers=papers,
            offset=offset,
            page_size=page_size,
            has_more=len(papers) == page_size,
        )


class MemoryBackend:
    """In-memory StoreBackend."""

    def __init__(self) -> None:
        self.rows: dict[str, set[tuple[str, str]]] = {"like": set(), "bookmark": set()}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RemoteStoreFailure("store offline")

    def add_relationship(self, kind: str, user_id: str, paper: Paper) -> bool:
        self._check()
        key = (user_id, paper.arxiv_id)
        if key in self.rows[kind]:
            return False
        self.rows[kind].add(key)
        return True

    def remove_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool:
        self._check()
        key = (user_id, arxiv_id)
        if key not in self.rows[kind]:
            return False
        self.rows[kind].discard(key)
        return True

    def has_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool:
        self._check()
        return (user_id, arxiv_id) in self.rows[kind]

    def counts(self, arxiv_id: str) -> PaperCounts:
        self._check()
        return PaperCounts(
            likes=sum(1 for _u, pid in self.rows["like"] if pid == arxiv_id),
            bookmarks=sum(1 for _u, pid in self.rows["bookmark"] if pid == arxiv_id),
        )

    def list_papers(self, kind: str, user_id: str) -> list[Paper]:
        self._check()
        return []


class GatedStore(RemoteStoreClient):
    """Holds every ``is_liked`` answer until ``gate`` is set."""

    def __init__(self, backend: MemoryBackend, auth: AuthSession) -> None:
        super().__init__(backend, auth)
        self.gate = asyncio.Event()
        self.reading = asyncio.Event()

    async def is_liked(self, arxiv_id: str) -> bool:
        liked = await super().is_liked(arxiv_id)
        self.reading.set()
        await self.gate.wait()
        return liked


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> RemoteStoreClient:
    return RemoteStoreClient(backend, AuthSession("reader"))


def _controller(source: FakeSource, store: RemoteStoreClient, **kwargs) -> FeedController:
    kwargs.setdefault("page_size", 10)
    return FeedController(source, store, **kwargs)


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_initial_replaces_list(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        statuses: list[FeedStatus] = []
        feed.subscribe(lambda c: statuses.append(c.status))

        await feed.load_initial()

        assert [p.id for p in feed.papers] == [f"p{i}" for i in range(10)]
        assert feed.cursor == 10
        assert feed.has_more is True
        assert feed.status is FeedStatus.READY
        assert statuses[0] is FeedStatus.LOADING
        assert FeedStatus.READY in statuses
        assert source.calls == [(FeedQuery().to_search_query(), 0, 10)]

    @pytest.mark.asyncio
    async def test_load_more_appends_and_advances_cursor(self, store) -> None:
        source = FakeSource(total=25)
        feed = _controller(source, store)
        await feed.load_initial()

        await feed.load_more()
        assert len(feed.papers) == 20
        assert feed.cursor == 20

        await feed.load_more()
        assert len(feed.papers) == 25
        assert feed.has_more is False

        await feed.load_more()
        assert len(source.calls) == 3

    @pytest.mark.asyncio
    async def test_ids_unique_across_pages(self, store) -> None:
        feed = _controller(FakeSource(total=30, overlap=1), store)
        await feed.load_initial()
        await feed.load_more()
        await feed.load_more()
        ids = [p.id for p in feed.papers]
        assert len(ids) == len(set(ids))
        assert ids == [f"p{i}" for i in range(29)]
        assert feed.cursor == 30

    @pytest.mark.asyncio
    async def test_colliding_id_from_later_page_is_suffixed(self, store) -> None:
        other = Paper(
            id="p3",
            title="A different paper",
            abstract="Abstract",
            authors=("Author",),
            year=2024,
            categories=("cs.AI",),
        )
        feed = _controller(FakeSource(), store, page_size=5)
        await feed.load_initial()

        added = feed._new_entries([_paper(4), other, _paper(5)])

        assert [p.id for p in added] == ["p3-1", "p5"]
        assert added[0].arxiv_id == "p3-1"
        assert added[0].title == "A different paper"

    @pytest.mark.asyncio
    async def test_concurrent_load_more_is_ignored(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.load_initial()

        gate = source.gate = asyncio.Event()
        source.started.clear()
        first = asyncio.create_task(feed.load_more())
        await source.started.wait()
        assert feed.is_loading
        assert feed.status is FeedStatus.LOADING_MORE

        await feed.load_more()
        await feed.load_initial()
        assert len(source.calls) == 2

        gate.set()
        await first
        assert len(feed.papers) == 20

    @pytest.mark.asyncio
    async def test_error_keeps_existing_papers(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.load_initial()

        source.error = SourceUnavailable("HTTP 503", status_code=503)
        await feed.load_more()

        assert len(feed.papers) == 10
        assert feed.cursor == 10
        assert feed.status is FeedStatus.ERROR
        assert feed.last_error == "HTTP 503"
        assert not feed.is_loading

    @pytest.mark.asyncio
    async def test_initial_error_then_retry(self, store) -> None:
        source = FakeSource()
        source.error = SourceUnavailable("down")
        feed = _controller(source, store)

        await feed.load_initial()
        assert feed.papers == []
        assert feed.status is FeedStatus.ERROR

        source.error = None
        await feed.load_initial()
        assert feed.status is FeedStatus.READY
        assert feed.last_error is None
        assert len(feed.papers) == 10

    @pytest.mark.asyncio
    async def test_empty_result_is_ready_and_exhausted(self, store) -> None:
        feed = _controller(FakeSource(total=0), store)
        await feed.load_initial()
        assert feed.papers == []
        assert feed.status is FeedStatus.READY
        assert feed.has_more is False


class TestViewport:
    @pytest.mark.asyncio
    async def test_near_end_triggers_load_more(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.load_initial()

        await feed.on_viewport(5)
        assert len(source.calls) == 1

        await feed.on_viewport(8)
        assert len(source.calls) == 2
        assert source.calls[-1][1] == 10

    @pytest.mark.asyncio
    async def test_empty_list_does_not_load(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.on_viewport(0)
        assert source.calls == []


class TestQueryChanges:
    @pytest.mark.asyncio
    async def test_set_query_resets_state(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.load_initial()
        await feed.load_more()
        feed.focus(7)

        await feed.set_query(FeedQuery(search_text="robots"))

        assert source.calls[-1] == ("robots", 0, 10)
        assert [p.id for p in feed.papers] == [f"q{i}" for i in range(10)]
        assert feed.cursor == 10
        assert feed.current_index == 0

    @pytest.mark.asyncio
    async def test_query_change_during_fetch_discards_stale_result(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        source.gate = asyncio.Event()
        gate = source.gate

        initial = asyncio.create_task(feed.load_initial())
        await source.started.wait()

        await feed.set_query(FeedQuery(search_text="robots"))
        assert feed.papers == []
        assert feed.status is FeedStatus.LOADING

        gate.set()
        await initial

        assert [call[0] for call in source.calls] == [FeedQuery().to_search_query(), "robots"]
        assert all(p.id.startswith("q") for p in feed.papers)
        assert len(feed.papers) == 10
        assert feed.status is FeedStatus.READY

    @pytest.mark.asyncio
    async def test_toggle_category_applies_immediately(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)

        await feed.toggle_category("cs.RO")
        assert feed.query.categories == ("cs.RO",)
        assert source.calls[-1][0] == "robotics"

        await feed.toggle_category("cs.RO")
        assert feed.query.categories == ()
        assert source.calls[-1][0] == FeedQuery().to_search_query()

    @pytest.mark.asyncio
    async def test_search_text_is_debounced(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store, debounce_seconds=0.01)

        for text in ("r", "ro", "rob"):
            feed.on_search_text_changed(text)
        await asyncio.sleep(0.05)
        await feed.wait_idle()

        assert [call[0] for call in source.calls] == ["rob"]
        assert feed.query.search_text == "rob"

    @pytest.mark.asyncio
    async def test_unchanged_text_does_not_refetch(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store, debounce_seconds=0.01, query=FeedQuery("rob"))

        feed.on_search_text_changed("rob")
        await asyncio.sleep(0.05)
        await feed.wait_idle()

        assert source.calls == []


class TestFocus:
    @pytest.mark.asyncio
    async def test_focus_clamps(self, store) -> None:
        feed = _controller(FakeSource(total=3), store)
        await feed.load_initial()

        assert feed.focus(-4) == 0
        assert feed.focus(99) == 2
        assert feed.current_paper is not None
        assert feed.current_paper.id == "p2"

    @pytest.mark.asyncio
    async def test_focus_next_prefetches_near_end(self, store) -> None:
        source = FakeSource()
        feed = _controller(source, store)
        await feed.load_initial()

        feed.focus(7)
        assert len(source.calls) == 1
        feed.focus_next()
        await feed.wait_idle()

        assert len(source.calls) == 2
        assert len(feed.papers) == 20

    @pytest.mark.asyncio
    async def test_focus_previous(self, store) -> None:
        feed = _controller(FakeSource(), store)
        await feed.load_initial()
        feed.focus(3)
        assert feed.focus_previous() == 2
        feed.focus(0)
        assert feed.focus_previous() == 0


class TestUserOverlay:
    @pytest.mark.asyncio
    async def test_toggle_like_updates_flag_and_counter(self, store, backend) -> None:
        feed = _controller(FakeSource(), store)
        await feed.load_initial()

        paper = await feed.toggle_like("p0")
        assert paper is not None
        assert paper.is_liked_by_user is True
        assert paper.likes == 1
        assert ("reader", "p0") in backend.rows["like"]

        paper = await feed.toggle_like("p0")
        assert paper.is_liked_by_user is False
        assert paper.likes == 0
        assert backend.rows["like"] == set()

    @pytest.mark.asyncio
    async def test_toggle_bookmark_updates_flag_and_counter(self, store, backend) -> None:
        feed = _controller(FakeSource(), store)
        await feed.load_initial()

        paper = await feed.toggle_bookmark("p1")
        assert paper.bookmarked is True
        assert paper.bookmarks == 1
        assert ("reader", "p1") in backend.rows["bookmark"]

    @pytest.mark.asyncio
    async def test_unknown_paper_is_ignored(self, store) -> None:
        feed = _controller(FakeSource(), store)
        assert await feed.toggle_like("missing") is None
        assert await feed.toggle_bookmark("missing") is None

    @pytest.mark.asyncio
    async def test_store_failure_keeps_optimistic_state(self, store, backend) -> None:
        errors: list[str] = []
        feed = _controller(FakeSource(), store, on_store_error=errors.append)
        await feed.load_initial()

        backend.fail = True
        paper = await feed.toggle_like("p0")

        assert paper.is_liked_by_user is True
        assert paper.likes == 1
        assert errors == ["Could not save your like"]

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back_when_configured(self, store, backend) -> None:
        errors: list[str] = []
        feed = _controller(
            FakeSource(),
            store,
            rollback_on_store_failure=True,
            on_store_error=errors.append,
        )
        await feed.load_initial()

        backend.fail = True
        paper = await feed.toggle_bookmark("p0")

        assert paper.bookmarked is False
        assert paper.bookmarks == 0
        assert errors == ["Could not save your bookmark"]

    @pytest.mark.asyncio
    async def test_signed_out_toggle_is_local_only(self, backend) -> None:
        store = RemoteStoreClient(backend, AuthSession())
        feed = _controller(FakeSource(), store)
        await feed.load_initial()

        paper = await feed.toggle_like("p0")

        assert paper.is_liked_by_user is True
        assert backend.rows["like"] == set()

    @pytest.mark.asyncio
    async def test_load_merges_stored_relationships(self, store, backend) -> None:
        backend.rows["like"].add(("reader", "p2"))
        backend.rows["like"].add(("someone-else", "p2"))
        backend.rows["bookmark"].add(("someone-else", "p3"))
        feed = _controller(FakeSource(), store)

        await feed.load_initial()

        liked = feed.get_paper("p2")
        assert liked.is_liked_by_user is True
        assert liked.likes == 2
        other = feed.get_paper("p3")
        assert other.bookmarked is False
        assert other.bookmarks == 1

    @pytest.mark.asyncio
    async def test_refresh_after_sign_out_clears_flags(self, store, backend) -> None:
        backend.rows["bookmark"].add(("reader", "p0"))
        feed = _controller(FakeSource(), store)
        await feed.load_initial()
        assert feed.get_paper("p0").bookmarked is True

        store.auth.sign_out()
        await feed.refresh_relationships()

        assert feed.get_paper("p0").bookmarked is False

    @pytest.mark.asyncio
    async def test_refresh_started_before_toggle_keeps_the_toggle(self, backend) -> None:
        store = GatedStore(backend, AuthSession("reader"))
        feed = _controller(FakeSource(), store, page_size=2)
        loading = asyncio.create_task(feed.load_initial())
        await store.reading.wait()

        await feed.toggle_like("p0")
        assert ("reader", "p0") in backend.rows["like"]

        store.gate.set()
        await loading

        paper = feed.get_paper("p0")
        assert paper.is_liked_by_user is True
        assert paper.likes == 1

        await feed.refresh_relationships()
        paper = feed.get_paper("p0")
        assert paper.is_liked_by_user is True
        assert paper.likes == 1

        paper = await feed.toggle_like("p0")
        assert paper.is_liked_by_user is False
        assert paper.likes == 0

    @pytest.mark.asyncio
    async def test_refresh_tolerates_store_failure(self, store, backend) -> None:
        feed = _controller(FakeSource(), store)
        await feed.load_initial()
        backend.fail = True

        await feed.refresh_relationships()

        assert len(feed.papers) == 10


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_only_last_trigger_fires(self) -> None:
        fired: list[str] = []
        debouncer = Debouncer(0.01, fired.append)

        debouncer.trigger("a")
        debouncer.trigger("b")
        assert debouncer.pending
        await asyncio.sleep(0.05)

        assert fired == ["b"]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        fired: list[str] = []
        debouncer = Debouncer(0.01, fired.append)
        debouncer.trigger("a")
        debouncer.cancel()
        await asyncio.sleep(0.03)
        assert fired == []


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications(store) -> None:
    feed = _controller(FakeSource(), store)
    seen: list[FeedStatus] = []
    unsubscribe = feed.subscribe(lambda c: seen.append(c.status))
    unsubscribe()
    await feed.load_initial()
    assert seen == []


@pytest.mark.asyncio
async def test_close_cancels_background_work(store) -> None:
    source = FakeSource()
    feed = _controller(source, store, debounce_seconds=10)
    feed.on_search_text_changed("pending")
    feed.close()
    await asyncio.sleep(0)
    assert source.calls == []
