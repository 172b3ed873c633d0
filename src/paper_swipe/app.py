"""Textual application: the swipeable paper feed."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Any

import httpx
from textual import on
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.css.query import NoMatches
from textual.widgets import Header, Input

from paper_swipe.chat import ChatSession
from paper_swipe.config import save_config
from paper_swipe.feed import FeedController, FeedStatus
from paper_swipe.gestures import KEYBOARD_SWIPES, GestureAction, InteractionDispatcher
from paper_swipe.models import FeedQuery, Paper, SessionState, UserConfig
from paper_swipe.screens import (
    ChatScreen,
    HelpScreen,
    LibraryScreen,
    PaperDetailScreen,
    SignInScreen,
)
from paper_swipe.services.interfaces import (
    AppServices,
    DefaultPaperSource,
    build_default_app_services,
)
from paper_swipe.themes import (
    TEXTUAL_THEMES,
    apply_theme_colors,
    next_theme_name,
    resolve_theme_name,
)
from paper_swipe.ui_constants import APP_BINDINGS, APP_CSS, FEED_FOOTER_HINTS
from paper_swipe.widgets import CategoryBar, ContextFooter, FeedStatusBar, PaperCard

logger = logging.getLogger(__name__)


class PaperSwipeApp(App):
    """Browse arXiv papers one card at a time."""

    TITLE = "Paper Swipe"

    AUTO_FOCUS = "#paper-card"

    CSS = APP_CSS

    BINDINGS = APP_BINDINGS

    def __init__(
        self,
        config: UserConfig | None = None,
        *,
        services: AppServices | None = None,
        restore_session: bool = True,
        initial_query: FeedQuery | None = None,
        save_on_exit: bool = True,
    ) -> None:
        super().__init__()
        # Register all Textual themes so $th-* CSS variables resolve before compose()
        for textual_theme in TEXTUAL_THEMES.values():
            self.register_theme(textual_theme)
        self._config = config or UserConfig()
        self._apply_theme(self._config.theme_name)
        self._services: AppServices = services or build_default_app_services(self._config)
        self._restore_session = restore_session
        self._save_on_exit = save_on_exit

        if initial_query is None:
            last_search = self._config.session.last_search if restore_session else ""
            initial_query = FeedQuery(
                search_text=last_search,
                categories=tuple(self._config.selected_categories),
            )
        self.controller = FeedController(
            self._services.paper_source,
            self._services.store,
            page_size=self._config.page_size,
            query=initial_query,
            rollback_on_store_failure=self._config.rollback_on_store_failure,
            on_store_error=self._on_store_error,
        )
        if restore_session:
            self.controller.current_index = self._config.session.current_index
        self.dispatcher = InteractionDispatcher(self._haptic)

        self._chat_sessions: dict[str, ChatSession] = {}
        self._visible_paper_id: str | None = None
        self._last_status: FeedStatus = FeedStatus.IDLE
        self._http_client: httpx.AsyncClient | None = None
        # Background task tracking (prevent GC of fire-and-forget tasks)
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def services(self) -> AppServices:
        return self._services

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(
            value=self.controller.query.search_text,
            placeholder=" Search papers (Enter to browse, Esc to leave)",
            id="search-input",
        )
        yield CategoryBar(self.controller.query.categories, id="category-bar")
        with Vertical(id="feed-container"):
            yield PaperCard(id="paper-card")
        yield FeedStatusBar("", id="status-bar")
        yield ContextFooter()

    def on_mount(self) -> None:
        """Create the HTTP client and start the first fetch."""
        # Create shared HTTP client for connection pooling
        self._http_client = httpx.AsyncClient()
        source = self._services.paper_source
        if isinstance(source, DefaultPaperSource):
            source.client = self._http_client

        self.controller.subscribe(self._on_feed_changed)
        self._services.auth.subscribe(self._on_auth_changed)
        self._render_feed()
        self._focus_card()

        logger.debug(
            "App mounted: query=%r page_size=%d user=%s",
            self.controller.query,
            self.controller.page_size,
            self._services.auth.current_user(),
        )
        self._track_task(self.controller.load_initial())

    async def on_unmount(self) -> None:
        """Save session state, cancel background work and close the HTTP client."""
        self._save_session_state()
        self.controller.close()

        pending = [task for task in self._background_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=0.5)
            for task in still_pending:
                logger.debug("Background task did not cancel before shutdown: %r", task)
        self._background_tasks.clear()

        client = self._http_client
        self._http_client = None
        source = self._services.paper_source
        if isinstance(source, DefaultPaperSource) and source.client is client:
            source.client = None
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                logger.debug(
                    "Failed to close shared HTTP client during shutdown: %s", e, exc_info=True
                )

    def _save_session_state(self) -> None:
        query = self.controller.query
        self._config.session = SessionState(
            last_search=query.search_text,
            current_index=self.controller.current_index,
        )
        self._config.selected_categories = list(query.categories)
        self._config.user_id = self._services.auth.current_user() or ""
        if self._save_on_exit:
            save_config(self._config)

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _track_task(self, coro: Any) -> asyncio.Task[None]:
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
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _on_feed_changed(self, controller: FeedController) -> None:
        if controller.status is FeedStatus.ERROR and self._last_status is not FeedStatus.ERROR:
            self.notify(
                "Could not load papers. Press r to retry.",
                title="Feed",
                severity="warning",
                timeout=5,
            )
        self._last_status = controller.status
        self.dispatcher.retain(paper.id for paper in controller.papers)
        self._render_feed()

    def _on_auth_changed(self, user_id: str | None) -> None:
        self._config.user_id = user_id or ""
        self._track_task(self.controller.refresh_relationships())
        self._render_feed()

    def _on_store_error(self, message: str) -> None:
        self.notify(message, title="Sync", severity="warning", timeout=4)

    def _render_feed(self) -> None:
        controller = self.controller
        paper = controller.current_paper
        if paper is not None and paper.id != self._visible_paper_id:
            self._visible_paper_id = paper.id
            self.dispatcher.card_visible(paper.id)
        drag_dx = self.dispatcher.offset(paper.id)[0] if paper is not None else 0.0
        try:
            self.query_one(PaperCard).show(
                paper,
                position=controller.current_index,
                total=len(controller.papers),
                drag_dx=drag_dx,
                loading=controller.is_loading,
            )
            self.query_one(FeedStatusBar).show_status(
                status=controller.status.value,
                count=len(controller.papers),
                has_more=controller.has_more,
                user_id=self._services.auth.current_user(),
                query_label=controller.query.to_search_query(),
                error=controller.last_error,
            )
            self.query_one(CategoryBar).set_selected(controller.query.categories)
            self.query_one(ContextFooter).render_bindings(FEED_FOOTER_HINTS)
        except NoMatches:
            # Not composed yet, or a screen is being torn down
            return

    def _apply_theme(self, name: str) -> None:
        resolved = resolve_theme_name(name)
        self._config.theme_name = resolved
        apply_theme_colors(resolved)
        self.theme = resolved

    def _focus_card(self) -> None:
        try:
            self.query_one(PaperCard).focus()
        except NoMatches:
            pass

    def _haptic(self, _style: str) -> None:
        if self._config.haptics_enabled:
            self.bell()

    # ------------------------------------------------------------------
    # Gesture input
    # ------------------------------------------------------------------

    def on_paper_card_drag_started(self, message: PaperCard.DragStarted) -> None:
        self.dispatcher.begin_drag(message.paper_id)

    def on_paper_card_dragged(self, message: PaperCard.Dragged) -> None:
        self.dispatcher.drag(message.paper_id, message.dx, message.dy)
        self._render_feed()

    def on_paper_card_released(self, message: PaperCard.Released) -> None:
        action = self.dispatcher.release(message.paper_id, message.dx, message.dy)
        self._perform(action, message.paper_id)
        self._render_feed()

    def on_paper_card_tapped(self, message: PaperCard.Tapped) -> None:
        self._perform(self.dispatcher.tap(message.paper_id, message.at_ms), message.paper_id)

    def _perform(self, action: GestureAction, paper_id: str) -> None:
        if action is GestureAction.NONE:
            return
        logger.debug("Gesture %s on %s", action.value, paper_id)
        if action is GestureAction.FOCUS_NEXT:
            self.controller.focus_next()
        elif action is GestureAction.FOCUS_PREVIOUS:
            self.controller.focus_previous()
        elif action is GestureAction.TOGGLE_BOOKMARK:
            self._track_task(self._toggle_bookmark(paper_id))
        elif action is GestureAction.TOGGLE_LIKE:
            self._track_task(self._toggle_like(paper_id))
        elif action is GestureAction.OPEN_CHAT:
            self._open_chat(paper_id)

    def _warn_if_signed_out(self, what: str) -> None:
        if not self._services.auth.is_signed_in:
            self.notify(
                f"Sign in with s to save {what}.", title="Not signed in", severity="warning"
            )

    async def _toggle_like(self, paper_id: str) -> None:
        self._warn_if_signed_out("likes")
        await self.controller.toggle_like(paper_id)

    async def _toggle_bookmark(self, paper_id: str) -> None:
        self._warn_if_signed_out("bookmarks")
        paper = await self.controller.toggle_bookmark(paper_id)
        if paper is not None:
            label = "Bookmarked" if paper.bookmarked else "Bookmark removed"
            self.notify(label, timeout=2)

    def _open_chat(self, paper_id: str) -> None:
        paper = self.controller.get_paper(paper_id)
        if paper is None:
            self.dispatcher.card_visible(paper_id)
            return
        session = self._chat_sessions.get(paper.id)
        if session is None:
            session = ChatSession(paper.id, paper.title)
            self._chat_sessions[paper.id] = session

        def _on_closed(_result: None) -> None:
            self.dispatcher.card_visible(paper_id)
            self._render_feed()
            self._track_task(self.controller.refresh_relationships())

        self.push_screen(ChatScreen(paper, session), _on_closed)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    @on(Input.Changed, "#search-input")
    def _on_search_changed(self, event: Input.Changed) -> None:
        self.controller.on_search_text_changed(event.value)

    @on(Input.Submitted, "#search-input")
    def _on_search_submitted(self) -> None:
        self._focus_card()

    def on_category_bar_toggled(self, message: CategoryBar.Toggled) -> None:
        self._track_task(self.controller.toggle_category(message.category_id))

    def on_app_focus(self) -> None:
        self._track_task(self.controller.refresh_relationships())

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _current_paper(self) -> Paper | None:
        return self.controller.current_paper

    def action_swipe(self, direction: str) -> None:
        """Keyboard stand-in for a swipe released past its threshold."""
        paper = self._current_paper()
        if paper is None or direction not in KEYBOARD_SWIPES:
            return
        dx, dy = KEYBOARD_SWIPES[direction]
        self._perform(self.dispatcher.release(paper.id, dx, dy), paper.id)

    def action_toggle_like(self) -> None:
        paper = self._current_paper()
        if paper is None or self.dispatcher.is_locked(paper.id):
            return
        self._haptic("light")
        self._track_task(self._toggle_like(paper.id))

    def action_open_paper(self) -> None:
        paper = self._current_paper()
        if paper is None:
            return
        url = paper.read_url
        if not url:
            self.notify("No link available for this paper", title="Open")
            return
        self.open_url_in_browser(url)

    def action_show_details(self) -> None:
        paper = self._current_paper()
        if paper is not None:
            self.push_screen(PaperDetailScreen(paper))

    def action_show_library(self) -> None:
        if not self._services.auth.is_signed_in:
            self.notify("Sign in with s to see your library.", title="Library")
            return

        def _on_closed(removed: bool | None) -> None:
            if removed:
                self._track_task(self.controller.refresh_relationships())

        self.push_screen(LibraryScreen(self._services.store), _on_closed)

    def action_toggle_sign_in(self) -> None:
        auth = self._services.auth
        if auth.is_signed_in:
            auth.sign_out()
            self.notify("Signed out", title="Account", timeout=2)
            return

        def _on_closed(user_id: str | None) -> None:
            if user_id:
                auth.sign_in(user_id)
                self.notify(f"Signed in as {user_id}", title="Account", timeout=2)

        self.push_screen(SignInScreen(), _on_closed)

    def action_focus_search(self) -> None:
        try:
            self.query_one("#search-input", Input).focus()
        except NoMatches:
            pass

    def action_focus_card(self) -> None:
        self._focus_card()

    def action_reload(self) -> None:
        self._track_task(self.controller.load_initial())

    def action_cycle_theme(self) -> None:
        self._apply_theme(next_theme_name(self._config.theme_name))
        self._render_feed()
        self.notify(f"Theme: {self._config.theme_name}", title="Theme", timeout=2)

    def action_show_help(self) -> None:
        self.push_screen(HelpScreen())

    def open_url_in_browser(self, url: str) -> bool:
        """Open a URL in the browser with error handling. Returns True on success."""
        try:
            webbrowser.open(url)
            return True
        except (webbrowser.Error, OSError) as e:
            logger.warning("Failed to open browser for %s: %s", url, e)
            self.notify(
                "Could not open your browser",
                title="Browser",
                severity="error",
                timeout=8,
            )
            return False


__all__ = ["PaperSwipeApp"]
