"""Data models and constants for the paper feed."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from paper_swipe.query import build_search_query

# Application identity used for platformdirs config paths
CONFIG_APP_NAME = "paper-swipe"

# Feed paging
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50

# Fallback values for incomplete feed entries
UNKNOWN_AUTHOR = "Unknown Author"
UNCATEGORIZED = "uncategorized"
UNTITLED = "Untitled"
NO_ABSTRACT = "No abstract available"

# Policies for entries without a published timestamp
MISSING_PUBLISHED_POLICIES = ("now", "drop")


@dataclass(frozen=True, slots=True)
class PaperLinks:
    """Optional read links for a paper."""

    pdf: str | None = None
    html: str | None = None


@dataclass(frozen=True, slots=True)
class Paper:
    """A normalized paper record as shown on a feed card.

    Instances are immutable. The feed controller overlays the user fields
    (``is_liked_by_user``, ``bookmarked`` and the counters) by building a new
    record with :func:`dataclasses.replace`.
    """

    id: str
    title: str
    abstract: str
    authors: tuple[str, ...]
    year: int
    categories: tuple[str, ...]
    links: PaperLinks = field(default_factory=PaperLinks)
    published: str = ""
    updated: str = ""
    arxiv_id: str = ""
    doi: str | None = None
    likes: int = 0
    bookmarks: int = 0
    is_liked_by_user: bool = False
    bookmarked: bool = False

    def __post_init__(self) -> None:
        if not self.arxiv_id:
            object.__setattr__(self, "arxiv_id", self.id)
        if self.likes < 0:
            object.__setattr__(self, "likes", 0)
        if self.bookmarks < 0:
            object.__setattr__(self, "bookmarks", 0)

    @property
    def author_line(self) -> str:
        """Short author credit: ``First et al.`` beyond two authors."""
        if len(self.authors) > 2:
            return f"{self.authors[0]} et al."
        return ", ".join(self.authors)

    @property
    def read_url(self) -> str | None:
        return self.links.html or self.links.pdf

    def with_likes_delta(self, delta: int) -> Paper:
        return replace(self, likes=max(self.likes + delta, 0))

    def with_bookmarks_delta(self, delta: int) -> Paper:
        return replace(self, bookmarks=max(self.bookmarks + delta, 0))


@dataclass(frozen=True, slots=True)
class FeedQuery:
    """Free-text term plus selected category filters."""

    search_text: str = ""
    categories: tuple[str, ...] = ()

    def to_search_query(self) -> str:
        return build_search_query(self.search_text, self.categories)


@dataclass(slots=True)
class FeedPage:
    """One page of search results."""

    papers: list[Paper]
    offset: int
    page_size: int
    has_more: bool


@dataclass(slots=True)
class PaperCounts:
    """Authoritative counters for a paper as held by the store."""

    likes: int = 0
    bookmarks: int = 0


@dataclass(slots=True)
class ChatMessage:
    """A single chat bubble."""

    id: str
    text: str
    sender: str  # "user" | "ai"


@dataclass(slots=True)
class SessionState:
    """UI state restored on the next run."""

    last_search: str = ""
    current_index: int = 0

    def __post_init__(self) -> None:
        if self.current_index < 0:
            self.current_index = 0


@dataclass(slots=True)
class UserConfig:
    """User configuration and preferences."""

    user_id: str = ""
    page_size: int = DEFAULT_PAGE_SIZE
    selected_categories: list[str] = field(default_factory=list)
    theme_name: str = "paper-light"
    haptics_enabled: bool = True
    rollback_on_store_failure: bool = False
    missing_published_policy: str = "now"
    request_timeout_seconds: int = 30
    store_db_path: str = ""  # Empty = <user data dir>/papers.db
    session: SessionState = field(default_factory=SessionState)
    version: int = 1


__all__ = [
    "CONFIG_APP_NAME",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "MISSING_PUBLISHED_POLICIES",
    "NO_ABSTRACT",
    "UNCATEGORIZED",
    "UNKNOWN_AUTHOR",
    "UNTITLED",
    "ChatMessage",
    "FeedPage",
    "FeedQuery",
    "Paper",
    "PaperCounts",
    "PaperLinks",
    "SessionState",
    "UserConfig",
]
