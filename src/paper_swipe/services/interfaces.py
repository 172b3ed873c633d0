"""Service interfaces + default adapters for app-level dependency injection."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from paper_swipe.auth import AuthSession
from paper_swipe.models import FeedPage, UserConfig
from paper_swipe.services import arxiv_api_service as _arxiv_api
from paper_swipe.services.store_service import RemoteStoreClient
from paper_swipe.storage import SqliteStoreBackend, get_store_db_path


@runtime_checkable
class PaperSource(Protocol):
    """Interface for fetching one page of papers for a search query."""

    async def search(self, query: str, offset: int, page_size: int) -> FeedPage:
        """Fetch papers ``offset .. offset + page_size`` for ``query``."""
        ...


class DefaultPaperSource:
    """Default adapter over the function-based arXiv API service.

    ``client`` is assigned by the app once its shared ``httpx.AsyncClient``
    exists; until then each call opens a short-lived client.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: int = _arxiv_api.ARXIV_API_TIMEOUT,
        user_agent: str = _arxiv_api.ARXIV_API_USER_AGENT,
        missing_published: str = "now",
        min_interval_seconds: float = _arxiv_api.ARXIV_API_MIN_INTERVAL_SECONDS,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.missing_published = missing_published
        self.min_interval_seconds = min_interval_seconds
        self._now = now
        self._sleep = sleep
        self._last_request_at = 0.0

    async def search(self, query: str, offset: int, page_size: int) -> FeedPage:
        self._last_request_at, _waited = await _arxiv_api.enforce_rate_limit(
            last_request_at=self._last_request_at,
            min_interval_seconds=self.min_interval_seconds,
            now=self._now,
            sleep=self._sleep,
        )
        return await _arxiv_api.search(
            query,
            offset,
            page_size,
            client=self.client,
            timeout_seconds=self.timeout_seconds,
            user_agent=self.user_agent,
            missing_published=self.missing_published,
        )


@dataclass(slots=True)
class AppServices:
    """Aggregated services consumed by the app layer."""

    paper_source: PaperSource
    store: RemoteStoreClient
    auth: AuthSession


def build_default_app_services(
    config: UserConfig | None = None,
    *,
    db_path: Path | None = None,
) -> AppServices:
    """Build default app services: arXiv source plus a SQLite-backed store."""
    config = config or UserConfig()
    if db_path is None:
        db_path = Path(config.store_db_path) if config.store_db_path else get_store_db_path()
    auth = AuthSession(config.user_id or None)
    return AppServices(
        paper_source=DefaultPaperSource(
            timeout_seconds=config.request_timeout_seconds,
            missing_published=config.missing_published_policy,
        ),
        store=RemoteStoreClient(SqliteStoreBackend(db_path), auth),
        auth=auth,
    )


__all__ = [
    "AppServices",
    "DefaultPaperSource",
    "PaperSource",
    "build_default_app_services",
]
