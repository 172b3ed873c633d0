"""arXiv API paper source: rate limiting and page fetches."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

import httpx

from paper_swipe.errors import SourceUnavailable
from paper_swipe.models import FeedPage
from paper_swipe.parsing import parse_arxiv_api_feed

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api/query"
ARXIV_API_TIMEOUT = 30
ARXIV_API_USER_AGENT = "paper-swipe/0.1"
ARXIV_API_MIN_INTERVAL_SECONDS = 3.0


def build_search_params(query: str, offset: int, page_size: int) -> dict[str, str | int]:
    """Query-string parameters for one arXiv API page."""
    return {
        "search_query": query,
        "start": max(0, offset),
        "max_results": page_size,
        "sortBy": "relevance",
        "sortOrder": "descending",
    }


async def enforce_rate_limit(
    *,
    last_request_at: float,
    min_interval_seconds: float,
    now: Callable[[], float],
    sleep: Callable[[float], Awaitable[None]],
) -> tuple[float, float]:
    """Wait as needed to respect API rate limits.

    Returns:
        Tuple of (new_last_request_at, waited_seconds).
    """
    current = now()
    waited_seconds = 0.0
    elapsed = current - last_request_at
    if last_request_at > 0 and elapsed < min_interval_seconds:
        waited_seconds = min_interval_seconds - elapsed
        await sleep(waited_seconds)
    return now(), waited_seconds


def page_from_response(
    response: httpx.Response,
    *,
    offset: int,
    page_size: int,
    missing_published: str = "now",
    now: datetime | None = None,
) -> FeedPage:
    """Turn an HTTP response into a FeedPage.

    Raises:
        SourceUnavailable: on a non-success status.
        MalformedResponse: if the body is not a parseable feed.
    """
    if response.is_error:
        raise SourceUnavailable(
            f"arXiv API returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    papers = parse_arxiv_api_feed(response.text, now=now, missing_published=missing_published)
    return FeedPage(
        papers=papers,
        offset=offset,
        page_size=page_size,
        has_more=len(papers) == page_size,
    )


async def search(
    query: str,
    offset: int,
    page_size: int,
    *,
    client: httpx.AsyncClient | None,
    timeout_seconds: int = ARXIV_API_TIMEOUT,
    user_agent: str = ARXIV_API_USER_AGENT,
    missing_published: str = "now",
) -> FeedPage:
    """Fetch a single page of arXiv API results.

    Raises:
        SourceUnavailable: when the endpoint is unreachable or errors.
        MalformedResponse: when the response body cannot be parsed.
    """
    params = build_search_params(query, offset, page_size)
    headers = {"User-Agent": user_agent}
    logger.debug("arXiv search %r offset=%d size=%d", query, offset, page_size)

    try:
        if client is not None:
            response = await client.get(
                ARXIV_API_URL,
                params=params,
                headers=headers,
                timeout=timeout_seconds,
            )
        else:
            async with httpx.AsyncClient() as tmp_client:
                response = await tmp_client.get(
                    ARXIV_API_URL,
                    params=params,
                    headers=headers,
                    timeout=timeout_seconds,
                )
    except httpx.HTTPError as exc:
        raise SourceUnavailable(f"arXiv API unreachable: {exc}") from exc

    return page_from_response(
        response,
        offset=offset,
        page_size=page_size,
        missing_published=missing_published,
    )


def search_sync(
    query: str,
    offset: int,
    page_size: int,
    *,
    timeout_seconds: int = ARXIV_API_TIMEOUT,
    missing_published: str = "now",
) -> FeedPage:
    """Blocking variant of :func:`search` for non-interactive use."""
    try:
        response = httpx.get(
            ARXIV_API_URL,
            params=build_search_params(query, offset, page_size),
            headers={"User-Agent": ARXIV_API_USER_AGENT},
            timeout=timeout_seconds,
        )
    except httpx.HTTPError as exc:
        raise SourceUnavailable(f"arXiv API unreachable: {exc}") from exc
    return page_from_response(
        response,
        offset=offset,
        page_size=page_size,
        missing_published=missing_published,
    )


__all__ = [
    "ARXIV_API_MIN_INTERVAL_SECONDS",
    "ARXIV_API_TIMEOUT",
    "ARXIV_API_URL",
    "ARXIV_API_USER_AGENT",
    "build_search_params",
    "enforce_rate_limit",
    "page_from_response",
    "search",
    "search_sync",
]
