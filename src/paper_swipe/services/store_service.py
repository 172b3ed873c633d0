"""Like/bookmark persistence client keyed by the signed-in user."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from paper_swipe.auth import AuthSession
from paper_swipe.errors import RemoteStoreFailure, Unauthenticated
from paper_swipe.models import Paper, PaperCounts

logger = logging.getLogger(__name__)


@runtime_checkable
class StoreBackend(Protocol):
    """Blocking persistence backend (see :class:`paper_swipe.storage.SqliteStoreBackend`)."""

    def add_relationship(self, kind: str, user_id: str, paper: Paper) -> bool: ...

    def remove_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool: ...

    def has_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool: ...

    def counts(self, arxiv_id: str) -> PaperCounts: ...

    def list_papers(self, kind: str, user_id: str) -> list[Paper]: ...



class RemoteStoreClient:
    """Async facade over a :class:`StoreBackend` for the current user.

    Without a signed-in user every operation is a logged no-op. Backend
    failures are logged and re-raised as :class:`RemoteStoreFailure`.
    """

    def __init__(self, backend: StoreBackend, auth: AuthSession) -> None:
        self.backend = backend
        self.auth = auth

    def require_user(self, operation: str) -> str:
        """Return the signed-in user id or raise :class:`Unauthenticated`."""
        user_id = self.auth.current_user()
        if user_id is None:
            raise Unauthenticated(f"{operation} needs a signed-in user")
        return user_id

    async def _as_user(self, operation: str, default: Any, func: Callable[[str], Any]) -> Any:
        try:
            user_id = self.require_user(operation)
        except Unauthenticated as exc:
            logger.info("Skipping store call: %s", exc)
            return default
        try:
            return await asyncio.to_thread(func, user_id)
        except RemoteStoreFailure:
            logger.warning("Store operation %s failed", operation, exc_info=True)
            raise

    async def add_like(self, paper: Paper) -> bool:
        return await self._as_user(
            "add_like",
            False,
            lambda user_id: self.backend.add_relationship("like", user_id, paper),
        )

    async def remove_like(self, arxiv_id: str) -> bool:
        return await self._as_user(
            "remove_like",
            False,
            lambda user_id: self.backend.remove_relationship("like", user_id, arxiv_id),
        )

    async def is_liked(self, arxiv_id: str) -> bool:
        return await self._as_user(
            "is_liked",
            False,
            lambda user_id: self.backend.has_relationship("like", user_id, arxiv_id),
        )

    async def add_bookmark(self, paper: Paper) -> bool:
        return await self._as_user(
            "add_bookmark",
            False,
            lambda user_id: self.backend.add_relationship("bookmark", user_id, paper),
        )

    async def remove_bookmark(self, arxiv_id: str) -> bool:
        return await self._as_user(
            "remove_bookmark",
            False,
            lambda user_id: self.backend.remove_relationship("bookmark", user_id, arxiv_id),
        )

    async def is_bookmarked(self, arxiv_id: str) -> bool:
        return await self._as_user(
            "is_bookmarked",
            False,
            lambda user_id: self.backend.has_relationship("bookmark", user_id, arxiv_id),
        )

    async def paper_counts(self, arxiv_id: str) -> PaperCounts | None:
        """Authoritative counters; None when nobody is signed in."""
        return await self._as_user(
            "paper_counts", None, lambda _user_id: self.backend.counts(arxiv_id)
        )

    async def list_bookmarked(self) -> list[Paper]:
        return await self._as_user(
            "list_bookmarked", [], lambda user_id: self.backend.list_papers("bookmark", user_id)
        )

    async def list_liked(self) -> list[Paper]:
        return await self._as_user(
            "list_liked", [], lambda user_id: self.backend.list_papers("like", user_id)
        )


__all__ = ["RemoteStoreClient", "StoreBackend"]
