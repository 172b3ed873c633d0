"""Error taxonomy for feed fetching and persistence."""

from __future__ import annotations


class PaperSwipeError(Exception):
    """Base class for application errors."""


class SourceUnavailable(PaperSwipeError):
    """The search endpoint is unreachable or returned a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(PaperSwipeError):
    """The search response could not be parsed into the expected structure."""


class RemoteStoreFailure(PaperSwipeError):
    """A like/bookmark persistence operation failed."""


class Unauthenticated(PaperSwipeError):
    """A persistence operation was attempted without a signed-in user."""


__all__ = [
    "MalformedResponse",
    "PaperSwipeError",
    "RemoteStoreFailure",
    "SourceUnavailable",
    "Unauthenticated",
]
