"""Service layer: paper source, remote store and app wiring."""

from paper_swipe.services.arxiv_api_service import enforce_rate_limit, search
from paper_swipe.services.store_service import RemoteStoreClient

__all__ = [
    "RemoteStoreClient",
    "enforce_rate_limit",
    "search",
]
