"""Remote document store: live (Upstash Redis Streams) or mock, chosen once."""
from storefront.db import get_redis
from storefront.errors import Unconfigured
from storefront.logging import get_logger
from .base import DocumentKind, DocumentStore, Snapshot, StreamId
from .live import LiveDocumentStore
from .mock import MockDocumentStore

logger = get_logger(__name__)


def create_document_store(poll_interval: float | None = None) -> DocumentStore:
    """
    Build the store for this process.

    Falls back to MockDocumentStore when Upstash credentials are missing;
    the choice is permanent for the process lifetime.
    """
    try:
        redis = get_redis()
    except Unconfigured as e:
        logger.warning(f"Document store not configured ({e}); using mock store")
        return MockDocumentStore()

    logger.info("Document store: Upstash Redis streams")
    if poll_interval is None:
        return LiveDocumentStore(redis)
    return LiveDocumentStore(redis, poll_interval=poll_interval)


__all__ = [
    "DocumentKind",
    "DocumentStore",
    "LiveDocumentStore",
    "MockDocumentStore",
    "Snapshot",
    "StreamId",
    "create_document_store",
]
