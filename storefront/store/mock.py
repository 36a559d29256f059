"""Mock document store used when no backend is configured."""
import asyncio
from typing import Optional

from storefront.logging import get_logger, sanitize_id_for_logging
from .base import DocumentKind, DocumentStore, Snapshot, SnapshotCallback, StreamId, Unsubscribe

logger = get_logger(__name__)


class MockDocumentStore(DocumentStore):
    """
    No-op store.

    - get() always returns None
    - put() succeeds and discards the write
    - subscribe() delivers one empty snapshot, then stays silent
    """

    is_mock = True

    async def get(self, kind: DocumentKind, key: str) -> Optional[Snapshot]:
        return None

    async def put(self, kind: DocumentKind, key: str, document: dict) -> Optional[StreamId]:
        logger.debug(f"Mock store discarded {kind.value} write for {sanitize_id_for_logging(key)}")
        return None

    def subscribe(self, kind: DocumentKind, key: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        cancelled = False

        def _deliver() -> None:
            if not cancelled:
                on_snapshot(Snapshot(kind=kind, key=key, document=None, updated_at=StreamId.ZERO))

        # Delivered on the next loop turn, like a real subscription callback
        handle = asyncio.get_running_loop().call_soon(_deliver)

        def unsubscribe() -> None:
            nonlocal cancelled
            cancelled = True
            handle.cancel()

        return unsubscribe
