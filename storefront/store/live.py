"""
Live document store on Upstash Redis Streams.

Every write appends the full document to ``doc:{kind}:{key}`` with XADD.
The entry id Redis assigns is the document's ``updated_at``, so write
order, read order and snapshot timestamps all come from the server.

Note: upstash-redis REST API does NOT support blocking XREAD, so
subscriptions poll XRANGE with asyncio.sleep() in between.
"""

import asyncio
import json
from typing import Any, Optional

from storefront.db import STOREFRONT_POLL_INTERVAL, StreamKeys
from storefront.errors import Unavailable
from storefront.logging import get_logger, sanitize_id_for_logging
from .base import DocumentKind, DocumentStore, Snapshot, SnapshotCallback, StreamId, Unsubscribe

logger = get_logger(__name__)

# Maximum number of entries to read per poll
MAX_ENTRIES_PER_POLL = 20


def _entry_fields(fields: Any) -> dict:
    """Normalize stream entry fields: REST returns a flat [k, v, k, v] list."""
    if isinstance(fields, dict):
        return fields
    return dict(zip(fields[::2], fields[1::2]))


def _decode_entry(kind: DocumentKind, key: str, entry: Any) -> Optional[Snapshot]:
    entry_id, fields = entry[0], entry[1]
    data = _entry_fields(fields).get("data")
    try:
        document = json.loads(data) if isinstance(data, (str, bytes)) else data
    except json.JSONDecodeError:
        logger.warning(f"Invalid JSON in {kind.value} stream for {sanitize_id_for_logging(key)}")
        return None
    if not isinstance(document, dict):
        return None
    return Snapshot(kind=kind, key=key, document=document, updated_at=StreamId.parse(entry_id))


class LiveDocumentStore(DocumentStore):
    """Document store backed by an async Upstash Redis client."""

    def __init__(self, redis, poll_interval: float = STOREFRONT_POLL_INTERVAL) -> None:
        self.redis = redis
        self.poll_interval = poll_interval
        self._tasks: set[asyncio.Task] = set()

    async def get(self, kind: DocumentKind, key: str) -> Optional[Snapshot]:
        stream_key = StreamKeys.document_key(kind.value, key)
        try:
            entries = await self.redis.xrevrange(stream_key, end="+", start="-", count=1)
        except Exception as e:
            logger.error(f"Failed to read {stream_key}: {type(e).__name__}", exc_info=True)
            raise Unavailable(f"Document store unavailable: {e}") from e

        if not entries:
            return None
        return _decode_entry(kind, key, entries[0])

    async def put(self, kind: DocumentKind, key: str, document: dict) -> Optional[StreamId]:
        stream_key = StreamKeys.document_key(kind.value, key)
        try:
            entry_id = await self.redis.xadd(stream_key, "*", {"data": json.dumps(document)})
        except Exception as e:
            logger.error(f"Failed to write {stream_key}: {type(e).__name__}", exc_info=True)
            raise Unavailable(f"Document store unavailable: {e}") from e

        updated_at = StreamId.parse(entry_id)
        logger.debug(f"Wrote {kind.value} for {sanitize_id_for_logging(key)} at {updated_at}")
        return updated_at

    def subscribe(self, kind: DocumentKind, key: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(self._follow(kind, key, on_snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _follow(self, kind: DocumentKind, key: str, on_snapshot: SnapshotCallback) -> None:
        """Deliver the current document, then every later entry in stream order."""
        stream_key = StreamKeys.document_key(kind.value, key)
        last_id: Optional[StreamId] = None

        while True:
            try:
                if last_id is None:
                    latest = await self.get(kind, key)
                    if latest is None:
                        last_id = StreamId.ZERO
                        self._deliver(on_snapshot, Snapshot(kind, key, None, StreamId.ZERO))
                    else:
                        last_id = latest.updated_at
                        self._deliver(on_snapshot, latest)
                else:
                    start = f"({last_id}" if last_id != StreamId.ZERO else "-"
                    entries = await self.redis.xrange(
                        stream_key, start=start, end="+", count=MAX_ENTRIES_PER_POLL
                    )
                    for entry in entries or []:
                        last_id = StreamId.parse(entry[0])
                        snapshot = _decode_entry(kind, key, entry)
                        if snapshot is not None:
                            self._deliver(on_snapshot, snapshot)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Error polling {stream_key}: {type(e).__name__}: {e}")

            await asyncio.sleep(self.poll_interval)

    @staticmethod
    def _deliver(on_snapshot: SnapshotCallback, snapshot: Snapshot) -> None:
        try:
            on_snapshot(snapshot)
        except Exception:
            logger.error(f"Snapshot handler failed for {snapshot.kind.value}", exc_info=True)
