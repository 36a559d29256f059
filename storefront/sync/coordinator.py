"""
Optimistic Update Coordinator.

Keeps one document (cart or favorites) of one actor in memory:

- mutations apply locally at once and are written in submission order
- store snapshots replace local state unless a local write is newer
- a failed write is rolled back and re-raised to the caller

Local state is always ``confirmed`` (last accepted snapshot) with the
still-pending mutations replayed on top of it.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Protocol, TypeVar

from storefront.errors import StorefrontError, Unavailable
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.store import DocumentKind, DocumentStore, Snapshot, StreamId

logger = get_logger(__name__)


class SyncedDocument(Protocol):
    updated_at: Optional[str]

    def copy(self): ...

    def to_dict(self) -> dict: ...


D = TypeVar("D", bound=SyncedDocument)
Mutation = Callable[[D], None]


@dataclass(eq=False)
class PendingMutation:
    """A locally applied mutation awaiting store confirmation."""
    seq: int
    mutate: Callable
    updated_at: Optional[StreamId] = None  # set once the write is acknowledged
    write: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self.updated_at is None


class OptimisticCoordinator(Generic[D]):
    """Local view of one synced document."""

    def __init__(
        self,
        store: DocumentStore,
        kind: DocumentKind,
        key: str,
        decode: Callable[[dict, Optional[str]], D],
        empty: Callable[[], D],
    ) -> None:
        self.store = store
        self.kind = kind
        self.key = key
        self._decode = decode
        self._empty = empty

        self._confirmed: D = empty()
        self._confirmed_at: Optional[StreamId] = None
        self._state: D = empty()
        self._pending: List[PendingMutation] = []
        self._buffered: Optional[Snapshot] = None
        self._seq = 0
        self._write_lock = asyncio.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: List[Callable[[D], None]] = []

    @property
    def state(self) -> D:
        """Current local view (confirmed + pending). Treat as read-only."""
        return self._state

    @property
    def confirmed_at(self) -> Optional[StreamId]:
        return self._confirmed_at

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_listener(self, callback: Callable[[D], None]) -> None:
        self._listeners.append(callback)

    # ---- lifecycle -------------------------------------------------------

    async def load(self) -> None:
        """Read the stored document; an absent document is an empty one."""
        snapshot = await self.store.get(self.kind, self.key)
        if snapshot is None:
            snapshot = Snapshot(self.kind, self.key, None, StreamId.ZERO)
        self.reconcile(snapshot)

    def seed(self, document: D, updated_at: Optional[StreamId]) -> None:
        """Start from a document this process just wrote (login merge)."""
        updated_at = updated_at or StreamId.ZERO
        document.updated_at = str(updated_at)
        self._confirmed = document
        self._confirmed_at = updated_at
        self._rebuild()

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.kind, self.key, self.reconcile)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def drain(self) -> None:
        """Wait for every scheduled write; failures were already reported to their callers."""
        writes = [p.write for p in self._pending if p.write is not None]
        if writes:
            await asyncio.gather(*writes, return_exceptions=True)

    async def refresh(self) -> None:
        snapshot = await self.store.get(self.kind, self.key)
        if snapshot is not None:
            self.reconcile(snapshot)

    # ---- mutations -------------------------------------------------------

    def submit(self, mutate: Mutation) -> asyncio.Task:
        """
        Apply ``mutate`` locally and schedule its write.

        Returns the write task; awaiting it raises Unavailable if the
        write failed (local state is already rolled back by then).
        """
        candidate = self._state.copy()
        mutate(candidate)

        self._seq += 1
        pending = PendingMutation(seq=self._seq, mutate=mutate)
        self._pending.append(pending)
        self._state = candidate
        self._notify()

        # Tasks start in creation order, so they queue on the lock in order
        pending.write = asyncio.get_running_loop().create_task(self._write(pending))
        return pending.write

    async def _write(self, pending: PendingMutation) -> None:
        async with self._write_lock:
            document = self._replay(upto=pending.seq)
            try:
                updated_at = await self.store.put(self.kind, self.key, document.to_dict())
            except Unavailable:
                logger.warning(
                    f"Rolling back {self.kind.value} mutation #{pending.seq} "
                    f"for {sanitize_id_for_logging(self.key)}"
                )
                self._pending.remove(pending)
                self._rebuild()
                self._try_buffered()
                raise

            if updated_at is None:
                # Write discarded (mock store): nothing will confirm it
                self._confirmed = document
                self._pending = [p for p in self._pending if p.seq > pending.seq]
                self._rebuild()
                return

            pending.updated_at = updated_at
            self._try_buffered()

    # ---- reconciliation --------------------------------------------------

    def reconcile(self, snapshot: Snapshot) -> None:
        """Subscription callback: accept, buffer or drop ``snapshot``."""
        if self._confirmed_at is not None and snapshot.updated_at <= self._confirmed_at:
            return
        if self._is_shadowed(snapshot.updated_at):
            if self._buffered is None or snapshot.updated_at > self._buffered.updated_at:
                self._buffered = snapshot
            return
        self._accept(snapshot)

    def _is_shadowed(self, updated_at: StreamId) -> bool:
        """True while a local write is newer than ``updated_at`` (or not yet timestamped)."""
        if any(p.in_flight for p in self._pending):
            return True
        awaiting = [p.updated_at for p in self._pending]
        return bool(awaiting) and updated_at < max(awaiting)

    def _try_buffered(self) -> None:
        snapshot = self._buffered
        if snapshot is None:
            return
        if self._confirmed_at is not None and snapshot.updated_at <= self._confirmed_at:
            self._buffered = None
            return
        if self._is_shadowed(snapshot.updated_at):
            if not any(p.in_flight for p in self._pending):
                # Older than our acknowledged write; its own snapshot supersedes it
                self._buffered = None
            return
        self._buffered = None
        self._accept(snapshot)

    def _accept(self, snapshot: Snapshot) -> None:
        updated_at = str(snapshot.updated_at)
        if snapshot.document is None:
            confirmed = self._empty()
            confirmed.updated_at = updated_at
        else:
            confirmed = self._decode(snapshot.document, updated_at)
        self._confirmed = confirmed
        self._confirmed_at = snapshot.updated_at
        self._pending = [p for p in self._pending if p.in_flight or p.updated_at > snapshot.updated_at]
        self._rebuild()

    # ---- helpers ---------------------------------------------------------

    def _replay(self, upto: Optional[int] = None) -> D:
        document = self._confirmed.copy()
        for pending in self._pending:
            if upto is not None and pending.seq > upto:
                break
            try:
                pending.mutate(document)
            except StorefrontError as e:
                # e.g. the line a set_quantity targeted is gone from the new base
                logger.debug(f"Skipped replay of mutation #{pending.seq}: {e.reason}")
        return document

    def _rebuild(self) -> None:
        self._state = self._replay()
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self._state)
            except Exception:
                logger.error("State listener failed", exc_info=True)
