"""Remote document store interface shared by the live and mock variants."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional


class DocumentKind(str, Enum):
    """Document collections kept by the store."""
    CART = "cart"
    FAVORITES = "favorites"
    PRODUCT = "product"


class StreamId(NamedTuple):
    """
    Store-assigned write timestamp.

    Mirrors a Redis stream entry id ``<milliseconds>-<sequence>``; tuples
    compare in write order, so they order snapshots across sessions.
    """
    ms: int
    seq: int = 0

    @classmethod
    def parse(cls, entry_id: Any) -> "StreamId":
        if isinstance(entry_id, bytes):
            entry_id = entry_id.decode()
        ms, _, seq = str(entry_id).partition("-")
        return cls(int(ms), int(seq or 0))

    def __str__(self) -> str:
        return f"{self.ms}-{self.seq}"


StreamId.ZERO = StreamId(0, 0)


@dataclass(frozen=True)
class Snapshot:
    """Authoritative document state at ``updated_at``; ``document`` is None when absent."""
    kind: DocumentKind
    key: str
    document: Optional[dict]
    updated_at: StreamId

    @property
    def exists(self) -> bool:
        return self.document is not None


SnapshotCallback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class DocumentStore(ABC):
    """
    CRUD + live subscription over keyed documents.

    All I/O methods may raise ``Unavailable``. ``Unconfigured`` never
    escapes a store: it is resolved when the variant is chosen.
    """

    is_mock = False

    @abstractmethod
    async def get(self, kind: DocumentKind, key: str) -> Optional[Snapshot]:
        """Latest document for ``key`` or None."""

    @abstractmethod
    async def put(self, kind: DocumentKind, key: str, document: dict) -> Optional[StreamId]:
        """Replace the document; returns the assigned timestamp, or None if discarded."""

    @abstractmethod
    def subscribe(self, kind: DocumentKind, key: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """Deliver snapshots for ``key`` in write order until unsubscribed."""

    async def close(self) -> None:
        """Stop background work (subscriptions)."""
