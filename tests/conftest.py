"""Pytest configuration and fixtures"""
import asyncio
import os
from collections import defaultdict
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

# Keep the suite on the mock store/catalog regardless of the developer's shell
for _var in (
    "UPSTASH_REDIS_REST_URL",
    "UPSTASH_REDIS_REST_TOKEN",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
):
    os.environ.pop(_var, None)

from storefront.auth import DeviceIdStore, IdentityResolver  # noqa: E402
from storefront.errors import Unavailable  # noqa: E402
from storefront.services.models import Product  # noqa: E402
from storefront.services.products import InMemoryProductCatalog  # noqa: E402
from storefront.store.base import DocumentKind, DocumentStore, Snapshot, StreamId  # noqa: E402
from storefront.sync.session import ShopperSession  # noqa: E402


class FakeStreamRedis:
    """In-memory stand-in for the Upstash stream commands used by the live store."""

    def __init__(self):
        self.streams = defaultdict(list)
        self._ms = 1_700_000_000_000
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unreachable")

    async def xadd(self, key, id, data):
        self._check()
        self._ms += 1
        entry_id = f"{self._ms}-0"
        fields = []
        for k, v in data.items():
            fields.extend([k, v])
        self.streams[key].append([entry_id, fields])
        return entry_id

    async def xrevrange(self, key, end="+", start="-", count=None):
        self._check()
        entries = list(reversed(self.streams.get(key, [])))
        return entries[:count] if count else entries

    async def xrange(self, key, start="-", end="+", count=None):
        self._check()
        entries = self.streams.get(key, [])
        if start.startswith("("):
            after = StreamId.parse(start[1:])
            entries = [e for e in entries if StreamId.parse(e[0]) > after]
        return entries[:count] if count else list(entries)


class ScriptedStore(DocumentStore):
    """
    Deterministic document store for sync tests.

    Writes are stored but snapshots are only delivered when a test calls
    ``emit``/``deliver``, so the tests control snapshot timing.
    """

    def __init__(self):
        self.documents = {}
        self.subscribers = defaultdict(list)
        self.puts = []
        self.fail_puts = 0
        self.fail_kinds = set()
        self.put_gate: Optional[asyncio.Event] = None
        self._ms = 0

    def next_id(self) -> StreamId:
        self._ms += 1
        return StreamId(self._ms, 0)

    async def get(self, kind, key):
        stored = self.documents.get((kind, key))
        if stored is None:
            return None
        document, updated_at = stored
        return Snapshot(kind, key, dict(document), updated_at)

    async def put(self, kind, key, document):
        if self.put_gate is not None:
            await self.put_gate.wait()
        if kind in self.fail_kinds:
            raise Unavailable("scripted failure")
        if self.fail_puts:
            self.fail_puts -= 1
            raise Unavailable("scripted failure")
        updated_at = self.next_id()
        self.documents[(kind, key)] = (document, updated_at)
        self.puts.append((kind, key, document, updated_at))
        return updated_at

    def subscribe(self, kind, key, on_snapshot):
        self.subscribers[(kind, key)].append(on_snapshot)

        def unsubscribe():
            if on_snapshot in self.subscribers[(kind, key)]:
                self.subscribers[(kind, key)].remove(on_snapshot)

        return unsubscribe

    def emit(self, kind, key, document, updated_at: Optional[StreamId] = None) -> StreamId:
        """Simulate a write from another tab and deliver it."""
        updated_at = updated_at or self.next_id()
        if document is not None:
            self.documents[(kind, key)] = (document, updated_at)
        for callback in list(self.subscribers[(kind, key)]):
            callback(Snapshot(kind, key, document, updated_at))
        return updated_at

    def deliver(self, kind, key):
        """Deliver the stored document as the subscription would."""
        document, updated_at = self.documents[(kind, key)]
        for callback in list(self.subscribers[(kind, key)]):
            callback(Snapshot(kind, key, dict(document), updated_at))


class FailingCatalog(InMemoryProductCatalog):
    """Catalog whose lookups for selected ids raise Unavailable."""

    def __init__(self, products=(), failing=()):
        super().__init__(products)
        self.failing = set(failing)

    async def get_product(self, product_id):
        if product_id in self.failing:
            raise Unavailable("catalog down")
        return await super().get_product(product_id)


@pytest.fixture
def fake_redis():
    return FakeStreamRedis()


@pytest.fixture
def scripted_store():
    return ScriptedStore()


@pytest.fixture
def sample_products():
    """Sample catalog: prices in minor units"""
    return [
        Product(
            id="P1",
            name="Linen Shirt",
            price=45000,
            stock=5,
            attributes={"fabricType": "linen", "color": "red", "size": "M"},
            images=["https://img.example/p1.jpg"],
        ),
        Product(id="P2", name="Cotton Tee", price=20000, discountPrice=15000, stock=4),
        Product(id="P3", name="Silk Scarf", price=90000, stock=0),
    ]


@pytest.fixture
def catalog(sample_products):
    return InMemoryProductCatalog(sample_products)


@pytest.fixture
def device_ids(tmp_path):
    return DeviceIdStore(tmp_path / "device.json")


@pytest.fixture
def identity(device_ids):
    return IdentityResolver(device_ids)


@pytest.fixture
def make_session(identity, catalog):
    """Build (not start) a session over the given store."""
    def _make(store, products=None):
        return ShopperSession(store, products or catalog, identity)
    return _make


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client"""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock
    return client


CART = DocumentKind.CART
FAVORITES = DocumentKind.FAVORITES
