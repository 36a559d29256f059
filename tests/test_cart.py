"""
Tests for the cart models and CartEngine
"""

import asyncio

import pytest

from conftest import CART
from storefront.cart import Cart, CartItem, line_key, normalize_variant
from storefront.errors import (
    NOTICE_CLAMPED_TO_STOCK,
    REASON_NOT_FOUND,
    REASON_OUT_OF_STOCK,
    REASON_UNAVAILABLE,
)
from storefront.store import MockDocumentStore


class TestCartItem:
    """Tests for CartItem dataclass."""

    def test_create_cart_item(self):
        """Test creating a cart item."""
        item = CartItem(product_id="P1", quantity=2, unit_price_snapshot=45000, variant={"color": "red"})

        assert item.product_id == "P1"
        assert item.quantity == 2
        assert item.added_at != ""

    def test_total_price(self):
        item = CartItem(product_id="P1", quantity=3, unit_price_snapshot=1250)
        assert item.total_price == 3750

    def test_variant_drops_unknown_and_empty_keys(self):
        item = CartItem(
            product_id="P1",
            quantity=1,
            unit_price_snapshot=100,
            variant={"color": "red", "size": "", "pattern": "striped", "fabricType": None},
        )
        assert item.variant == {"color": "red"}

    def test_to_dict(self):
        item = CartItem(product_id="P1", quantity=1, unit_price_snapshot=100, variant={"size": "M"})

        data = item.to_dict()
        assert data["productId"] == "P1"
        assert data["variant"] == {"size": "M"}
        assert data["unitPriceSnapshot"] == 100
        assert "colorVariantId" not in data

    def test_from_dict(self):
        data = {
            "productId": "P1",
            "variant": {"color": "blue"},
            "quantity": 2,
            "unitPriceSnapshot": 999,
            "addedAt": "2025-01-01T00:00:00+00:00",
            "colorVariantId": "cv-2",
        }

        item = CartItem.from_dict(data)
        assert item.product_id == "P1"
        assert item.quantity == 2
        assert item.added_at == "2025-01-01T00:00:00+00:00"
        assert item.color_variant_id == "cv-2"


class TestLineIdentity:
    """Line identity is product id plus the exact variant mapping."""

    def test_key_ignores_variant_order(self):
        assert line_key("P1", {"color": "red", "size": "M"}) == line_key("P1", {"size": "M", "color": "red"})

    def test_one_differing_field_is_a_different_line(self):
        assert line_key("P1", {"color": "red", "size": "M"}) != line_key("P1", {"color": "red", "size": "L"})

    def test_missing_key_is_not_a_wildcard(self):
        assert line_key("P1", {"color": "red"}) != line_key("P1", {"color": "red", "size": "M"})

    def test_normalize_none(self):
        assert normalize_variant(None) == {}


class TestCart:
    """Tests for Cart dataclass."""

    def test_create_empty_cart(self):
        cart = Cart.empty("anon-1")

        assert cart.id == "anon-1"
        assert cart.item_count == 0
        assert cart.subtotal == 0

    def test_cart_with_items(self):
        cart = Cart(
            id="anon-1",
            items=[
                CartItem(product_id="P1", quantity=2, unit_price_snapshot=100),
                CartItem(product_id="P2", quantity=1, unit_price_snapshot=250, variant={"size": "S"}),
            ],
        )

        assert cart.item_count == 3
        assert cart.subtotal == 450

    def test_find_and_remove(self):
        cart = Cart(id="a", items=[CartItem(product_id="P1", quantity=1, unit_price_snapshot=1, variant={"color": "red"})])

        assert cart.find("P1", {"color": "red"}) is not None
        assert cart.find("P1", {}) is None
        assert cart.remove("P1", {"color": "blue"}) is False
        assert cart.remove("P1", {"color": "red"}) is True
        assert cart.items == []

    def test_serialization_omits_updated_at(self):
        cart = Cart(id="u1", items=[CartItem(product_id="P1", quantity=1, unit_price_snapshot=1)], updated_at="5-0")

        data = cart.to_dict()
        assert "updatedAt" not in data

        restored = Cart.from_dict(data, updated_at="6-0")
        assert restored.id == "u1"
        assert restored.updated_at == "6-0"
        assert restored.items[0].product_id == "P1"

    def test_copy_is_independent(self):
        cart = Cart(id="a", items=[CartItem(product_id="P1", quantity=1, unit_price_snapshot=1)])
        clone = cart.copy()
        clone.items[0].quantity = 5

        assert cart.items[0].quantity == 1


class TestCartEngine:
    """CartEngine operations through a started session."""

    @pytest.mark.asyncio
    async def test_add_new_line_snapshots_effective_price(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        result = await session.cart.add_item("P2", 1, {"size": "L"})

        assert result.success
        line = session.cart.items()[0]
        assert line.unit_price_snapshot == 15000  # discount price
        assert line.variant == {"size": "L"}
        await session.close()

    @pytest.mark.asyncio
    async def test_same_variant_merges_by_summing(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        await session.cart.add_item("P1", 1, {"color": "red"})
        await session.cart.add_item("P1", 2, {"color": "red"})

        assert len(session.cart.items()) == 1
        assert session.cart.items()[0].quantity == 3
        await session.close()

    @pytest.mark.asyncio
    async def test_different_variant_is_a_new_line(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        await session.cart.add_item("P1", 1, {"color": "red", "size": "M"})
        await session.cart.add_item("P1", 1, {"color": "red", "size": "L"})

        assert len(session.cart.items()) == 2
        await session.close()

    @pytest.mark.asyncio
    async def test_add_clamps_to_stock_with_notice(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        result = await session.cart.add_item("P2", 10, {})

        assert result.success
        assert result.notice == NOTICE_CLAMPED_TO_STOCK
        assert result.data["quantity"] == 4
        assert session.cart.items()[0].quantity == 4
        await session.close()

    @pytest.mark.asyncio
    async def test_repeated_adds_never_exceed_stock(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        requested = [2, 1, 3, 1]
        for quantity in requested:
            await session.cart.add_item("P1", quantity, {"color": "red"})

        assert session.cart.items()[0].quantity == min(5, sum(requested))
        await session.close()

    @pytest.mark.asyncio
    async def test_add_without_room_skips_write(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P2", 4)
        writes = len(scripted_store.puts)

        result = await session.cart.add_item("P2", 1)

        assert result.success
        assert result.notice == NOTICE_CLAMPED_TO_STOCK
        assert len(scripted_store.puts) == writes
        await session.close()

    @pytest.mark.asyncio
    async def test_add_out_of_stock(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        result = await session.cart.add_item("P3", 1)

        assert not result.success
        assert result.reason == REASON_OUT_OF_STOCK
        assert session.cart.items() == []
        assert scripted_store.puts == []
        await session.close()

    @pytest.mark.asyncio
    async def test_add_unknown_product(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        result = await session.cart.add_item("missing", 1)

        assert not result.success
        assert result.reason == REASON_NOT_FOUND
        await session.close()

    @pytest.mark.asyncio
    async def test_add_rejects_invalid_quantity(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        with pytest.raises(ValueError):
            await session.cart.add_item("P1", 0)
        await session.close()

    @pytest.mark.asyncio
    async def test_price_snapshot_is_kept_on_later_adds(self, make_session, scripted_store, catalog, sample_products):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1)

        catalog.upsert(sample_products[0].model_copy(update={"price": 99900}))
        await session.cart.add_item("P1", 1)

        assert session.cart.items()[0].unit_price_snapshot == 45000
        await session.close()

    @pytest.mark.asyncio
    async def test_color_variant_id_updates_without_changing_identity(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        await session.cart.add_item("P1", 1, {"color": "red"}, color_variant_id="cv-1")
        await session.cart.add_item("P1", 1, {"color": "red"}, color_variant_id="cv-2")

        items = session.cart.items()
        assert len(items) == 1
        assert items[0].color_variant_id == "cv-2"
        await session.close()

    @pytest.mark.asyncio
    async def test_set_quantity_missing_line(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1, {"color": "red"})
        before = [item.to_dict() for item in session.cart.items()]

        result = await session.cart.set_quantity("P1", {"color": "blue"}, 2)

        assert not result.success
        assert result.reason == REASON_NOT_FOUND
        assert [item.to_dict() for item in session.cart.items()] == before
        await session.close()

    @pytest.mark.asyncio
    async def test_set_quantity_clamps_and_removes(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1, {"color": "red"})

        result = await session.cart.set_quantity("P1", {"color": "red"}, 50)
        assert result.notice == NOTICE_CLAMPED_TO_STOCK
        assert session.cart.items()[0].quantity == 5

        await session.cart.set_quantity("P1", {"color": "red"}, 0)
        assert session.cart.items() == []
        await session.close()

    @pytest.mark.asyncio
    async def test_failed_add_write_rolls_back(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        scripted_store.fail_puts = 1

        result = await session.cart.add_item("P1", 2, {"color": "red"})

        assert not result.success
        assert result.reason == REASON_UNAVAILABLE
        assert session.cart.items() == []
        assert session.state.cart.pending_count == 0
        await session.close()

    @pytest.mark.asyncio
    async def test_failed_set_quantity_write_restores_line(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1, {"color": "red"})
        scripted_store.fail_puts = 1

        result = await session.cart.set_quantity("P1", {"color": "red"}, 4)

        assert not result.success
        assert result.reason == REASON_UNAVAILABLE
        assert session.cart.items()[0].quantity == 1
        assert session.cart.subtotal() == 45000
        await session.close()

    @pytest.mark.asyncio
    async def test_remove_item_is_idempotent(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1)

        first = await session.cart.remove_item("P1")
        writes = len(scripted_store.puts)
        second = await session.cart.remove_item("P1")

        assert first.success and second.success
        assert session.cart.items() == []
        assert len(scripted_store.puts) == writes
        await session.close()

    @pytest.mark.asyncio
    async def test_clear_persists_an_empty_cart(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1)

        await session.cart.clear()

        snapshot = await scripted_store.get(CART, session.actor.value)
        assert snapshot is not None
        assert snapshot.document["items"] == []
        await session.close()

    @pytest.mark.asyncio
    async def test_subtotal_matches_lines_after_mutations(self, make_session, scripted_store):
        session = make_session(scripted_store)
        await session.start()

        await session.cart.add_item("P1", 2, {"color": "red"})
        await session.cart.add_item("P2", 3)
        await session.cart.set_quantity("P2", {}, 1)
        await session.cart.add_item("P1", 1, {"color": "navy"})

        expected = sum(item.unit_price_snapshot * item.quantity for item in session.cart.items())
        assert session.cart.subtotal() == expected == 2 * 45000 + 15000 + 45000
        assert session.cart.item_count() == 4
        await session.close()

    @pytest.mark.asyncio
    async def test_hydrated_items(self, make_session, scripted_store, catalog):
        session = make_session(scripted_store)
        await session.start()
        await session.cart.add_item("P1", 1)

        hydrated = await session.cart.hydrated_items()

        assert len(hydrated) == 1
        item, product = hydrated[0]
        assert product.name == "Linen Shirt"
        await session.close()


class TestMockStoreCart:
    """Cart behaviour with no backend configured."""

    @pytest.mark.asyncio
    async def test_add_is_local_only(self, make_session):
        store = MockDocumentStore()
        session = make_session(store)
        await session.start()

        assert await store.get(CART, session.actor.value) is None

        result = await session.cart.add_item("P1", 2)

        assert result.success
        assert session.cart.item_count() == 2
        assert await store.get(CART, session.actor.value) is None
        await session.close()

    @pytest.mark.asyncio
    async def test_empty_snapshot_does_not_wipe_local_state(self, make_session):
        session = make_session(MockDocumentStore())
        await session.start()
        await session.cart.add_item("P1", 1)

        await asyncio.sleep(0)  # let the mock subscription fire

        assert session.cart.item_count() == 1
        assert session.state.cart.pending_count == 0
        await session.close()
