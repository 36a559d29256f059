"""Cart engine: line-item rules on top of the optimistic coordinator."""
import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Mapping, Optional, Tuple

from storefront.errors import (
    ERROR_PRODUCT_NOT_FOUND,
    NOTICE_CLAMPED_TO_STOCK,
    NotFound,
    OutOfStock,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from storefront.sync.results import MutationResult, Prepared
from .models import Cart, CartItem, normalize_variant

if TYPE_CHECKING:
    from storefront.sync.session import ShopperSession
    from storefront.sync.state import ActorState

logger = get_logger(__name__)


class CartEngine:
    """
    Cart operations for the session's current actor.

    Rules:
    - one line per (product id, variant); adds to the same line sum up
    - quantities are clamped to product stock, never rejected for exceeding it
    - a line's price snapshot is taken when the line is created
    """

    def __init__(self, session: "ShopperSession") -> None:
        self._session = session

    @property
    def cart(self) -> Cart:
        """Current local view of the cart."""
        return self._session.state.cart.state

    # ---- reads -----------------------------------------------------------

    def items(self) -> List[CartItem]:
        return list(self.cart.items)

    def subtotal(self) -> int:
        return self.cart.subtotal

    def item_count(self) -> int:
        return self.cart.item_count

    async def hydrated_items(self) -> List[Tuple[CartItem, Optional[Product]]]:
        """Cart lines paired with their current product record (None if lookup failed)."""
        items = self.items()
        products = await asyncio.gather(
            *[self._session.products.get_product(item.product_id) for item in items],
            return_exceptions=True,
        )
        return [
            (item, product if isinstance(product, Product) else None)
            for item, product in zip(items, products)
        ]

    async def refresh(self) -> MutationResult:
        """Re-read the cart document from the store."""
        async def operation(state: "ActorState") -> Prepared:
            await state.cart.refresh()
            return Prepared(MutationResult.ok())

        return await self._session.run(operation)

    # ---- mutations -------------------------------------------------------

    async def add_item(
        self,
        product_id: str,
        quantity: int,
        variant: Optional[Mapping[str, object]] = None,
        color_variant_id: Optional[str] = None,
    ) -> MutationResult:
        """Add ``quantity`` units of a product variant, clamped to stock."""
        if not product_id or not isinstance(product_id, str):
            raise ValueError("product_id must be a non-empty string")
        if not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")
        variant = normalize_variant(variant)

        async def operation(state: "ActorState") -> Prepared:
            product = await self._session.products.get_product(product_id)
            if product is None:
                raise NotFound(ERROR_PRODUCT_NOT_FOUND)
            if product.stock <= 0:
                raise OutOfStock()

            stock = product.stock
            price = product.effective_price
            added_at = datetime.now(timezone.utc).isoformat()

            existing = state.cart.state.find(product_id, variant)
            current = existing.quantity if existing else 0
            target = min(stock, current + quantity)
            notice = NOTICE_CLAMPED_TO_STOCK if target < current + quantity else None
            if notice:
                logger.info(
                    f"Clamped {sanitize_id_for_logging(product_id)} to stock {stock} "
                    f"(requested {current + quantity})"
                )

            if existing is not None and target == current and not color_variant_id:
                # No room left: nothing to write
                return Prepared(MutationResult.ok(notice=notice, quantity=current))

            def mutate(cart: Cart) -> None:
                line = cart.find(product_id, variant)
                if line is None:
                    cart.items.append(
                        CartItem(
                            product_id=product_id,
                            quantity=min(stock, quantity),
                            unit_price_snapshot=price,
                            variant=dict(variant),
                            added_at=added_at,
                            color_variant_id=color_variant_id,
                        )
                    )
                    return
                line.quantity = min(stock, line.quantity + quantity)
                if color_variant_id:
                    line.color_variant_id = color_variant_id

            write = state.cart.submit(mutate)
            return Prepared(MutationResult.ok(notice=notice, quantity=target), write)

        return await self._session.run(operation)

    async def set_quantity(
        self,
        product_id: str,
        variant: Optional[Mapping[str, object]],
        quantity: int,
    ) -> MutationResult:
        """Set a line's quantity; 0 removes the line, above-stock values are clamped."""
        if not isinstance(quantity, int) or quantity < 0:
            raise ValueError("quantity must be a non-negative integer")
        variant = normalize_variant(variant)

        async def operation(state: "ActorState") -> Prepared:
            if state.cart.state.find(product_id, variant) is None:
                raise NotFound()

            notice = None
            target = quantity
            if quantity > 0:
                product = await self._session.products.get_product(product_id)
                if product is None:
                    raise NotFound(ERROR_PRODUCT_NOT_FOUND)
                if quantity > product.stock:
                    target = product.stock
                    notice = NOTICE_CLAMPED_TO_STOCK

            def mutate(cart: Cart) -> None:
                line = cart.find(product_id, variant)
                if line is None:
                    raise NotFound()
                if target == 0:
                    cart.remove(product_id, variant)
                else:
                    line.quantity = target

            write = state.cart.submit(mutate)
            return Prepared(MutationResult.ok(notice=notice, quantity=target), write)

        return await self._session.run(operation)

    async def remove_item(
        self,
        product_id: str,
        variant: Optional[Mapping[str, object]] = None,
    ) -> MutationResult:
        """Remove a line; removing an absent line succeeds without a write."""
        variant = normalize_variant(variant)

        async def operation(state: "ActorState") -> Prepared:
            if state.cart.state.find(product_id, variant) is None:
                return Prepared(MutationResult.ok())

            def mutate(cart: Cart) -> None:
                cart.remove(product_id, variant)

            return Prepared(MutationResult.ok(), state.cart.submit(mutate))

        return await self._session.run(operation)

    async def clear(self) -> MutationResult:
        """Empty the cart (the empty document is persisted)."""
        async def operation(state: "ActorState") -> Prepared:
            def mutate(cart: Cart) -> None:
                cart.items = []

            return Prepared(MutationResult.ok(), state.cart.submit(mutate))

        return await self._session.run(operation)
