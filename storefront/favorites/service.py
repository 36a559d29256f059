"""Favorites engine.

Handles the favorited-product set of the current actor. ``toggle`` flips
membership; ``add`` and ``remove`` are idempotent and skip the write when
there is nothing to change.
"""

import asyncio
from typing import TYPE_CHECKING, List

from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from storefront.sync.results import MutationResult, Prepared
from .models import Favorites

if TYPE_CHECKING:
    from storefront.sync.session import ShopperSession
    from storefront.sync.state import ActorState

logger = get_logger(__name__)


class FavoritesEngine:
    """Favorites operations for the session's current actor."""

    def __init__(self, session: "ShopperSession") -> None:
        self._session = session

    @property
    def favorites(self) -> Favorites:
        return self._session.state.favorites.state

    def is_favorite(self, product_id: str) -> bool:
        return product_id in self.favorites

    def ids(self) -> List[str]:
        return sorted(self.favorites.product_ids)

    async def list(self) -> List[Product]:
        """Hydrate favorited ids into products; failed or unknown lookups are left out.

        Returns:
            Products in id order
        """
        ids = self.ids()
        results = await asyncio.gather(
            *[self._session.products.get_product(pid) for pid in ids],
            return_exceptions=True,
        )

        products = []
        for product_id, result in zip(ids, results):
            if isinstance(result, Product):
                products.append(result)
            elif isinstance(result, Exception):
                logger.warning(
                    f"Favorite {sanitize_id_for_logging(product_id)} lookup failed: "
                    f"{type(result).__name__}"
                )
        return products

    async def toggle(self, product_id: str) -> MutationResult:
        """Flip membership of ``product_id``.

        Returns:
            Result with ``is_favorite`` set to the new membership
        """
        if not product_id:
            raise ValueError("product_id must be a non-empty string")

        async def operation(state: "ActorState") -> Prepared:
            wanted = product_id not in state.favorites.state
            return self._set_membership(state, product_id, wanted)

        return await self._session.run(operation)

    async def add(self, product_id: str) -> MutationResult:
        if not product_id:
            raise ValueError("product_id must be a non-empty string")

        async def operation(state: "ActorState") -> Prepared:
            if product_id in state.favorites.state:
                return Prepared(MutationResult.ok(is_favorite=True))
            return self._set_membership(state, product_id, True)

        return await self._session.run(operation)

    async def remove(self, product_id: str) -> MutationResult:
        async def operation(state: "ActorState") -> Prepared:
            if product_id not in state.favorites.state:
                return Prepared(MutationResult.ok(is_favorite=False))
            return self._set_membership(state, product_id, False)

        return await self._session.run(operation)

    async def refresh(self) -> MutationResult:
        async def operation(state: "ActorState") -> Prepared:
            await state.favorites.refresh()
            return Prepared(MutationResult.ok())

        return await self._session.run(operation)

    @staticmethod
    def _set_membership(state: "ActorState", product_id: str, wanted: bool) -> Prepared:
        # Replays set the target membership instead of flipping again
        def mutate(favorites: Favorites) -> None:
            if wanted:
                favorites.product_ids.add(product_id)
            else:
                favorites.product_ids.discard(product_id)

        write = state.favorites.submit(mutate)
        return Prepared(MutationResult.ok(is_favorite=wanted), write)
