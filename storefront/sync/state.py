"""Per-actor state container: the cart and favorites coordinators of one actor key."""
from typing import Optional, Tuple

from storefront.auth import ActorKey
from storefront.cart.models import Cart
from storefront.errors import Unavailable
from storefront.favorites.models import Favorites
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.store import DocumentKind, DocumentStore, StreamId
from .coordinator import OptimisticCoordinator

logger = get_logger(__name__)


class ActorState:
    """
    Owns the synced documents of one actor.

    Created when a session starts or switches actor, closed on the next
    identity transition.
    """

    def __init__(self, store: DocumentStore, actor: ActorKey) -> None:
        self.actor = actor
        self.cart: OptimisticCoordinator[Cart] = OptimisticCoordinator(
            store,
            DocumentKind.CART,
            actor.value,
            decode=Cart.from_dict,
            empty=lambda: Cart.empty(actor.value),
        )
        self.favorites: OptimisticCoordinator[Favorites] = OptimisticCoordinator(
            store,
            DocumentKind.FAVORITES,
            actor.value,
            decode=Favorites.from_dict,
            empty=lambda: Favorites.empty(actor.value),
        )

    @property
    def key(self) -> str:
        return self.actor.value

    async def start(
        self,
        cart_seed: Optional[Tuple[Cart, Optional[StreamId]]] = None,
        favorites_seed: Optional[Tuple[Favorites, Optional[StreamId]]] = None,
    ) -> None:
        """Load (or seed) both documents, then subscribe to their snapshots."""
        for coordinator, seed in ((self.cart, cart_seed), (self.favorites, favorites_seed)):
            if seed is not None:
                coordinator.seed(*seed)
                continue
            try:
                await coordinator.load()
            except Unavailable:
                # The subscription delivers the document once the store answers
                logger.warning(
                    f"Initial {coordinator.kind.value} load failed for "
                    f"{sanitize_id_for_logging(self.key)}"
                )
        self.cart.start()
        self.favorites.start()

    async def drain(self) -> None:
        """Wait for every scheduled cart and favorites write."""
        await self.cart.drain()
        await self.favorites.drain()

    async def close(self) -> None:
        """Let scheduled writes finish, then stop listening."""
        await self.drain()
        self.cart.close()
        self.favorites.close()
