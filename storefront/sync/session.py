"""
Shopper session: the object handed to the UI layer.

Owns the active ActorState, the cart and favorites engines, and a FIFO
operation queue drained by one worker task. Mutations and identity
transitions go through the same queue, so a login merge always completes
before any mutation submitted after it, and queued mutations then run in
submission order against the merged state.

A login merge that fails leaves the session on the anonymous state. Every
later operation retries the merge first and fails with the merge error
until it goes through.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from storefront.auth import ActorKey, IdentityResolver, IdentityTransition
from storefront.cart.models import Cart
from storefront.cart.service import CartEngine
from storefront.errors import StorefrontError, Unavailable
from storefront.favorites.models import Favorites
from storefront.favorites.service import FavoritesEngine
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.products import ProductCatalog
from storefront.store import DocumentKind, DocumentStore
from .merge import merge_carts, merge_favorites
from .results import MutationResult, Prepared
from .state import ActorState

logger = get_logger(__name__)

Operation = Callable[[ActorState], Awaitable[Prepared]]


@dataclass
class _Job:
    run: Callable[[], Awaitable[object]]
    future: asyncio.Future


class ShopperSession:
    """Cart and favorites of whoever is currently shopping in this process."""

    def __init__(
        self,
        store: DocumentStore,
        products: ProductCatalog,
        identity: IdentityResolver,
    ) -> None:
        self.store = store
        self.products = products
        self.identity = identity
        self.cart = CartEngine(self)
        self.favorites = FavoritesEngine(self)

        self._state: Optional[ActorState] = None
        # Last failed identity transition; cleared once the session catches up
        self.transition_error: Optional[StorefrontError] = None
        # User documents read by a failed merge, reused by its retries
        self._merge_inputs: Optional[Tuple[str, Cart, Favorites]] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._unsubscribe_identity: Optional[Callable[[], None]] = None

    @property
    def state(self) -> ActorState:
        if self._state is None:
            raise RuntimeError("ShopperSession.start() has not been awaited")
        return self._state

    @property
    def actor(self) -> ActorKey:
        return self.state.actor

    # ---- lifecycle -------------------------------------------------------

    async def start(self) -> None:
        if self._worker is not None:
            return
        state = ActorState(self.store, self.identity.current_actor())
        await state.start()
        self._state = state
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._drain_queue())
        self._unsubscribe_identity = self.identity.on_identity_change(self._on_identity_change)
        logger.info(f"Session started for {sanitize_id_for_logging(state.key)}")

    async def close(self) -> None:
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None
        if self._worker is not None:
            await self._queue.join()
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None
        if self._state is not None:
            await self._state.close()
        await self.store.close()

    async def wait_idle(self) -> None:
        """Wait until every queued operation (including merges) has been prepared."""
        if self._queue is not None:
            await self._queue.join()

    # ---- operation queue -------------------------------------------------

    async def run(self, operation: Operation) -> MutationResult:
        """
        Queue ``operation`` and wait for its outcome.

        Expected failures (OutOfStock, NotFound, Unavailable) come back as
        failed results; anything else propagates.
        """
        async def job() -> Prepared:
            await self._catch_up_identity()
            return await operation(self.state)

        try:
            prepared = await self._enqueue(job)
        except StorefrontError as e:
            return MutationResult.failed(e)

        if prepared.write is not None:
            try:
                await prepared.write
            except Unavailable as e:
                return MutationResult.failed(e)
        return prepared.result

    async def sync_identity(self) -> MutationResult:
        """Bring the session onto the resolver's current actor and report the outcome."""
        async def operation(state: ActorState) -> Prepared:
            return Prepared(
                MutationResult.ok(actor=state.key, authenticated=state.actor.authenticated)
            )

        return await self.run(operation)

    def _enqueue(self, run: Callable[[], Awaitable[object]]) -> asyncio.Future:
        if self._queue is None:
            raise RuntimeError("ShopperSession.start() has not been awaited")
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Job(run=run, future=future))
        return future

    async def _drain_queue(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                result = await job.run()
            except asyncio.CancelledError:
                job.future.cancel()
                raise
            except Exception as e:
                if not job.future.done():
                    job.future.set_exception(e)
            else:
                if not job.future.done():
                    job.future.set_result(result)
            finally:
                self._queue.task_done()

    # ---- identity transitions -------------------------------------------

    def _on_identity_change(self, transition: IdentityTransition) -> None:
        future = self._enqueue(self._catch_up_identity)
        future.add_done_callback(_log_transition_failure)

    async def _catch_up_identity(self) -> None:
        """
        Switch to the resolver's actor if the session is not on it yet.

        The transition is taken from the session's own actor, so a login
        whose merge failed earlier is retried here. The previous state is
        only closed once the new one is in place.
        """
        previous = self.state
        target = self.identity.current_actor()
        if previous.actor == target:
            return

        transition = IdentityTransition(previous=previous.actor, current=target)
        await previous.drain()

        current = ActorState(self.store, target)
        if transition.is_login:
            try:
                cart_seed, favorites_seed = await self._merge_into(previous, target)
            except StorefrontError as e:
                self.transition_error = e
                logger.error(
                    f"Login merge into {sanitize_id_for_logging(target.value)} failed: "
                    f"{e.reason}; staying on {sanitize_id_for_logging(previous.key)}"
                )
                raise
            await current.start(cart_seed=cart_seed, favorites_seed=favorites_seed)
        else:
            await current.start()

        self._state = current
        self.transition_error = None
        self._merge_inputs = None
        await previous.close()
        logger.info(
            f"Session switched {sanitize_id_for_logging(previous.key)} -> "
            f"{sanitize_id_for_logging(current.key)}"
        )

    async def _merge_into(self, anonymous: ActorState, user: ActorKey):
        """Merge the anonymous documents into the user's and write them under the user key."""
        anonymous_cart = await self._read_cart(anonymous.key)
        if anonymous_cart is None:
            # Nothing persisted (mock store or never written): use what the shopper saw
            anonymous_cart = anonymous.cart.state.copy()
        anonymous_favorites = await self._read_favorites(anonymous.key)
        if anonymous_favorites is None:
            anonymous_favorites = anonymous.favorites.state.copy()

        if self._merge_inputs is not None and self._merge_inputs[0] == user.value:
            # A retry: the user documents may already hold part of this merge
            _, user_cart, user_favorites = self._merge_inputs
        else:
            user_cart = await self._read_cart(user.value) or Cart.empty(user.value)
            user_favorites = await self._read_favorites(user.value) or Favorites.empty(user.value)
            self._merge_inputs = (user.value, user_cart, user_favorites)

        stock = await self._stock_levels(item.product_id for item in anonymous_cart.items)
        merged_cart = merge_carts(anonymous_cart, user_cart, stock)
        merged_favorites = merge_favorites(anonymous_favorites, user_favorites)

        cart_at = await self.store.put(DocumentKind.CART, user.value, merged_cart.to_dict())
        favorites_at = await self.store.put(DocumentKind.FAVORITES, user.value, merged_favorites.to_dict())
        logger.info(
            f"Merged {len(anonymous_cart.items)} lines and {len(anonymous_favorites)} favorites "
            f"into {sanitize_id_for_logging(user.value)}"
        )
        return (merged_cart, cart_at), (merged_favorites, favorites_at)

    async def _read_cart(self, key: str) -> Optional[Cart]:
        snapshot = await self.store.get(DocumentKind.CART, key)
        if snapshot is None or snapshot.document is None:
            return None
        return Cart.from_dict(snapshot.document, str(snapshot.updated_at))

    async def _read_favorites(self, key: str) -> Optional[Favorites]:
        snapshot = await self.store.get(DocumentKind.FAVORITES, key)
        if snapshot is None or snapshot.document is None:
            return None
        return Favorites.from_dict(snapshot.document, str(snapshot.updated_at))

    async def _stock_levels(self, product_ids: Iterable[str]) -> Dict[str, Optional[int]]:
        ids = sorted(set(product_ids))
        products = await asyncio.gather(*[self.products.get_product(pid) for pid in ids])
        return {pid: (product.stock if product else None) for pid, product in zip(ids, products)}


def _log_transition_failure(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    # Merge failures are logged where they happen and kept on the session
    if error is not None and not isinstance(error, StorefrontError):
        logger.error("Identity transition failed", exc_info=error)
