"""Product collaborator used by the cart and favorites engines.

Every catalog answers ``get_product(id)`` with a Product or None; transport
failures raise ``Unavailable``.
"""

from typing import Iterable, Optional, Protocol

from pydantic import ValidationError

from storefront.db import get_supabase, is_supabase_configured
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from storefront.services.repositories.product_repo import SupabaseProductRepository
from storefront.store import DocumentKind, DocumentStore

logger = get_logger(__name__)


class ProductCatalog(Protocol):
    async def get_product(self, product_id: str) -> Optional[Product]:
        ...


class InMemoryProductCatalog:
    """Catalog over a fixed set of products (fixtures, local demos)."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products = {p.id: p for p in products}

    def upsert(self, product: Product) -> None:
        self._products[product.id] = product

    async def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)


class StoreProductCatalog:
    """Catalog reading ``product`` documents from the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_product(self, product_id: str) -> Optional[Product]:
        snapshot = await self.store.get(DocumentKind.PRODUCT, product_id)
        if snapshot is None or snapshot.document is None:
            return None
        try:
            return Product.from_catalog({"id": product_id, **snapshot.document})
        except ValidationError:
            logger.warning(f"Invalid product document {sanitize_id_for_logging(product_id)}")
            return None


async def create_product_catalog(store: DocumentStore) -> ProductCatalog:
    """Supabase when configured, otherwise product documents from the store."""
    if is_supabase_configured():
        client = await get_supabase()
        logger.info("Product catalog: Supabase")
        return SupabaseProductRepository(client)
    logger.info("Product catalog: document store")
    return StoreProductCatalog(store)
