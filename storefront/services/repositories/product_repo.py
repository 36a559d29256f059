"""Product Repository - read-only product lookups from Supabase."""
from typing import Optional

from pydantic import ValidationError

from storefront.errors import Unavailable
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from .base import BaseRepository

logger = get_logger(__name__)

PRODUCT_COLUMNS = "id,name,price,discount_price,stock,attributes,images,is_active"


class SupabaseProductRepository(BaseRepository):
    """Product catalog reads against the ``products`` table.

    Prices are stored in major units (numeric column).
    """

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID; None for unknown ids or unusable rows."""
        try:
            result = (
                await self.client.table("products")
                .select(PRODUCT_COLUMNS)
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Failed to get product: %s", type(e).__name__, exc_info=True)
            raise Unavailable(f"Product catalog unavailable: {e}") from e

        if not result.data:
            return None

        row = result.data[0]
        try:
            return Product.from_catalog(row)
        except ValidationError:
            logger.warning(f"Invalid product row {sanitize_id_for_logging(product_id)}")
            return None
