"""
Login merge: fold the anonymous cart and favorites into the signed-in user's.

Pure functions of their inputs, so re-running a merge on the same
anonymous/authenticated documents and stock figures gives the same result.
"""

from datetime import datetime
from typing import Mapping, Optional

from storefront.cart.models import Cart, CartItem
from storefront.favorites.models import Favorites
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


def _captured_later(candidate: str, current: str) -> bool:
    """True if ``candidate`` is strictly more recent; unparseable times never win."""
    try:
        return datetime.fromisoformat(candidate) > datetime.fromisoformat(current)
    except (TypeError, ValueError):
        return False


def merge_carts(
    anonymous: Cart,
    authenticated: Cart,
    stock: Mapping[str, Optional[int]],
) -> Cart:
    """
    Merge ``anonymous`` into ``authenticated``.

    Args:
        anonymous: Cart of the anonymous actor (left unchanged)
        authenticated: Cart of the signed-in actor (left unchanged)
        stock: Current stock per product id; None for products gone from the catalog

    Returns:
        New cart keyed by the authenticated actor
    """
    merged = authenticated.copy()

    for line in anonymous.items:
        available = stock.get(line.product_id)
        if not available:
            logger.info(
                f"Merge skipped {sanitize_id_for_logging(line.product_id)}: "
                f"{'no stock' if available == 0 else 'product missing'}"
            )
            continue

        existing = merged.find(line.product_id, line.variant)
        if existing is None:
            merged.items.append(
                CartItem(
                    product_id=line.product_id,
                    quantity=min(available, line.quantity),
                    unit_price_snapshot=line.unit_price_snapshot,
                    variant=dict(line.variant),
                    added_at=line.added_at,
                    color_variant_id=line.color_variant_id,
                )
            )
            continue

        existing.quantity = min(available, existing.quantity + line.quantity)
        # Authenticated snapshot wins ties
        if _captured_later(line.added_at, existing.added_at):
            existing.unit_price_snapshot = line.unit_price_snapshot
            existing.added_at = line.added_at
        if not existing.color_variant_id:
            existing.color_variant_id = line.color_variant_id

    return merged


def merge_favorites(anonymous: Favorites, authenticated: Favorites) -> Favorites:
    """Set union, keyed by the authenticated actor."""
    return Favorites(id=authenticated.id, product_ids=anonymous.product_ids | authenticated.product_ids)
