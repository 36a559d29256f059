"""
Cart Router

Amounts are returned in minor units (``*_minor``) plus a formatted string.
"""
from fastapi import APIRouter, Depends

from storefront.logging import get_logger
from storefront.services.money import format_money
from storefront.sync.session import ShopperSession
from .deps import get_session, raise_for_result
from .models import AddToCartRequest, RemoveCartItemRequest, UpdateCartItemRequest

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


async def _format_cart_response(session: ShopperSession) -> dict:
    """Cart lines with product display data and derived totals."""
    hydrated = await session.cart.hydrated_items()
    items = []
    for item, product in hydrated:
        items.append({
            **item.to_dict(),
            "product_name": product.name if product else "Unknown",
            "image_url": product.image_url if product else None,
            "in_stock": bool(product and product.stock > 0),
            "total_minor": item.total_price,
        })

    subtotal = session.cart.subtotal()
    return {
        "actor": session.actor.value,
        "authenticated": session.actor.authenticated,
        "items": items,
        "item_count": session.cart.item_count(),
        "subtotal_minor": subtotal,
        "subtotal": format_money(subtotal),
        "updated_at": session.cart.cart.updated_at,
    }


@router.get("/cart")
async def get_cart(session: ShopperSession = Depends(get_session)):
    """Current cart of the active shopper."""
    return await _format_cart_response(session)


@router.post("/cart/items")
async def add_to_cart(request: AddToCartRequest, session: ShopperSession = Depends(get_session)):
    """Add item to cart (clamped to stock)."""
    result = raise_for_result(
        await session.cart.add_item(
            request.product_id,
            request.quantity,
            request.variant.as_mapping(),
            color_variant_id=request.color_variant_id,
        )
    )
    return {"result": result.to_dict(), "cart": await _format_cart_response(session)}


@router.patch("/cart/items")
async def update_cart_item(request: UpdateCartItemRequest, session: ShopperSession = Depends(get_session)):
    """Update line quantity (0 = remove)."""
    result = raise_for_result(
        await session.cart.set_quantity(request.product_id, request.variant.as_mapping(), request.quantity)
    )
    return {"result": result.to_dict(), "cart": await _format_cart_response(session)}


@router.delete("/cart/items")
async def remove_cart_item(request: RemoveCartItemRequest, session: ShopperSession = Depends(get_session)):
    result = raise_for_result(
        await session.cart.remove_item(request.product_id, request.variant.as_mapping())
    )
    return {"result": result.to_dict(), "cart": await _format_cart_response(session)}


@router.delete("/cart")
async def clear_cart(session: ShopperSession = Depends(get_session)):
    result = raise_for_result(await session.cart.clear())
    return {"result": result.to_dict(), "cart": await _format_cart_response(session)}
