"""Favorites Router"""
from fastapi import APIRouter, Depends

from storefront.sync.session import ShopperSession
from .deps import get_session, raise_for_result

router = APIRouter(tags=["favorites"])


@router.get("/favorites")
async def get_favorites(session: ShopperSession = Depends(get_session)):
    """Favorited ids plus hydrated products (unknown products are left out)."""
    products = await session.favorites.list()
    return {
        "product_ids": session.favorites.ids(),
        "products": [product.model_dump(by_alias=True) for product in products],
    }


@router.post("/favorites/{product_id}/toggle")
async def toggle_favorite(product_id: str, session: ShopperSession = Depends(get_session)):
    result = raise_for_result(await session.favorites.toggle(product_id))
    return result.to_dict()
