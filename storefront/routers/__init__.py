"""API routers for the storefront UI."""
from fastapi import APIRouter

from .auth import router as auth_router
from .cart import router as cart_router
from .favorites import router as favorites_router

router = APIRouter()
router.include_router(cart_router)
router.include_router(favorites_router)
router.include_router(auth_router)

__all__ = ["router"]
