"""Cart package: models and engine."""
from .models import Cart, CartItem, line_key, normalize_variant
from .service import CartEngine

__all__ = [
    "Cart",
    "CartEngine",
    "CartItem",
    "line_key",
    "normalize_variant",
]
