"""Favorites package: model and engine."""
from .models import Favorites
from .service import FavoritesEngine

__all__ = ["Favorites", "FavoritesEngine"]
