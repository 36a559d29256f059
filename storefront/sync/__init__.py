"""Synchronization of local cart/favorites state with the document store.

Import ShopperSession from ``storefront.sync.session``; the engines import
this package, so it only re-exports leaf modules.
"""
from .results import MutationResult, Prepared

__all__ = ["MutationResult", "Prepared"]
