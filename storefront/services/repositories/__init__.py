"""
Repository Pattern for Supabase reads

- SupabaseProductRepository: product lookups for cart validation and hydration
"""
from .product_repo import SupabaseProductRepository

__all__ = ["SupabaseProductRepository"]
