# Services Module
from .models import Product, ProductAttributes
from .products import InMemoryProductCatalog, ProductCatalog, StoreProductCatalog, create_product_catalog

__all__ = [
    "InMemoryProductCatalog",
    "Product",
    "ProductAttributes",
    "ProductCatalog",
    "StoreProductCatalog",
    "create_product_catalog",
]
