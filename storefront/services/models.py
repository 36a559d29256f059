"""Product read projection consumed by the cart and favorites engines."""
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.services.money import to_minor_units

# Catalog records carry prices under either spelling
CATALOG_PRICE_FIELDS = ("price", "discountPrice", "discount_price")


class ProductAttributes(BaseModel):
    """Variant-relevant product attributes."""
    # length, width, careInstructions, ... are display-only
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    fabric_type: Optional[str] = Field(default=None, alias="fabricType")
    color: Optional[str] = None
    size: Optional[str] = None


class Product(BaseModel):
    """
    Product model (externally owned, read-only here).

    Prices are integer minor units. Catalog records store major units;
    build those with ``from_catalog``.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    price: int = Field(gt=0)
    discount_price: Optional[int] = Field(default=None, alias="discountPrice")
    stock: int = Field(default=0, ge=0)
    attributes: ProductAttributes = Field(default_factory=ProductAttributes)
    images: list[str] = []
    is_active: bool = Field(default=True, alias="isActive")

    @classmethod
    def from_catalog(cls, record: Mapping[str, Any]) -> "Product":
        """
        Build from a catalog record with major-unit prices.

        ``1250`` and ``1250.0`` both mean 1,250.00 and become 125000.
        """
        data = dict(record)
        for key in CATALOG_PRICE_FIELDS:
            if data.get(key) is not None:
                data[key] = to_minor_units(data[key])
        return cls(**data)

    @property
    def effective_price(self) -> int:
        """Discount price when it is a real discount, else list price."""
        if self.discount_price is not None and 0 <= self.discount_price < self.price:
            return self.discount_price
        return self.price

    @property
    def image_url(self) -> Optional[str]:
        return self.images[0] if self.images else None
