"""Cart models with integer minor-unit pricing."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple

from storefront.services.money import line_total

VARIANT_KEYS = ("fabricType", "color", "size")

Variant = Dict[str, str]
LineKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def normalize_variant(variant: Optional[Mapping[str, object]]) -> Variant:
    """Keep recognized variant keys with non-empty values; missing means unspecified."""
    if not variant:
        return {}
    normalized = {}
    for key in VARIANT_KEYS:
        value = variant.get(key)
        if value is None or value == "":
            continue
        normalized[key] = str(value)
    return normalized


def line_key(product_id: str, variant: Optional[Mapping[str, object]]) -> LineKey:
    """Line identity: product id plus the exact variant mapping."""
    return product_id, tuple(sorted(normalize_variant(variant).items()))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CartItem:
    """Single line in the cart."""
    product_id: str
    quantity: int
    unit_price_snapshot: int  # minor units, captured when the line was created
    variant: Variant = field(default_factory=dict)
    added_at: str = ""
    color_variant_id: Optional[str] = None

    def __post_init__(self):
        if not self.added_at:
            self.added_at = _now()
        self.variant = normalize_variant(self.variant)

    @property
    def key(self) -> LineKey:
        return line_key(self.product_id, self.variant)

    @property
    def total_price(self) -> int:
        """Total price for all units."""
        return line_total(self.unit_price_snapshot, self.quantity)

    def to_dict(self) -> dict:
        data = {
            "productId": self.product_id,
            "variant": dict(self.variant),
            "quantity": self.quantity,
            "unitPriceSnapshot": self.unit_price_snapshot,
            "addedAt": self.added_at,
        }
        if self.color_variant_id:
            data["colorVariantId"] = self.color_variant_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            product_id=data["productId"],
            quantity=int(data["quantity"]),
            unit_price_snapshot=int(data["unitPriceSnapshot"]),
            variant=data.get("variant") or {},
            added_at=data.get("addedAt", ""),
            color_variant_id=data.get("colorVariantId"),
        )


@dataclass
class Cart:
    """Shopping cart of one actor key."""
    id: str
    items: List[CartItem] = field(default_factory=list)
    updated_at: Optional[str] = None  # store-assigned, never written by the client

    @property
    def item_count(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> int:
        """Sum of price snapshot times quantity over all lines."""
        return sum(item.total_price for item in self.items)

    def find(self, product_id: str, variant: Optional[Mapping[str, object]]) -> Optional[CartItem]:
        key = line_key(product_id, variant)
        return next((item for item in self.items if item.key == key), None)

    def remove(self, product_id: str, variant: Optional[Mapping[str, object]]) -> bool:
        key = line_key(product_id, variant)
        before = len(self.items)
        self.items = [item for item in self.items if item.key != key]
        return len(self.items) != before

    def copy(self) -> "Cart":
        return Cart.from_dict(self.to_dict(), updated_at=self.updated_at)

    def to_dict(self) -> dict:
        """Convert to the persisted document shape."""
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict, updated_at: Optional[str] = None) -> "Cart":
        items = [CartItem.from_dict(item) for item in data.get("items", [])]
        return cls(id=data["id"], items=items, updated_at=updated_at)

    @classmethod
    def empty(cls, actor_key: str) -> "Cart":
        return cls(id=actor_key, items=[])
