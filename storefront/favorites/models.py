"""Favorites document model."""
from dataclasses import dataclass, field
from typing import Optional, Set


@dataclass
class Favorites:
    """Favorited product ids of one actor key."""
    id: str
    product_ids: Set[str] = field(default_factory=set)
    updated_at: Optional[str] = None

    def __contains__(self, product_id: str) -> bool:
        return product_id in self.product_ids

    def __len__(self) -> int:
        return len(self.product_ids)

    def copy(self) -> "Favorites":
        return Favorites(id=self.id, product_ids=set(self.product_ids), updated_at=self.updated_at)

    def to_dict(self) -> dict:
        # Sorted so equal sets produce identical documents
        return {"id": self.id, "productIds": sorted(self.product_ids)}

    @classmethod
    def from_dict(cls, data: dict, updated_at: Optional[str] = None) -> "Favorites":
        return cls(
            id=data["id"],
            product_ids={str(pid) for pid in data.get("productIds", []) if pid},
            updated_at=updated_at,
        )

    @classmethod
    def empty(cls, actor_key: str) -> "Favorites":
        return cls(id=actor_key)
