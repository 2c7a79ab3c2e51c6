"""Wishlist models."""
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from storefront.models import Product, ProductId, utc_now

# Remote kind discriminator for wishlist snapshots
WISHLIST_KIND = 2


@dataclass
class WishlistItem:
    """Wishlist entry: a product snapshot and when it was saved."""
    id: str
    product: Product
    added_at: str = ""

    def __post_init__(self):
        if not self.added_at:
            self.added_at = utc_now()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WishlistItem":
        return cls(
            id=data["id"],
            product=Product.from_dict(data["product"]),
            added_at=data.get("added_at", ""),
        )


@dataclass
class Wishlist:
    items: list[WishlistItem] = field(default_factory=list)
    updated_at: str = ""

    def __post_init__(self):
        if not self.updated_at:
            self.updated_at = utc_now()

    @property
    def total_items(self) -> int:
        return len(self.items)

    def find(self, entry_id: str) -> Optional[WishlistItem]:
        return next((item for item in self.items if item.id == entry_id), None)

    def find_product(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> Optional[WishlistItem]:
        return next((item for item in self.items if item.product.matches(product_id, variant_id)), None)

    def find_identity(self, identity: tuple) -> Optional[WishlistItem]:
        return next((item for item in self.items if item.product.identity == identity), None)

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "total_items": self.total_items,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Wishlist":
        if not isinstance(data["items"], list):
            raise ValueError("Wishlist items must be a list")
        return cls(
            items=[WishlistItem.from_dict(item) for item in data["items"]],
            updated_at=data.get("updated_at", ""),
        )


class ToggleResult(NamedTuple):
    """Result of ``WishlistEngine.toggle``."""
    wishlist: Wishlist
    added: bool
