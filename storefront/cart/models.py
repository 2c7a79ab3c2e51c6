"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List

from storefront.models import Product, ProductId, new_entry_id, utc_now
from storefront.money import to_decimal, round_money, multiply, money_sum

# Remote kind discriminator for cart snapshots
CART_KIND = 1


@dataclass
class CartItem:
    """Single line in the cart.

    ``price`` is the unit price captured when the product was added, so
    later catalog changes do not reprice the basket.
    """
    id: str
    product: Product
    quantity: int
    price: Decimal

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @property
    def line_total(self) -> Decimal:
        """Total price for all units."""
        return multiply(self.price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "price": str(self.price),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """Create from dictionary."""
        product = Product.from_dict(data["product"])
        return cls(
            id=data["id"],
            product=product,
            quantity=int(data["quantity"]),
            price=to_decimal(data.get("price", product.price)),
        )


@dataclass
class Cart:
    """Shopping cart: ordered lines plus derived totals."""
    id: str = field(default_factory=lambda: new_entry_id("cart"))
    items: List[CartItem] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        now = utc_now()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def unique_items(self) -> int:
        """Number of distinct lines."""
        return len(self.items)

    @property
    def subtotal(self) -> Decimal:
        """Sum of quantity * unit price over all lines."""
        return money_sum(item.line_total for item in self.items)

    def find(self, entry_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == entry_id), None)

    def find_product(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> Optional[CartItem]:
        return next((item for item in self.items if item.product.matches(product_id, variant_id)), None)

    def find_identity(self, identity: tuple) -> Optional[CartItem]:
        return next((item for item in self.items if item.product.identity == identity), None)

    def to_dict(self) -> dict:
        """Convert to dictionary for local and remote snapshots.

        ``subtotal`` and ``total_items`` are informational; ``from_dict``
        recomputes them from the lines.
        """
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": str(round_money(self.subtotal)),
            "total_items": self.total_items,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        """Create from dictionary."""
        if not isinstance(data["items"], list):
            raise ValueError("Cart items must be a list")
        items = [CartItem.from_dict(item) for item in data["items"]]
        return cls(
            id=data.get("id") or new_entry_id("cart"),
            items=items,
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )
