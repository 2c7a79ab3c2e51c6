"""Cart engine: quantities, unit prices and totals on top of the collection engine."""
import copy
from decimal import Decimal
from typing import Any

from storefront.engine import CollectionEngine, Outcome
from storefront.events import ChangeType
from storefront.logging import get_logger
from storefront.models import Product, new_entry_id

from .models import Cart, CartItem, CART_KIND

logger = get_logger(__name__)


class CartEngine(CollectionEngine[Cart]):
    """
    Shopping cart kept in local storage and mirrored remotely per owner.

    Features:
    - One line per product/variant; re-adding increases the quantity
    - Non-positive quantities remove the line instead of failing
    - Totals are always derived from the lines
    """

    name = "cart"
    kind = CART_KIND

    def _empty(self) -> Cart:
        return Cart()

    def _decode(self, data: dict[str, Any]) -> Cart:
        return Cart.from_dict(data)

    def _count(self, collection: Cart) -> int:
        return collection.total_items

    # ==================== MUTATIONS ====================

    def _add_item(self, product: Product, quantity: int) -> Outcome[Cart]:
        quantity = int(quantity)
        with self._lock:
            cart = self._load()
            existing = cart.find_identity(product.identity)

            if quantity <= 0:
                logger.debug(f"Non-positive quantity for product {product.id}, treating add as removal")
                if existing is None:
                    return Outcome(cart, False)
                cart.items = [item for item in cart.items if item.id != existing.id]
                return Outcome(
                    self._commit(cart, ChangeType.REMOVED, item=existing, item_id=existing.id),
                    True,
                )

            snapshot = copy.deepcopy(product)
            if existing:
                existing.quantity += quantity
                # Re-adding refreshes the snapshot in case the price changed
                existing.product = snapshot
                existing.price = snapshot.price
                item = existing
            else:
                item = CartItem(
                    id=new_entry_id("item"),
                    product=snapshot,
                    quantity=quantity,
                    price=snapshot.price,
                )
                cart.items.append(item)

            return Outcome(self._commit(cart, ChangeType.ADDED, item=item, item_id=item.id), True)

    def _update_quantity(self, entry_id: str, quantity: int) -> Outcome[Cart]:
        quantity = int(quantity)
        if quantity <= 0:
            return self._remove_where(lambda item: item.id == entry_id)

        with self._lock:
            cart = self._load()
            item = cart.find(entry_id)
            if item is None or item.quantity == quantity:
                return Outcome(cart, False)
            item.quantity = quantity
            return Outcome(self._commit(cart, ChangeType.UPDATED, item=item, item_id=item.id), True)

    def add_item_local(self, product: Product, quantity: int = 1) -> Cart:
        return self._add_item(product, quantity).collection

    async def add_item(self, product: Product, quantity: int = 1) -> Cart:
        """Add quantity units of product to the cart."""
        return await self._sync(self._add_item(product, quantity))

    def update_quantity_local(self, entry_id: str, quantity: int) -> Cart:
        return self._update_quantity(entry_id, quantity).collection

    async def update_quantity(self, entry_id: str, quantity: int) -> Cart:
        """Set a line's quantity; zero or less removes the line."""
        return await self._sync(self._update_quantity(entry_id, quantity))

    # ==================== ACCESSORS ====================

    def unique_count_local(self) -> int:
        return self.get_local().unique_items

    async def unique_count(self) -> int:
        cart = await self.get()
        return cart.unique_items

    def subtotal_local(self) -> Decimal:
        return self.get_local().subtotal

    async def subtotal(self) -> Decimal:
        cart = await self.get()
        return cart.subtotal
