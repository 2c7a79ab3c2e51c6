"""Wishlist Domain Service.

Saved products with add time, kept in local storage and mirrored in the
generic record store under the owner's key.

Reordering is not a membership change: sorts publish a single
``wishlist:reordered`` event and never an added/removed one.
"""

import copy
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, Callable, Optional

from storefront.engine import CollectionEngine, Outcome
from storefront.events import ChangeType
from storefront.models import Product, new_entry_id, parse_timestamp, utc_now

from .models import ToggleResult, Wishlist, WishlistItem, WISHLIST_KIND

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SortKey = Callable[[WishlistItem], Any]
Comparator = Callable[[WishlistItem, WishlistItem], int]


def _added_at(item: WishlistItem) -> datetime:
    return parse_timestamp(item.added_at) or _EPOCH


class WishlistEngine(CollectionEngine[Wishlist]):
    """Wishlist domain service.

    Provides the wishlist operations on top of the collection engine.
    """

    name = "wishlist"
    kind = WISHLIST_KIND

    def _empty(self) -> Wishlist:
        return Wishlist()

    def _decode(self, data: dict[str, Any]) -> Wishlist:
        return Wishlist.from_dict(data)

    def _count(self, collection: Wishlist) -> int:
        return collection.total_items

    def _new_item(self, product: Product) -> WishlistItem:
        return WishlistItem(id=new_entry_id("wishlist"), product=copy.deepcopy(product), added_at=utc_now())

    # ==================== MUTATIONS ====================

    def _add_item(self, product: Product) -> Outcome[Wishlist]:
        with self._lock:
            wishlist = self._load()
            if wishlist.find_identity(product.identity) is not None:
                return Outcome(wishlist, False)
            item = self._new_item(product)
            wishlist.items.append(item)
            return Outcome(self._commit(wishlist, ChangeType.ADDED, item=item, item_id=item.id), True)

    def _toggle(self, product: Product) -> tuple[Outcome[Wishlist], bool]:
        # Membership check and mutation share one snapshot under the lock
        with self._lock:
            wishlist = self._load()
            existing = wishlist.find_identity(product.identity)
            if existing is not None:
                wishlist.items = [item for item in wishlist.items if item.id != existing.id]
                committed = self._commit(wishlist, ChangeType.REMOVED, item=existing, item_id=existing.id)
                return Outcome(committed, True), False

            item = self._new_item(product)
            wishlist.items.append(item)
            committed = self._commit(wishlist, ChangeType.ADDED, item=item, item_id=item.id)
            return Outcome(committed, True), True

    def _sort(self, key: Optional[SortKey], compare: Optional[Comparator], reverse: bool) -> Outcome[Wishlist]:
        if compare is not None:
            key = cmp_to_key(compare)
        elif key is None:
            # Newest first
            key, reverse = _added_at, not reverse

        with self._lock:
            wishlist = self._load()
            wishlist.items.sort(key=key, reverse=reverse)
            return Outcome(self._commit(wishlist, ChangeType.REORDERED), True)

    def add_item_local(self, product: Product) -> Wishlist:
        return self._add_item(product).collection

    async def add_item(self, product: Product) -> Wishlist:
        """Add product unless it is already saved."""
        return await self._sync(self._add_item(product))

    def toggle_local(self, product: Product) -> ToggleResult:
        outcome, added = self._toggle(product)
        return ToggleResult(outcome.collection, added)

    async def toggle(self, product: Product) -> ToggleResult:
        """Add product if absent, remove it if present.

        Returns:
            ToggleResult with the new wishlist and whether it was added
        """
        outcome, added = self._toggle(product)
        return ToggleResult(await self._sync(outcome), added)

    def sort_local(
        self,
        key: Optional[SortKey] = None,
        *,
        compare: Optional[Comparator] = None,
        reverse: bool = False,
    ) -> Wishlist:
        return self._sort(key, compare, reverse).collection

    async def sort(
        self,
        key: Optional[SortKey] = None,
        *,
        compare: Optional[Comparator] = None,
        reverse: bool = False,
    ) -> Wishlist:
        """Reorder entries and persist the new order.

        Args:
            key: Sort key over entries
            compare: Old-style comparator returning <0, 0 or >0; wins over key
            reverse: Reverse the resulting order

        With neither key nor compare, entries are ordered newest first.
        """
        return await self._sync(self._sort(key, compare, reverse))

    async def sort_by_name(self, ascending: bool = True) -> Wishlist:
        return await self.sort(lambda item: item.product.title.casefold(), reverse=not ascending)

    async def sort_by_price(self, ascending: bool = True) -> Wishlist:
        return await self.sort(lambda item: item.product.price, reverse=not ascending)

    async def sort_by_recency(self, newest_first: bool = True) -> Wishlist:
        return await self.sort(_added_at, reverse=newest_first)
