"""
Tests for the wishlist engine
"""

import pytest
from decimal import Decimal

from storefront.events import ChangeType, Topics
from storefront.wishlist import ToggleResult, Wishlist, WishlistItem


def _seed(store, *entries):
    """Write a wishlist snapshot with explicit add times."""
    wishlist = Wishlist(items=[
        WishlistItem(id=f"wishlist_{product.id}", product=product, added_at=added_at)
        for product, added_at in entries
    ])
    store.write("test-shop:wishlist", wishlist.to_dict())
    return wishlist


class TestWishlistModels:

    def test_item_gets_add_time(self, product_factory):
        item = WishlistItem(id="w1", product=product_factory(1))

        assert item.added_at != ""

    def test_round_trip(self, product_factory):
        wishlist = Wishlist(items=[WishlistItem(id="w1", product=product_factory(1, price="9.90", color="red"))])

        restored = Wishlist.from_dict(wishlist.to_dict())

        assert restored == wishlist
        assert restored.items[0].product.extra == {"color": "red"}
        assert wishlist.to_dict()["total_items"] == 1

    def test_from_dict_requires_item_list(self):
        with pytest.raises(KeyError):
            Wishlist.from_dict({"updated_at": "2024-01-01T00:00:00+00:00"})
        with pytest.raises(ValueError):
            Wishlist.from_dict({"items": None})


class TestWishlistEngine:

    @pytest.mark.asyncio
    async def test_added_product_is_reported_present(self, wishlist, product_factory):
        await wishlist.add_item(product_factory(7))

        assert wishlist.has_product_local(7)
        assert await wishlist.has_product(7)
        assert not wishlist.has_product_local(8)

    def test_duplicate_add_is_noop(self, wishlist, recorder, product_factory):
        first = wishlist.add_item_local(product_factory(1))
        second = wishlist.add_item_local(product_factory(1))

        assert second == first
        assert second.total_items == 1
        assert recorder.topics() == [Topics.WISHLIST_ITEM_ADDED]

    def test_same_product_different_variant_is_new_entry(self, wishlist, product_factory):
        wishlist.add_item_local(product_factory(1, variant_id="a"))
        state = wishlist.add_item_local(product_factory(1, variant_id="b"))

        assert state.total_items == 2

    @pytest.mark.asyncio
    async def test_toggle_adds_then_removes(self, wishlist, recorder, product_factory):
        product = product_factory(3)

        result = await wishlist.toggle(product)
        assert isinstance(result, ToggleResult)
        assert result.added is True
        assert wishlist.has_product_local(3)

        result = await wishlist.toggle(product)
        assert result.added is False
        assert not wishlist.has_product_local(3)
        assert result.wishlist.items == []

        assert recorder.topics() == [Topics.WISHLIST_ITEM_ADDED, Topics.WISHLIST_ITEM_REMOVED]

    def test_double_toggle_restores_membership(self, wishlist, product_factory):
        wishlist.add_item_local(product_factory(1))
        before = [item.product.id for item in wishlist.get_local().items]

        wishlist.toggle_local(product_factory(2))
        wishlist.toggle_local(product_factory(2))

        assert [item.product.id for item in wishlist.get_local().items] == before

    def test_remove_events_carry_removed_entry(self, wishlist, recorder, product_factory):
        state = wishlist.add_item_local(product_factory(1))
        entry = state.items[0]

        wishlist.remove_item_local(entry.id)

        removed = recorder.of(Topics.WISHLIST_ITEM_REMOVED)[0]
        assert removed.change_type == ChangeType.REMOVED
        assert removed.item.id == entry.id
        assert removed.item_id == entry.id
        assert removed.collection.items == []

    def test_remove_missing_entry_is_noop(self, wishlist, recorder, product_factory):
        wishlist.add_item_local(product_factory(1))
        before = wishlist.get_local()

        after = wishlist.remove_item_local("wishlist_missing")

        assert after == before
        assert recorder.topics() == [Topics.WISHLIST_ITEM_ADDED]

    def test_remove_product(self, wishlist, product_factory):
        wishlist.add_item_local(product_factory(1))
        wishlist.add_item_local(product_factory(2))

        state = wishlist.remove_product_local(1)

        assert [item.product.id for item in state.items] == [2]
        assert wishlist.count_local() == 1

    def test_clear(self, wishlist, recorder, product_factory):
        wishlist.add_item_local(product_factory(1))

        state = wishlist.clear_local()

        assert state.items == []
        assert wishlist.is_empty_local()
        assert recorder.topics()[-1] == Topics.WISHLIST_CLEARED

    def test_get_item_and_products(self, wishlist, product_factory):
        wishlist.add_item_local(product_factory(1, title="Lamp"))
        wishlist.add_item_local(product_factory(2, title="Desk"))

        assert wishlist.get_item_local(2).product.title == "Desk"
        assert wishlist.get_item_local(9) is None
        assert [p.title for p in wishlist.products_local()] == ["Lamp", "Desk"]


class TestWishlistSorting:

    @pytest.fixture
    def seeded(self, store, product_factory):
        return _seed(
            store,
            (product_factory(1, title="banana", price="3.00"), "2024-01-02T00:00:00+00:00"),
            (product_factory(2, title="Apple", price="9.50"), "2024-01-03T00:00:00+00:00"),
            (product_factory(3, title="cherry", price="1.25"), "2024-01-01T00:00:00+00:00"),
        )

    @staticmethod
    def _ids(state):
        return [item.product.id for item in state.items]

    @pytest.mark.asyncio
    async def test_sort_by_name(self, wishlist, seeded):
        assert self._ids(await wishlist.sort_by_name()) == [2, 1, 3]
        assert self._ids(await wishlist.sort_by_name(ascending=False)) == [3, 1, 2]

    @pytest.mark.asyncio
    async def test_sort_by_price(self, wishlist, seeded):
        assert self._ids(await wishlist.sort_by_price()) == [3, 1, 2]
        assert self._ids(await wishlist.sort_by_price(ascending=False)) == [2, 1, 3]

    @pytest.mark.asyncio
    async def test_sort_by_recency(self, wishlist, seeded):
        assert self._ids(await wishlist.sort_by_recency()) == [2, 1, 3]
        assert self._ids(await wishlist.sort_by_recency(newest_first=False)) == [3, 1, 2]

    def test_default_sort_is_newest_first(self, wishlist, seeded):
        assert self._ids(wishlist.sort_local()) == [2, 1, 3]

    def test_sort_with_comparator(self, wishlist, seeded):
        def by_price_desc(a, b):
            return (b.product.price > a.product.price) - (b.product.price < a.product.price)

        state = wishlist.sort_local(compare=by_price_desc)

        assert self._ids(state) == [2, 1, 3]

    def test_sort_persists_order(self, wishlist, seeded, store):
        wishlist.sort_local(lambda item: item.product.price)

        assert self._ids(wishlist.get_local()) == [3, 1, 2]
        stored = Wishlist.from_dict(store.read("test-shop:wishlist"))
        assert self._ids(stored) == [3, 1, 2]

    def test_sort_publishes_only_reordered(self, wishlist, seeded, recorder):
        state = wishlist.sort_local(lambda item: item.product.price)

        assert recorder.topics() == [Topics.WISHLIST_REORDERED]
        event = recorder.events[0]
        assert event.change_type == ChangeType.REORDERED
        assert event.item is None
        assert [item.product.id for item in event.collection.items] == self._ids(state)

    def test_sort_keeps_membership(self, wishlist, seeded):
        state = wishlist.sort_local(lambda item: item.product.price)

        assert sorted(self._ids(state)) == [1, 2, 3]
        assert sum(item.product.price for item in state.items) == Decimal("13.75")
