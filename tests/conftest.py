"""Pytest configuration and fixtures"""
import asyncio
import copy
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytest

from storefront.cart import CartEngine
from storefront.events import EventEmitter, Topics
from storefront.models import Product
from storefront.remote import RemoteErrorKind, RemoteResult
from storefront.storage import MemoryStore, StorageManager
from storefront.wishlist import WishlistEngine


ALL_TOPICS = [
    Topics.CART_ITEM_ADDED,
    Topics.CART_ITEM_REMOVED,
    Topics.CART_ITEM_UPDATED,
    Topics.CART_CLEARED,
    Topics.WISHLIST_ITEM_ADDED,
    Topics.WISHLIST_ITEM_REMOVED,
    Topics.WISHLIST_CLEARED,
    Topics.WISHLIST_REORDERED,
]


class FakeRecordBackend:
    """In-memory record store with switchable failures and delays."""

    def __init__(self) -> None:
        self.records: Dict[Tuple[str, int], Dict[str, Any]] = {}
        self.fail_with: Optional[RemoteErrorKind] = None
        self.fetch_calls: List[Tuple[str, int]] = []
        self.store_calls: List[Tuple[str, int, Dict[str, Any]]] = []
        self.completed_stores: List[Dict[str, Any]] = []
        self.store_delays: List[float] = []
        self.fetch_gate: Optional[asyncio.Event] = None

    async def fetch(self, key: str, kind: int) -> RemoteResult:
        self.fetch_calls.append((key, kind))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fail_with is not None:
            return RemoteResult.failure(self.fail_with)
        data = self.records.get((key, kind))
        if data is None:
            return RemoteResult.failure(RemoteErrorKind.NOT_FOUND)
        return RemoteResult.success(copy.deepcopy(data))

    async def store(self, key: str, kind: int, data: Dict[str, Any]) -> RemoteResult:
        self.store_calls.append((key, kind, copy.deepcopy(data)))
        if self.store_delays:
            await asyncio.sleep(self.store_delays.pop(0))
        if self.fail_with is not None:
            return RemoteResult.failure(self.fail_with)
        self.records[(key, kind)] = copy.deepcopy(data)
        self.completed_stores.append(copy.deepcopy(data))
        return RemoteResult.success()


class EventRecorder:
    """Collects every ChangeEvent published on the engine topics."""

    def __init__(self, emitter: EventEmitter) -> None:
        self.events: List[Any] = []
        for topic in ALL_TOPICS:
            emitter.subscribe(topic, self.events.append)

    def topics(self) -> List[str]:
        return [event.topic for event in self.events]

    def of(self, topic: str) -> List[Any]:
        return [event for event in self.events if event.topic == topic]


def make_product(product_id=1, price=10, title=None, variant_id=None, **extra) -> Product:
    return Product(
        id=product_id,
        title=title or f"Product {product_id}",
        price=Decimal(str(price)),
        variant_id=variant_id,
        extra=extra,
    )


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def storage(store):
    return StorageManager(store, prefix="test-shop")


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def recorder(events):
    return EventRecorder(events)


@pytest.fixture
def backend():
    return FakeRecordBackend()


@pytest.fixture
def cart(storage, events, backend):
    return CartEngine(storage.slot("cart"), events, backend)


@pytest.fixture
def wishlist(storage, events, backend):
    return WishlistEngine(storage.slot("wishlist"), events, backend)
