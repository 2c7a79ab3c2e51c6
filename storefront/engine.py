"""
Collection engine shared by the cart and the wishlist.

Local storage decides whether an operation succeeded; the remote backend
is advisory. Every mutation runs in two legs:

1. Local (synchronous, under the engine lock): read the local snapshot,
   apply the change, write the snapshot back, publish one change event.
2. Remote (async, outside the lock): when an owner is set, store the full
   snapshot remotely. Failures are logged and never undo leg 1.

Each mutation has a ``*_local`` form that runs leg 1 only.

Mutations always start from local state. The local snapshot is re-read on
every call; when the store has nothing usable (absent key, disabled
medium, corrupted data) the last in-memory value is used instead.

Remote state only replaces local state on an explicit read: ``get()`` and
``pull_from_remote()``.
"""

import copy
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from .events import ChangeEvent, ChangeType, EventEmitter, Topics
from .logging import get_logger, sanitize_id_for_logging
from .models import Product, ProductId, latest_timestamp, utc_now
from .remote import RecordBackend, RemoteErrorKind, RemoteResult
from .storage import StorageSlot

logger = get_logger(__name__)

OwnerId = Union[int, str]
C = TypeVar("C")

# Errors a from_dict can raise on a snapshot of the wrong shape
DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


@dataclass
class Outcome(Generic[C]):
    """Result of the local leg: the new state and whether anything changed."""
    collection: C
    changed: bool


class CollectionEngine(Generic[C]):
    """Stateful core for one collection kind.

    Subclasses set ``name`` (storage key and topic prefix) and ``kind``
    (remote discriminator) and implement ``_empty``, ``_decode`` and
    ``_count``. Collections must expose ``items`` (entries with ``id`` and
    ``product``), ``updated_at`` and ``to_dict()``.
    """

    name: str = ""
    kind: int = 0

    def __init__(
        self,
        storage: StorageSlot,
        events: EventEmitter,
        backend: Optional[RecordBackend] = None,
        owner_id: Optional[OwnerId] = None,
    ) -> None:
        self._storage = storage
        self._events = events
        self._backend = backend
        self._owner_id = owner_id
        self._current: Optional[C] = None
        # True while the local store holds an older snapshot than _current
        self._store_stale = False
        # Bumped on every local commit; lets get() detect a racing mutation
        self._version = 0
        self._lock = threading.RLock()

    # ==================== HOOKS ====================

    def _empty(self) -> C:
        raise NotImplementedError

    def _decode(self, data: dict[str, Any]) -> C:
        raise NotImplementedError

    def _count(self, collection: C) -> int:
        raise NotImplementedError

    # ==================== OWNER ====================

    @property
    def owner_id(self) -> Optional[OwnerId]:
        return self._owner_id

    def set_owner(self, owner_id: OwnerId) -> None:
        """Set the identity that scopes the remote snapshot.

        Does not fetch anything; the next ``get()`` or sync call does.
        """
        self._owner_id = owner_id
        logger.debug(f"{self.name} owner set to {sanitize_id_for_logging(owner_id)}")

    def clear_owner(self) -> None:
        self._owner_id = None

    @property
    def remote_key(self) -> Optional[str]:
        if self._owner_id is None:
            return None
        return f"{self.name}_{self._owner_id}"

    @property
    def remote_enabled(self) -> bool:
        return self._backend is not None and self._owner_id is not None

    @property
    def version(self) -> int:
        return self._version

    # ==================== LOCAL STATE ====================

    def _load(self) -> C:
        """Working copy of the current collection. Call with the lock held."""
        if self._store_stale and self._current is not None:
            return copy.deepcopy(self._current)

        snapshot = self._storage.get()
        if snapshot is not None:
            try:
                collection = self._decode(snapshot)
            except DECODE_ERRORS as e:
                logger.warning(f"Corrupted {self.name} snapshot in {self._storage.key}: {e}")
                self._storage.remove()
            else:
                self._current = collection
                return copy.deepcopy(collection)

        if self._current is None:
            self._current = self._empty()
        return copy.deepcopy(self._current)

    def _persist(self, collection: C) -> None:
        self._store_stale = not self._storage.set(collection.to_dict())
        if self._store_stale:
            logger.warning(f"Keeping {self.name} in memory only: local store rejected {self._storage.key}")
        self._current = collection
        self._version += 1

    def _commit(
        self,
        collection: C,
        change: ChangeType,
        item: Any = None,
        item_id: Optional[str] = None,
    ) -> C:
        """Persist locally and publish exactly one event. Call with the lock held."""
        collection.updated_at = latest_timestamp(collection.updated_at, utc_now())
        self._persist(collection)

        topic = Topics.for_collection(self.name, change)
        self._events.publish(
            topic,
            ChangeEvent(
                change_type=change,
                topic=topic,
                collection=copy.deepcopy(collection),
                item=copy.deepcopy(item),
                item_id=item_id,
            ),
        )
        return copy.deepcopy(collection)

    def get_local(self) -> C:
        """Current collection from local state only. Never suspends."""
        with self._lock:
            return self._load()

    # ==================== REMOTE LEG ====================

    async def _push(self, collection: C) -> RemoteResult:
        if not self.remote_enabled:
            return RemoteResult.success()

        key = self.remote_key
        try:
            result = await self._backend.store(key, self.kind, collection.to_dict())
        except Exception as e:
            logger.error(f"Remote backend raised while saving {self.name}: {type(e).__name__}", exc_info=True)
            result = RemoteResult.failure(RemoteErrorKind.UNREACHABLE, type(e).__name__)

        if not result.ok:
            logger.warning(
                f"Failed to save {self.name} to remote for owner "
                f"{sanitize_id_for_logging(self._owner_id)}: {result.error.value} ({result.detail})"
            )
        return result

    async def _fetch_remote(self) -> Optional[C]:
        if not self.remote_enabled:
            return None

        key = self.remote_key
        try:
            result = await self._backend.fetch(key, self.kind)
        except Exception as e:
            logger.error(f"Remote backend raised while fetching {self.name}: {type(e).__name__}", exc_info=True)
            return None

        if not result.ok:
            if result.error == RemoteErrorKind.NOT_FOUND:
                logger.debug(f"No remote {self.name} for owner {sanitize_id_for_logging(self._owner_id)}")
            else:
                logger.warning(
                    f"Failed to fetch remote {self.name}, using local storage: "
                    f"{result.error.value} ({result.detail})"
                )
            return None

        if result.data is None:
            logger.warning(f"Empty remote {self.name} snapshot, using local storage")
            return None

        try:
            return self._decode(result.data)
        except DECODE_ERRORS as e:
            logger.warning(f"Malformed remote {self.name} snapshot, using local storage: {e}")
            return None

    def _adopt(self, remote: C) -> C:
        """Replace local state with a remote snapshot. Call with the lock held."""
        local = self._load()
        remote.updated_at = latest_timestamp(local.updated_at, remote.updated_at)
        self._persist(remote)
        return copy.deepcopy(remote)

    async def _sync(self, outcome: Outcome[C]) -> C:
        if outcome.changed:
            await self._push(outcome.collection)
        return outcome.collection

    # ==================== READ / SYNC ====================

    async def get(self) -> C:
        """Current collection, refreshed from the remote store when an owner is set.

        A remote snapshot replaces local state; any remote failure falls back
        to local state. If a local mutation lands while the fetch is in
        flight, the fetched snapshot is stale and is dropped.
        """
        if not self.remote_enabled:
            return self.get_local()

        started_at = self._version
        remote = await self._fetch_remote()
        if remote is None:
            return self.get_local()

        with self._lock:
            if self._version != started_at:
                logger.debug(f"Dropping remote {self.name}: local state changed during fetch")
                return self._load()
            return self._adopt(remote)

    async def pull_from_remote(self) -> C:
        """Replace local state with the remote snapshot, if there is one."""
        remote = await self._fetch_remote()
        if remote is None:
            return self.get_local()
        with self._lock:
            return self._adopt(remote)

    async def push_to_remote(self) -> RemoteResult:
        """Store the current local collection remotely."""
        return await self._push(self.get_local())

    # ==================== SHARED MUTATIONS ====================

    def _remove_where(self, predicate: Callable[[Any], bool]) -> Outcome[C]:
        with self._lock:
            collection = self._load()
            target = next((item for item in collection.items if predicate(item)), None)
            if target is None:
                return Outcome(collection, False)
            collection.items = [item for item in collection.items if item.id != target.id]
            return Outcome(
                self._commit(collection, ChangeType.REMOVED, item=target, item_id=target.id),
                True,
            )

    def _clear(self) -> Outcome[C]:
        with self._lock:
            previous = self._load()
            empty = self._empty()
            empty.updated_at = latest_timestamp(previous.updated_at, empty.updated_at)
            return Outcome(self._commit(empty, ChangeType.CLEARED), True)

    def remove_item_local(self, entry_id: str) -> C:
        return self._remove_where(lambda item: item.id == entry_id).collection

    async def remove_item(self, entry_id: str) -> C:
        """Remove an entry by its entry id. Missing ids leave the collection untouched."""
        return await self._sync(self._remove_where(lambda item: item.id == entry_id))

    def remove_product_local(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> C:
        return self._remove_where(lambda item: item.product.matches(product_id, variant_id)).collection

    async def remove_product(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> C:
        """Remove the first entry holding product_id (and variant_id when given)."""
        return await self._sync(
            self._remove_where(lambda item: item.product.matches(product_id, variant_id))
        )

    def clear_local(self) -> C:
        return self._clear().collection

    async def clear(self) -> C:
        """Reset to an empty collection. Always publishes a cleared event."""
        return await self._sync(self._clear())

    # ==================== ACCESSORS ====================

    def has_product_local(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> bool:
        return any(item.product.matches(product_id, variant_id) for item in self.get_local().items)

    async def has_product(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> bool:
        collection = await self.get()
        return any(item.product.matches(product_id, variant_id) for item in collection.items)

    def get_item_local(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> Any:
        return self.get_local().find_product(product_id, variant_id)

    async def get_item(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> Any:
        collection = await self.get()
        return collection.find_product(product_id, variant_id)

    def is_empty_local(self) -> bool:
        return not self.get_local().items

    async def is_empty(self) -> bool:
        collection = await self.get()
        return not collection.items

    def count_local(self) -> int:
        return self._count(self.get_local())

    async def count(self) -> int:
        return self._count(await self.get())

    def products_local(self) -> list[Product]:
        return [item.product for item in self.get_local().items]

    async def products(self) -> list[Product]:
        collection = await self.get()
        return [item.product for item in collection.items]
