"""In-process change notifications for carts and wishlists."""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], None]


class Topics:
    """Topic names published by the collection engines."""

    CART_ITEM_ADDED = "cart:item:added"
    CART_ITEM_REMOVED = "cart:item:removed"
    CART_ITEM_UPDATED = "cart:item:updated"
    CART_CLEARED = "cart:cleared"

    WISHLIST_ITEM_ADDED = "wishlist:item:added"
    WISHLIST_ITEM_REMOVED = "wishlist:item:removed"
    WISHLIST_CLEARED = "wishlist:cleared"
    WISHLIST_REORDERED = "wishlist:reordered"

    @staticmethod
    def for_collection(name: str, change: "ChangeType") -> str:
        if change in (ChangeType.CLEARED, ChangeType.REORDERED):
            return f"{name}:{change.value}"
        return f"{name}:item:{change.value}"


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"
    CLEARED = "cleared"
    REORDERED = "reordered"


@dataclass
class ChangeEvent:
    """Payload delivered to subscribers after a collection changes.

    ``collection`` is a copy of the full state right after the change;
    ``item`` is a copy of the affected entry when there is one.
    """
    change_type: ChangeType
    topic: str
    collection: Any
    item: Any = None
    item_id: Optional[str] = None


@dataclass(eq=False)
class Subscription:
    """Token returned by ``EventEmitter.subscribe``."""
    topic: str
    handler: Handler
    id: int
    once: bool = False
    active: bool = True
    _emitter: Optional["EventEmitter"] = None

    def cancel(self) -> bool:
        if self._emitter is None:
            return False
        return self._emitter.unsubscribe(self)


class EventEmitter:
    """
    Synchronous publish/subscribe register keyed by topic.

    - Handlers run in registration order.
    - A publish only reaches subscriptions that existed when it started.
    - A failing handler is logged and skipped; the publisher never sees it.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        """Register handler for topic and return its unsubscribe token."""
        return self._add(topic, handler, once=False)

    def once(self, topic: str, handler: Handler) -> Subscription:
        """Register handler for the next publish on topic only."""
        return self._add(topic, handler, once=True)

    def _add(self, topic: str, handler: Handler, once: bool) -> Subscription:
        sub = Subscription(topic=topic, handler=handler, id=next(self._ids), once=once, _emitter=self)
        self._subscriptions.setdefault(topic, []).append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was already gone."""
        subs = self._subscriptions.get(subscription.topic)
        if not subs or subscription not in subs:
            return False
        subscription.active = False
        subs.remove(subscription)
        if not subs:
            del self._subscriptions[subscription.topic]
        return True

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver payload to every handler of topic.

        Returns:
            Number of handlers that were called
        """
        snapshot = tuple(self._subscriptions.get(topic, ()))
        delivered = 0
        for sub in snapshot:
            # cancelled by an earlier handler in this same publish
            if not sub.active:
                continue
            if sub.once:
                self.unsubscribe(sub)
            delivered += 1
            try:
                sub.handler(payload)
            except Exception as e:
                logger.error(f"Error in event handler for {topic}: {type(e).__name__}", exc_info=True)
        return delivered

    def clear(self, topic: Optional[str] = None) -> None:
        """Drop handlers for one topic, or for every topic."""
        if topic is None:
            targets = list(self._subscriptions.values())
            self._subscriptions.clear()
        else:
            targets = [self._subscriptions.pop(topic, [])]
        for subs in targets:
            for sub in subs:
                sub.active = False

    def listener_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, ()))

    def topics(self) -> list[str]:
        return list(self._subscriptions)
