"""
Tests for the event emitter
"""

from storefront.events import ChangeType, EventEmitter, Topics


class TestTopics:

    def test_for_collection(self):
        assert Topics.for_collection("cart", ChangeType.ADDED) == Topics.CART_ITEM_ADDED
        assert Topics.for_collection("cart", ChangeType.UPDATED) == Topics.CART_ITEM_UPDATED
        assert Topics.for_collection("cart", ChangeType.CLEARED) == Topics.CART_CLEARED
        assert Topics.for_collection("wishlist", ChangeType.REMOVED) == Topics.WISHLIST_ITEM_REMOVED
        assert Topics.for_collection("wishlist", ChangeType.REORDERED) == Topics.WISHLIST_REORDERED


class TestEventEmitter:

    def test_handlers_run_in_registration_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.subscribe("t", lambda p: calls.append(("a", p)))
        emitter.subscribe("t", lambda p: calls.append(("b", p)))

        delivered = emitter.publish("t", 1)

        assert delivered == 2
        assert calls == [("a", 1), ("b", 1)]

    def test_topics_are_independent(self):
        emitter = EventEmitter()
        calls = []
        emitter.subscribe("cart:cleared", calls.append)

        assert emitter.publish("wishlist:cleared", "x") == 0
        assert calls == []

    def test_unsubscribe_with_token(self):
        emitter = EventEmitter()
        calls = []
        sub = emitter.subscribe("t", calls.append)

        assert sub.cancel() is True
        assert sub.cancel() is False
        emitter.publish("t", 1)

        assert calls == []
        assert emitter.listener_count("t") == 0
        assert emitter.topics() == []

    def test_subscriber_added_during_publish_waits_for_next(self):
        emitter = EventEmitter()
        late = []

        def register(payload):
            emitter.subscribe("t", late.append)

        emitter.subscribe("t", register)
        emitter.publish("t", 1)
        assert late == []

        emitter.publish("t", 2)
        assert late == [2]

    def test_subscriber_cancelled_during_publish_is_skipped(self):
        emitter = EventEmitter()
        calls = []
        victim = None

        def cancel_victim(payload):
            victim.cancel()

        emitter.subscribe("t", cancel_victim)
        victim = emitter.subscribe("t", calls.append)

        assert emitter.publish("t", 1) == 1
        assert calls == []

    def test_failing_handler_is_logged_and_isolated(self, caplog):
        emitter = EventEmitter()
        calls = []

        def broken(payload):
            raise ValueError("bad handler")

        emitter.subscribe("t", broken)
        emitter.subscribe("t", calls.append)

        assert emitter.publish("t", 1) == 2
        assert calls == [1]
        assert "Error in event handler for t" in caplog.text

    def test_once(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("t", calls.append)

        emitter.publish("t", 1)
        emitter.publish("t", 2)

        assert calls == [1]

    def test_same_handler_subscribed_twice(self):
        emitter = EventEmitter()
        calls = []
        first = emitter.subscribe("t", calls.append)
        emitter.subscribe("t", calls.append)

        first.cancel()
        emitter.publish("t", 1)

        assert calls == [1]

    def test_clear_topic_and_all(self):
        emitter = EventEmitter()
        calls = []
        emitter.subscribe("a", calls.append)
        emitter.subscribe("b", calls.append)

        emitter.clear("a")
        assert emitter.topics() == ["b"]

        emitter.clear()
        emitter.publish("a", 1)
        emitter.publish("b", 2)
        assert calls == []
        assert emitter.topics() == []
