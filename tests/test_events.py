"""Tests for the change notification bus."""

import pytest

from moneyminder.events import DataEvent, EventBus


class TestEventBus:
    """Tests for EventBus."""

    def test_emit_calls_handlers_in_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(DataEvent.RULES_CHANGED, lambda event, **payload: calls.append(("a", payload)))
        bus.subscribe(DataEvent.RULES_CHANGED, lambda event, **payload: calls.append(("b", payload)))
        assert bus.emit(DataEvent.RULES_CHANGED, action="add") == 2
        assert calls == [("a", {"action": "add"}), ("b", {"action": "add"})]

    def test_events_are_separate(self):
        bus = EventBus()
        calls = []
        bus.subscribe(DataEvent.RULES_CHANGED, lambda event, **payload: calls.append(event))
        assert bus.emit(DataEvent.TRANSACTIONS_CHANGED) == 0
        assert calls == []

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        unsubscribe = bus.subscribe(DataEvent.RULES_CHANGED, lambda event, **payload: calls.append(event))
        unsubscribe()
        bus.emit(DataEvent.RULES_CHANGED)
        assert calls == []
        assert bus.handler_count(DataEvent.RULES_CHANGED) == 0
        # Unsubscribing twice is harmless
        unsubscribe()

    def test_string_event_names(self):
        bus = EventBus()
        calls = []
        bus.subscribe("rules_changed", lambda event, **payload: calls.append(event))
        bus.emit(DataEvent.RULES_CHANGED)
        assert calls == [DataEvent.RULES_CHANGED]

    def test_handler_errors_propagate(self):
        bus = EventBus()

        def broken(event, **payload):
            raise RuntimeError("boom")

        bus.subscribe(DataEvent.RULES_CHANGED, broken)
        with pytest.raises(RuntimeError):
            bus.emit(DataEvent.RULES_CHANGED)

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            EventBus().emit("not_an_event")
