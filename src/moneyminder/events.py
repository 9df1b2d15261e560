"""
Change notification between the rule store and its consumers.

The store publishes an event after every committed mutation; views (the CLI,
a scan in progress, a sync job) subscribe to refresh their snapshot. Handlers
run synchronously, in subscription order, on the publisher's thread.
"""

from enum import Enum
from typing import Any, Callable, Dict, List

Handler = Callable[..., Any]


class DataEvent(str, Enum):
    RULES_CHANGED = 'rules_changed'
    RULES_IMPORTED = 'rules_imported'
    MERCHANT_NOTES_CHANGED = 'merchant_notes_changed'
    TRANSACTIONS_CHANGED = 'transactions_changed'


class EventBus:
    """Minimal publish/subscribe hub keyed by DataEvent."""

    def __init__(self):
        self._handlers: Dict[DataEvent, List[Handler]] = {}

    def subscribe(self, event: DataEvent, handler: Handler) -> Callable[[], None]:
        """Register handler for event. Returns a function that unsubscribes it."""
        self._handlers.setdefault(DataEvent(event), []).append(handler)

        def unsubscribe():
            self.unsubscribe(event, handler)

        return unsubscribe

    def unsubscribe(self, event: DataEvent, handler: Handler) -> None:
        handlers = self._handlers.get(DataEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: DataEvent, **payload) -> int:
        """Call every handler of event with the payload. Returns the handler count.

        Exceptions raised by a handler propagate to the publisher.
        """
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(DataEvent(event), []))
        for handler in handlers:
            handler(event=DataEvent(event), **payload)
        return len(handlers)

    def handler_count(self, event: DataEvent) -> int:
        return len(self._handlers.get(DataEvent(event), []))
