"""
Module containing the listing events and their dispatcher.

Listeners run highest priority first. Listeners sharing a priority run in
registration order.
"""

from typing import Callable, Dict, List, Tuple, Type
from structlog import get_logger

from .context import ListingContext
from .criteria import Criteria

logger = get_logger(__name__)

class ProductListingCriteriaEvent:
    def __init__(self, criteria: Criteria, context: ListingContext):
        self.criteria = criteria
        self.context = context

class ProductSearchCriteriaEvent(ProductListingCriteriaEvent):
    pass

class ProductListingResultEvent:
    def __init__(self, result, context: ListingContext):
        self.result = result
        self.context = context

class ProductSearchResultEvent(ProductListingResultEvent):
    pass

class EventDispatcher:
    def __init__(self):
        self._listeners: Dict[Type, List[Tuple[int, int, Callable]]] = {}
        self._sequence = 0

    def add_listener(self, event_type: Type, listener: Callable, priority: int = 0):
        self._sequence += 1
        self._listeners.setdefault(event_type, []).append((-priority, self._sequence, listener))
        self._listeners[event_type].sort(key=lambda entry: entry[:2])

    def add_subscriber(self, subscriber):
        """
        Register every handler a subscriber declares.

        ``get_subscribed_events`` maps an event type to a method name or to a
        ``(method name, priority)`` pair.
        """
        for event_type, entry in subscriber.get_subscribed_events().items():
            if isinstance(entry, str):
                method_name, priority = entry, 0
            else:
                method_name, priority = entry
            self.add_listener(event_type, getattr(subscriber, method_name), priority)
            logger.debug(
                "listener_registered",
                event_type=event_type.__name__,
                listener=method_name,
                priority=priority
            )

    def get_listeners(self, event_type: Type) -> List[Callable]:
        return [listener for _, _, listener in self._listeners.get(event_type, [])]

    def dispatch(self, event):
        for listener in self.get_listeners(type(event)):
            listener(event)
        return event
