"""
In-process publish/subscribe bus for "invalidate and refetch" signals.

Writers publish after committing (enum values added, colors changed,
property definitions edited); caches and other readers subscribe. The
subscriber list per topic is inspectable so the fan-out stays auditable.
"""
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ENUMS_UPDATED = "enums_updated"
COLORS_UPDATED = "colors_updated"
SCHEMA_UPDATED = "schema_updated"

Handler = Callable[[str, Any], Any]


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler(topic, payload)``. Returns a callable that unsubscribes it."""
        self._handlers[topic].append(handler)
        return lambda: self.unsubscribe(topic, handler)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        handlers = self._handlers.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscribers(self, topic: str) -> List[Handler]:
        return list(self._handlers.get(topic, []))

    async def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver to every subscriber in order; returns how many succeeded."""
        delivered = 0
        for handler in self.subscribers(topic):
            try:
                result = handler(topic, payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error("Handler %r failed for %s: %s", handler, topic, e)
        logger.debug("Published %s to %d subscriber(s)", topic, delivered)
        return delivered


event_bus = EventBus()
