"""Event bus for node lifecycle notifications."""

import logging
from collections import defaultdict
from typing import Callable

from .event import Event


logger = logging.getLogger(__name__)


# Type alias for event handlers
EventHandler = Callable[[Event], None]


class EventBus:
    """Pub/sub event bus owned by a single node.

    Handlers run synchronously, in subscription order, on the thread that
    emits. Every emitted event is delivered; there is no deduplication.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._global_handlers: list[EventHandler] = []

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to a specific event type.

        Args:
            event_type: Event type to subscribe to (supports wildcards like "daemon.*").
            handler: Callback function to handle matching events.
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Unsubscribe a handler from an event type.

        Returns:
            True if handler was removed, False if not found.
        """
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                return True
            except ValueError:
                return False
        return False

    def emit(self, event: Event) -> None:
        """Emit an event to all matching subscribers."""
        handlers_called = 0

        for handler in list(self._global_handlers):
            try:
                handler(event)
                handlers_called += 1
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

        for event_type, type_handlers in list(self._handlers.items()):
            if not event.matches_type(event_type):
                continue
            for handler in list(type_handlers):
                try:
                    handler(event)
                    handlers_called += 1
                except Exception as e:
                    logger.error(f"Error in event handler for {event_type}: {e}")

        logger.debug(f"Dispatched event {event.type} to {handlers_called} handlers")

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        self._global_handlers.clear()

    @property
    def handler_count(self) -> int:
        """Get total number of handlers."""
        type_handlers = sum(len(h) for h in self._handlers.values())
        return type_handlers + len(self._global_handlers)
