"""In-process notifications emitted by a supervised node."""

from .event import Event, EventType, Severity
from .bus import EventBus, EventHandler

__all__ = [
    "Event",
    "EventType",
    "Severity",
    "EventBus",
    "EventHandler",
]
