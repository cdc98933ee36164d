"""Event types and data structures for node lifecycle notifications."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class Severity(Enum):
    """Event severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class EventType:
    """Event type constants.

    ``error`` is kept flat because callers subscribe to it by that exact
    name; lifecycle events follow the pattern: category.action
    """

    ERROR = "error"

    DAEMON_READY = "daemon.ready"
    DAEMON_EXIT = "daemon.exit"


@dataclass
class Event:
    """An occurrence in the node lifecycle.

    Attributes:
        id: Unique event identifier.
        type: Event type (e.g., "error", "daemon.ready").
        source: Node name that generated the event.
        severity: Event severity level.
        timestamp: When the event occurred (UTC).
        payload: Event-specific data. Raw stderr output is carried
            unmodified under the ``data`` key.
    """

    type: str
    source: str
    severity: Severity
    payload: dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def matches_type(self, event_type: str) -> bool:
        """Check if this event matches a type pattern (supports wildcards).

        Args:
            event_type: Event type pattern. Supports exact match or wildcard suffix.
                       Examples: "daemon.exit" (exact) or "daemon.*" (prefix match)

        Returns:
            True if this event's type matches the pattern.
        """
        if event_type == self.type:
            return True
        if event_type.endswith(".*"):
            prefix = event_type[:-2]
            return self.type.startswith(prefix + ".")
        return False

    @property
    def data(self) -> Any:
        """Shortcut for the raw payload carried by ``error`` events."""
        return self.payload.get("data")
