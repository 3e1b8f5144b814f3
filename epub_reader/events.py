"""Event system for decoupled reader updates.

The reader service emits events without knowing about any UI; a UI (or a
test) subscribes to the events it cares about.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events emitted by the reader service."""

    LOAD_STARTED = "load_started"
    BOOK_LOADED = "book_loaded"
    BOOK_FAILED = "book_failed"
    CHAPTER_CHANGED = "chapter_changed"
    STATE_CHANGED = "state_changed"
    BOOKMARK_ADDED = "bookmark_added"


@dataclass
class Event:
    """An event emitted by the reader.

    Attributes:
        event_type: The type of event
        data: Additional event-specific data
    """

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)


# Type alias for event handlers
EventHandler = Callable[[Event], None]


class EventBus:
    """Publish-subscribe event system for reader updates.

    Example:
        >>> bus = EventBus()
        >>> bus.on(EventType.CHAPTER_CHANGED, lambda e: print(e.data["index"]))
        >>> bus.emit(EventType.CHAPTER_CHANGED, index=3)
        3
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[EventHandler]] = defaultdict(list)
        self._global_handlers: list[EventHandler] = []

    def on(self, event_type: EventType, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to a specific event type.

        Returns:
            Unsubscribe function that removes this handler
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def on_all(self, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to all events.

        Returns:
            Unsubscribe function that removes this handler
        """
        self._global_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._global_handlers:
                self._global_handlers.remove(handler)

        return unsubscribe

    def emit(self, event_type: EventType, **data: Any) -> Event:
        """Emit an event to all subscribed handlers.

        Handler errors are logged and do not stop other handlers.
        """
        event = Event(event_type=event_type, data=data)

        for handler in list(self._handlers[event_type]) + list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.warning("Event handler error for %s: %s", event_type, e)

        return event

    def clear(self, event_type: EventType | None = None) -> None:
        """Remove all handlers for an event type, or all handlers if None."""
        if event_type is None:
            self._handlers.clear()
            self._global_handlers.clear()
        else:
            self._handlers[event_type].clear()
