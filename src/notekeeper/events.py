"""Registry for note lifecycle notifications.

External observers (caches, indexers) subscribe to CREATED / UPDATED /
DELETED events. Events are emitted only after a mutation has been fully
applied, and a failing handler never undoes it.
"""
import datetime
import logging
from collections import defaultdict
from threading import Lock
from typing import Callable, Dict, List, Optional

from notekeeper.models.schema import NoteEvent, NoteEventType, utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[[NoteEvent], None]


class EventRegistry:
    """Central registry for event handlers."""

    def __init__(self):
        # Maps event type -> handlers in subscription order
        self._handlers: Dict[NoteEventType, List[EventHandler]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, handler: EventHandler, *event_types: NoteEventType) -> None:
        """Register a handler for the given event types (all types if none given)."""
        with self._lock:
            for event_type in event_types or tuple(NoteEventType):
                if handler not in self._handlers[event_type]:
                    self._handlers[event_type].append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler from every event type it was registered for."""
        with self._lock:
            for handlers in self._handlers.values():
                if handler in handlers:
                    handlers.remove(handler)

    def emit(
        self,
        event_type: NoteEventType,
        note_id: int,
        owner: str,
        timestamp: Optional[datetime.datetime] = None,
    ) -> NoteEvent:
        """Emit an event to all matching handlers and return it."""
        event = NoteEvent(
            event_type=event_type,
            note_id=note_id,
            owner=owner,
            timestamp=timestamp or utc_now(),
        )
        with self._lock:
            handlers = list(self._handlers[event_type])

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.warning(
                    f"Event handler {getattr(handler, '__name__', handler)!r} "
                    f"failed for {event_type.value} note {note_id} (best-effort): {e}"
                )
        return event
