"""
Event system for the box editing workflow.

Provides a decoupled way for the editor and the session store to notify
UI components about state changes without depending on specific UI
frameworks.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events that can occur while editing."""

    # Editor state events
    MODE_CHANGED = "mode_changed"
    SELECTION_CHANGED = "selection_changed"
    ACTIVE_CLASS_CHANGED = "active_class_changed"

    # Region events
    REGION_ADDED = "region_added"
    REGION_MOVED = "region_moved"
    REGION_RESIZED = "region_resized"
    REGION_DELETED = "region_deleted"
    REGION_RECLASSIFIED = "region_reclassified"

    # Draw events
    DRAW_STARTED = "draw_started"
    DRAW_DISCARDED = "draw_discarded"

    # Derived state
    COUNTS_UPDATED = "counts_updated"

    # Session events
    IMAGES_IMPORTED = "images_imported"
    ACTIVE_IMAGE_CHANGED = "active_image_changed"
    RULES_CHANGED = "rules_changed"
    DETECT_STARTED = "detect_started"
    DETECT_FINISHED = "detect_finished"


@dataclass
class EditorEvent:
    """Something changed; `data` carries the JSON-friendly details."""

    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[EditorEvent], None]


class EventEmitter:
    """
    Synchronous publisher used by the editor and the store.

    Listeners run in subscription order, on the thread that emitted.
    """

    def __init__(self):
        self._listeners: DefaultDict[EventType, List[Listener]] = defaultdict(list)

    def on(self, event_type: EventType, callback: Listener):
        self._listeners[event_type].append(callback)

    def off(self, event_type: EventType, callback: Listener):
        """Remove a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event: EditorEvent):
        # Copy, a listener may unsubscribe while being notified
        for callback in list(self._listeners.get(event.event_type, ())):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Listener failed on {event.event_type.value}")

    def clear(self):
        self._listeners.clear()
