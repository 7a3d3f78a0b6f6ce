"""
Canvas adapter for the image session store.

Bridges the ImageSessionStore and its BoxEditor with a canvas-based UI
(Qt scene, web canvas, etc).
"""

from typing import Any, Callable, Dict, List, Optional

from ..core.annotation import (
    BoxEditor,
    EditorEvent,
    EventType,
    ImageSessionStore,
    Region,
)


def fit_scale(image_width: int, max_display_width: float) -> float:
    """Display scale that fits an image into the available width, never upscaling."""
    if image_width <= 0:
        return 1.0
    return min(1.0, max_display_width / image_width)


class CanvasAdapter:
    """
    Adapter connecting ImageSessionStore to a canvas UI.

    Provides a thin layer that:
    - Computes the fit-to-width display scale of the active image
    - Forwards pointer events (display coordinates) and key names
    - Translates store and editor events to a single UI callback
    - Collects what the sidebar and the count overlay display
    """

    def __init__(
        self,
        store: ImageSessionStore,
        update_callback: Optional[Callable[[EditorEvent], None]] = None,
        max_display_width: Optional[float] = None,
    ):
        """
        Initialize adapter.

        Args:
            store: Core session store
            update_callback: Called with the event after every change
            max_display_width: Available canvas width in display pixels
        """
        self.store = store
        self.update_callback = update_callback
        if max_display_width is None:
            max_display_width = store.config.editor.max_display_width
        self.max_display_width = max_display_width

        # Subscribe to store and editor events
        self._setup_event_handlers()

    def _setup_event_handlers(self):
        """Setup event handlers for all session events."""
        for event_type in EventType:
            self.store.events.on(event_type, self._on_change)

    def _on_change(self, event: EditorEvent):
        """Handle any change."""
        if self.update_callback:
            self.update_callback(event)

    # Scale & editor

    @property
    def scale(self) -> float:
        image = self.store.active
        if image is None:
            return 1.0
        return fit_scale(image.width, self.max_display_width)

    @property
    def editor(self) -> BoxEditor:
        return self.store.editor(scale=self.scale)

    def set_display_width(self, width: float):
        """Update the available width, e.g. after a window resize."""
        self.max_display_width = width
        if self.store.active is not None:
            self.editor.set_scale(self.scale)

    def select_image(self, index: int):
        self.store.set_active(index)
        self.editor.set_scale(self.scale)

    # Input forwarding

    # Pointer input is ignored until an image is loaded

    def pointer_down(self, x: float, y: float):
        if self.store.active is not None:
            self.editor.pointer_down(x, y)

    def pointer_move(self, x: float, y: float):
        if self.store.active is not None:
            self.editor.pointer_move(x, y)

    def pointer_up(self, x: float, y: float) -> Optional[Region]:
        if self.store.active is None:
            return None
        return self.editor.pointer_up(x, y)

    def key_down(self, key: str) -> bool:
        if self.store.active is None:
            return False
        return self.editor.key_down(key)

    # Display data

    def overlay_counts(self) -> Dict[str, int]:
        """Counts of the active image, with the current rules applied."""
        image = self.store.active
        if image is None:
            return {}
        return image.counts.to_dict()

    def stage_size(self) -> tuple:
        """Canvas size in display pixels for the active image."""
        image = self.store.active
        if image is None:
            return (0, 0)
        return (image.width * self.scale, image.height * self.scale)

    def display_boxes(self) -> List[Dict[str, Any]]:
        """
        Regions of the active image in display coordinates.

        Includes the provisional region while drawing; `selected` marks
        the selected region.
        """
        if self.store.active is None:
            return []
        editor = self.editor
        scale = editor.scale
        selected_id = editor.state.selected_id
        return [
            {
                "id": r.id,
                "x": r.x * scale,
                "y": r.y * scale,
                "w": r.w * scale,
                "h": r.h * scale,
                "classId": r.class_id,
                "className": r.class_name,
                "selected": r.id == selected_id,
            }
            for r in editor.visible_regions()
        ]

    def thumbnails(self) -> List[Dict[str, Any]]:
        """Sidebar entries: name, size, counts and whether active."""
        return [
            {
                "id": image.id,
                "filename": image.filename,
                "width": image.width,
                "height": image.height,
                "counts": image.counts.to_dict() if image.counts is not None else {},
                "active": index == self.store.active_index,
            }
            for index, image in enumerate(self.store.images)
        ]
