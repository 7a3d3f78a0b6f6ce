"""
Interactive box editor.

Core logic for editing the regions of one image: drawing, selecting,
moving, resizing, deleting and reclassifying boxes. UI-agnostic - pointer
positions come in display coordinates and are mapped to image space with
the current display scale.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from .classes import ClassMap
from .events import EditorEvent, EventEmitter, EventType
from .geometry import Rect, clamp, contains, normalize_span
from .rules import CountSummary, RuleConfig
from .state import ImageItem, Region, new_region_id

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class Mode(Enum):
    SELECT = "select"
    DRAW = "draw"
    ERASE = "erase"


class Handle(Enum):
    """Resize handles; the opposite corner stays fixed while dragging."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


MODE_KEYS = {
    "escape": Mode.SELECT,
    "esc": Mode.SELECT,
    "r": Mode.DRAW,
    "d": Mode.ERASE,
}
DELETE_KEYS = {"delete", "backspace"}


@dataclass
class Draft:
    """Provisional region while drawing. Never counted or exported."""

    anchor: Point
    rect: Rect
    class_id: int
    class_name: str


@dataclass
class Drag:
    """Move or resize in progress on one region."""

    region_id: str
    start: Point
    origin: Rect
    handle: Optional[Handle] = None


@dataclass
class EditorState:
    """All transient UI state of the editor for one image."""

    mode: Mode = Mode.SELECT
    selected_id: Optional[str] = None
    active_class_id: int = 0
    draft: Optional[Draft] = None
    drag: Optional[Drag] = None


def _handle_corner(rect: Rect, handle: Handle) -> Point:
    return {
        Handle.TOP_LEFT: (rect.x, rect.y),
        Handle.TOP_RIGHT: (rect.x2, rect.y),
        Handle.BOTTOM_LEFT: (rect.x, rect.y2),
        Handle.BOTTOM_RIGHT: (rect.x2, rect.y2),
    }[handle]


def _opposite_corner(rect: Rect, handle: Handle) -> Point:
    return {
        Handle.TOP_LEFT: (rect.x2, rect.y2),
        Handle.TOP_RIGHT: (rect.x, rect.y2),
        Handle.BOTTOM_LEFT: (rect.x2, rect.y),
        Handle.BOTTOM_RIGHT: (rect.x, rect.y),
    }[handle]


class BoxEditor:
    """
    Manages editing of the regions of one image.

    This class handles:
    - Mode switching (select / draw / erase)
    - Selection and move/resize drags
    - Drawing provisional regions and finalizing them
    - Deleting and reclassifying regions
    - Recomputing the image's counts after every mutation

    Every mutation recounts the image before emitting its event, so a
    listener never sees a stale count summary.
    """

    def __init__(
        self,
        image: ImageItem,
        class_map: ClassMap,
        rules: RuleConfig,
        scale: float = 1.0,
        min_draw_size: float = 3,
        handle_radius: float = 6,
        events: Optional[EventEmitter] = None,
    ):
        """
        Initialize editor.

        Args:
            image: Image whose regions are edited in place
            class_map: Class identifier -> name mapping
            rules: Exclusion thresholds used when recounting
            scale: Display pixels per image pixel
            min_draw_size: Smallest width/height (image pixels) a drawn box keeps
            handle_radius: Resize handle hit tolerance in display pixels
            events: Emitter to publish on, a private one if not given
        """
        self.image = image
        self.class_map = class_map
        self.rules = rules
        self.min_draw_size = min_draw_size
        self.handle_radius = handle_radius
        self.events = events if events is not None else EventEmitter()

        self.scale = 1.0
        self.set_scale(scale)

        self.state = EditorState(active_class_id=class_map.first_id())
        self._recount()

    # ==================== Properties ====================

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def selected(self) -> Optional[Region]:
        if self.state.selected_id is None:
            return None
        return self.image.find(self.state.selected_id)

    @property
    def draft(self) -> Optional[Draft]:
        return self.state.draft

    @property
    def counts(self) -> CountSummary:
        return self.image.counts

    def set_scale(self, scale: float):
        """Set display pixels per image pixel."""
        if scale <= 0:
            raise ValueError(f"Display scale must be positive, got {scale}")
        self.scale = scale

    def to_image(self, px: float, py: float) -> Point:
        """Map a display (stage) position to image space."""
        return (px / self.scale, py / self.scale)

    def reset_to(self, image: ImageItem):
        """Rebind to another image, dropping selection, draft and drag."""
        self.image = image
        self.state.selected_id = None
        self.state.draft = None
        self.state.drag = None
        self._recount()

    # ==================== Mode & class ====================

    def set_mode(self, mode: Union[Mode, str]):
        """
        Switch mode immediately.

        Leaving draw mode discards a provisional region; entering draw or
        erase mode clears the selection.
        """
        mode = Mode(mode)
        if mode == self.state.mode:
            return

        if self.state.draft is not None:
            self._discard_draft()
        self.state.drag = None
        if mode != Mode.SELECT:
            self.clear_selection()

        previous = self.state.mode
        self.state.mode = mode
        logger.debug(f"Mode {previous.value} -> {mode.value}")
        self.events.emit(
            EditorEvent(
                EventType.MODE_CHANGED, {"mode": mode.value, "previous": previous.value}
            )
        )

    def set_active_class(self, class_id: int):
        """Class used for newly drawn regions. Persists across mode changes."""
        self.state.active_class_id = int(class_id)
        self.events.emit(
            EditorEvent(EventType.ACTIVE_CLASS_CHANGED, {"class_id": int(class_id)})
        )

    def select_class_by_number(self, number: int) -> bool:
        """Select the n-th class (1-based) of the class map, if it exists."""
        class_id = self.class_map.nth(number - 1)
        if class_id is None:
            return False
        self.set_active_class(class_id)
        return True

    def key_down(self, key: str) -> bool:
        """
        Handle a keyboard shortcut.

        Args:
            key: Key name as reported by the UI ("Escape", "r", "Delete", "2")

        Returns:
            True if the key was handled
        """
        lowered = key.lower()
        if lowered in MODE_KEYS:
            self.set_mode(MODE_KEYS[lowered])
            return True
        if lowered in DELETE_KEYS:
            if self.state.mode == Mode.SELECT and self.state.selected_id is not None:
                self.delete_selected()
                return True
            return False
        if key.isdecimal() and key != "0":
            return self.select_class_by_number(int(key))
        return False

    # ==================== Selection ====================

    def select(self, region_id: str):
        """
        Select a region.

        Raises:
            KeyError: If the region does not exist
        """
        self.image.find(region_id)
        if self.state.selected_id == region_id:
            return
        self.state.selected_id = region_id
        self.events.emit(
            EditorEvent(EventType.SELECTION_CHANGED, {"region_id": region_id})
        )

    def clear_selection(self):
        if self.state.selected_id is None:
            return
        self.state.selected_id = None
        self.state.drag = None
        self.events.emit(EditorEvent(EventType.SELECTION_CHANGED, {"region_id": None}))

    def region_at(self, x: float, y: float) -> Optional[Region]:
        """Topmost region containing an image-space point."""
        for region in reversed(self.image.regions):
            if contains(region.rect, x, y):
                return region
        return None

    def handle_at(self, x: float, y: float) -> Optional[Handle]:
        """Resize handle of the selected region under an image-space point."""
        region = self.selected
        if region is None:
            return None
        tolerance = self.handle_radius / self.scale
        for handle in Handle:
            hx, hy = _handle_corner(region.rect, handle)
            if abs(x - hx) <= tolerance and abs(y - hy) <= tolerance:
                return handle
        return None

    # ==================== Pointer events ====================

    def pointer_down(self, px: float, py: float):
        """Handle a pointer press at a display position."""
        x, y = self.to_image(px, py)
        mode = self.state.mode

        if mode == Mode.DRAW:
            # Existing regions do not intercept the pointer while drawing
            self._begin_draw(x, y)
        elif mode == Mode.ERASE:
            region = self.region_at(x, y)
            if region is not None:
                self.delete_region(region.id)
        else:
            self._select_down(x, y)

    def pointer_move(self, px: float, py: float):
        """Handle a pointer move with the button held."""
        x, y = self.to_image(px, py)

        if self.state.mode == Mode.DRAW and self.state.draft is not None:
            ax, ay = self.state.draft.anchor
            self.state.draft.rect = normalize_span(ax, ay, x, y)
        elif self.state.mode == Mode.SELECT and self.state.drag is not None:
            self._apply_drag(x, y)

    def pointer_up(self, px: float, py: float) -> Optional[Region]:
        """
        Handle a pointer release.

        Returns:
            The newly drawn region, if a draw was finalized
        """
        if self.state.mode == Mode.DRAW and self.state.draft is not None:
            self.pointer_move(px, py)
            return self._finish_draw()
        if self.state.drag is not None:
            self.pointer_move(px, py)
            self.state.drag = None
        return None

    def _select_down(self, x: float, y: float):
        selected = self.selected
        if selected is not None:
            handle = self.handle_at(x, y)
            if handle is not None:
                self.state.drag = Drag(selected.id, (x, y), selected.rect, handle)
                return

        region = self.region_at(x, y)
        if region is None:
            self.clear_selection()
            return

        if selected is not None and region.id == selected.id:
            self.state.drag = Drag(region.id, (x, y), region.rect)
        else:
            # A press selects; dragging needs the region to be selected first
            self.select(region.id)

    def _apply_drag(self, x: float, y: float):
        drag = self.state.drag
        dx = x - drag.start[0]
        dy = y - drag.start[1]
        origin = drag.origin

        if drag.handle is None:
            rect = Rect(origin.x + dx, origin.y + dy, origin.w, origin.h)
            self.update_region(drag.region_id, rect, EventType.REGION_MOVED)
        else:
            fx, fy = _opposite_corner(origin, drag.handle)
            cx, cy = _handle_corner(origin, drag.handle)
            rect = normalize_span(fx, fy, cx + dx, cy + dy)
            rect = Rect(rect.x, rect.y, max(1.0, rect.w), max(1.0, rect.h))
            self.update_region(drag.region_id, rect, EventType.REGION_RESIZED)

    # ==================== Drawing ====================

    def _begin_draw(self, x: float, y: float):
        if self.state.draft is not None:
            self._discard_draft()
        class_id = self.state.active_class_id
        self.state.draft = Draft(
            anchor=(x, y),
            rect=Rect(x, y, 1.0, 1.0),
            class_id=class_id,
            class_name=self.class_map.name_for(class_id),
        )
        self.events.emit(
            EditorEvent(EventType.DRAW_STARTED, {"x": x, "y": y, "class_id": class_id})
        )

    def _finish_draw(self) -> Optional[Region]:
        draft = self.state.draft
        self.state.draft = None

        if draft.rect.w < self.min_draw_size or draft.rect.h < self.min_draw_size:
            logger.debug(f"Discarding provisional region {draft.rect}")
            self.events.emit(
                EditorEvent(EventType.DRAW_DISCARDED, {"rect": tuple(draft.rect)})
            )
            return None

        rect = clamp(draft.rect, self.image.width, self.image.height)
        region = Region(
            id=new_region_id(),
            x=rect.x,
            y=rect.y,
            w=rect.w,
            h=rect.h,
            class_id=draft.class_id,
            class_name=draft.class_name,
        )
        self.image.regions.append(region)
        self._commit(EventType.REGION_ADDED, region)
        return region

    def _discard_draft(self):
        draft = self.state.draft
        self.state.draft = None
        self.events.emit(
            EditorEvent(EventType.DRAW_DISCARDED, {"rect": tuple(draft.rect)})
        )

    # ==================== Mutations ====================

    def update_region(
        self,
        region_id: str,
        rect: Rect,
        event_type: EventType = EventType.REGION_MOVED,
    ) -> Region:
        """
        Set a region's rectangle, clamped to the image frame.

        Raises:
            KeyError: If the region does not exist
        """
        region = self.image.find(region_id)
        region.set_rect(clamp(rect, self.image.width, self.image.height))
        self._commit(event_type, region)
        return region

    def delete_region(self, region_id: str) -> Region:
        """
        Remove a region; clears the selection if it was selected.

        Raises:
            KeyError: If the region does not exist
        """
        region = self.image.remove(region_id)
        if self.state.selected_id == region_id:
            self.state.selected_id = None
            self.state.drag = None
            self.events.emit(
                EditorEvent(EventType.SELECTION_CHANGED, {"region_id": None})
            )
        self._commit(EventType.REGION_DELETED, region)
        return region

    def delete_selected(self) -> Optional[Region]:
        if self.state.selected_id is None:
            return None
        return self.delete_region(self.state.selected_id)

    def reclassify(self, class_id: int, region_id: Optional[str] = None) -> Region:
        """
        Change the class of a region (the selected one by default).

        Identifier and cached name are updated together.

        Raises:
            KeyError: If there is no such region or nothing is selected
        """
        region_id = region_id or self.state.selected_id
        if region_id is None:
            raise KeyError("No region selected")
        region = self.image.find(region_id)
        region.class_id = int(class_id)
        region.class_name = self.class_map.name_for(class_id)
        self._commit(EventType.REGION_RECLASSIFIED, region)
        return region

    def visible_regions(self) -> List[Region]:
        """Regions to render, including the provisional one while drawing."""
        regions = list(self.image.regions)
        draft = self.state.draft
        if draft is not None:
            x, y, w, h = draft.rect
            regions.append(
                Region("draft", x, y, w, h, draft.class_id, draft.class_name)
            )
        return regions

    def _recount(self) -> CountSummary:
        return self.image.recount(self.class_map, self.rules)

    def _commit(self, event_type: EventType, region: Region):
        counts = self._recount()
        logger.debug(f"{event_type.value} {region.id}: {counts.to_dict()}")
        self.events.emit(
            EditorEvent(
                event_type, {"image_id": self.image.id, "region": region.to_dict()}
            )
        )
        self.events.emit(
            EditorEvent(
                EventType.COUNTS_UPDATED,
                {"image_id": self.image.id, "counts": counts.to_dict()},
            )
        )
