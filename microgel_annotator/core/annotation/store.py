"""
Image session store.

Holds the ordered images of a session, the shared class map and the
global exclusion rules, and keeps every image's count summary in step
with them.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional

from easydict import EasyDict as edict

from ...utils.config import default_config
from .classes import ClassMap
from .editor import BoxEditor
from .events import EditorEvent, EventEmitter, EventType
from .rules import CountSummary, RuleConfig
from .state import ImageItem

logger = logging.getLogger(__name__)


class DetectBusyError(RuntimeError):
    """A detect request was started while another one is outstanding."""


class ImageSessionStore:
    """
    Ordered collection of images with an active index.

    Count summaries are recomputed for every image when the rules change
    and for each imported image on import, so on-screen counts and batch
    exports always reflect the last-set rules.
    """

    def __init__(
        self,
        rules: Optional[RuleConfig] = None,
        config: Optional[edict] = None,
    ):
        """
        Initialize store.

        Args:
            rules: Initial exclusion rules, taken from `config` if not given
            config: Configuration tree (see `utils.config.default_config`)
        """
        self.config = config if config is not None else default_config()

        self._rules = rules or RuleConfig.from_dict(self.config.rules)
        self.class_map = ClassMap()
        self.images: List[ImageItem] = []
        self.active_index = 0
        self.busy = False

        self.events = EventEmitter()
        self._editor: Optional[BoxEditor] = None

    def __len__(self) -> int:
        return len(self.images)

    @property
    def rules(self) -> RuleConfig:
        return self._rules

    @property
    def active(self) -> Optional[ImageItem]:
        if 0 <= self.active_index < len(self.images):
            return self.images[self.active_index]
        return None

    # ==================== Detection import ====================

    @contextmanager
    def detecting(self):
        """
        Guard an outstanding detect request with the busy flag.

        Editing already-imported images is not affected.

        Raises:
            DetectBusyError: If a detect request is already outstanding
        """
        if self.busy:
            raise DetectBusyError("A detect request is already in progress")
        self.busy = True
        self.events.emit(EditorEvent(EventType.DETECT_STARTED))
        try:
            yield self
        finally:
            self.busy = False
            self.events.emit(EditorEvent(EventType.DETECT_FINISHED))

    def import_detections(self, response: Mapping[str, Any]) -> List[ImageItem]:
        """
        Append a batch of detected images.

        Args:
            response: Detection-service batch, {"classMap": {...}, "images": [...]}

        Returns:
            The newly added images, with names resolved and counts computed
        """
        class_map = self.class_map.merged(response.get("classMap") or {})
        if class_map != self.class_map:
            # Roles may have moved; earlier images must follow
            self.class_map = class_map
            for image in self.images:
                image.recount(self.class_map, self._rules)

        added = []
        for entry in response.get("images") or []:
            image = ImageItem.from_dict(entry, self.class_map)
            image.recount(self.class_map, self._rules)
            added.append(image)

        if self._editor is not None:
            self._editor.class_map = self.class_map

        if not added:
            logger.info("Detection batch contained no images")
            return added

        first_new = len(self.images)
        self.images.extend(added)
        logger.info(
            f"Imported {len(added)} image(s), "
            f"{sum(len(i.regions) for i in added)} region(s)"
        )
        self.events.emit(
            EditorEvent(
                EventType.IMAGES_IMPORTED,
                {"image_ids": [i.id for i in added], "first_index": first_new},
            )
        )
        self.set_active(first_new)
        return added

    # ==================== Navigation & rules ====================

    def set_active(self, index: int):
        """
        Make another image the active one.

        Raises:
            IndexError: If index is out of range
        """
        if not 0 <= index < len(self.images):
            raise IndexError(f"Image index {index} out of range")
        self.active_index = index
        if self._editor is not None:
            self._editor.reset_to(self.images[index])
        self.events.emit(
            EditorEvent(
                EventType.ACTIVE_IMAGE_CHANGED,
                {"index": index, "image_id": self.images[index].id},
            )
        )

    def set_rules(self, rules: Optional[RuleConfig] = None, **overrides) -> RuleConfig:
        """
        Change the global rules and recount every image.

        Args:
            rules: New rules, or None to start from the current ones
            **overrides: Threshold overrides, clamped to range

        Returns:
            The rules now in effect
        """
        rules = rules or self._rules
        if overrides:
            rules = rules.with_overrides(**overrides)
        self._rules = rules

        if self._editor is not None:
            self._editor.rules = rules
        self.recompute_all()

        logger.debug(f"Rules changed to {rules.to_dict()}")
        self.events.emit(EditorEvent(EventType.RULES_CHANGED, rules.to_dict()))
        return rules

    def recompute_all(self):
        for image in self.images:
            image.recount(self.class_map, self._rules)
            self.events.emit(
                EditorEvent(
                    EventType.COUNTS_UPDATED,
                    {"image_id": image.id, "counts": image.counts.to_dict()},
                )
            )

    def editor(self, scale: Optional[float] = None) -> BoxEditor:
        """
        Editor bound to the active image, shared across calls.

        Raises:
            IndexError: If the store holds no images
        """
        image = self.active
        if image is None:
            raise IndexError("No image to edit")

        if self._editor is None:
            editor_cfg = self.config.editor
            self._editor = BoxEditor(
                image,
                self.class_map,
                self._rules,
                scale=scale or 1.0,
                min_draw_size=editor_cfg.min_draw_size,
                handle_radius=editor_cfg.handle_radius,
                events=self.events,
            )
        else:
            if self._editor.image is not image:
                self._editor.reset_to(image)
            if scale is not None:
                self._editor.set_scale(scale)
        return self._editor

    # ==================== Export hand-off ====================

    def _fresh(self, image: ImageItem) -> Dict[str, Any]:
        image.recount(self.class_map, self._rules)
        return image.to_dict()

    def export_image(self, index: int) -> Dict[str, Any]:
        """Regions and class map of one image, for label-file serialization."""
        return {
            "image": self._fresh(self.images[index]),
            "classMap": self.class_map.to_dict(),
        }

    def export_all(self) -> Dict[str, Any]:
        return {
            "images": [self._fresh(image) for image in self.images],
            "classMap": self.class_map.to_dict(),
        }

    def report_payload(self, index: int) -> Dict[str, Any]:
        """One image with its counts and the rules that produced them."""
        return {"image": self._fresh(self.images[index]), "rules": self._rules.to_dict()}

    def report_payload_all(self) -> Dict[str, Any]:
        return {
            "images": [self._fresh(image) for image in self.images],
            "rules": self._rules.to_dict(),
        }

    def totals(self) -> Dict[str, int]:
        """Count summaries summed over all images."""
        totals = CountSummary().to_dict()
        for image in self.images:
            for role, count in image.recount(self.class_map, self._rules).items():
                totals[role] += count
        return totals
