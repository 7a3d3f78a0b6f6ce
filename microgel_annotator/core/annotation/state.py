"""
State management for box annotation.

Contains data classes for regions and images. The count summary of an
image is derived state: it is only written by `ImageItem.recount`.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .classes import FALLBACK_CLASS_NAME, ClassMap, as_class_id
from .geometry import Rect
from .rules import CountSummary, Evaluation, RuleConfig, evaluate

logger = logging.getLogger(__name__)

UNKNOWN_CLASS_ID = -1


def new_region_id() -> str:
    """Fresh opaque identity for a region."""
    return uuid.uuid4().hex


def _parse_score(value) -> Optional[float]:
    """Detector confidence, or None when missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unusable score {value!r}")
        return None


@dataclass
class Region:
    """A detected or hand-drawn object instance in image pixel space."""

    id: str
    x: float
    y: float
    w: float
    h: float
    class_id: int
    class_name: str = ""
    score: Optional[float] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.w, self.h)

    def set_rect(self, rect: Rect):
        self.x, self.y, self.w, self.h = rect

    def to_dict(self):
        """Convert to dictionary for serialization."""
        data = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "classId": self.class_id,
            "className": self.class_name,
        }
        if self.score is not None:
            data["score"] = self.score
        return data

    @classmethod
    def from_dict(cls, data: Mapping, class_map: Optional[ClassMap] = None):
        """
        Create from dictionary.

        The class name comes from `class_map` when it knows the class,
        otherwise from the payload or "class". Degenerate sizes are raised
        to 1x1.

        Raises:
            ValueError: If a coordinate is missing or not a number
        """
        try:
            x, y, w, h = (float(data[k]) for k in ("x", "y", "w", "h"))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid region geometry in {dict(data)!r}") from e

        class_id = as_class_id(data.get("classId"))
        if class_id is None:
            logger.debug(f"Region with unusable classId {data.get('classId')!r}")
            class_id = UNKNOWN_CLASS_ID

        class_name = str(data.get("className") or "")
        if class_map is not None:
            class_name = class_map.name_for(
                class_id, default=class_name or FALLBACK_CLASS_NAME
            )

        score = _parse_score(data.get("score"))
        return cls(
            id=str(data.get("id") or new_region_id()),
            x=x,
            y=y,
            w=max(1.0, w),
            h=max(1.0, h),
            class_id=class_id,
            class_name=class_name,
            score=score,
        )


@dataclass
class ImageItem:
    """
    One image of the session with its own region set.

    `counts` is never set directly; call `recount` after any change to
    the regions, the class map or the rules.
    """

    id: str
    filename: str
    width: int
    height: int
    regions: List[Region] = field(default_factory=list)
    stored_filename: Optional[str] = None
    url: Optional[str] = None
    _counts: Optional[CountSummary] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )

    @property
    def counts(self) -> Optional[CountSummary]:
        return self._counts

    def evaluate(self, class_map: Mapping, rules: RuleConfig) -> Evaluation:
        return evaluate(self.regions, class_map, rules, self.width, self.height)

    def recount(self, class_map: Mapping, rules: RuleConfig) -> CountSummary:
        """Recompute the count summary from the current regions."""
        self._counts = self.evaluate(class_map, rules).summary
        return self._counts

    def find(self, region_id: str) -> Region:
        for region in self.regions:
            if region.id == region_id:
                return region
        raise KeyError(region_id)

    def remove(self, region_id: str) -> Region:
        region = self.find(region_id)
        self.regions.remove(region)
        return region

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape read by export collaborators."""
        return {
            "id": self.id,
            "filename": self.filename,
            "storedFilename": self.stored_filename,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "boxes": [r.to_dict() for r in self.regions],
            "counts": None if self._counts is None else self._counts.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping, class_map: Optional[ClassMap] = None):
        """
        Create from a detection-service image entry.

        Boxes with unusable geometry are skipped with a warning. A repeated
        box id is replaced with a fresh one so ids stay unique per image.
        Counts in the payload are ignored; they are always recomputed.
        """
        try:
            width = int(data["width"])
            height = int(data["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Image entry without usable dimensions: {e}") from e

        regions = []
        seen_ids = set()
        for box in data.get("boxes") or []:
            try:
                region = Region.from_dict(box, class_map)
            except ValueError as e:
                logger.warning(f"Skipping box: {e}")
                continue
            if region.id in seen_ids:
                fresh = new_region_id()
                logger.warning(f"Duplicate region id {region.id!r}, renamed to {fresh}")
                region.id = fresh
            seen_ids.add(region.id)
            regions.append(region)

        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            filename=str(data.get("filename") or data.get("storedFilename") or ""),
            width=width,
            height=height,
            regions=regions,
            stored_filename=data.get("storedFilename"),
            url=data.get("url"),
        )
