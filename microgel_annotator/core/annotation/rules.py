"""
Exclusion rules and object counting.

Given the regions of one image, decides which containers are valid and
counts the contained regions whose center lies inside a valid container.

Two rules exclude containers:
- edge rule: too much of the container lies outside the image frame
- overlap rule: the container overlaps another container with an IoU at
  or above the threshold (both members of the pair are excluded)

The overlap pass is pairwise, not transitive, and O(n^2) in the number of
containers.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

import numpy as np

from .classes import CONTAINED_ROLE, CONTAINER_ROLE, resolve_roles
from .geometry import EPS, center, contains, inside_ratio, pairwise_iou, rect_to_xyxy

logger = logging.getLogger(__name__)

OVERLAP_IOU_RANGE = (0.0, 1.0)
EDGE_OUTSIDE_PERCENT_RANGE = (0.0, 100.0)


def _coerce(value: Any, fallback: float, bounds: Tuple[float, float]) -> float:
    """Parse a threshold input and clamp it to its range."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparsable rule value {value!r}, using {fallback}")
        number = fallback
    if math.isnan(number):
        number = fallback
    low, high = bounds
    return max(low, min(high, number))


@dataclass(frozen=True)
class RuleConfig:
    """
    User-adjustable exclusion thresholds, applied to every image.

    Values are clamped to their range on construction, so an
    out-of-range threshold never reaches the evaluator.
    """

    overlap_iou: float = 0.10
    edge_outside_percent: float = 50.0

    def __post_init__(self):
        defaults = {f.name: f.default for f in fields(self)}
        object.__setattr__(
            self,
            "overlap_iou",
            _coerce(self.overlap_iou, defaults["overlap_iou"], OVERLAP_IOU_RANGE),
        )
        object.__setattr__(
            self,
            "edge_outside_percent",
            _coerce(
                self.edge_outside_percent,
                defaults["edge_outside_percent"],
                EDGE_OUTSIDE_PERCENT_RANGE,
            ),
        )

    @property
    def inside_ratio_threshold(self) -> float:
        """Minimum inside ratio a container needs to pass the edge rule."""
        return 1.0 - self.edge_outside_percent / 100.0

    def with_overrides(self, **overrides) -> "RuleConfig":
        """
        Return a copy with some thresholds changed.

        Unparsable values keep the current threshold.
        """
        current = {
            "overlap_iou": (self.overlap_iou, OVERLAP_IOU_RANGE),
            "edge_outside_percent": (
                self.edge_outside_percent,
                EDGE_OUTSIDE_PERCENT_RANGE,
            ),
        }
        changes = {}
        for name, value in overrides.items():
            if name not in current:
                raise ValueError(f"Unknown rule: {name}")
            if value is None:
                continue
            fallback, bounds = current[name]
            changes[name] = _coerce(value, fallback, bounds)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, float]:
        """Rules as sent to report collaborators."""
        return {
            "overlap_iou": self.overlap_iou,
            "edge_outside_percent": self.edge_outside_percent,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "RuleConfig":
        """Create from a dictionary with snake_case or camelCase keys."""
        data = data or {}
        kwargs = {}
        for name, aliases in (
            ("overlap_iou", ("overlap_iou", "overlapIoU")),
            ("edge_outside_percent", ("edge_outside_percent", "edgeOutsidePercent")),
        ):
            for alias in aliases:
                if data.get(alias) is not None:
                    kwargs[name] = data[alias]
                    break
        return cls(**kwargs)


class CountSummary(Mapping):
    """Read-only role name -> count mapping derived from one evaluation."""

    def __init__(self, container_count: int = 0, contained_count: int = 0):
        self._counts = {
            CONTAINER_ROLE: int(container_count),
            CONTAINED_ROLE: int(contained_count),
        }

    def __getitem__(self, key: str) -> int:
        return self._counts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"CountSummary({self._counts!r})"

    @property
    def container_count(self) -> int:
        return self._counts[CONTAINER_ROLE]

    @property
    def contained_count(self) -> int:
        return self._counts[CONTAINED_ROLE]

    def to_dict(self) -> Dict[str, int]:
        return dict(self._counts)


@dataclass(frozen=True)
class Evaluation:
    """Everything the evaluator derived for one image."""

    summary: CountSummary
    edge_excluded: FrozenSet[str] = field(default_factory=frozenset)
    overlap_excluded: FrozenSet[str] = field(default_factory=frozenset)
    valid_containers: Tuple[str, ...] = ()
    counted_contained: Tuple[str, ...] = ()

    @property
    def excluded(self) -> FrozenSet[str]:
        return self.edge_excluded | self.overlap_excluded


def evaluate(
    regions: Iterable,
    class_map: Mapping,
    rules: RuleConfig,
    frame_w: float,
    frame_h: float,
) -> Evaluation:
    """
    Apply the exclusion rules to the regions of one image.

    Args:
        regions: Regions with `id`, `class_id` and `rect`
        class_map: Class identifier -> name mapping used to resolve roles
        rules: Exclusion thresholds
        frame_w: Image width in pixels
        frame_h: Image height in pixels

    Returns:
        Evaluation with the exclusion sets and the count summary. Empty
        inputs, missing roles and zero-size frames give zero counts.
    """
    if frame_w <= 0 or frame_h <= 0:
        logger.debug(f"Empty frame {frame_w}x{frame_h}, nothing to count")
        return Evaluation(summary=CountSummary())

    roles = resolve_roles(class_map)
    regions = list(regions)

    containers = [r for r in regions if r.class_id == roles.container]
    contained = [r for r in regions if r.class_id == roles.contained]

    # EPS in inside_ratio keeps a fully inside box just under 1.0
    threshold = rules.inside_ratio_threshold - EPS
    edge_excluded = frozenset(
        r.id for r in containers if inside_ratio(r.rect, frame_w, frame_h) < threshold
    )

    overlap_excluded = set()
    if len(containers) > 1:
        ious = pairwise_iou([rect_to_xyxy(r.rect) for r in containers])
        rows, cols = np.nonzero(np.triu(ious >= rules.overlap_iou, k=1))
        for i, j in zip(rows, cols):
            overlap_excluded.add(containers[i].id)
            overlap_excluded.add(containers[j].id)
    overlap_excluded = frozenset(overlap_excluded)

    valid = [
        r for r in containers if r.id not in edge_excluded and r.id not in overlap_excluded
    ]

    counted = []
    for region in contained:
        cx, cy = center(region.rect)
        if any(contains(m.rect, cx, cy) for m in valid):
            counted.append(region.id)

    logger.debug(
        f"Rules {rules.to_dict()}: {len(containers)} containers, "
        f"{len(edge_excluded)} edge-excluded, {len(overlap_excluded)} "
        f"overlap-excluded, {len(counted)}/{len(contained)} contained counted"
    )

    return Evaluation(
        summary=CountSummary(len(valid), len(counted)),
        edge_excluded=edge_excluded,
        overlap_excluded=overlap_excluded,
        valid_containers=tuple(r.id for r in valid),
        counted_contained=tuple(counted),
    )


def count_regions(
    regions: Iterable,
    class_map: Mapping,
    rules: RuleConfig,
    frame_w: float,
    frame_h: float,
) -> CountSummary:
    """Shortcut for `evaluate(...).summary`."""
    return evaluate(regions, class_map, rules, frame_w, frame_h).summary
