"""
Pure geometry functions for box annotations.

Rectangles are axis-aligned and live in image pixel space. These
functions have no side effects and can be tested in isolation.
"""

from typing import NamedTuple, Tuple

import numpy as np

EPS = 1e-6

XYXY = Tuple[float, float, float, float]


class Rect(NamedTuple):
    """Axis-aligned rectangle as (x, y, w, h)."""

    x: float
    y: float
    w: float
    h: float

    @property
    def x2(self) -> float:
        return self.x + self.w

    @property
    def y2(self) -> float:
        return self.y + self.h


def rect_to_xyxy(rect: Rect) -> XYXY:
    """Convert (x, y, w, h) to corner form (x1, y1, x2, y2)."""
    x, y, w, h = rect
    return (x, y, x + w, y + h)


def area_xyxy(box: XYXY) -> float:
    """Area of a corner-form box; inverted boxes have zero area."""
    x1, y1, x2, y2 = box
    return max(0.0, x2 - x1) * max(0.0, y2 - y1)


def intersection_over_union(a: XYXY, b: XYXY) -> float:
    """
    Compute Intersection over Union between two corner-form boxes.

    Args:
        a: Box as (x1, y1, x2, y2)
        b: Box as (x1, y1, x2, y2)

    Returns:
        IoU score [0, 1]. The denominator carries EPS so that two
        degenerate boxes give 0 instead of dividing by zero.
    """
    inter_w = max(0.0, min(a[2], b[2]) - max(a[0], b[0]))
    inter_h = max(0.0, min(a[3], b[3]) - max(a[1], b[1]))
    inter = inter_w * inter_h
    return inter / (area_xyxy(a) + area_xyxy(b) - inter + EPS)


def pairwise_iou(boxes: np.ndarray) -> np.ndarray:
    """
    Compute the full IoU matrix for a set of corner-form boxes.

    Vectorized version of `intersection_over_union`, same EPS handling.

    Args:
        boxes: Array of shape (n, 4) with rows (x1, y1, x2, y2)

    Returns:
        Symmetric (n, n) float64 matrix
    """
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)

    inter_w = np.clip(
        np.minimum(boxes[:, None, 2], boxes[None, :, 2])
        - np.maximum(boxes[:, None, 0], boxes[None, :, 0]),
        0.0,
        None,
    )
    inter_h = np.clip(
        np.minimum(boxes[:, None, 3], boxes[None, :, 3])
        - np.maximum(boxes[:, None, 1], boxes[None, :, 1]),
        0.0,
        None,
    )
    inter = inter_w * inter_h

    areas = np.clip(boxes[:, 2] - boxes[:, 0], 0.0, None) * np.clip(
        boxes[:, 3] - boxes[:, 1], 0.0, None
    )
    return inter / (areas[:, None] + areas[None, :] - inter + EPS)


def inside_ratio(rect: Rect, frame_w: float, frame_h: float) -> float:
    """
    Fraction of a rectangle's area that lies inside the image frame.

    Args:
        rect: Rectangle in image pixel space
        frame_w: Image width
        frame_h: Image height

    Returns:
        Clipped area / original area, 1.0 when fully inside and 0.0
        when fully outside
    """
    x1, y1, x2, y2 = rect_to_xyxy(rect)
    clipped = area_xyxy((max(0.0, x1), max(0.0, y1), min(frame_w, x2), min(frame_h, y2)))
    return clipped / (area_xyxy((x1, y1, x2, y2)) + EPS)


def contains(rect: Rect, px: float, py: float) -> bool:
    """Point-in-rectangle test, boundary inclusive."""
    return rect.x <= px <= rect.x + rect.w and rect.y <= py <= rect.y + rect.h


def center(rect: Rect) -> Tuple[float, float]:
    return (rect.x + rect.w / 2, rect.y + rect.h / 2)


def clamp(rect: Rect, frame_w: float, frame_h: float) -> Rect:
    """
    Force a rectangle inside the frame and make it at least 1x1.

    x, y end up in [0, dim - 1] and w, h in [1, dim - x]. Idempotent,
    and a no-op for rectangles already inside the frame.
    """
    x = max(0.0, min(rect.x, frame_w - 1))
    y = max(0.0, min(rect.y, frame_h - 1))
    w = max(1.0, min(rect.w, frame_w - x))
    h = max(1.0, min(rect.h, frame_h - y))
    return Rect(x, y, w, h)


def normalize_span(ax: float, ay: float, bx: float, by: float) -> Rect:
    """Rectangle spanned by two points, whatever the drag direction."""
    return Rect(min(ax, bx), min(ay, by), abs(bx - ax), abs(by - ay))
