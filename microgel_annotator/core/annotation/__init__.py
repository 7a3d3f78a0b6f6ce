"""
Core annotation module - UI-agnostic box editing and counting logic.

This module provides the geometry, exclusion rules, editor state machine
and session store for reviewing detections, usable with any UI framework
(Qt, Web, CLI, etc).
"""

from .classes import ClassMap, Roles, resolve_roles
from .editor import BoxEditor, EditorState, Handle, Mode
from .events import EditorEvent, EventEmitter, EventType
from .geometry import Rect
from .rules import CountSummary, Evaluation, RuleConfig, count_regions, evaluate
from .state import ImageItem, Region
from .store import DetectBusyError, ImageSessionStore

__all__ = [
    "BoxEditor",
    "EditorState",
    "Handle",
    "Mode",
    "EditorEvent",
    "EventEmitter",
    "EventType",
    "ClassMap",
    "Roles",
    "resolve_roles",
    "Rect",
    "CountSummary",
    "Evaluation",
    "RuleConfig",
    "count_regions",
    "evaluate",
    "ImageItem",
    "Region",
    "DetectBusyError",
    "ImageSessionStore",
]
