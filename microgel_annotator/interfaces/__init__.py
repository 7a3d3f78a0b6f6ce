"""
Interfaces module - UI adapters for annotation core.

Provides adapters to connect the core editing logic
with different UI frameworks (Qt, Web, etc).
"""

from .canvas_adapter import CanvasAdapter, fit_scale

__all__ = ['CanvasAdapter', 'fit_scale']
