"""Configuration tree with defaults and environment overrides."""

import os
from typing import Mapping, Optional

from easydict import EasyDict as edict

from .env import load_cfg_from_env


def default_config() -> edict:
    return edict(
        rules=dict(
            overlap_iou=0.10,
            edge_outside_percent=50.0,
        ),
        editor=dict(
            # Drawn boxes smaller than this (image pixels) are discarded
            min_draw_size=3,
            # Resize handle hit tolerance, display pixels
            handle_radius=6,
            max_display_width=820,
        ),
    )


def load_config(env: Optional[Mapping[str, str]] = None) -> edict:
    """Defaults overridden by MICROGEL_* environment variables."""
    return load_cfg_from_env(default_config(), os.environ if env is None else env)
