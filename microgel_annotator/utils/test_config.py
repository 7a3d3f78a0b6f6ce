from microgel_annotator.core.annotation import RuleConfig
from microgel_annotator.utils.config import default_config, load_config


def test_defaults():
    cfg = default_config()
    assert RuleConfig.from_dict(cfg.rules) == RuleConfig()
    assert cfg.editor.min_draw_size == 3
    assert cfg.editor.handle_radius == 6
    assert cfg.editor.max_display_width == 820


def test_defaults_are_fresh():
    cfg = default_config()
    cfg.rules.overlap_iou = 0.9
    assert default_config().rules.overlap_iou == 0.10


def test_load_config_env_overrides():
    cfg = load_config(
        {
            "MICROGEL_RULES__EDGE_OUTSIDE_PERCENT": "30",
            "MICROGEL_EDITOR__MAX_DISPLAY_WIDTH": "1024",
            "HOME": "/root",
        }
    )
    assert cfg.rules.edge_outside_percent == 30.0
    assert cfg.rules.overlap_iou == 0.10
    assert cfg.editor.max_display_width == 1024


def test_load_config_without_overrides():
    assert load_config({}) == default_config()
