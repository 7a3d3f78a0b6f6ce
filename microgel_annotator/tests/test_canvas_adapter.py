"""
Tests for the canvas adapter.

The adapter is exercised the way a canvas widget would drive it: display
coordinates in, display boxes and counts out.
"""

import pytest
from unittest.mock import Mock

from microgel_annotator.core.annotation import EventType, ImageSessionStore, Mode, Rect
from microgel_annotator.interfaces import CanvasAdapter, fit_scale


@pytest.fixture
def callback():
    return Mock()


@pytest.fixture
def adapter(store, callback):
    # Image a is 1000x800, so it is shown at half scale
    return CanvasAdapter(store, update_callback=callback, max_display_width=500)


def test_fit_scale():
    assert fit_scale(1000, 500) == 0.5
    assert fit_scale(400, 820) == 1.0
    assert fit_scale(0, 500) == 1.0


def test_display_width_from_config(store):
    adapter = CanvasAdapter(store)
    assert adapter.max_display_width == 820
    assert adapter.scale == pytest.approx(0.82)


def test_scale_and_stage(adapter):
    assert adapter.scale == 0.5
    assert adapter.editor.scale == 0.5
    assert adapter.stage_size() == (500, 400)


def test_events_forwarded(adapter, callback):
    adapter.key_down("r")

    callback.assert_called_once()
    event = callback.call_args[0][0]
    assert event.event_type == EventType.MODE_CHANGED


def test_draw_in_display_coordinates(adapter, store):
    adapter.key_down("r")
    adapter.pointer_down(300, 300)
    adapter.pointer_move(305, 305)
    region = adapter.pointer_up(310, 310)

    assert region.rect == Rect(600, 600, 20, 20)
    assert adapter.overlay_counts() == {"microgel": 2, "cell": 1}
    assert store.active.counts.to_dict() == {"microgel": 2, "cell": 1}


def test_display_boxes(adapter):
    adapter.pointer_down(10, 10)
    adapter.pointer_up(10, 10)

    boxes = {b["id"]: b for b in adapter.display_boxes()}
    assert set(boxes) == {"a-gel", "a-cell", "a-cell-out"}
    assert boxes["a-gel"]["selected"]
    assert not boxes["a-cell"]["selected"]
    assert (boxes["a-gel"]["w"], boxes["a-gel"]["h"]) == (50, 50)
    assert boxes["a-cell"]["x"] == 22.5
    assert boxes["a-cell"]["className"] == "cell"


def test_display_boxes_include_draft(adapter):
    adapter.key_down("r")
    adapter.pointer_down(300, 300)
    adapter.pointer_move(350, 320)

    boxes = adapter.display_boxes()
    assert len(boxes) == 4
    draft = boxes[-1]
    assert draft["id"] == "draft"
    assert (draft["x"], draft["y"], draft["w"], draft["h"]) == (300, 300, 50, 20)
    # Not counted while provisional
    assert adapter.overlay_counts() == {"microgel": 1, "cell": 1}


def test_delete_through_keys(adapter, store):
    adapter.pointer_down(10, 10)
    assert adapter.key_down("Delete")
    assert [r.id for r in store.active.regions] == ["a-cell", "a-cell-out"]
    assert adapter.overlay_counts() == {"microgel": 0, "cell": 0}


def test_select_image(adapter, store):
    adapter.select_image(1)

    assert store.active.id == "b"
    # 500px wide fits without scaling
    assert adapter.scale == 1.0
    assert adapter.editor.scale == 1.0
    assert adapter.editor.mode == Mode.SELECT


def test_set_display_width(adapter):
    adapter.set_display_width(250)
    assert adapter.scale == 0.25
    assert adapter.editor.scale == 0.25
    assert adapter.stage_size() == (250, 200)


def test_thumbnails(adapter):
    thumbs = adapter.thumbnails()

    assert [t["filename"] for t in thumbs] == ["a.png", "b.png"]
    assert [t["active"] for t in thumbs] == [True, False]
    assert thumbs[0]["counts"] == {"microgel": 1, "cell": 1}
    assert thumbs[1]["counts"] == {"microgel": 0, "cell": 0}


def test_empty_store():
    adapter = CanvasAdapter(ImageSessionStore(), max_display_width=500)

    assert adapter.scale == 1.0
    assert adapter.stage_size() == (0, 0)
    assert adapter.display_boxes() == []
    assert adapter.overlay_counts() == {}
    assert adapter.thumbnails() == []
    assert not adapter.key_down("r")
    adapter.pointer_down(10, 10)
    adapter.pointer_move(20, 20)
    assert adapter.pointer_up(20, 20) is None
    adapter.set_display_width(300)
