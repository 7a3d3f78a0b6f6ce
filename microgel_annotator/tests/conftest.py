"""
Test fixtures and utilities for microgel_annotator tests.

Provides reusable fixtures for class maps, regions and detection batches.
"""

import itertools

import pytest

MICROGEL = 0
CELL = 1


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: end-to-end workflow tests across modules"
    )


_region_ids = itertools.count(1)


def _make_region(x, y, w, h, class_id=MICROGEL, region_id=None, class_name=""):
    """Create a Region with an auto-generated id."""
    from microgel_annotator.core.annotation import Region

    return Region(
        id=region_id or f"r{next(_region_ids)}",
        x=x,
        y=y,
        w=w,
        h=h,
        class_id=class_id,
        class_name=class_name,
    )


@pytest.fixture
def make_region():
    """Factory for regions: make_region(x, y, w, h, class_id=0, region_id=None)."""
    return _make_region


@pytest.fixture
def class_map():
    from microgel_annotator.core.annotation import ClassMap

    return ClassMap({"0": "microgel", "1": "cell"})


@pytest.fixture
def rules():
    from microgel_annotator.core.annotation import RuleConfig

    return RuleConfig(overlap_iou=0.10, edge_outside_percent=50)


@pytest.fixture
def image():
    """A 1000x1000 image with one valid microgel holding one cell."""
    from microgel_annotator.core.annotation import ImageItem

    return ImageItem(
        id="img-1",
        filename="sample.png",
        width=1000,
        height=1000,
        regions=[
            _make_region(100, 100, 50, 50, MICROGEL, "gel"),
            _make_region(120, 120, 10, 10, CELL, "cell"),
        ],
    )


@pytest.fixture
def editor(image, class_map, rules):
    from microgel_annotator.core.annotation import BoxEditor

    return BoxEditor(image, class_map, rules, scale=1.0)


@pytest.fixture
def detect_response():
    """Detection-service batch with string class map keys."""
    return {
        "classMap": {"0": "microgel", "1": "cell"},
        "images": [
            {
                "id": "a",
                "filename": "a.png",
                "storedFilename": "stored_a.png",
                "url": "/files/stored_a.png",
                "width": 1000,
                "height": 800,
                "boxes": [
                    {"id": "a-gel", "x": 0, "y": 0, "w": 100, "h": 100, "classId": 0, "score": 0.9},
                    {"id": "a-cell", "x": 45, "y": 45, "w": 10, "h": 10, "classId": 1, "score": 0.8},
                    {"id": "a-cell-out", "x": 500, "y": 500, "w": 10, "h": 10, "classId": 1},
                ],
            },
            {
                "id": "b",
                "filename": "b.png",
                "width": 500,
                "height": 500,
                "boxes": [
                    {"id": "b-gel-1", "x": 0, "y": 0, "w": 100, "h": 100, "classId": 0},
                    {"id": "b-gel-2", "x": 5, "y": 5, "w": 100, "h": 100, "classId": 0},
                    {"id": "b-cell", "x": 45, "y": 45, "w": 10, "h": 10, "classId": 1},
                ],
            },
        ],
    }


@pytest.fixture
def store(detect_response):
    from microgel_annotator.core.annotation import ImageSessionStore

    store = ImageSessionStore()
    store.import_detections(detect_response)
    return store
