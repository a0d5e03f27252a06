import numpy as np
import pytest

from src.cropper.bounding_box import BoundingBox, Box
from src.cropper.chip import ChipDims, CropPlan, RectangleTransform, get_mapping_to_chip
from src.cropper.remap import BoxRemapper
from src.utils import round_half_up

# image 100x100 cropped at (50,50)-(100,100) into a 50x50 chip: a pure shift by -50
PLAN = CropPlan(BoundingBox(50, 50, 100, 100), ChipDims(50, 50))
SHIFT = RectangleTransform(np.array([[1.0, 0.0, -50.0], [0.0, 1.0, -50.0]]))
CHIP_RECT = PLAN.dims.as_rect()
MIN_H = round_half_up(0.25 * 50)  # 13


@pytest.fixture
def remapper():
    return BoxRemapper(MIN_H)


def _remap(remapper, boxes):
    return remapper.remap(boxes, SHIFT, CHIP_RECT)


def test_plan_mapping_is_a_shift():
    assert get_mapping_to_chip(PLAN).matrix == pytest.approx(SHIFT.matrix, abs=1e-9)


def test_plan_mapping_drops_outside_box(remapper):
    out = remapper.remap([Box(BoundingBox(0, 0, 10, 10))], get_mapping_to_chip(PLAN), CHIP_RECT)
    assert out == []


def _coords(b):
    return (b.rect.x1, b.rect.y1, b.rect.x2, b.rect.y2)


def test_box_outside_crop_is_dropped(remapper):
    assert _remap(remapper, [Box(BoundingBox(0, 0, 10, 10))]) == []


def test_box_touching_crop_edge_is_dropped(remapper):
    assert _remap(remapper, [Box(BoundingBox(100, 60, 110, 80))]) == []


def test_contained_box_keeps_ignore_flag(remapper):
    out = _remap(remapper, [Box(BoundingBox(60, 60, 80, 80), label="a")])
    assert len(out) == 1
    assert out[0].ignore is False
    assert out[0].label == "a"
    assert _coords(out[0]) == pytest.approx((10, 10, 30, 30))


def test_already_ignored_box_stays_ignored(remapper):
    out = _remap(remapper, [Box(BoundingBox(60, 60, 80, 80), ignore=True)])
    assert [b.ignore for b in out] == [True]


def test_partially_contained_box_becomes_ignored(remapper):
    out = _remap(remapper, [Box(BoundingBox(40, 60, 70, 80))])
    assert len(out) == 1
    assert out[0].ignore is True
    # kept unclipped
    assert _coords(out[0]) == pytest.approx((-10, 10, 20, 30))


def test_small_box_becomes_ignored(remapper):
    out = _remap(remapper, [Box(BoundingBox(60, 60, 70, 70))])  # height 10 < 13
    assert [b.ignore for b in out] == [True]


def test_height_at_threshold_is_kept(remapper):
    out = _remap(remapper, [Box(BoundingBox(60, 60, 70, 60 + MIN_H))])
    assert [b.ignore for b in out] == [False]


def test_order_preserved_minus_drops(remapper):
    boxes = [
        Box(BoundingBox(60, 60, 80, 80), label="keep1"),
        Box(BoundingBox(0, 0, 10, 10), label="drop"),
        Box(BoundingBox(40, 60, 70, 80), label="keep2"),
        Box(BoundingBox(70, 70, 75, 75), label="keep3"),
    ]
    out = _remap(remapper, boxes)
    assert [b.label for b in out] == ["keep1", "keep2", "keep3"]
    assert [b.ignore for b in out] == [False, True, True]


def test_inputs_not_mutated(remapper):
    box = Box(BoundingBox(40, 60, 70, 80))
    _remap(remapper, [box])
    assert box.ignore is False
    assert box.rect == BoundingBox(40, 60, 70, 80)


def test_flip_left_right_is_self_inverse():
    boxes = [Box(BoundingBox(5, 1, 15, 30), ignore=True, label="x"), Box(BoundingBox(0, 0, 50, 50))]
    once = BoxRemapper.flip_left_right(boxes, CHIP_RECT)
    assert _coords(once[0]) == (35, 1, 45, 30)
    assert once[0].ignore is True and once[0].label == "x"
    assert BoxRemapper.flip_left_right(once, CHIP_RECT) == boxes
