import pytest

from src.cropper.bounding_box import BoundingBox, Box


def test_centered():
    b = BoundingBox.centered((5.0, 5.0), 4.0, 2.0)
    assert (b.x1, b.y1, b.x2, b.y2) == (3.0, 4.0, 7.0, 6.0)
    assert b.center() == (5.0, 5.0)


def test_size_and_area():
    b = BoundingBox(10, 20, 30, 60)
    assert b.width == 20
    assert b.height == 40
    assert b.area() == pytest.approx(20 * 40)
    # inverted boxes have no extent
    assert BoundingBox(5, 5, 0, 0).area() == 0
    assert BoundingBox(5, 5, 0, 0).is_empty()


def test_intersect_and_contains():
    a = BoundingBox(0, 0, 10, 10)
    b = BoundingBox(5, 5, 15, 15)
    inter = a.intersect(b)
    assert (inter.x1, inter.y1, inter.x2, inter.y2) == (5, 5, 10, 10)
    assert inter.area() == pytest.approx(25)

    far = BoundingBox(50, 50, 60, 60)
    assert a.intersect(far).area() == 0

    assert a.contains(BoundingBox(0, 0, 10, 10))
    assert a.contains(BoundingBox(2, 2, 8, 8))
    assert not a.contains(b)


def test_touching_edges_do_not_overlap():
    a = BoundingBox(0, 0, 10, 10)
    b = BoundingBox(10, 0, 20, 10)
    assert a.intersect(b).area() == 0


def test_translated():
    b = BoundingBox(1, 2, 3, 4).translated(10, -2)
    assert (b.x1, b.y1, b.x2, b.y2) == (11, 0, 13, 2)


def test_yolo_norm_roundtrip():
    img_w, img_h = 100, 80
    b = BoundingBox(10, 20, 30, 60)
    xc, yc, w, h = b.to_yolo_norm(img_w, img_h)
    bb = BoundingBox.from_yolo_norm(xc, yc, w, h, img_w, img_h)
    assert bb.x1 == pytest.approx(b.x1)
    assert bb.y1 == pytest.approx(b.y1)
    assert bb.x2 == pytest.approx(b.x2)
    assert bb.y2 == pytest.approx(b.y2)


def test_clipped():
    b = BoundingBox(-10, -5, 110, 90).clipped(100, 80)
    assert b.x1 == 0 and b.y1 == 0 and b.x2 == 100 and b.y2 == 80


def test_box_with_rect_keeps_flags():
    box = Box(BoundingBox(0, 0, 1, 1), ignore=True, label="face")
    moved = box.with_rect(BoundingBox(5, 5, 6, 6))
    assert moved.ignore is True
    assert moved.label == "face"
    assert moved.rect == BoundingBox(5, 5, 6, 6)
    # original untouched
    assert box.rect == BoundingBox(0, 0, 1, 1)


def test_iou():
    a = BoundingBox(0, 0, 10, 10)
    b = BoundingBox(5, 5, 15, 15)
    inter = 5 * 5
    union = a.area() + b.area() - inter
    assert a.iou(b) == pytest.approx(inter / union)
    assert a.iou(a) == pytest.approx(1.0)
    assert a.iou(BoundingBox(20, 20, 30, 30)) == 0
