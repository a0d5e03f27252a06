from __future__ import annotations

"""
Chip geometry: crop plans, the affine mapping from image space into a chip,
chip extraction and left-right flips.

Coordinates are continuous pixel-space: pixel (r, c) covers [c, c+1) x [r, r+1).
A plan's rect is rotated by `angle` (radians) about its own centre and then
stretched onto a `dims.cols x dims.rows` chip, so the rect's top-left, top-right
and bottom-right corners land on (0, 0), (cols, 0) and (cols, rows).
"""

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import cv2
import numpy as np

from .bounding_box import BoundingBox
from .enums import CropKind


@dataclass(frozen=True)
class ChipDims:
    rows: int
    cols: int

    def __post_init__(self) -> None:
        try:
            whole = all(
                not isinstance(v, bool) and int(v) == v for v in (self.rows, self.cols)
            )
        except (TypeError, ValueError):
            whole = False
        if not whole:
            raise ValueError(f"chip dims must be integers, got rows={self.rows!r}, cols={self.cols!r}")
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError(f"chip dims must be positive, got rows={self.rows}, cols={self.cols}")
        object.__setattr__(self, "rows", int(self.rows))
        object.__setattr__(self, "cols", int(self.cols))

    def as_rect(self) -> BoundingBox:
        return BoundingBox(0.0, 0.0, float(self.cols), float(self.rows))


@dataclass(frozen=True)
class CropPlan:
    """Everything needed to cut one chip out of one image."""
    rect: BoundingBox
    dims: ChipDims
    angle: float = 0.0  # radians
    kind: CropKind = CropKind.OBJECT
    flip: bool = False

    @property
    def angle_degrees(self) -> float:
        return math.degrees(self.angle)


def rotate_point(center: Tuple[float, float], p: Tuple[float, float], angle: float) -> Tuple[float, float]:
    ca, sa = math.cos(angle), math.sin(angle)
    dx, dy = p[0] - center[0], p[1] - center[1]
    return (center[0] + ca * dx - sa * dy, center[1] + sa * dx + ca * dy)


class RectangleTransform:
    """
    Affine point transform that also maps boxes: a box maps to the bounding box
    of its four transformed corners.
    """

    def __init__(self, matrix: np.ndarray) -> None:
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (2, 3):
            raise ValueError(f"expected a 2x3 affine matrix, got shape {m.shape}")
        self.matrix = m

    def map_points(self, pts: Iterable[Tuple[float, float]]) -> np.ndarray:
        p = np.asarray(list(pts), dtype=np.float64).reshape(-1, 2)
        return p @ self.matrix[:, :2].T + self.matrix[:, 2]

    def map_point(self, p: Tuple[float, float]) -> Tuple[float, float]:
        x, y = self.map_points([p])[0]
        return float(x), float(y)

    def __call__(self, rect: BoundingBox) -> BoundingBox:
        corners = self.map_points([
            (rect.x1, rect.y1),
            (rect.x2, rect.y1),
            (rect.x2, rect.y2),
            (rect.x1, rect.y2),
        ])
        x1, y1 = corners.min(axis=0)
        x2, y2 = corners.max(axis=0)
        return BoundingBox(float(x1), float(y1), float(x2), float(y2))


def get_mapping_to_chip(plan: CropPlan) -> RectangleTransform:
    """Forward mapping from image coordinates to chip coordinates for `plan`."""
    r = plan.rect
    if r.is_empty():
        raise ValueError(f"crop plan has a degenerate source rect: {r}")
    c = r.center()
    src = np.float32([
        rotate_point(c, (r.x1, r.y1), plan.angle),
        rotate_point(c, (r.x2, r.y1), plan.angle),
        rotate_point(c, (r.x2, r.y2), plan.angle),
    ])
    dst = np.float32([
        [0.0, 0.0],
        [plan.dims.cols, 0.0],
        [plan.dims.cols, plan.dims.rows],
    ])
    return RectangleTransform(cv2.getAffineTransform(src, dst))


def extract_image_chip(
    image: np.ndarray,
    plan: CropPlan,
    interpolation: int = cv2.INTER_LINEAR,
) -> np.ndarray:
    """
    Resample the (rotated) plan rect of `image` into a new `rows x cols` chip.
    Regions outside the image are filled with zeros.
    """
    if image is None or image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError("cannot extract a chip from an empty image")

    m = get_mapping_to_chip(plan).matrix
    # warpAffine puts pixel centres on integer coordinates
    a, t = m[:, :2], m[:, 2]
    m_pix = np.hstack([a, (t + a @ np.array([0.5, 0.5]) - 0.5).reshape(2, 1)])

    chip = cv2.warpAffine(
        np.ascontiguousarray(image),
        m_pix,
        (plan.dims.cols, plan.dims.rows),
        flags=interpolation,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    if image.ndim == 3 and chip.ndim == 2:
        chip = chip[:, :, None]
    return chip


def get_rect(image: np.ndarray) -> BoundingBox:
    return BoundingBox(0.0, 0.0, float(image.shape[1]), float(image.shape[0]))


def flip_image_left_right(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(image[:, ::-1])


def flip_rect_left_right(rect: BoundingBox, window: BoundingBox) -> BoundingBox:
    """Mirror `rect` about the vertical centre line of `window`."""
    left_dist = rect.x1 - window.x1
    right_dist = window.x2 - rect.x2
    return BoundingBox(window.x1 + right_dist, rect.y1, window.x2 - left_dist, rect.y2)
