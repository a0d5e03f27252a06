from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from .bounding_box import BoundingBox, Box
from .chip import CropPlan
from .config import CropperConfig
from .enums import CropKind
from .random_source import RandomSource


# Background crops are squares whose side is this fraction of the image's short side.
BACKGROUND_MIN_SCALE = 0.466666666
BACKGROUND_MAX_SCALE = 0.875

# Object-centred crops move the object centre by up to this fraction of its size.
CENTER_JITTER = 0.1


def draw_in_range(rng: np.random.Generator, begin: float, end: float) -> float:
    """A uniform draw between `begin` and `end`, in either order."""
    return begin + float(rng.random()) * (end - begin)


def has_non_ignored_box(boxes: Sequence[Box]) -> bool:
    return any(not b.ignore for b in boxes)


def pick_non_ignored(boxes: Sequence[Box], rng: np.random.Generator) -> int:
    """Uniformly pick the index of a box with ignore == False."""
    if not has_non_ignored_box(boxes):
        raise ValueError("no non-ignored box to centre a crop on")
    idx = int(rng.integers(0, len(boxes)))
    while boxes[idx].ignore:
        idx = int(rng.integers(0, len(boxes)))
    return idx


class CropPlanner:
    """
    Decides where to crop: object-centred most of the time, anywhere in the
    image otherwise. Every draw for one plan happens under one lock of the
    shared RandomSource.
    """

    def __init__(self, source: RandomSource) -> None:
        self.source = source

    def make_plan(self, image_shape: Tuple[int, ...], boxes: Sequence[Box], cfg: CropperConfig) -> CropPlan:
        h, w = int(image_shape[0]), int(image_shape[1])
        if h <= 0 or w <= 0:
            raise ValueError(f"cannot plan a crop on an empty image ({w}x{h})")
        return self.source.draw(lambda rng: self._draw_plan(rng, h, w, boxes, cfg))

    # -------- draws (lock held) --------

    def _draw_plan(
        self,
        rng: np.random.Generator,
        h: int,
        w: int,
        boxes: Sequence[Box],
        cfg: CropperConfig,
    ) -> CropPlan:
        if has_non_ignored_box(boxes) and rng.random() >= cfg.background_crops_fraction:
            rect = self._object_rect(rng, boxes[pick_non_ignored(boxes, rng)].rect, cfg)
            kind = CropKind.OBJECT
        else:
            rect = self._background_rect(rng, h, w)
            kind = CropKind.BACKGROUND

        flip = bool(cfg.randomly_flip and rng.random() > 0.5)
        max_rot = cfg.max_rotation_degrees
        angle = math.radians(float(rng.uniform(-max_rot, max_rot)))
        return CropPlan(rect=rect, dims=cfg.chip_dims, angle=angle, kind=kind, flip=flip)

    @staticmethod
    def _object_rect(rng: np.random.Generator, obj: BoundingBox, cfg: CropperConfig) -> BoundingBox:
        dx = rng.uniform(-CENTER_JITTER, CENTER_JITTER) * obj.width
        dy = rng.uniform(-CENTER_JITTER, CENTER_JITTER) * obj.height

        # the object should end up min..max_object_height of the chip's height
        # min/max are validated separately, so they may arrive reversed
        scale = draw_in_range(rng, cfg.min_object_height, cfg.max_object_height)
        side = obj.height / scale
        if side <= 0:
            raise ValueError(f"cannot centre a crop on a box with zero height: {obj}")

        cx, cy = obj.center()
        return BoundingBox.centered((cx + dx, cy + dy), side, side)

    @staticmethod
    def _background_rect(rng: np.random.Generator, h: int, w: int) -> BoundingBox:
        scale = rng.uniform(BACKGROUND_MIN_SCALE, BACKGROUND_MAX_SCALE)
        side = int(scale * min(h, w))
        if side < 1 or w - side < 1 or h - side < 1:
            raise ValueError(
                f"image of {w}x{h} is too small for a background crop (side={side})"
            )
        x0 = int(rng.integers(0, w - side))
        y0 = int(rng.integers(0, h - side))
        return BoundingBox(0.0, 0.0, float(side), float(side)).translated(x0, y0)
