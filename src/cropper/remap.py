from __future__ import annotations

from typing import List, Sequence

from .bounding_box import BoundingBox, Box
from .chip import RectangleTransform, flip_rect_left_right


class BoxRemapper:
    """
    Moves boxes from image space into a chip and decides what survives:

    - no overlap with the chip        -> dropped
    - partly outside, or too short    -> kept, ignore = True
    - otherwise                       -> kept, ignore unchanged

    `ignore` is only ever turned on, never off.
    """

    def __init__(self, min_height_px: float) -> None:
        self.min_height_px = min_height_px

    def survives(self, mapped: BoundingBox, chip_rect: BoundingBox) -> bool:
        return chip_rect.intersect(mapped).area() != 0

    def should_ignore(self, box: Box, mapped: BoundingBox, chip_rect: BoundingBox) -> bool:
        not_contained = not chip_rect.contains(mapped)
        too_small = mapped.height < self.min_height_px
        return box.ignore or not_contained or too_small

    def remap(self, boxes: Sequence[Box], tform: RectangleTransform, chip_rect: BoundingBox) -> List[Box]:
        out: List[Box] = []
        for b in boxes:
            mapped = tform(b.rect)
            if not self.survives(mapped, chip_rect):
                continue
            out.append(Box(rect=mapped, ignore=self.should_ignore(b, mapped, chip_rect), label=b.label))
        return out

    @staticmethod
    def flip_left_right(boxes: Sequence[Box], chip_rect: BoundingBox) -> List[Box]:
        return [b.with_rect(flip_rect_left_right(b.rect, chip_rect)) for b in boxes]
