from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from src.utils import (
    xc_yc_wh_to_xyxy,
    xyxy_to_xc_yc_wh,
)


@dataclass(frozen=True)
class BoundingBox:
    """Pixel-space axis-aligned box. Right and bottom edges are exclusive."""
    x1: float
    y1: float
    x2: float
    y2: float

    @staticmethod
    def centered(center: Tuple[float, float], width: float, height: float) -> "BoundingBox":
        x1, y1, x2, y2 = xc_yc_wh_to_xyxy(center[0], center[1], width, height)
        return BoundingBox(x1, y1, x2, y2)

    @staticmethod
    def from_yolo_norm(
        xc: float, yc: float, w: float, h: float, img_w: int, img_h: int
    ) -> "BoundingBox":
        x1, y1, x2, y2 = xc_yc_wh_to_xyxy(xc * img_w, yc * img_h, w * img_w, h * img_h)
        return BoundingBox(x1, y1, x2, y2)

    def to_yolo_norm(self, img_w: int, img_h: int):
        xc, yc, w, h = xyxy_to_xc_yc_wh(self.x1, self.y1, self.x2, self.y2)
        return (xc / img_w, yc / img_h, w / img_w, h / img_h)

    @property
    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    @property
    def height(self) -> float:
        return max(0.0, self.y2 - self.y1)

    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0)

    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "BoundingBox") -> float:
        inter = self.intersect(other).area()
        denom = self.area() + other.area() - inter + 1e-9
        return inter / denom

    def is_empty(self) -> bool:
        return self.x2 <= self.x1 or self.y2 <= self.y1

    def intersect(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            max(self.x1, other.x1),
            max(self.y1, other.y1),
            min(self.x2, other.x2),
            min(self.y2, other.y2),
        )

    def contains(self, other: "BoundingBox") -> bool:
        return (
            other.x1 >= self.x1
            and other.y1 >= self.y1
            and other.x2 <= self.x2
            and other.y2 <= self.y2
        )

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def clipped(self, img_w: int, img_h: int) -> "BoundingBox":
        x1 = min(max(self.x1, 0.0), img_w)
        y1 = min(max(self.y1, 0.0), img_h)
        x2 = min(max(self.x2, 0.0), img_w)
        y2 = min(max(self.y2, 0.0), img_h)
        return BoundingBox(x1, y1, x2, y2)


@dataclass(frozen=True)
class Box:
    """A labelled object box. `ignore` boxes are reported but excluded from the loss."""
    rect: BoundingBox
    ignore: bool = False
    label: str = ""

    def with_rect(self, rect: BoundingBox) -> "Box":
        return replace(self, rect=rect)
