from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Iterable, List


IMG_EXTS = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp")


def expand(p: str | Path) -> Path:
    return Path(os.path.expanduser(str(p))).resolve()


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def ensure_parent(p: Path) -> None:
    ensure_dir(p.parent)


def list_files_with_ext(root: Path, exts: Iterable[str] = IMG_EXTS, recursive: bool = True) -> List[Path]:
    exts = tuple(e.lower() for e in exts)
    if recursive:
        return sorted([p for p in root.rglob("*") if p.suffix.lower() in exts])
    return sorted([p for p in root.iterdir() if p.suffix.lower() in exts])


def round_half_up(x: float) -> int:
    """Round to nearest int with .5 going away from zero (unlike built-in round)."""
    if x >= 0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def xyxy_to_xc_yc_wh(x1: float, y1: float, x2: float, y2: float):
    w = max(0.0, x2 - x1)
    h = max(0.0, y2 - y1)
    xc = x1 + w / 2.0
    yc = y1 + h / 2.0
    return xc, yc, w, h


def xc_yc_wh_to_xyxy(xc: float, yc: float, w: float, h: float):
    x1 = xc - w / 2.0
    y1 = yc - h / 2.0
    x2 = xc + w / 2.0
    y2 = yc + h / 2.0
    return x1, y1, x2, y2
