from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from src.utils import ensure_dir, ensure_parent, list_files_with_ext
from .bounding_box import BoundingBox, Box


def read_yolo_labels(lbl_path: Path) -> List[Tuple[int, float, float, float, float]]:
    """
    Return [(cls, xc, yc, w, h), ...] with coordinates normalized to [0,1].
    Missing file => no labels. Malformed lines are skipped.
    """
    rows: List[Tuple[int, float, float, float, float]] = []
    if not lbl_path.exists():
        return rows
    for ln in lbl_path.read_text().splitlines():
        parts = ln.strip().split()
        if len(parts) < 5:
            continue
        try:
            cls = int(float(parts[0]))
            x, y, w, h = map(float, parts[1:5])
        except ValueError:
            continue
        rows.append((cls, x, y, w, h))
    return rows


def yolo_rows_to_boxes(rows, img_w: int, img_h: int, ignore: bool = False) -> List[Box]:
    return [
        Box(rect=BoundingBox.from_yolo_norm(x, y, w, h, img_w, img_h), ignore=ignore, label=str(cls))
        for cls, x, y, w, h in rows
    ]


def boxes_to_yolo_lines(boxes: Sequence[Box], img_w: int, img_h: int) -> List[str]:
    """Clip to the image and format; boxes that clip to nothing are dropped."""
    lines = []
    for b in boxes:
        r = b.rect.clipped(img_w, img_h)
        if r.is_empty():
            continue
        xc, yc, w, h = r.to_yolo_norm(img_w, img_h)
        lines.append(f"{b.label or 0} {xc:.6f} {yc:.6f} {w:.6f} {h:.6f}")
    return lines


def _write_lines(path: Path, lines: List[str]) -> None:
    ensure_parent(path)
    path.write_text("\n".join(lines) + ("\n" if lines else ""))


class YoloCropIO:
    """Reads (image, boxes) pools from a YOLO split and writes chips back out."""

    @staticmethod
    def load_split(root: Path, split: str) -> Tuple[List[Path], List[np.ndarray], List[List[Box]]]:
        img_dir = root / "images" / split
        lbl_dir = root / "labels" / split
        if not img_dir.exists():
            raise SystemExit(f"[ERR] images split not found: {img_dir}")

        paths: List[Path] = []
        images: List[np.ndarray] = []
        rects: List[List[Box]] = []
        for ip in list_files_with_ext(img_dir, recursive=False):
            im = cv2.imread(str(ip), cv2.IMREAD_COLOR)
            if im is None:
                print(f"[WARN] Failed to read image: {ip}")
                continue
            H, W = im.shape[:2]
            boxes = yolo_rows_to_boxes(read_yolo_labels(lbl_dir / f"{ip.stem}.txt"), W, H)
            # an '<stem>.ignore.txt' sidecar marks boxes to report but not learn from
            boxes += yolo_rows_to_boxes(read_yolo_labels(lbl_dir / f"{ip.stem}.ignore.txt"), W, H, ignore=True)
            paths.append(ip)
            images.append(im)
            rects.append(boxes)
        return paths, images, rects

    @staticmethod
    def write_chip(out_root: Path, split: str, stem: str, chip: np.ndarray, boxes: Sequence[Box], ext: str = ".jpg") -> None:
        img_p = out_root / "images" / split / f"{stem}{ext}"
        lbl_dir = out_root / "labels" / split
        ensure_parent(img_p)
        if not cv2.imwrite(str(img_p), chip):
            raise RuntimeError(f"cv2.imwrite failed for {img_p}")

        H, W = chip.shape[:2]
        _write_lines(lbl_dir / f"{stem}.txt", boxes_to_yolo_lines([b for b in boxes if not b.ignore], W, H))
        ignored = boxes_to_yolo_lines([b for b in boxes if b.ignore], W, H)
        ignore_p = lbl_dir / f"{stem}.ignore.txt"
        if ignored:
            _write_lines(ignore_p, ignored)
        elif ignore_p.exists():
            # left over from an earlier run into the same out_root
            ignore_p.unlink()

    @staticmethod
    def write_data_yaml(root: Path, split: str, names: Optional[List[str]] = None) -> None:
        import yaml

        ensure_dir(root)
        data_yaml = {
            "path": str(root.resolve()),
            "train": f"images/{split}",
            "val": f"images/{split}",
        }
        if names:
            data_yaml["names"] = names
        with open(root / "data.yaml", "w") as f:
            yaml.safe_dump(data_yaml, f, sort_keys=False)

    @staticmethod
    def read_names(root: Path) -> Optional[List[str]]:
        import yaml

        p = root / "data.yaml"
        if not p.exists():
            return None
        with open(p, "r") as f:
            d = yaml.safe_load(f) or {}
        names = d.get("names")
        if isinstance(names, dict):
            return [str(names[k]) for k in sorted(names)]
        return list(names) if names else None
