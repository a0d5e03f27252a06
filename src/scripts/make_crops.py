#!/usr/bin/env python3
"""
Generate random training chips from a YOLO split.

Reads   <data_root>/images/<split>/*  and  <data_root>/labels/<split>/*.txt
Writes  <out_root>/images/<split>/crop_<i><ext>  +  labels (and *.ignore.txt
        sidecars for boxes that are only partly in the chip or too small).

Example
-------
python -m src.scripts.make_crops --data_root data/yolo_split --out_root data/chips \
    --num_crops 500 --chip_size 300 300 --seed 1337
"""
from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

from src.cropper.config import CropperConfig
from src.cropper.cropper import RandomCropper
from src.cropper.yolo_io import YoloCropIO
from src.utils import expand


def build_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """YAML config (if any) first, then CLI flags on top."""
    cfg = CropperConfig.load(expand(args.config)).to_dict() if args.config else {}
    if args.chip_size is not None:
        cfg["chip_dims"] = list(args.chip_size)
    if args.no_flip:
        cfg["randomly_flip"] = False
    if args.max_rotation is not None:
        cfg["max_rotation_degrees"] = args.max_rotation
    if args.min_object_height is not None:
        cfg["min_object_height"] = args.min_object_height
    if args.max_object_height is not None:
        cfg["max_object_height"] = args.max_object_height
    if args.background_frac is not None:
        cfg["background_crops_fraction"] = args.background_frac
    if args.seed is not None:
        cfg["seed"] = args.seed
    if args.workers is not None:
        cfg["num_workers"] = args.workers
    if args.verbose:
        cfg["verbose"] = True
    return cfg


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Cut random object-centred / background chips from a YOLO split.")
    ap.add_argument("--data_root", required=True, help="YOLO root with images/<split> and labels/<split>.")
    ap.add_argument("--out_root", required=True, help="Where to write the chip dataset.")
    ap.add_argument("--split", default="train")
    ap.add_argument("--num_crops", type=int, default=100)
    ap.add_argument("--ext", default=".jpg", help="Output image extension.")
    ap.add_argument("--config", default=None, help="YAML with cropper settings (CLI flags override).")

    ap.add_argument("--chip_size", type=int, nargs=2, metavar=("ROWS", "COLS"), default=None)
    ap.add_argument("--no_flip", action="store_true", help="Disable random left-right flips.")
    ap.add_argument("--max_rotation", type=float, default=None, help="Max rotation in degrees.")
    ap.add_argument("--min_object_height", type=float, default=None)
    ap.add_argument("--max_object_height", type=float, default=None)
    ap.add_argument("--background_frac", type=float, default=None, help="Fraction of background-only crops.")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--workers", type=int, default=None, help="Worker threads for the batch.")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    data_root = expand(args.data_root)
    out_root = expand(args.out_root)

    try:
        cropper = RandomCropper(build_settings(args))
    except ValueError as e:
        raise SystemExit(f"[ERR] invalid cropper settings: {e}")

    _, images, rects = YoloCropIO.load_split(data_root, args.split)
    if not images:
        raise SystemExit(f"[ERR] no readable images under {data_root / 'images' / args.split}")
    print(f"[CROP] {len(images)} images, {sum(len(r) for r in rects)} boxes from {data_root}")

    chips, chip_rects = cropper.crop_batch(args.num_crops, images, rects)

    n_kept = n_ignored = 0
    for i, (chip, boxes) in enumerate(zip(chips, chip_rects)):
        YoloCropIO.write_chip(out_root, args.split, f"crop_{i:06d}", chip, boxes, ext=args.ext)
        n_ignored += sum(b.ignore for b in boxes)
        n_kept += sum(not b.ignore for b in boxes)

    YoloCropIO.write_data_yaml(out_root, args.split, names=YoloCropIO.read_names(data_root))
    print(f"[OK] {len(chips)} chips ({n_kept} boxes, {n_ignored} ignored) → {out_root}")


if __name__ == "__main__":
    main()
