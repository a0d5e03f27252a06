# src/cropper/cropper.py
from __future__ import annotations

"""
RandomCropper: turns (image, boxes) pairs into fixed-size training chips.

Usage
-----
from src.cropper.cropper import RandomCropper
from src.cropper.bounding_box import Box, BoundingBox

cropper = RandomCropper({"chip_dims": [200, 200], "seed": 7})
cropper.max_rotation_degrees = 10

chip, boxes = cropper.crop(img, [Box(BoundingBox(40, 30, 90, 120))])
chips, chip_boxes = cropper.crop_batch(64, images, rects)

Configure the cropper before handing it to worker threads: settings are read
by every crop and are not guarded by the lock.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from src.utils import round_half_up
from .bounding_box import Box
from .chip import (
    ChipDims,
    CropPlan,
    extract_image_chip,
    flip_image_left_right,
    get_mapping_to_chip,
    get_rect,
)
from .config import (
    CropperConfig,
    check_background_crops_fraction,
    check_object_height,
    parse_bool,
    parse_chip_dims,
)
from .planner import CropPlanner
from .random_source import RandomSource
from .remap import BoxRemapper


CropResult = Tuple[np.ndarray, List[Box]]


class RandomCropper:
    """
    Generates randomly translated / scaled / rotated / flipped chips, biased
    towards containing a labelled object, with the boxes mapped into each chip.
    Safe to call from many threads at once.
    """

    def __init__(
        self,
        config: Optional[Union[CropperConfig, Dict[str, Any]]] = None,
        seed: Optional[int] = None,
    ) -> None:
        if isinstance(config, CropperConfig):
            cfg = replace(config).validate()
        else:
            cfg = CropperConfig.from_dict(config)
        if seed is not None:
            cfg.seed = int(seed)
        self._cfg = cfg

        self.source = RandomSource(cfg.seed)
        self.planner = CropPlanner(self.source)

        if cfg.verbose:
            print(f"[CROP] {self!r}")

    @classmethod
    def from_config(cls, path: Path, seed: Optional[int] = None) -> "RandomCropper":
        return cls(CropperConfig.load(path), seed=seed)

    @property
    def config(self) -> CropperConfig:
        """A copy of the current settings."""
        return replace(self._cfg)

    # -------- settings --------

    @property
    def chip_dims(self) -> ChipDims:
        return self._cfg.chip_dims

    @chip_dims.setter
    def chip_dims(self, value) -> None:
        self._cfg.chip_dims = parse_chip_dims(value)

    def set_chip_dims(self, rows, cols: Optional[int] = None) -> None:
        """set_chip_dims(ChipDims) / set_chip_dims(size) / set_chip_dims(rows, cols)"""
        if cols is None:
            self._cfg.chip_dims = parse_chip_dims(rows)
        else:
            self._cfg.chip_dims = ChipDims(rows, cols)

    def get_chip_dims(self) -> ChipDims:
        return self.chip_dims

    @property
    def randomly_flip(self) -> bool:
        return self._cfg.randomly_flip

    @randomly_flip.setter
    def randomly_flip(self, value: bool) -> None:
        self._cfg.randomly_flip = parse_bool("randomly_flip", value)

    @property
    def max_rotation_degrees(self) -> float:
        return self._cfg.max_rotation_degrees

    @max_rotation_degrees.setter
    def max_rotation_degrees(self, value: float) -> None:
        self._cfg.max_rotation_degrees = abs(float(value))

    @property
    def min_object_height(self) -> float:
        return self._cfg.min_object_height

    @min_object_height.setter
    def min_object_height(self, value: float) -> None:
        self._cfg.min_object_height = check_object_height("min_object_height", value)

    @property
    def max_object_height(self) -> float:
        return self._cfg.max_object_height

    @max_object_height.setter
    def max_object_height(self, value: float) -> None:
        self._cfg.max_object_height = check_object_height("max_object_height", value)

    @property
    def background_crops_fraction(self) -> float:
        return self._cfg.background_crops_fraction

    @background_crops_fraction.setter
    def background_crops_fraction(self, value: float) -> None:
        self._cfg.background_crops_fraction = check_background_crops_fraction(value)

    # get_*/set_* spellings of the properties above

    def get_randomly_flip(self) -> bool:
        return self.randomly_flip

    def set_randomly_flip(self, value: bool) -> None:
        self.randomly_flip = value

    def get_max_rotation_degrees(self) -> float:
        return self.max_rotation_degrees

    def set_max_rotation_degrees(self, value: float) -> None:
        self.max_rotation_degrees = value

    def get_min_object_height(self) -> float:
        return self.min_object_height

    def set_min_object_height(self, value: float) -> None:
        self.min_object_height = value

    def get_max_object_height(self) -> float:
        return self.max_object_height

    def set_max_object_height(self, value: float) -> None:
        self.max_object_height = value

    def get_background_crops_fraction(self) -> float:
        return self.background_crops_fraction

    def set_background_crops_fraction(self, value: float) -> None:
        self.background_crops_fraction = value

    # -------- single image --------

    def make_plan(self, image: np.ndarray, boxes: Sequence[Box]) -> CropPlan:
        return self.planner.make_plan(image.shape, boxes, self._cfg)

    def apply_plan(self, image: np.ndarray, boxes: Sequence[Box], plan: CropPlan) -> CropResult:
        chip = extract_image_chip(image, plan)
        tform = get_mapping_to_chip(plan)
        chip_rect = get_rect(chip)

        remapper = BoxRemapper(round_half_up(self._cfg.min_object_height * plan.dims.rows))
        chip_boxes = remapper.remap(boxes, tform, chip_rect)

        if plan.flip:
            chip = flip_image_left_right(chip)
            chip_boxes = remapper.flip_left_right(chip_boxes, chip_rect)
        return chip, chip_boxes

    def crop(self, image: np.ndarray, boxes: Sequence[Box]) -> CropResult:
        """One random chip of `image` and its boxes in chip coordinates."""
        return self.apply_plan(image, boxes, self.make_plan(image, boxes))

    # -------- pools --------

    @staticmethod
    def _check_pool(images: Sequence[np.ndarray], rects: Sequence[Sequence[Box]]) -> None:
        if len(images) != len(rects):
            raise ValueError(f"images and rects must be the same length ({len(images)} != {len(rects)})")

    def crop_from_pool(self, images: Sequence[np.ndarray], rects: Sequence[Sequence[Box]]) -> CropResult:
        """Crop a uniformly chosen (image, boxes) pair."""
        self._check_pool(images, rects)
        idx = self.source.pick_index(len(images))
        return self.crop(images[idx], rects[idx])

    def crop_batch(
        self,
        num_crops: int,
        images: Sequence[np.ndarray],
        rects: Sequence[Sequence[Box]],
    ) -> Tuple[List[np.ndarray], List[List[Box]]]:
        """
        `num_crops` independent pool crops made in parallel. Slot i of both
        returned lists holds the i-th crop. Any failure fails the whole batch.
        """
        self._check_pool(images, rects)
        if num_crops < 0:
            raise ValueError(f"num_crops must be >= 0, got {num_crops}")

        chips: List[Optional[np.ndarray]] = [None] * num_crops
        chip_rects: List[Optional[List[Box]]] = [None] * num_crops
        if num_crops == 0:
            return [], []

        with ThreadPoolExecutor(max_workers=self._cfg.num_workers) as ex:
            futures = [ex.submit(self.crop_from_pool, images, rects) for _ in range(num_crops)]
            try:
                for i, fut in enumerate(futures):
                    chips[i], chip_rects[i] = fut.result()
            except BaseException:
                for fut in futures:
                    fut.cancel()
                raise

        if self._cfg.verbose:
            n_boxes = sum(len(r) for r in chip_rects)
            print(f"[CROP] batch of {num_crops} chips from {len(images)} images ({n_boxes} boxes)")
        return chips, chip_rects

    def __call__(self, *args):
        """
        cropper(image, boxes)              -> (chip, boxes)
        cropper(images, rects)             -> (chip, boxes) from a random pool entry
        cropper(num_crops, images, rects)  -> (chips, rects)
        """
        if len(args) == 3:
            return self.crop_batch(*args)
        if len(args) == 2:
            if isinstance(args[0], np.ndarray):
                return self.crop(*args)
            return self.crop_from_pool(*args)
        raise TypeError(f"RandomCropper takes 2 or 3 arguments, got {len(args)}")

    def __repr__(self) -> str:
        c = self._cfg
        return (f"RandomCropper(chip_dims={c.chip_dims.rows}x{c.chip_dims.cols}, "
                f"randomly_flip={c.randomly_flip}, max_rotation_degrees={c.max_rotation_degrees:g}, "
                f"min_object_height={c.min_object_height:g}, max_object_height={c.max_object_height:g}, "
                f"background_crops_fraction={c.background_crops_fraction:g})")
