# src/cropper/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .chip import ChipDims


DEFAULT_CFG: Dict[str, Any] = {
    "chip_dims": [300, 300],            # [rows, cols] of every output chip
    "randomly_flip": True,
    "max_rotation_degrees": 30.0,
    "min_object_height": 0.25,          # object spans at least this fraction of chip height
    "max_object_height": 0.7,           # ... and at most this fraction
    "background_crops_fraction": 0.1,   # probability of ignoring the boxes and cropping anywhere
    "seed": None,                       # set an int for reproducible crops
    "num_workers": None,                # crop_batch thread count; None = executor default
    "verbose": False,
}


# ----------------------------- validators -----------------------------------

def check_object_height(name: str, value: float) -> float:
    v = float(value)
    if not (0.0 < v < 1.0):
        raise ValueError(f"{name} must be in (0, 1), got {value!r}")
    return v


def check_background_crops_fraction(value: float) -> float:
    v = float(value)
    if not (0.0 <= v < 1.0):
        raise ValueError(f"background_crops_fraction must be in [0, 1), got {value!r}")
    return v


def parse_bool(name: str, value: Any) -> bool:
    """YAML and CLI strings like "false" / "no" / "0" count as False."""
    if isinstance(value, str):
        s = value.strip().lower()
        if s in ("1", "true", "yes", "on"):
            return True
        if s in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{name} must be a boolean, got {value!r}")
    return bool(value)


def parse_chip_dims(v: Any) -> ChipDims:
    """Accepts ChipDims, an int (square), [rows, cols] or {rows: .., cols: ..}."""
    if isinstance(v, ChipDims):
        return v
    if isinstance(v, bool):
        raise ValueError(f"invalid chip_dims: {v!r}")
    if isinstance(v, int):
        return ChipDims(v, v)
    if isinstance(v, dict):
        try:
            return ChipDims(v["rows"], v["cols"])
        except KeyError as e:
            raise ValueError(f"chip_dims mapping needs 'rows' and 'cols', got {v!r}") from e
    if isinstance(v, (list, tuple)) and len(v) == 2:
        return ChipDims(v[0], v[1])
    raise ValueError(f"invalid chip_dims: {v!r}")


# ----------------------------- config dataclass -----------------------------

@dataclass
class CropperConfig:
    chip_dims: ChipDims = field(default_factory=lambda: ChipDims(300, 300))
    randomly_flip: bool = True
    max_rotation_degrees: float = 30.0
    min_object_height: float = 0.25
    max_object_height: float = 0.7
    background_crops_fraction: float = 0.1

    seed: Optional[int] = None
    num_workers: Optional[int] = None
    verbose: bool = False

    def validate(self) -> "CropperConfig":
        self.chip_dims = parse_chip_dims(self.chip_dims)
        self.randomly_flip = parse_bool("randomly_flip", self.randomly_flip)
        self.verbose = parse_bool("verbose", self.verbose)
        self.max_rotation_degrees = abs(float(self.max_rotation_degrees))
        self.min_object_height = check_object_height("min_object_height", self.min_object_height)
        self.max_object_height = check_object_height("max_object_height", self.max_object_height)
        self.background_crops_fraction = check_background_crops_fraction(self.background_crops_fraction)
        if self.num_workers is not None and int(self.num_workers) < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers!r}")
        return self

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]] = None) -> "CropperConfig":
        d = dict(DEFAULT_CFG)
        unknown = set(overrides or {}) - set(DEFAULT_CFG)
        if unknown:
            raise ValueError(f"unknown cropper settings: {sorted(unknown)}")
        d.update(overrides or {})
        return cls(
            chip_dims=parse_chip_dims(d["chip_dims"]),
            randomly_flip=parse_bool("randomly_flip", d["randomly_flip"]),
            max_rotation_degrees=float(d["max_rotation_degrees"]),
            min_object_height=float(d["min_object_height"]),
            max_object_height=float(d["max_object_height"]),
            background_crops_fraction=float(d["background_crops_fraction"]),
            seed=(int(d["seed"]) if d.get("seed") is not None else None),
            num_workers=(int(d["num_workers"]) if d.get("num_workers") is not None else None),
            verbose=parse_bool("verbose", d["verbose"]),
        ).validate()

    @classmethod
    def load(cls, path: Path) -> "CropperConfig":
        import yaml

        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}
        if not isinstance(cfg, dict):
            raise ValueError(f"{path}: expected a mapping of cropper settings")
        # allow the settings to live under a 'cropper:' block of a larger file
        if isinstance(cfg.get("cropper"), dict):
            cfg = cfg["cropper"]
        return cls.from_dict(cfg)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chip_dims": [self.chip_dims.rows, self.chip_dims.cols],
            "randomly_flip": self.randomly_flip,
            "max_rotation_degrees": self.max_rotation_degrees,
            "min_object_height": self.min_object_height,
            "max_object_height": self.max_object_height,
            "background_crops_fraction": self.background_crops_fraction,
            "seed": self.seed,
            "num_workers": self.num_workers,
            "verbose": self.verbose,
        }
