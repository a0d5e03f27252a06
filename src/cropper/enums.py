from __future__ import annotations
from enum import Enum


class CropKind(str, Enum):
    OBJECT = "object"
    BACKGROUND = "background"
