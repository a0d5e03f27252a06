from __future__ import annotations

import threading
from typing import Callable, Optional, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """
    One pseudo-random generator shared by every crop a cropper makes.

    The generator is only reachable through `draw`, which holds the lock for
    the whole callback. A crop plan is drawn in a single `draw` call so that
    concurrent planners never interleave draws within one plan.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._rng = np.random.default_rng(seed)

    def draw(self, fn: Callable[[np.random.Generator], T]) -> T:
        with self._lock:
            return fn(self._rng)

    def pick_index(self, n: int) -> int:
        if n <= 0:
            raise ValueError(f"cannot pick an index from an empty collection (n={n})")
        return self.draw(lambda rng: int(rng.integers(0, n)))

    def reseed(self, seed: Optional[int]) -> None:
        with self._lock:
            self._rng = np.random.default_rng(seed)
