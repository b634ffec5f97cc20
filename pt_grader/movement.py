"""Bounded movement history used for pause and stability detection."""

from collections import deque
from typing import Deque, Iterable

import numpy as np


class MovementHistory:
    """Sliding window of the most recent movement samples (angle deltas, paces...)."""

    def __init__(self, window: int = 10):
        if window < 1:
            raise ValueError("MovementHistory window must be at least 1")
        self.window = window
        self._samples: Deque[float] = deque(maxlen=window)

    def push(self, value: float) -> None:
        self._samples.append(float(value))

    def extend(self, values: Iterable[float]) -> None:
        for v in values:
            self.push(v)

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def is_full(self) -> bool:
        return len(self._samples) == self.window

    @property
    def average(self) -> float:
        if not self._samples:
            return 0.0
        return float(np.mean(self._samples))

    @property
    def std(self) -> float:
        """Population standard deviation of the window."""
        if not self._samples:
            return 0.0
        return float(np.std(self._samples))

    def is_stable(self, threshold: float = 0.02) -> bool:
        """Stable once at least half the window is filled and the spread is below ``threshold``."""
        if len(self._samples) < self.window / 2:
            return False
        return self.std < threshold
