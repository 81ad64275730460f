from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Protocol

import numpy as np

from shared.models import MINIMAL_PREDICTION_ERROR


class Analyzer(Protocol):
    @property
    def norm(self) -> float:
        """Current error scale the detector compares against."""
        ...

    def reset(self) -> None:
        ...

    def add(self, error: float) -> None:
        ...

    def prime(self, errors: Iterable[float], threshold: float) -> None:
        ...


class AveragedMaxErrorAnalyzer:
    """
    Rolling error norm: the mean of per-block maxima of ``|error|`` over the
    trailing ``blocks`` blocks, the partially filled block included.

    One outlier can only raise a single block maximum, so its weight in the
    norm is ``1 / blocks``; a sustained rise lifts every block and the norm
    follows it.
    """

    def __init__(self, block_length: int = 16, blocks: int = 32) -> None:
        if block_length < 1 or blocks < 1:
            raise ValueError("block_length and blocks must be positive")
        self._block_length = int(block_length)
        self._maxima: Deque[float] = deque(maxlen=int(blocks))
        self._current_max = 0.0
        self._current_count = 0

    @property
    def window(self) -> int:
        return self._block_length * self._maxima.maxlen

    def reset(self) -> None:
        self._maxima.clear()
        self._current_max = 0.0
        self._current_count = 0

    def add(self, error: float) -> None:
        magnitude = abs(float(error))
        if magnitude > self._current_max:
            self._current_max = magnitude
        self._current_count += 1
        if self._current_count == self._block_length:
            self._maxima.append(self._current_max)
            self._current_max = 0.0
            self._current_count = 0

    def extend(self, errors: Iterable[float]) -> None:
        for error in errors:
            self.add(error)

    def prime(self, errors: Iterable[float], threshold: float) -> None:
        """
        Seed the block history from errors ahead of the scan.

        Blocks whose maximum exceeds `threshold` times the median block
        maximum hold damage and are left out, so clicks in the priming
        window cannot raise the norm they are judged against.
        """
        self.reset()
        magnitudes = np.abs(np.asarray(list(errors), dtype=np.float64))
        if magnitudes.size == 0:
            return
        maxima = [
            float(magnitudes[i : i + self._block_length].max())
            for i in range(0, magnitudes.size, self._block_length)
        ]
        reference = max(MINIMAL_PREDICTION_ERROR, float(np.median(maxima)))
        for maximum in maxima:
            if maximum / reference <= threshold:
                self._maxima.append(maximum)

    @property
    def norm(self) -> float:
        total = sum(self._maxima)
        count = len(self._maxima)
        if self._current_count:
            total += self._current_max
            count += 1
        if count == 0:
            return MINIMAL_PREDICTION_ERROR
        return max(MINIMAL_PREDICTION_ERROR, total / count)


__all__ = ["Analyzer", "AveragedMaxErrorAnalyzer"]
