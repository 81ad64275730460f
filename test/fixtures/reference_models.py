"""
Reference implementations for differential testing.

These are deliberately simple, obviously-correct implementations used to
verify the production code. They prioritize correctness and clarity over
performance.

- ReferenceBurg follows the textbook Burg recursion with explicit loops.
- ReferenceAveragedMaxError recomputes the norm from the full error list.
"""
from __future__ import annotations

from typing import List

import numpy as np


class ReferenceBurg:
    """Loop-based Burg predictor matching BurgPredictor's API."""

    def __init__(self, order: int, history_length: int):
        self.order = order
        self.input_data_size = history_length

    def coefficients(self, history) -> List[float]:
        x = [float(v) for v in history]
        n = len(x)
        energy = sum(v * v for v in x)
        a = [1.0]
        if energy == 0.0:
            return a

        f = list(x)
        b = list(x)
        for m in range(min(self.order, n - 1)):
            num = 0.0
            den = 0.0
            for i in range(m + 1, n):
                num += f[i] * b[i - 1]
                den += f[i] * f[i] + b[i - 1] * b[i - 1]
            if den <= 1e-12 * energy:
                break
            k = max(-1.0, min(1.0, -2.0 * num / den))

            new_f = f[:]
            new_b = b[:]
            for i in range(m + 1, n):
                new_f[i] = f[i] + k * b[i - 1]
                new_b[i] = b[i - 1] + k * f[i]
            f, b = new_f, new_b

            extended = a + [0.0]
            a = [extended[j] + k * extended[len(extended) - 1 - j] for j in range(len(extended))]
        return a

    def get_forward(self, history) -> float:
        a = self.coefficients(history)
        x = [float(v) for v in history]
        return -sum(a[j] * x[-j] for j in range(1, len(a)))


class ReferenceAveragedMaxError:
    """Stores every error and recomputes the norm from scratch."""

    def __init__(self, block_length: int, blocks: int, floor: float):
        self.block_length = block_length
        self.blocks = blocks
        self.floor = floor
        self.errors: List[float] = []

    def add(self, error: float) -> None:
        self.errors.append(abs(error))

    @property
    def norm(self) -> float:
        full = len(self.errors) // self.block_length
        maxima = [
            max(self.errors[i * self.block_length : (i + 1) * self.block_length])
            for i in range(full)
        ][-self.blocks :]
        partial = self.errors[full * self.block_length :]
        if partial:
            maxima.append(max(partial))
        if not maxima:
            return self.floor
        return max(self.floor, float(np.mean(maxima)))
