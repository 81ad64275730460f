from __future__ import annotations

import numpy as np

from shared.models import Patch
from shared.patcher import Patcher

from .detector import DamagedSampleDetector
from .prediction import Predictor


class Regenerator:
    """
    Fills patches by causal re-prediction: each value is forecast from the
    repaired context before the patch followed by the values already
    regenerated inside it.

    Bound to every patch it owns, so a revised patch is refilled by the
    same procedure.
    """

    def __init__(self, input_patcher: Patcher, predictor: Predictor, detector: DamagedSampleDetector) -> None:
        self._inputs = input_patcher
        self._predictor = predictor
        self._detector = detector

    def _context(self, patch: Patch) -> np.ndarray:
        n = self._predictor.input_data_size
        return self._inputs.get_range(patch.start_position - n, n)

    def restore_patch(self, patch: Patch) -> None:
        n = self._predictor.input_data_size
        buf = np.empty(n + patch.length, dtype=np.float64)
        buf[:n] = self._context(patch)
        for i in range(patch.length):
            buf[n + i] = self._predictor.get_forward(buf[i : n + i])
        patch.set_values(buf[n:])

    def tail_error(self, patch: Patch) -> float:
        """Prediction error of the first sample after `patch`, predicted through it."""
        n = self._predictor.input_data_size
        history = np.concatenate((self._context(patch), patch.values))[-n:]
        return self._inputs.get_value(patch.end_position) - self._predictor.get_forward(history)

    def is_tail_clean(self, patch: Patch) -> bool:
        if patch.end_position >= len(self._inputs):
            return True
        return not self._detector.is_damaged(self.tail_error(patch))


__all__ = ["Regenerator"]
