from __future__ import annotations

from typing import Optional

import numpy as np

from shared.models import DamageEvent
from shared.patcher import Patcher

from .analyzer import Analyzer
from .prediction import Predictor


class DamagedSampleDetector:
    """
    Decides, position by position, whether the effective prediction error
    is abnormal relative to the analyzer's running norm, and measures the
    extent of each damaged run.

    Positions must be visited in increasing order: clean errors are fed to
    the analyzer as the scan advances, damaged ones never are.
    """

    def __init__(
        self,
        prediction_err_patcher: Patcher,
        input_patcher: Patcher,
        analyzer: Analyzer,
        predictor: Predictor,
        *,
        threshold: float,
        max_length_of_correction: int,
    ) -> None:
        self._errors = prediction_err_patcher
        self._inputs = input_patcher
        self._analyzer = analyzer
        self._predictor = predictor
        self._threshold = float(threshold)
        self._max_length = int(max_length_of_correction)
        self._primed_until = 0

    @property
    def input_data_size(self) -> int:
        return self._predictor.input_data_size

    @property
    def threshold(self) -> float:
        return self._threshold

    def start(self, position: int, warmup: int) -> None:
        """
        Prime the analyzer with up to `warmup` errors from `position` on.

        Damaged blocks in that window are left out of the norm, and the
        primed positions are not fed to the analyzer again as `detect`
        walks over them.
        """
        end = min(len(self._errors), position + warmup)
        self._primed_until = end
        self._analyzer.prime(self._errors.get_range(position, max(0, end - position)), self._threshold)

    def error_level(self, error: float) -> float:
        return abs(error) / self._analyzer.norm

    def is_damaged(self, error: float) -> bool:
        return self.error_level(error) > self._threshold

    def effective_error(self, position: int) -> float:
        """Prediction error at `position` against the repaired context."""
        n = self.input_data_size
        history = self._inputs.get_range(position - n, n)
        return self._inputs.get_value(position) - self._predictor.get_forward(history)

    def detect(self, position: int) -> Optional[DamageEvent]:
        error = self._errors.get_value(position)
        if self.is_damaged(error) and self._inputs.is_patched(position - self.input_data_size, position):
            # The stored error was predicted from samples a patch has since replaced.
            error = self.effective_error(position)
        if not self.is_damaged(error):
            if position >= self._primed_until:
                self._analyzer.add(error)
            return None

        peak = self.error_level(error)
        limit = min(self._max_length, len(self._errors) - position)
        n = self.input_data_size
        # Context followed by a causal fill of the run, as the regenerator would produce it.
        filled = np.empty(n + limit, dtype=np.float64)
        filled[:n] = self._inputs.get_range(position - n, n)
        length = 1
        while length < limit:
            if not self.is_damaged(self._errors.get_value(position + length)):
                break
            filled[n + length - 1] = self._predictor.get_forward(filled[length - 1 : n + length - 1])
            confirmed = self._inputs.get_value(position + length) - self._predictor.get_forward(
                filled[length : n + length]
            )
            if not self.is_damaged(confirmed):
                break
            peak = max(peak, self.error_level(confirmed))
            length += 1
        return DamageEvent(start_position=position, length=length, error_level=peak)


__all__ = ["DamagedSampleDetector"]
