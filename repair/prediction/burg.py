from __future__ import annotations

import logging

import numpy as np

from .base import register_predictor

logger = logging.getLogger(__name__)

# Reflection stops once the remaining forward/backward error energy falls
# below this fraction of the history energy.
_RELATIVE_ENERGY_FLOOR = 1e-12


@register_predictor
class BurgPredictor:
    """
    Forward linear predictor whose coefficients are re-estimated from every
    history window with Burg's method.

    Burg's recursion minimises forward and backward prediction error
    together, one reflection coefficient per order, so the resulting model
    stays stable (|k| <= 1) even for short windows. Silent or otherwise
    degenerate windows stop the recursion early; an order-0 model predicts
    zero.
    """

    name = "burg"

    def __init__(self, coefficients_number: int, history_length_samples: int) -> None:
        if coefficients_number < 1:
            raise ValueError("coefficients_number must be positive")
        if history_length_samples <= coefficients_number:
            raise ValueError("history_length_samples must exceed coefficients_number")
        self._order = int(coefficients_number)
        self._history_length = int(history_length_samples)

    @property
    def input_data_size(self) -> int:
        return self._history_length

    @property
    def order(self) -> int:
        return self._order

    def coefficients(self, history: np.ndarray) -> np.ndarray:
        """
        Return the prediction polynomial ``a`` (``a[0] == 1``) estimated from
        `history`; the prediction is ``-sum(a[1:] * history[::-1][:order])``.
        """
        x = np.asarray(history, dtype=np.float64)
        n = x.shape[0]
        a = np.ones(1, dtype=np.float64)
        energy = float(np.dot(x, x))
        if energy <= 0.0 or not np.isfinite(energy):
            return a

        f = x.copy()
        b = x.copy()
        for m in range(min(self._order, n - 1)):
            fp = f[m + 1 :]
            bp = b[m : n - 1]
            den = float(np.dot(fp, fp) + np.dot(bp, bp))
            if den <= _RELATIVE_ENERGY_FLOOR * energy:
                break
            k = -2.0 * float(np.dot(bp, fp)) / den
            k = min(1.0, max(-1.0, k))

            f_next = fp + k * bp
            b_next = bp + k * fp
            f[m + 1 :] = f_next
            b[m + 1 :] = b_next

            a = np.append(a, 0.0)
            a = a + k * a[::-1]
        return a

    def get_forward(self, history: np.ndarray) -> float:
        x = np.asarray(history, dtype=np.float64)
        if x.shape[0] == 0:
            return 0.0
        a = self.coefficients(x)
        order = a.shape[0] - 1
        if order == 0:
            return 0.0
        recent = x[::-1][:order]
        prediction = -float(np.dot(a[1:], recent))
        if not np.isfinite(prediction):
            logger.warning("Non-finite prediction replaced by last history sample")
            last = float(x[-1])
            return last if np.isfinite(last) else 0.0
        return prediction
