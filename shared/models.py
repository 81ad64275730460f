from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import numpy as np

# Reported by the prediction-error view for every patched position.
MINIMAL_PREDICTION_ERROR = 0.000_001

_serials = itertools.count()


def freeze_samples(array: np.ndarray, *, ndim: int | None = None) -> np.ndarray:
    """Return a read-only, C-contiguous float64 copy of `array`, validating dimensions."""
    arr = np.array(array, dtype=np.float64, copy=True, order="C")
    if ndim is not None and arr.ndim != ndim:
        raise ValueError(f"array must be {ndim}D, got {arr.ndim}D")
    arr.setflags(write=False)
    return arr


class PatchKind(Enum):
    """Which effective view a patch is being read through."""

    INPUT = "input"
    PREDICTION_ERROR = "prediction_error"


class Regenerable(Protocol):
    def restore_patch(self, patch: "Patch") -> None:
        """(Re)compute every value covered by `patch`."""
        ...


# ----------------------------
# Detection / repair models
# ----------------------------

@dataclass(frozen=True)
class DamageEvent:
    """A damaged run found by the detector, before it becomes a patch."""

    start_position: int
    length: int
    error_level: float

    def __post_init__(self) -> None:
        if self.start_position < 0:
            raise ValueError("start_position must be non-negative")
        if self.length < 1:
            raise ValueError("length must be at least 1")

    @property
    def end_position(self) -> int:
        return self.start_position + self.length


class Patch:
    """
    Contiguous span of regenerated samples layered over the raw input.

    A patch never owns the raw data. Its values are written by the bound
    `Regenerable`, and every change of `length` fires an update so the
    values are recomputed for the new range. Patches order by start
    position, ties broken by creation order.
    """

    def __init__(
        self,
        start_position: int,
        length: int,
        error_level_at_detection: float,
        *,
        approved: bool = True,
    ) -> None:
        if start_position < 0:
            raise ValueError("start_position must be non-negative")
        if length < 1:
            raise ValueError("length must be at least 1")
        self._start_position = int(start_position)
        self._length = int(length)
        self._error_level = float(error_level_at_detection)
        self._values = np.zeros(self._length, dtype=np.float64)
        self._values.setflags(write=False)
        self._updater: Optional[Regenerable] = None
        self._serial = next(_serials)
        self.approved = bool(approved)

    @property
    def start_position(self) -> int:
        return self._start_position

    @property
    def end_position(self) -> int:
        """First position after the patch."""
        return self._start_position + self._length

    @property
    def error_level_at_detection(self) -> float:
        return self._error_level

    @property
    def length(self) -> int:
        return self._length

    @length.setter
    def length(self, value: int) -> None:
        value = int(value)
        if value < 1:
            raise ValueError("length must be at least 1")
        if self._updater is None:
            raise RuntimeError("Patch has no regenerator bound; its length cannot change")
        previous_length, previous_values = self._length, self._values
        self._length = value
        try:
            self.update()
        except Exception:
            self._length, self._values = previous_length, previous_values
            raise

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def sort_key(self) -> tuple[int, int]:
        return self._start_position, self._serial

    def bind(self, updater: Regenerable) -> None:
        """Attach the regenerator that handles this patch's updates, replacing any previous one."""
        self._updater = updater

    def update(self) -> None:
        if self._updater is not None:
            self._updater.restore_patch(self)

    def set_values(self, values: np.ndarray) -> None:
        arr = np.array(values, dtype=np.float64, copy=True)
        if arr.shape != (self._length,):
            raise ValueError(f"expected {self._length} values, got shape {arr.shape}")
        arr.setflags(write=False)
        self._values = arr

    def covers(self, position: int) -> bool:
        return self._start_position <= position < self.end_position

    def get_value(self, position: int, kind: PatchKind = PatchKind.INPUT) -> float:
        if not self.covers(position):
            raise IndexError(f"position {position} outside patch [{self._start_position}, {self.end_position})")
        if kind is PatchKind.PREDICTION_ERROR:
            return MINIMAL_PREDICTION_ERROR
        return float(self._values[position - self._start_position])

    def get_values(self, kind: PatchKind = PatchKind.INPUT) -> np.ndarray:
        if kind is PatchKind.PREDICTION_ERROR:
            return np.full(self._length, MINIMAL_PREDICTION_ERROR, dtype=np.float64)
        return self._values

    def __lt__(self, other: "Patch") -> bool:
        if not isinstance(other, Patch):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __repr__(self) -> str:
        return (
            f"Patch(start_position={self._start_position}, length={self._length}, "
            f"error_level_at_detection={self._error_level:.3g}, approved={self.approved})"
        )


__all__ = [
    "DamageEvent",
    "MINIMAL_PREDICTION_ERROR",
    "Patch",
    "PatchKind",
    "Regenerable",
    "freeze_samples",
]
