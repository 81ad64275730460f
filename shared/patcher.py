from __future__ import annotations

import numpy as np

from .models import PatchKind
from .patch_collection import PatchCollection


class Patcher:
    """
    Read-through view of a never-mutated base sequence with approved
    patches layered on top.

    The `kind` decides what a patch contributes: regenerated samples for
    the input view, the "no error" sentinel for the prediction-error view.
    """

    def __init__(self, base: np.ndarray, patches: PatchCollection, kind: PatchKind = PatchKind.INPUT) -> None:
        arr = np.asarray(base, dtype=np.float64)
        if arr.ndim != 1:
            raise ValueError(f"base must be 1D, got {arr.ndim}D")
        self._base = arr
        self._patches = patches
        self._kind = kind

    @property
    def kind(self) -> PatchKind:
        return self._kind

    def __len__(self) -> int:
        return self._base.shape[0]

    def get_value(self, position: int) -> float:
        if not 0 <= position < self._base.shape[0]:
            raise IndexError(f"position {position} out of range [0, {self._base.shape[0]})")
        patch = self._patches.find(position)
        if patch is None or not patch.approved:
            return float(self._base[position])
        return patch.get_value(position, self._kind)

    def get_range(self, start: int, length: int) -> np.ndarray:
        """
        Return a copy of `length` effective values starting at `start`.
        """
        if length < 0:
            raise ValueError("length must be non-negative")
        end = start + length
        if start < 0 or end > self._base.shape[0]:
            raise IndexError(f"range [{start}, {end}) out of range [0, {self._base.shape[0]})")

        out = self._base[start:end].copy()
        for patch in self._patches.overlapping(start, end):
            if not patch.approved:
                continue
            lo = max(start, patch.start_position)
            hi = min(end, patch.end_position)
            values = patch.get_values(self._kind)
            out[lo - start : hi - start] = values[lo - patch.start_position : hi - patch.start_position]
        return out

    def is_patched(self, start: int, end: int) -> bool:
        """True when an approved patch intersects ``[start, end)``."""
        return any(patch.approved for patch in self._patches.overlapping(start, end))


__all__ = ["Patcher"]
