from __future__ import annotations

import logging

from shared.models import Patch

from .regenerator import Regenerator

logger = logging.getLogger(__name__)


class PatchMaker:
    """Turns damage events into fully regenerated patches."""

    def __init__(self, regenerator: Regenerator, input_data_size: int, length_samples: int) -> None:
        self._regenerator = regenerator
        self._input_data_size = int(input_data_size)
        self._length_samples = int(length_samples)

    @property
    def input_data_size(self) -> int:
        return self._input_data_size

    def new_patch(
        self,
        start_position: int,
        max_length_of_correction: int,
        error_level_at_detection: float,
        *,
        length: int = 1,
    ) -> Patch:
        """
        Create a patch at `start_position`, starting from `length` samples and
        growing while the sample after it still looks damaged. The length
        never exceeds `max_length_of_correction` or the end of the buffer.
        """
        if not 0 <= start_position < self._length_samples:
            raise ValueError(f"start_position {start_position} outside [0, {self._length_samples})")
        if start_position < self._input_data_size:
            raise ValueError(f"start_position {start_position} precedes the first predictable sample")
        if max_length_of_correction < 1:
            raise ValueError("max_length_of_correction must be at least 1")

        limit = min(max_length_of_correction, self._length_samples - start_position)
        patch = Patch(start_position, max(1, min(length, limit)), error_level_at_detection)
        patch.bind(self._regenerator)
        patch.update()
        while patch.length < limit and not self._regenerator.is_tail_clean(patch):
            patch.length += 1

        logger.debug(
            "Patch at %d, length %d, error level %.3g",
            patch.start_position,
            patch.length,
            patch.error_level_at_detection,
        )
        return patch


__all__ = ["PatchMaker"]
