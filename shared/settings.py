from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RepairSettings:
    """Read-only processing configuration consumed by a channel scan."""

    coefficients_number: int = 4
    history_length_samples: int = 512
    threshold_for_detection: float = 10.0
    max_length_of_correction: int = 250
    analyzer_block_length: int = 16
    analyzer_blocks: int = 32
    predictor: str = "burg"
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.coefficients_number < 1:
            raise ValueError("coefficients_number must be positive")
        if self.history_length_samples <= self.coefficients_number:
            raise ValueError("history_length_samples must exceed coefficients_number")
        if not self.threshold_for_detection > 0:
            raise ValueError("threshold_for_detection must be positive")
        if self.max_length_of_correction < 1:
            raise ValueError("max_length_of_correction must be at least 1")
        if self.analyzer_block_length < 1 or self.analyzer_blocks < 1:
            raise ValueError("analyzer window must be positive")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be positive when given")

    @property
    def input_data_size(self) -> int:
        return self.history_length_samples

    @property
    def analyzer_window(self) -> int:
        return self.analyzer_block_length * self.analyzer_blocks


__all__ = ["RepairSettings"]
