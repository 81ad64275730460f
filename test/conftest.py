from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from shared.settings import RepairSettings  # noqa: E402


@pytest.fixture
def small_settings() -> RepairSettings:
    """Short history so scans over a few thousand samples stay fast."""
    return RepairSettings(
        coefficients_number=4,
        history_length_samples=64,
        threshold_for_detection=10.0,
        max_length_of_correction=40,
        analyzer_block_length=8,
        analyzer_blocks=16,
        max_workers=2,
    )


class Recorder:
    """Collects values pushed to a status or progress sink."""

    def __init__(self) -> None:
        self.values = []

    def __call__(self, value) -> None:
        self.values.append(value)


@pytest.fixture
def recorder():
    return Recorder
