from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from shared.models import PatchKind
from shared.patch_collection import PatchCollection
from shared.patcher import Patcher
from shared.settings import RepairSettings

from .analyzer import AveragedMaxErrorAnalyzer
from .detector import DamagedSampleDetector
from .patch_maker import PatchMaker
from .prediction import Predictor, create_predictor
from .regenerator import Regenerator

logger = logging.getLogger(__name__)

StatusSink = Callable[[str], None]
ProgressSink = Callable[[float], None]

PROGRESS_STEP = 1000


def _ignore(_value) -> None:
    return None


@dataclass(frozen=True)
class ScanResult:
    patch_collection: PatchCollection
    input_patcher: Patcher
    prediction_err_patcher: Patcher
    regenerator: Regenerator


class ScannerTools:
    """
    Builds the components of one scan. `get_ready` computes the raw
    prediction-error map in parallel and wires the components that depend
    on it.
    """

    def __init__(self, input_samples: np.ndarray, settings: RepairSettings) -> None:
        self.patch_collection = PatchCollection()
        self._input = input_samples
        self._settings = settings
        self.input_patcher = Patcher(self._input, self.patch_collection, PatchKind.INPUT)
        self.predictor: Predictor = create_predictor(settings)
        self.norm_calculator = AveragedMaxErrorAnalyzer(settings.analyzer_block_length, settings.analyzer_blocks)
        self.prediction_err_patcher: Optional[Patcher] = None
        self.damage_detector: Optional[DamagedSampleDetector] = None
        self.regenerator: Optional[Regenerator] = None
        self.patch_maker: Optional[PatchMaker] = None
        self.is_preprocessed = False

    def get_ready(self, status: StatusSink, progress: ProgressSink) -> None:
        status("Preparation")
        progress(0.0)

        errors = self._calculate_prediction_errors(progress)
        errors.setflags(write=False)

        self.prediction_err_patcher = Patcher(errors, self.patch_collection, PatchKind.PREDICTION_ERROR)
        self.damage_detector = DamagedSampleDetector(
            self.prediction_err_patcher,
            self.input_patcher,
            self.norm_calculator,
            self.predictor,
            threshold=self._settings.threshold_for_detection,
            max_length_of_correction=self._settings.max_length_of_correction,
        )
        self.regenerator = Regenerator(self.input_patcher, self.predictor, self.damage_detector)
        self.patch_maker = PatchMaker(self.regenerator, self.predictor.input_data_size, self._input.shape[0])

        progress(100.0)
        self.is_preprocessed = True

    def _calculate_prediction_errors(self, progress: ProgressSink) -> np.ndarray:
        errors = np.zeros(self._input.shape[0], dtype=np.float64)
        n = self.predictor.input_data_size
        start, end = n, self._input.shape[0]
        if start >= end:
            return errors

        workers = self._settings.max_workers or os.cpu_count() or 1
        chunk_size = max(n, (end - start) // workers)
        ranges: List[Tuple[int, int]] = [
            (lo, min(lo + chunk_size, end)) for lo in range(start, end, chunk_size)
        ]

        def compute(index: int, lo: int, hi: int) -> None:
            for position in range(lo, hi):
                history = self._input[position - n : position]
                errors[position] = self._input[position] - self.predictor.get_forward(history)
                # Only the first chunk reports.
                if index == 0 and position % PROGRESS_STEP == 0:
                    progress(100.0 * (position - lo) / (hi - lo))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="PredictionErrors") as pool:
            futures = [pool.submit(compute, index, lo, hi) for index, (lo, hi) in enumerate(ranges)]
            for future in futures:
                future.result()
        return errors


class Scanner:
    """One full detection-and-repair pass over a sample buffer."""

    def __init__(self, input_samples: np.ndarray, settings: RepairSettings) -> None:
        self._input = input_samples
        self._settings = settings
        self._tools = ScannerTools(input_samples, settings)

    def scan(
        self,
        status: Optional[StatusSink] = None,
        progress: Optional[ProgressSink] = None,
    ) -> ScanResult:
        status = status or _ignore
        progress = progress or _ignore
        tools = self._tools

        started = time.perf_counter()
        tools.get_ready(status, progress)
        logger.debug("Prediction errors ready in %.3fs", time.perf_counter() - started)

        status("Scanning")
        progress(0.0)
        try:
            self._repair(progress)
        finally:
            tools.patch_collection.complete_adding()
        progress(100.0)
        status("Completed")

        assert tools.prediction_err_patcher is not None and tools.regenerator is not None
        return ScanResult(
            patch_collection=tools.patch_collection,
            input_patcher=tools.input_patcher,
            prediction_err_patcher=tools.prediction_err_patcher,
            regenerator=tools.regenerator,
        )

    def _repair(self, progress: ProgressSink) -> None:
        tools = self._tools
        detector = tools.damage_detector
        patch_maker = tools.patch_maker
        assert detector is not None and patch_maker is not None

        start = detector.input_data_size
        end = self._input.shape[0]
        if start >= end:
            return

        detector.start(start, tools.norm_calculator.window)
        position = start
        while position < end:
            if position % PROGRESS_STEP == 0:
                progress(100.0 * (position - start) / (end - start))
            event = detector.detect(position)
            if event is None:
                position += 1
                continue
            patch = patch_maker.new_patch(
                event.start_position,
                self._settings.max_length_of_correction,
                event.error_level,
                length=event.length,
            )
            tools.patch_collection.add(patch)
            position = patch.end_position


__all__ = ["ScanResult", "Scanner", "ScannerTools"]
