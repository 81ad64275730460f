from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import List, Optional

import numpy as np

from shared.models import Patch, PatchKind, freeze_samples
from shared.patch_collection import PatchCollection
from shared.patcher import Patcher
from shared.settings import RepairSettings

from .regenerator import Regenerator
from .scanner import ProgressSink, Scanner, StatusSink

logger = logging.getLogger(__name__)


class Channel:
    """
    Audio samples of one channel together with the repairs found for them.

    The raw samples are frozen at construction; repairs live in the patch
    collection and are read through the input and prediction-error views.
    A channel is scanned at most once; a second scan raises RuntimeError
    and leaves the existing patches untouched.
    """

    def __init__(self, input_samples: np.ndarray, settings: Optional[RepairSettings] = None) -> None:
        if input_samples is None:
            raise ValueError("input_samples must not be None")
        self._input = freeze_samples(input_samples, ndim=1)
        self._settings = settings or RepairSettings()
        self._patch_collection = PatchCollection()
        self._input_patcher = Patcher(self._input, self._patch_collection, PatchKind.INPUT)
        self._prediction_err_patcher: Optional[Patcher] = None
        self._regenerator: Optional[Regenerator] = None
        self._scan_lock = threading.Lock()
        self._scan_started = False
        self._closed = False
        self._is_preprocessed = False

    @property
    def settings(self) -> RepairSettings:
        return self._settings

    @property
    def is_preprocessed(self) -> bool:
        return self._is_preprocessed

    @property
    def length_samples(self) -> int:
        return self._input.shape[0]

    @property
    def number_of_patches(self) -> int:
        return len(self._patch_collection)

    def scan(self, status: Optional[StatusSink] = None, progress: Optional[ProgressSink] = None) -> None:
        """Scan for damaged samples and repair them, blocking until done."""
        with self._scan_lock:
            if self._closed:
                raise RuntimeError("Channel is closed")
            if self._scan_started:
                raise RuntimeError("Channel has already been scanned")
            self._scan_started = True

        logger.info("Scanning channel of %d samples", self.length_samples)
        try:
            result = Scanner(self._input, self._settings).scan(status, progress)
        except BaseException:
            with self._scan_lock:
                self._scan_started = False
            raise

        with self._scan_lock:
            self._patch_collection = result.patch_collection
            if self._closed:
                self._patch_collection.close()
        self._input_patcher = result.input_patcher
        self._prediction_err_patcher = result.prediction_err_patcher
        self._regenerator = result.regenerator
        for patch in self._patch_collection:
            self._register_patch(patch)
        self._is_preprocessed = True
        logger.info("Scan finished: %d patches", self.number_of_patches)

    def scan_async(self, status: Optional[StatusSink] = None, progress: Optional[ProgressSink] = None) -> "Future[None]":
        """Run `scan` on a background thread; the future carries its outcome."""
        future: "Future[None]" = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                self.scan(status, progress)
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(None)

        threading.Thread(target=run, name="ChannelScan", daemon=True).start()
        return future

    def get_all_patches(self) -> List[Patch]:
        return sorted(self._patch_collection)

    def get_patch_at(self, position: int) -> Optional[Patch]:
        return self._patch_collection.find(position)

    def get_input_sample(self, position: int) -> float:
        if not 0 <= position < self.length_samples:
            raise IndexError(f"position {position} out of range [0, {self.length_samples})")
        return float(self._input[position])

    def get_output_sample(self, position: int) -> float:
        return self._input_patcher.get_value(position)

    def get_prediction_err(self, position: int) -> float:
        return self._require_scanned().get_value(position)

    def get_input_range(self, start: int, length: int) -> np.ndarray:
        if length < 0 or start < 0 or start + length > self.length_samples:
            raise IndexError(f"range [{start}, {start + length}) out of range [0, {self.length_samples})")
        return self._input[start : start + length].copy()

    def get_output_range(self, start: int, length: int) -> np.ndarray:
        return self._input_patcher.get_range(start, length)

    def get_prediction_err_range(self, start: int, length: int) -> np.ndarray:
        return self._require_scanned().get_range(start, length)

    def change_patch_length(self, patch: Patch, new_length: int) -> None:
        """
        Resize `patch`, regenerate it, then regenerate every later patch whose
        prediction context reaches into a changed region.
        """
        self._require_scanned()
        if self._patch_collection.find(patch.start_position) is not patch:
            raise ValueError("patch does not belong to this channel")
        if not 1 <= new_length <= self._settings.max_length_of_correction:
            raise ValueError(
                f"new_length must be within [1, {self._settings.max_length_of_correction}], got {new_length}"
            )
        following = self._patch_collection.following(patch)
        limit = following[0].start_position if following else self.length_samples
        if patch.start_position + new_length > limit:
            raise ValueError(f"patch would extend past position {limit}")

        dirty_end = max(patch.end_position, patch.start_position + new_length)
        patch.length = new_length
        n = self._settings.input_data_size
        for later in following:
            if later.start_position - n >= dirty_end:
                break
            later.update()
            dirty_end = later.end_position

    def close(self) -> None:
        with self._scan_lock:
            self._closed = True
            self._patch_collection.close()

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_scanned(self) -> Patcher:
        if self._prediction_err_patcher is None:
            raise RuntimeError("Channel has not been scanned yet")
        return self._prediction_err_patcher

    def _register_patch(self, patch: Patch) -> None:
        if self._regenerator is not None:
            patch.bind(self._regenerator)


__all__ = ["Channel"]
