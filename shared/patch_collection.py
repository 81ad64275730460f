from __future__ import annotations

import bisect
from threading import Condition
from typing import Iterator, List, Optional

from .models import Patch


class PatchCollection:
    """
    Thread-safe registry of patches kept in start-position order.

    The scan pushes patches while consumers either follow them as they
    arrive or enumerate a snapshot once adding is complete. Closing the
    collection wakes every blocked consumer.
    """

    def __init__(self) -> None:
        self._patches: List[Patch] = []
        self._keys: List[tuple[int, int]] = []
        self._arrivals: List[Patch] = []
        self._cond = Condition()
        self._completed = False
        self._closed = False

    @property
    def is_completed(self) -> bool:
        with self._cond:
            return self._completed

    @property
    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    def add(self, patch: Patch) -> None:
        with self._cond:
            if self._closed:
                raise RuntimeError("PatchCollection is closed")
            if self._completed:
                raise RuntimeError("PatchCollection no longer accepts patches")
            key = patch.sort_key
            index = bisect.bisect_right(self._keys, key)
            self._keys.insert(index, key)
            self._patches.insert(index, patch)
            self._arrivals.append(patch)
            self._cond.notify_all()

    def complete_adding(self) -> None:
        with self._cond:
            self._completed = True
            self._cond.notify_all()

    def close(self) -> None:
        """Release waiting consumers; the patches stay readable."""
        with self._cond:
            self._closed = True
            self._completed = True
            self._cond.notify_all()

    def follow(self, timeout: Optional[float] = None) -> Iterator[Patch]:
        """
        Yield patches in arrival order, blocking for new ones until adding
        completes, the collection is closed, or `timeout` seconds pass
        without a new patch.
        """
        index = 0
        while True:
            with self._cond:
                arrived = self._cond.wait_for(
                    lambda: index < len(self._arrivals) or self._completed,
                    timeout=timeout,
                )
                if not arrived or index >= len(self._arrivals):
                    return
                patch = self._arrivals[index]
            index += 1
            yield patch

    def drain(self) -> List[Patch]:
        """Remove and return all patches in start-position order."""
        with self._cond:
            patches = list(self._patches)
            self._patches.clear()
            self._keys.clear()
            self._arrivals.clear()
            return patches

    def find(self, position: int) -> Optional[Patch]:
        """Return the patch covering `position`, if any."""
        with self._cond:
            index = bisect.bisect_right(self._keys, (position, float("inf"))) - 1
            if index < 0:
                return None
            patch = self._patches[index]
            return patch if patch.covers(position) else None

    def overlapping(self, start: int, end: int) -> List[Patch]:
        """Return the patches intersecting ``[start, end)`` in position order."""
        if end <= start:
            return []
        with self._cond:
            index = bisect.bisect_right(self._keys, (start, float("inf"))) - 1
            index = max(index, 0)
            found = []
            for patch in self._patches[index:]:
                if patch.start_position >= end:
                    break
                if patch.end_position > start:
                    found.append(patch)
            return found

    def following(self, patch: Patch) -> List[Patch]:
        """Return the patches ordered after `patch`."""
        with self._cond:
            index = bisect.bisect_right(self._keys, patch.sort_key)
            return list(self._patches[index:])

    def snapshot(self) -> List[Patch]:
        with self._cond:
            return list(self._patches)

    def __iter__(self) -> Iterator[Patch]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._cond:
            return len(self._patches)


__all__ = ["PatchCollection"]
