from __future__ import annotations

import math
import threading
from dataclasses import dataclass

from snipebot.domain import SLOT_COUNT, Sample


@dataclass(frozen=True)
class ObservationStats:
    round_id: int
    max_per_slot: tuple[float, ...]
    total_samples: int
    top_samples: tuple[float, ...]

    @property
    def max_overall(self) -> float:
        return max(self.max_per_slot)


class ObservationStore:
    """Per-round maximum competing stake, fed by the push and poll paths.

    Every read and write holds one lock, so each update is atomic with
    respect to the invariants below; there is no ordering between producers.

    - ``max_per_slot[i]`` is the largest sample recorded for slot ``i`` or for
      all slots since the last :meth:`reset`.
    - Samples are append-only within a round and cleared by :meth:`reset`.
    """

    def __init__(self, round_id: int = 0):
        self._lock = threading.Lock()
        self._round_id = round_id
        self._max_per_slot = [0.0] * SLOT_COUNT
        self._samples: list[Sample] = []

    @property
    def round_id(self) -> int:
        with self._lock:
            return self._round_id

    def reset(self, round_id: int) -> None:
        with self._lock:
            self._round_id = round_id
            self._max_per_slot = [0.0] * SLOT_COUNT
            self._samples = []

    def record_sample(self, amount: float, slot: int | None = None, *, round_id: int | None = None) -> bool:
        """Record one inferred stake. Returns False when the sample was dropped."""
        try:
            value = float(amount)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(value) or value <= 0:
            return False
        if slot is not None and not 0 <= slot < SLOT_COUNT:
            return False

        with self._lock:
            if round_id is not None and round_id != self._round_id:
                return False
            self._samples.append(Sample(amount=value, slot=slot))
            if slot is None:
                for i in range(SLOT_COUNT):
                    if value > self._max_per_slot[i]:
                        self._max_per_slot[i] = value
            elif value > self._max_per_slot[slot]:
                self._max_per_slot[slot] = value
        return True

    def max_overall(self) -> float:
        with self._lock:
            return max(self._max_per_slot)

    def max_for_slot(self, slot: int) -> float:
        if not 0 <= slot < SLOT_COUNT:
            return 0.0
        with self._lock:
            return self._max_per_slot[slot]

    def max_per_slot(self) -> tuple[float, ...]:
        with self._lock:
            return tuple(self._max_per_slot)

    def samples(self) -> tuple[Sample, ...]:
        with self._lock:
            return tuple(self._samples)

    def total_samples(self) -> int:
        with self._lock:
            return len(self._samples)

    def has_samples(self) -> bool:
        return self.total_samples() > 0

    def rank(self, n: int) -> float:
        """(n+1)-th largest sample, 0 = largest; clamped to the smallest sample."""
        with self._lock:
            if not self._samples:
                return 0.0
            ordered = sorted((s.amount for s in self._samples), reverse=True)
        index = min(max(0, int(n)), len(ordered) - 1)
        return ordered[index]

    def stats(self, top: int = 10) -> ObservationStats:
        with self._lock:
            ordered = sorted((s.amount for s in self._samples), reverse=True)
            return ObservationStats(
                round_id=self._round_id,
                max_per_slot=tuple(self._max_per_slot),
                total_samples=len(self._samples),
                top_samples=tuple(ordered[:top]),
            )
