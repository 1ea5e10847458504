from __future__ import annotations

from collections import defaultdict


class ErrorTracker:
    """Lightweight error counters with periodic surfacing."""

    def __init__(self, log, every: int = 25):
        self.log = log
        self.every = max(1, int(every))
        self.counts: defaultdict[str, int] = defaultdict(int)

    def tick(self, key: str, err=None) -> int:
        self.counts[key] += 1
        n = self.counts[key]
        if n % self.every == 0:
            suffix = f" last={err}" if err else ""
            self.log.warning("%s repeated %dx%s", key, n, suffix)
        return n

    def clear(self, key: str) -> None:
        self.counts.pop(key, None)
