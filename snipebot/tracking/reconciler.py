from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from snipebot.data import ObservationStore
from snipebot.domain import SLOT_COUNT, SlotSnapshot, lamports_to_sol

LOG_MIN_AMOUNT = 0.01


@dataclass
class ReconciliationCursor:
    round_id: int = 0
    deployed: list[int] = field(default_factory=lambda: [0] * SLOT_COUNT)
    count: list[int] = field(default_factory=lambda: [0] * SLOT_COUNT)
    primed: bool = True

    def reset(self, round_id: int, *, primed: bool) -> None:
        self.round_id = round_id
        self.deployed = [0] * SLOT_COUNT
        self.count = [0] * SLOT_COUNT
        self.primed = primed


class PollReconciler:
    """Poll-path producer: turns per-slot total increases into samples.

    A positive delta on a slot is one inferred stake of exactly that size.
    The cursor always follows the latest snapshot; a decrease is never a
    sample (rollovers are for the scheduler to detect).
    """

    def __init__(self, store: ObservationStore, reader, log, *, interval_sec: float = 2.0):
        self.store = store
        self.reader = reader
        self.log = log
        self.interval_sec = interval_sec
        self.cursor = ReconciliationCursor()

    def reset(self, round_id: int, *, primed: bool = True) -> None:
        self.cursor.reset(round_id, primed=primed)

    def apply(self, snapshot: SlotSnapshot) -> list[tuple[int, float]]:
        """Diff ``snapshot`` against the cursor; returns the (slot, amount) samples recorded."""
        if snapshot.round_id != self.cursor.round_id:
            return []
        recorded: list[tuple[int, float]] = []
        baseline_only = not self.cursor.primed
        for i in range(SLOT_COUNT):
            current = int(snapshot.deployed[i])
            delta = current - self.cursor.deployed[i]
            if delta > 0 and not baseline_only:
                amount = lamports_to_sol(delta)
                if self.store.record_sample(amount, i, round_id=snapshot.round_id):
                    recorded.append((i, amount))
                    if amount >= LOG_MIN_AMOUNT:
                        self.log.info("polling detected bet %.6f SOL on slot %d", amount, i)
            self.cursor.deployed[i] = current
            self.cursor.count[i] = int(snapshot.count[i])
        if baseline_only:
            self.cursor.primed = True
            self.log.info("polling baseline initialised for round %d", snapshot.round_id)
        return recorded

    async def tick(self) -> None:
        round_id = self.cursor.round_id
        try:
            snapshot = await self.reader.fetch_slot_snapshot(round_id)
        except Exception as exc:
            self.log.debug("poll round %d failed: %s", round_id, exc)
            return
        if round_id != self.cursor.round_id:
            return
        self.apply(snapshot)

    async def run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval_sec)
