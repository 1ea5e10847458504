from __future__ import annotations

import statistics
from dataclasses import dataclass

from snipebot.data import ObservationStore
from snipebot.domain import SLOT_COUNT, SlotSnapshot, lamports_to_sol

MEDIAN_TARGET_RANK = 2


@dataclass(frozen=True)
class BidConfig:
    strategy: str = "max"
    buffer_percent: float = 10.0
    min_bet_per_slot: float = 0.0001
    max_bet_per_slot: float = 0.01
    assumed_min_stake: float = 0.001


@dataclass(frozen=True)
class BidDecision:
    amount: float
    target: float
    source: str
    strategy: str

    @property
    def total(self) -> float:
        return self.amount * SLOT_COUNT


class BidEstimator:
    """Pure stake-target computation, side-effect free apart from logging."""

    def __init__(self, cfg: BidConfig, log=None):
        self.cfg = cfg
        self.log = log

    def _note(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.info(msg, *args)

    def clamp(self, target: float) -> float:
        buffered = target * (1 + self.cfg.buffer_percent / 100)
        return min(max(buffered, self.cfg.min_bet_per_slot), self.cfg.max_bet_per_slot)

    def target_from_store(self, store: ObservationStore) -> float | None:
        if not store.has_samples():
            return None
        if self.cfg.strategy == "median":
            return store.rank(MEDIAN_TARGET_RANK)
        return store.max_overall()

    def top_bet(self, snapshot: SlotSnapshot) -> float | None:
        """Estimate the dominant single stake on the slot with the largest total.

        One participant means the whole total is theirs. With more, assume
        everyone else staked the minimum and the remainder is one whale's,
        never less than the naive average.
        """
        top = max(range(SLOT_COUNT), key=lambda i: snapshot.deployed[i])
        total = lamports_to_sol(snapshot.deployed[top])
        players = int(snapshot.count[top])
        if players <= 0 or total <= 0:
            return None
        if players == 1:
            self._note("top slot #%d has 1 player, whale bet %.6f SOL", top, total)
            return total
        avg = total / players
        min_bet = max(self.cfg.assumed_min_stake, self.cfg.min_bet_per_slot)
        others = (players - 1) * min_bet
        whale = max(avg, total - others)
        self._note(
            "top slot #%d total=%.6f SOL players=%d avg=%.6f assumed_others=%.6f whale=%.6f",
            top, total, players, avg, others, whale,
        )
        return whale

    def median_bet(self, snapshot: SlotSnapshot) -> float | None:
        averages = [
            lamports_to_sol(snapshot.deployed[i]) / int(snapshot.count[i])
            for i in range(SLOT_COUNT)
            if int(snapshot.count[i]) > 0
        ]
        if not averages:
            return None
        median = statistics.median(averages)
        self._note(
            "median strategy: %d slots with bets, range %.6f-%.6f, median %.6f SOL",
            len(averages), min(averages), max(averages), median,
        )
        return median

    def target_from_snapshot(self, snapshot: SlotSnapshot) -> float | None:
        if snapshot.total_deployed <= 0:
            return None
        if self.cfg.strategy == "median":
            return self.median_bet(snapshot)
        return self.top_bet(snapshot)

    def decide(self, store: ObservationStore | None, snapshot: SlotSnapshot | None) -> BidDecision:
        target: float | None = None
        source = "none"
        if store is not None:
            target = self.target_from_store(store)
            if target is not None:
                source = "live"
        if target is None and snapshot is not None:
            target = self.target_from_snapshot(snapshot)
            if target is not None:
                source = "snapshot"
        if target is None:
            target = 0.0
        return BidDecision(amount=self.clamp(target), target=target, source=source, strategy=self.cfg.strategy)
