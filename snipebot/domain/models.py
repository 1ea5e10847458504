from __future__ import annotations

import enum
from dataclasses import dataclass

SLOT_COUNT = 25
LAMPORTS_PER_SOL = 1_000_000_000
ORE_UNITS = 100_000_000_000
U64_MAX = 2**64 - 1


def lamports_to_sol(lamports: int) -> float:
    return float(lamports) / LAMPORTS_PER_SOL


@dataclass(frozen=True)
class RoundInfo:
    round_id: int
    start_slot: int
    end_slot: int | None

    @property
    def started(self) -> bool:
        return self.end_slot is not None


@dataclass(frozen=True)
class SlotSnapshot:
    """Authoritative per-slot totals for one round (lamports)."""

    round_id: int
    deployed: tuple[int, ...]
    count: tuple[int, ...]
    total_deployed: int

    @classmethod
    def empty(cls, round_id: int) -> SlotSnapshot:
        return cls(round_id=round_id, deployed=(0,) * SLOT_COUNT, count=(0,) * SLOT_COUNT, total_deployed=0)


@dataclass(frozen=True)
class Sample:
    amount: float
    slot: int | None = None

    def applies_to(self, slot: int) -> bool:
        return self.slot is None or self.slot == slot


@dataclass(frozen=True)
class SettlementState:
    checkpoint_id: int
    round_id: int
    rewards_sol: float
    rewards_ore: float

    @property
    def settlement_owed(self) -> bool:
        return self.checkpoint_id < self.round_id

    @property
    def has_rewards(self) -> bool:
        return self.rewards_sol > 0 or self.rewards_ore > 0


@dataclass(frozen=True)
class AutomationBudget:
    amount_per_slot: float
    balance: float
    slot_mask: int

    @property
    def cost_per_round(self) -> float:
        return self.amount_per_slot * self.slot_mask

    @property
    def remaining_rounds(self) -> int:
        if self.cost_per_round <= 0:
            return 0
        return int(self.balance // self.cost_per_round)


@dataclass(frozen=True)
class LogNotification:
    signature: str
    failed: bool
    lines: tuple[str, ...]


class StepKind(str, enum.Enum):
    SETTLE = "settle"
    BID = "bid"
    CLAIM_SOL = "claim_sol"
    CLAIM_ORE = "claim_ore"
    CLOSE_BUDGET = "close_budget"


@dataclass(frozen=True)
class Step:
    """Opaque operation descriptor handed to the ledger codec."""

    kind: StepKind
    round_id: int | None = None
    amount: float = 0.0


class Phase(str, enum.Enum):
    AWAITING_ROUND = "awaiting_round"
    TRACKING = "tracking"
    SNIPE_WINDOW = "snipe_window"
    SETTLING = "settling"
