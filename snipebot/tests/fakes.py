from __future__ import annotations

import logging

from snipebot.domain import LAMPORTS_PER_SOL, SLOT_COUNT, RoundInfo, SlotSnapshot


def sol(amount: float) -> int:
    return int(round(amount * LAMPORTS_PER_SOL))


def make_snapshot(round_id: int, deployed: dict[int, float] | None = None, count: dict[int, int] | None = None) -> SlotSnapshot:
    deployed = deployed or {}
    count = count or {}
    lamports = tuple(sol(deployed.get(i, 0.0)) for i in range(SLOT_COUNT))
    return SlotSnapshot(
        round_id=round_id,
        deployed=lamports,
        count=tuple(int(count.get(i, 0)) for i in range(SLOT_COUNT)),
        total_deployed=sum(lamports),
    )


class FakeLedger:
    def __init__(
        self,
        *,
        round_info: RoundInfo | None = None,
        current_slot: int = 0,
        snapshot: SlotSnapshot | None = None,
        settlement=None,
        balance: float = 1.0,
        automation=None,
    ):
        self.round_info = round_info or RoundInfo(round_id=1, start_slot=0, end_slot=None)
        self.current_slot = current_slot
        self.snapshot = snapshot
        self.snapshot_error: Exception | None = None
        self.settlement = settlement
        self.balance = balance
        self.automation = automation
        self.snapshot_calls = 0

    async def fetch_round_info(self) -> RoundInfo:
        return self.round_info

    async def fetch_current_position(self) -> int:
        return self.current_slot

    async def fetch_slot_snapshot(self, round_id: int) -> SlotSnapshot:
        self.snapshot_calls += 1
        if self.snapshot_error is not None:
            raise self.snapshot_error
        if self.snapshot is None:
            return SlotSnapshot.empty(round_id)
        return self.snapshot

    async def fetch_settlement_state(self):
        return self.settlement

    async def fetch_balance(self) -> float:
        return self.balance

    async def fetch_automation(self):
        return self.automation

    async def fetch_transaction_signer(self, signature: str) -> str | None:
        return "Bettor1111"


class FakeSubmitter:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[list] = []

    async def submit(self, steps) -> str:
        self.calls.append(list(steps))
        if self.error is not None:
            raise self.error
        return f"sig-{len(self.calls)}"


class FakeStream:
    def __init__(self, notes=()):
        self.notes = list(notes)
        self.closed = 0

    async def notifications(self):
        for note in self.notes:
            yield note

    async def close(self) -> None:
        self.closed += 1


LOG = logging.getLogger("snipebot.tests")
