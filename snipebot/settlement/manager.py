from __future__ import annotations

import asyncio
from dataclasses import dataclass

from snipebot.domain import SettlementState
from snipebot.execution import CommitResult, CommitStatus


@dataclass(frozen=True)
class FundsCheck:
    ok: bool
    balance: float
    recovered: bool = False


class SettlementManager:
    """Checkpoint and reward-claim boundary for the round-start flow."""

    def __init__(
        self,
        reader,
        sequencer,
        log,
        *,
        claim_every_round: bool = True,
        min_wallet_balance: float = 0.1,
        refresh_delay_sec: float = 3.0,
    ):
        self.reader = reader
        self.sequencer = sequencer
        self.log = log
        self.claim_every_round = claim_every_round
        self.min_wallet_balance = min_wallet_balance
        self.refresh_delay_sec = refresh_delay_sec

    async def settle_previous_round(self) -> SettlementState | None:
        """Checkpoint the last round bid into if owed, then claim if configured."""
        state = await self.reader.fetch_settlement_state()
        if state is None:
            self.log.info("no miner account yet (nothing to settle)")
            return None

        if state.settlement_owed:
            self.log.info("checkpointing round %d", state.round_id)
            result = await self.sequencer.checkpoint(state.round_id)
            if result.status is CommitStatus.CONFIRMED:
                await asyncio.sleep(self.refresh_delay_sec)
                refreshed = await self.reader.fetch_settlement_state()
                if refreshed is not None:
                    state = refreshed

        if self.claim_every_round:
            self.log.info("rewards available: %.6f SOL, %.4f ORE", state.rewards_sol, state.rewards_ore)
            if state.has_rewards:
                await self.claim(state)
        return state

    async def claim(self, state: SettlementState | None = None) -> CommitResult | None:
        if state is None:
            state = await self.reader.fetch_settlement_state()
        if state is None:
            self.log.info("no miner account yet (no rewards to claim)")
            return None
        return await self.sequencer.claim_rewards(state.rewards_sol, state.rewards_ore)

    async def ensure_funds(self) -> FundsCheck:
        """Balance floor check with one recovery claim attempt."""
        balance = await self.reader.fetch_balance()
        if balance >= self.min_wallet_balance:
            return FundsCheck(ok=True, balance=balance)

        self.log.warning("low balance: %.4f SOL (minimum %.4f SOL)", balance, self.min_wallet_balance)
        state = await self.reader.fetch_settlement_state()
        if state is not None and state.has_rewards:
            result = await self.claim(state)
            if result is not None and result.status is CommitStatus.CONFIRMED:
                balance = await self.reader.fetch_balance()
                if balance >= self.min_wallet_balance:
                    self.log.info("balance recovered: %.4f SOL", balance)
                    return FundsCheck(ok=True, balance=balance, recovered=True)

        self.log.error("still below minimum balance; skipping betting this round")
        return FundsCheck(ok=False, balance=balance)
